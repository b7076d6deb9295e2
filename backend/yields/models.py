from django.db import models

from farms.models import PlantingSession


class YieldPrediction(models.Model):
    """
    Output of one scoring run for a planting session. Predictions are written once
    and never updated; the series for a session forms its prediction history.
    """
    planting_session = models.ForeignKey(PlantingSession, on_delete=models.CASCADE, related_name='predictions')
    prediction_date = models.DateField()
    predicted_yield_tons_per_hectare = models.FloatField()
    confidence_percentage = models.FloatField()
    model_version = models.CharField(max_length=20)
    features_used = models.JSONField(default=list)
    factor_breakdown = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['prediction_date', 'created_at']

    def __str__(self):
        return f"{self.planting_session} - {self.predicted_yield_tons_per_hectare} t/ha on {self.prediction_date}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Yield predictions are immutable once stored")
        super().save(*args, **kwargs)

    @property
    def quality(self):
        if self.confidence_percentage >= 90:
            return "HIGH"
        if self.confidence_percentage >= 70:
            return "MEDIUM"
        return "LOW"

    def as_result(self):
        from .scoring_service import FactorImportance, PredictionResult

        return PredictionResult(
            predicted_yield=self.predicted_yield_tons_per_hectare,
            confidence=self.confidence_percentage,
            features_used=tuple(self.features_used),
            factors=tuple(FactorImportance(**factor) for factor in self.factor_breakdown),
            model_version=self.model_version,
            prediction_date=self.prediction_date,
        )


class Recommendation(models.Model):
    PRIORITY_CHOICES = [
        ('LOW', 'Low'),
        ('MEDIUM', 'Medium'),
        ('HIGH', 'High'),
        ('CRITICAL', 'Critical'),
    ]

    IRRIGATION = 'IRRIGATION'
    FERTILIZATION = 'FERTILIZATION'
    SOIL_MANAGEMENT = 'SOIL_MANAGEMENT'
    DRAINAGE = 'DRAINAGE'
    CROP_PROTECTION = 'CROP_PROTECTION'
    EMERGENCY = 'EMERGENCY'
    YIELD_OPTIMIZATION = 'YIELD_OPTIMIZATION'
    DATA_QUALITY = 'DATA_QUALITY'
    MONITORING = 'MONITORING'
    MAINTENANCE = 'MAINTENANCE'
    HARVEST_PLANNING = 'HARVEST_PLANNING'

    planting_session = models.ForeignKey(PlantingSession, on_delete=models.CASCADE, related_name='recommendations')
    recommendation_date = models.DateField()
    category = models.CharField(max_length=50)
    title = models.CharField(max_length=200)
    description = models.TextField()
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES)
    confidence = models.FloatField(null=True, blank=True)
    is_viewed = models.BooleanField(default=False)
    is_implemented = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-recommendation_date', 'id']

    def __str__(self):
        return f"[{self.priority}] {self.title}"
