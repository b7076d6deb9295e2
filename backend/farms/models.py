from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

# Day bands for named growth stages; the last band is open ended.
GROWTH_STAGES = [
    (15, "Germination & Emergence (VE)"),
    (30, "Vegetative Growth (V1-V5)"),
    (60, "Rapid Growth (V6-V12)"),
    (80, "Tasseling & Silking (VT-R1)"),
    (100, "Kernel Development (R2-R4)"),
    (120, "Maturity (R5-R6)"),
]


def growth_stage_for(days_since_planting):
    """Map days since planting onto a named maize growth stage"""
    if days_since_planting < 0:
        return "Not Planted"
    for upper_bound, stage in GROWTH_STAGES:
        if days_since_planting < upper_bound:
            return stage
    return "Ready for Harvest"


class Farm(models.Model):
    owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='farms')
    name = models.CharField(max_length=255)
    location = models.CharField(max_length=255)
    # Coordinates for weather provider lookups
    latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    size_hectares = models.DecimalField(max_digits=10, decimal_places=2)
    elevation = models.FloatField(null=True, blank=True, help_text="Elevation in metres")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    @property
    def has_geo_coordinates(self):
        """Check if the farm has coordinates usable by weather providers"""
        return self.latitude is not None and self.longitude is not None


class MaizeVariety(models.Model):
    name = models.CharField(max_length=100, unique=True)
    maturity_days = models.PositiveIntegerField()
    optimal_temperature_min = models.FloatField(null=True, blank=True)
    optimal_temperature_max = models.FloatField(null=True, blank=True)
    drought_resistant = models.BooleanField(default=False)
    disease_resistance = models.CharField(max_length=255, blank=True)
    description = models.TextField(blank=True)
    average_yield_tons_per_hectare = models.FloatField(
        null=True, blank=True, help_text="Typical yield for this variety (t/ha)"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']
        verbose_name_plural = "Maize varieties"

    def __str__(self):
        return self.name


class SoilSample(models.Model):
    farm = models.ForeignKey(Farm, on_delete=models.CASCADE, related_name='soil_samples')
    sample_date = models.DateField()
    soil_type = models.CharField(max_length=100, blank=True)
    ph_level = models.FloatField(null=True, blank=True)
    organic_matter_percentage = models.FloatField(null=True, blank=True)
    nitrogen_content = models.FloatField(null=True, blank=True)
    phosphorus_content = models.FloatField(null=True, blank=True)
    potassium_content = models.FloatField(null=True, blank=True)
    moisture_content = models.FloatField(null=True, blank=True, help_text="Soil moisture (%)")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-sample_date']

    def __str__(self):
        return f"{self.farm.name} soil - {self.sample_date}"

    def clean(self):
        if self.ph_level is not None and not 0 <= self.ph_level <= 14:
            raise ValidationError({'ph_level': "pH must be between 0 and 14"})


class PlantingSession(models.Model):
    farm = models.ForeignKey(Farm, on_delete=models.CASCADE, related_name='planting_sessions')
    variety = models.ForeignKey(MaizeVariety, on_delete=models.PROTECT, related_name='planting_sessions')
    planting_date = models.DateField()
    expected_harvest_date = models.DateField(null=True, blank=True)
    area_planted_hectares = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-planting_date']

    def __str__(self):
        return f"{self.farm.name} - {self.variety.name} ({self.planting_date})"

    def days_since_planting(self, as_of):
        return (as_of - self.planting_date).days

    def growth_stage(self, as_of):
        return growth_stage_for(self.days_since_planting(as_of))

    def is_active(self, as_of):
        """A session is active until its expected harvest date has passed"""
        if self.planting_date > as_of:
            return False
        return self.expected_harvest_date is None or self.expected_harvest_date >= as_of


class WeatherObservation(models.Model):
    """
    One day of weather for a farm, either fetched from a provider or recorded locally.
    At most one observation exists per farm and date.
    """
    farm = models.ForeignKey(Farm, on_delete=models.CASCADE, related_name='weather_observations')
    date = models.DateField()
    min_temperature = models.FloatField(null=True, blank=True)
    max_temperature = models.FloatField(null=True, blank=True)
    average_temperature = models.FloatField(null=True, blank=True)
    rainfall_mm = models.FloatField(null=True, blank=True)
    humidity_percentage = models.FloatField(null=True, blank=True)
    wind_speed_kmh = models.FloatField(null=True, blank=True)
    solar_radiation = models.FloatField(null=True, blank=True)
    source = models.CharField(max_length=50, default='manual')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-date']
        unique_together = ['farm', 'date']

    def __str__(self):
        return f"{self.farm.name} - {self.date} ({self.source})"

    def clean(self):
        temperatures = [self.min_temperature, self.average_temperature, self.max_temperature]
        if None not in temperatures and not temperatures[0] <= temperatures[1] <= temperatures[2]:
            raise ValidationError("Temperatures must satisfy min <= average <= max")


class YieldHistory(models.Model):
    planting_session = models.ForeignKey(PlantingSession, on_delete=models.CASCADE, related_name='yield_history')
    harvest_date = models.DateField()
    yield_tons_per_hectare = models.FloatField()
    quality_rating = models.CharField(max_length=20, blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-harvest_date']
        verbose_name_plural = "Yield histories"

    def __str__(self):
        return f"{self.planting_session} - {self.yield_tons_per_hectare} t/ha"
