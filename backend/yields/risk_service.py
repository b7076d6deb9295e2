import logging
from dataclasses import dataclass
from typing import Optional

from .conf import CriticalityThresholds, RiskThresholds

logger = logging.getLogger(__name__)

DROUGHT_STRESS = "DROUGHT_STRESS"
HEAT_STRESS = "HEAT_STRESS"
EXCESSIVE_RAINFALL = "EXCESSIVE_RAINFALL"
PH_IMBALANCE = "PH_IMBALANCE"
NITROGEN_DEFICIENCY = "NITROGEN_DEFICIENCY"
PHOSPHORUS_DEFICIENCY = "PHOSPHORUS_DEFICIENCY"
SOIL_MOISTURE_LOW = "SOIL_MOISTURE_LOW"
LATE_SEASON_STRESS = "LATE_SEASON_STRESS"

RISK_FACTORS = (
    DROUGHT_STRESS,
    HEAT_STRESS,
    EXCESSIVE_RAINFALL,
    PH_IMBALANCE,
    NITROGEN_DEFICIENCY,
    PHOSPHORUS_DEFICIENCY,
    SOIL_MOISTURE_LOW,
    LATE_SEASON_STRESS,
)


class RiskFactorAnalyzer:
    """
    Derive risk tags from the last week of weather and the latest soil sample.

    Tags come back in table order without duplicates. Nothing is stored; the tags
    only live for one recommendation run.
    """

    def __init__(self, thresholds: Optional[RiskThresholds] = None):
        self.thresholds = thresholds or RiskThresholds()

    def analyze(self, recent_weather, soil_sample, days_since_planting, maturity_days):
        t = self.thresholds
        detected = set()

        for day in recent_weather:
            if day.rainfall_mm is None or day.rainfall_mm < t.low_rainfall_mm:
                detected.add(DROUGHT_STRESS)
            if day.max_temperature is not None and day.max_temperature > t.heat_stress_temperature:
                detected.add(HEAT_STRESS)
            if day.rainfall_mm is not None and day.rainfall_mm > t.excessive_rainfall_mm:
                detected.add(EXCESSIVE_RAINFALL)

        if soil_sample is not None:
            ph = soil_sample.ph_level
            if ph is not None and (ph < t.ph_min or ph > t.ph_max):
                detected.add(PH_IMBALANCE)
            if soil_sample.nitrogen_content is not None and soil_sample.nitrogen_content < t.nitrogen_min:
                detected.add(NITROGEN_DEFICIENCY)
            if soil_sample.phosphorus_content is not None and soil_sample.phosphorus_content < t.phosphorus_min:
                detected.add(PHOSPHORUS_DEFICIENCY)
            if soil_sample.moisture_content is not None and soil_sample.moisture_content < t.moisture_min:
                detected.add(SOIL_MOISTURE_LOW)

        if maturity_days and days_since_planting > maturity_days * t.late_season_fraction:
            detected.add(LATE_SEASON_STRESS)

        return [tag for tag in RISK_FACTORS if tag in detected]


@dataclass(frozen=True)
class PredictionAnalysis:
    expected_yield: float
    predicted_yield: float
    yield_deficit: float
    deficit_percentage: float
    confidence: float
    needs_intervention: bool
    criticality_level: int


class PredictionAnalyzer:
    """Classify how far a prediction falls short of what the session should yield"""

    def __init__(self, thresholds: Optional[CriticalityThresholds] = None):
        self.thresholds = thresholds or CriticalityThresholds()

    def expected_yield(self, historical_average=None, variety_average=None):
        if historical_average is not None:
            return historical_average
        if variety_average is not None:
            return variety_average
        return self.thresholds.optimal_yield_target

    def analyze(self, prediction, expected_yield):
        t = self.thresholds
        predicted = prediction.predicted_yield
        confidence = prediction.confidence
        deficit = expected_yield - predicted
        deficit_percentage = deficit / expected_yield * 100.0 if expected_yield else 0.0

        below_critical = predicted < t.critical_yield
        low_confidence = confidence < t.low_confidence_percent

        if below_critical:
            level = 5
        elif deficit_percentage > 30.0:
            level = 4
        elif deficit_percentage > t.yield_deficit_percent:
            level = 3
        elif low_confidence:
            level = 2
        else:
            level = 1

        analysis = PredictionAnalysis(
            expected_yield=expected_yield,
            predicted_yield=predicted,
            yield_deficit=deficit,
            deficit_percentage=deficit_percentage,
            confidence=confidence,
            needs_intervention=below_critical or deficit_percentage > t.yield_deficit_percent or low_confidence,
            criticality_level=level,
        )
        logger.debug(f"Prediction analysis: {analysis}")
        return analysis
