"""
Deterministic multi-factor yield scoring.

The model is a heuristic stand-in for a trained estimator: a seeded base yield is
scaled by soil, weather, growth stage and variety factors. Identical inputs and
seed always give identical output.
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Tuple

import numpy as np

from farms.models import growth_stage_for
from .conf import ScoringConfig

logger = logging.getLogger(__name__)

OPTIMAL_PH = 6.5
DEFAULT_RAINFALL_MM = 5.0
DEFAULT_TEMPERATURE = 25.0

# (upper bound in days since planting, factor); past the last band the crop is at full potential
GROWTH_STAGE_FACTORS = (
    (0, 0.0),
    (30, 0.3),
    (60, 0.6),
    (90, 0.8),
)

BASE_FEATURES = ("PlantingDate", "DaysSincePlanting", "MaizeVariety")


def _round(value, places="0.01"):
    return float(Decimal(repr(value)).quantize(Decimal(places), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class FactorImportance:
    factor: str
    importance: float
    impact: str


@dataclass(frozen=True)
class FactorScores:
    base: float
    soil: float
    weather: float
    growth_stage: float
    variety: float


@dataclass(frozen=True)
class PredictionResult:
    predicted_yield: float
    confidence: float
    features_used: Tuple[str, ...]
    factors: Tuple[FactorImportance, ...]
    model_version: str
    prediction_date: date
    scores: Optional[FactorScores] = None
    growth_stage: str = ""

    @property
    def quality(self):
        if self.confidence >= 90:
            return "HIGH"
        if self.confidence >= 70:
            return "MEDIUM"
        return "LOW"

    def as_dict(self):
        """JSON friendly form used for the completion event payload"""
        return {
            'predicted_yield': self.predicted_yield,
            'confidence': self.confidence,
            'features_used': list(self.features_used),
            'factors': [asdict(f) for f in self.factors],
            'model_version': self.model_version,
            'prediction_date': self.prediction_date.isoformat(),
            'growth_stage': self.growth_stage,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            predicted_yield=data['predicted_yield'],
            confidence=data['confidence'],
            features_used=tuple(data.get('features_used', ())),
            factors=tuple(FactorImportance(**f) for f in data.get('factors', ())),
            model_version=data.get('model_version', ''),
            prediction_date=date.fromisoformat(data['prediction_date']),
            growth_stage=data.get('growth_stage', ''),
        )


def ph_factor(ph_level):
    if ph_level is None:
        return 0.9
    return max(0.7, 1.0 - abs(ph_level - OPTIMAL_PH) * 0.1)


def organic_matter_factor(organic_matter):
    if organic_matter is None:
        return 1.0
    return min(1.2, max(0.8, 0.8 + organic_matter * 0.1))


def nutrient_factor(nitrogen, phosphorus):
    if nitrogen is None or phosphorus is None:
        return 1.0
    return min(1.3, max(0.7, 0.7 + nitrogen * 0.15 + phosphorus * 0.1))


def soil_factor(soil_sample):
    if soil_sample is None:
        return 1.0
    return (
        ph_factor(soil_sample.ph_level)
        * organic_matter_factor(soil_sample.organic_matter_percentage)
        * nutrient_factor(soil_sample.nitrogen_content, soil_sample.phosphorus_content)
    )


def rainfall_factor(average_rainfall):
    """Optimal between 5 and 15 mm/day"""
    if average_rainfall < 1.0:
        return 0.6
    if average_rainfall < 5.0:
        return 0.8 + (average_rainfall - 1.0) * 0.05
    if average_rainfall <= 15.0:
        return 1.0
    if average_rainfall <= 25.0:
        return 1.0 - (average_rainfall - 15.0) * 0.02
    return 0.8


def temperature_factor(average_temperature):
    """Optimal between 20 and 30 C"""
    if average_temperature < 15.0:
        return 0.7
    if average_temperature < 20.0:
        return 0.7 + (average_temperature - 15.0) * 0.06
    if average_temperature <= 30.0:
        return 1.0
    if average_temperature <= 35.0:
        return 1.0 - (average_temperature - 30.0) * 0.06
    return 0.7


def _window_mean(values, default):
    present = [v for v in values if v is not None]
    if not present:
        return default
    return float(np.mean(present))


def weather_factor(weather_window):
    if not weather_window:
        return 1.0
    rainfall = _window_mean([w.rainfall_mm for w in weather_window], DEFAULT_RAINFALL_MM)
    temperature = _window_mean([w.average_temperature for w in weather_window], DEFAULT_TEMPERATURE)
    return rainfall_factor(rainfall) * temperature_factor(temperature)


def growth_stage_factor(days_since_planting):
    for upper_bound, factor in GROWTH_STAGE_FACTORS:
        if days_since_planting < upper_bound:
            return factor
    return 1.0


def variety_factor(variety):
    return 1.1 if variety.drought_resistant else 1.0


def data_completeness(has_soil, has_weather):
    return (0.5 if has_soil else 0.0) + (0.5 if has_weather else 0.0)


def _impact(value):
    return "POSITIVE" if value >= 1.0 else "NEGATIVE"


class FactorScoringModel:
    """Scores a planting session from whatever soil and weather data is available"""

    def __init__(self, config: Optional[ScoringConfig] = None):
        self.config = config or ScoringConfig()

    def score(self, session, soil_sample, weather_window, as_of: date) -> PredictionResult:
        weather_window = list(weather_window or [])
        # A fresh generator per call keeps the draw independent of call history
        rng = np.random.default_rng(self.config.seed)
        spread = self.config.base_yield_max - self.config.base_yield_min
        base = self.config.base_yield_min + float(rng.random()) * spread

        days = session.days_since_planting(as_of)
        scores = FactorScores(
            base=base,
            soil=soil_factor(soil_sample),
            weather=weather_factor(weather_window),
            growth_stage=growth_stage_factor(days),
            variety=variety_factor(session.variety),
        )
        predicted = max(0.0, scores.base * scores.soil * scores.weather * scores.growth_stage * scores.variety)

        has_soil = soil_sample is not None
        has_weather = bool(weather_window)
        jitter = float(rng.random()) * self.config.confidence_jitter
        confidence = 70.0 + data_completeness(has_soil, has_weather) * 20.0 + jitter

        features = list(BASE_FEATURES)
        if has_soil:
            features.append("SoilData")
        if has_weather:
            features.append("WeatherData")

        logger.debug(
            f"Scored session {session.id}: base={base:.3f} soil={scores.soil:.3f} weather={scores.weather:.3f} "
            f"growth={scores.growth_stage} variety={scores.variety}"
        )

        return PredictionResult(
            predicted_yield=_round(predicted),
            confidence=_round(confidence),
            features_used=tuple(features),
            factors=self.factor_breakdown(scores, has_soil, has_weather),
            model_version=self.config.model_version,
            prediction_date=as_of,
            scores=scores,
            growth_stage=growth_stage_for(days),
        )

    @staticmethod
    def factor_breakdown(scores, has_soil, has_weather):
        factors = []
        if has_soil:
            factors.append(FactorImportance("Soil Quality", _round(scores.soil * 0.3), _impact(scores.soil)))
        if has_weather:
            factors.append(FactorImportance("Weather Conditions", _round(scores.weather * 0.4), _impact(scores.weather)))
        factors.append(FactorImportance("Growth Stage", _round(scores.growth_stage * 0.2), "NEUTRAL"))
        factors.append(FactorImportance(
            "Maize Variety",
            _round(scores.variety * 0.1),
            "POSITIVE" if scores.variety > 1.0 else "NEUTRAL",
        ))
        return tuple(factors)
