"""
Recommendation items and the fixed text used for each risk factor.
"""

from dataclasses import dataclass
from typing import Optional

from .models import Recommendation
from .risk_service import (
    DROUGHT_STRESS,
    EXCESSIVE_RAINFALL,
    HEAT_STRESS,
    LATE_SEASON_STRESS,
    NITROGEN_DEFICIENCY,
    PH_IMBALANCE,
    PHOSPHORUS_DEFICIENCY,
    SOIL_MOISTURE_LOW,
)

LOW = 'LOW'
MEDIUM = 'MEDIUM'
HIGH = 'HIGH'
CRITICAL = 'CRITICAL'

PRIORITY_ORDER = {CRITICAL: 0, HIGH: 1, MEDIUM: 2, LOW: 3}


@dataclass(frozen=True)
class RecommendationItem:
    """An unsaved recommendation produced during one generation run"""
    category: str
    title: str
    description: str
    priority: str
    confidence: Optional[float] = None

    def to_model(self, planting_session, recommendation_date):
        return Recommendation(
            planting_session=planting_session,
            recommendation_date=recommendation_date,
            category=self.category,
            title=self.title,
            description=self.description,
            priority=self.priority,
            confidence=self.confidence,
        )


MULCHING = RecommendationItem(
    category=Recommendation.SOIL_MANAGEMENT,
    title="Apply Mulching to Retain Soil Moisture",
    description=(
        "Use organic mulch around plants to reduce water evaporation and maintain soil moisture. "
        "Apply 5-7cm thick layer of straw or grass mulch."
    ),
    priority=MEDIUM,
    confidence=80.0,
)

RISK_TEMPLATES = {
    DROUGHT_STRESS: (
        RecommendationItem(
            category=Recommendation.IRRIGATION,
            title="Increase Irrigation - Drought Stress Detected",
            description=(
                "Low rainfall detected in recent days. Increase irrigation frequency to 2-3 times per week. "
                "Apply 25-30mm of water per irrigation session."
            ),
            priority=HIGH,
            confidence=90.0,
        ),
        MULCHING,
    ),
    HEAT_STRESS: (
        RecommendationItem(
            category=Recommendation.CROP_PROTECTION,
            title="Mitigate Heat Stress",
            description=(
                "High temperatures detected. Increase irrigation frequency and consider shade netting "
                "during peak hours (11 AM - 3 PM). Apply foliar spray with potassium."
            ),
            priority=HIGH,
            confidence=85.0,
        ),
    ),
    EXCESSIVE_RAINFALL: (
        RecommendationItem(
            category=Recommendation.DRAINAGE,
            title="Improve Field Drainage",
            description=(
                "Excessive rainfall detected. Ensure proper drainage to prevent waterlogging. "
                "Create drainage channels and consider fungicide application to prevent diseases."
            ),
            priority=HIGH,
            confidence=85.0,
        ),
    ),
    NITROGEN_DEFICIENCY: (
        RecommendationItem(
            category=Recommendation.FERTILIZATION,
            title="Apply Nitrogen Fertilizer",
            description=(
                "Soil nitrogen levels are low. Apply 50-75 kg/ha of urea fertilizer. "
                "For immediate effect, use liquid nitrogen fertilizer as foliar spray."
            ),
            priority=HIGH,
            confidence=95.0,
        ),
    ),
    PHOSPHORUS_DEFICIENCY: (
        RecommendationItem(
            category=Recommendation.FERTILIZATION,
            title="Supplement Phosphorus",
            description=(
                "Low phosphorus levels detected. Apply 30-40 kg/ha of DAP fertilizer. "
                "Apply near the root zone for better uptake."
            ),
            priority=MEDIUM,
            confidence=90.0,
        ),
    ),
    SOIL_MOISTURE_LOW: (
        RecommendationItem(
            category=Recommendation.IRRIGATION,
            title="Restore Soil Moisture",
            description=(
                "Soil moisture is below 30%. Irrigate to bring the root zone back to field capacity "
                "and check moisture again within three days."
            ),
            priority=HIGH,
            confidence=85.0,
        ),
        MULCHING,
    ),
    LATE_SEASON_STRESS: (
        RecommendationItem(
            category=Recommendation.HARVEST_PLANNING,
            title="Prepare for Harvest",
            description=(
                "The crop is in the final stretch of its season. Monitor grain moisture, avoid late "
                "nitrogen applications and prepare harvesting and storage equipment."
            ),
            priority=MEDIUM,
            confidence=80.0,
        ),
    ),
}


def ph_recommendation(ph_level):
    if ph_level is not None and ph_level < 6.0:
        action = "Apply agricultural lime at 2-3 tons/ha to raise pH."
    else:
        action = "Apply sulfur or organic matter to lower pH."
    return RecommendationItem(
        category=Recommendation.SOIL_MANAGEMENT,
        title="Correct Soil pH",
        description=f"Soil pH is outside optimal range (6.0-7.0). {action}",
        priority=MEDIUM,
        confidence=85.0,
    )


def risk_recommendations(risk_factor, soil_sample=None):
    if risk_factor == PH_IMBALANCE:
        return [ph_recommendation(soil_sample.ph_level if soil_sample is not None else None)]
    return list(RISK_TEMPLATES.get(risk_factor, ()))


def emergency_recommendation(analysis):
    return RecommendationItem(
        category=Recommendation.EMERGENCY,
        title="Critical Yield Alert - Immediate Action Required",
        description=(
            f"Your predicted yield of {analysis.predicted_yield:.1f} tons/ha is critically low. "
            f"Expected yield was {analysis.expected_yield:.1f} tons/ha. Immediate intervention needed."
        ),
        priority=CRITICAL,
        confidence=95.0,
    )


def yield_optimization_recommendation(analysis, high_deficit_percent=25.0):
    return RecommendationItem(
        category=Recommendation.YIELD_OPTIMIZATION,
        title="Yield Below Expected - Enhancement Needed",
        description=(
            f"Predicted yield is {analysis.deficit_percentage:.1f}% below expected. "
            "Consider implementing yield enhancement strategies."
        ),
        priority=HIGH if analysis.deficit_percentage > high_deficit_percent else MEDIUM,
        confidence=85.0,
    )


def data_quality_recommendation(analysis):
    return RecommendationItem(
        category=Recommendation.DATA_QUALITY,
        title="Improve Data Quality for Better Predictions",
        description=(
            f"Prediction confidence is low ({analysis.confidence:.1f}%). "
            "Consider providing more detailed soil and weather data."
        ),
        priority=MEDIUM,
        confidence=75.0,
    )


MAINTENANCE_RECOMMENDATIONS = (
    RecommendationItem(
        category=Recommendation.MAINTENANCE,
        title="Continue Current Management Practices",
        description=(
            "Your maize crop is performing well. Continue with current irrigation, fertilization, "
            "and pest management practices. Monitor regularly for any changes."
        ),
        priority=LOW,
        confidence=80.0,
    ),
    RecommendationItem(
        category=Recommendation.MONITORING,
        title="Regular Crop Monitoring",
        description=(
            "Schedule weekly field inspections to monitor plant health, pest presence, "
            "and soil moisture levels. Early detection prevents major issues."
        ),
        priority=LOW,
        confidence=85.0,
    ),
)
