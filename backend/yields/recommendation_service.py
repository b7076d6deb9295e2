import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import timedelta
from typing import List, Optional

from asgiref.sync import sync_to_async
from django.utils import timezone

from .conf import get_config
from .exceptions import UnauthorizedAccess
from .external.advanced_recommendations import build_advanced_provider
from .recommendation_templates import (
    CRITICAL,
    HIGH,
    LOW,
    MAINTENANCE_RECOMMENDATIONS,
    MEDIUM,
    data_quality_recommendation,
    emergency_recommendation,
    risk_recommendations,
    yield_optimization_recommendation,
)
from .risk_service import PredictionAnalyzer, RiskFactorAnalyzer
from .scoring_service import PredictionResult
from .stores import (
    PlantingSessionStore,
    RecommendationStore,
    SoilSampleStore,
    WeatherObservationStore,
    YieldHistoryStore,
    YieldPredictionStore,
)

logger = logging.getLogger(__name__)

# Yield optimization advice becomes HIGH priority past this deficit
HIGH_DEFICIT_PERCENT = 25.0
ESCALATION_CRITICALITY = 3


@dataclass(frozen=True)
class RecommendationContext:
    """Everything the engine needs for one session, loaded up front"""
    session: object
    days_since_planting: int
    recent_weather: list
    soil_sample: Optional[object]
    expected_yield: float


@dataclass
class RecommendationPlan:
    analysis: object
    risk_factors: List[str]
    items: list
    escalated: bool = False


def deduplicate(items):
    """Keep the first item for each title"""
    seen = set()
    unique = []
    for item in items:
        if item.title in seen:
            continue
        seen.add(item.title)
        unique.append(item)
    return unique


class RecommendationEngine:
    """
    Turn a prediction into an ordered, title-unique list of recommendations.

    Interventions are emitted in a fixed order: emergency, yield optimization, one
    group per risk factor in table order, data quality, then anything the advanced
    provider returns. Predictions that need no intervention get maintenance advice.
    """

    def __init__(self, config=None, risk_analyzer=None, prediction_analyzer=None, advanced_provider=None):
        self.config = config or get_config()
        self.risk_analyzer = risk_analyzer or RiskFactorAnalyzer(self.config.risk)
        self.prediction_analyzer = prediction_analyzer or PredictionAnalyzer(self.config.criticality)
        self.advanced_provider = advanced_provider

    async def generate(self, context: RecommendationContext, prediction) -> RecommendationPlan:
        analysis = self.prediction_analyzer.analyze(prediction, context.expected_yield)
        session = context.session

        if not analysis.needs_intervention:
            logger.info(f"Prediction within acceptable range for session {session.id}, generating maintenance advice")
            return RecommendationPlan(analysis=analysis, risk_factors=[], items=list(MAINTENANCE_RECOMMENDATIONS))

        logger.info(
            f"Prediction for session {session.id} needs intervention "
            f"(criticality {analysis.criticality_level}, deficit {analysis.deficit_percentage:.1f}%)"
        )
        risk_factors = self.risk_analyzer.analyze(
            context.recent_weather,
            context.soil_sample,
            context.days_since_planting,
            session.variety.maturity_days,
        )
        items = self.intervention_items(analysis, risk_factors, context.soil_sample)

        escalated = False
        if analysis.criticality_level >= ESCALATION_CRITICALITY and self.advanced_provider is not None:
            escalated = True
            items.extend(await self.escalate(context))

        return RecommendationPlan(
            analysis=analysis,
            risk_factors=risk_factors,
            items=deduplicate(items),
            escalated=escalated,
        )

    def intervention_items(self, analysis, risk_factors, soil_sample):
        t = self.config.criticality
        items = []
        if analysis.predicted_yield < t.critical_yield:
            items.append(emergency_recommendation(analysis))
        if analysis.deficit_percentage > t.yield_deficit_percent:
            items.append(yield_optimization_recommendation(analysis, HIGH_DEFICIT_PERCENT))
        for risk_factor in risk_factors:
            items.extend(risk_recommendations(risk_factor, soil_sample))
        if analysis.confidence < t.low_confidence_percent:
            items.append(data_quality_recommendation(analysis))
        return items

    async def escalate(self, context):
        try:
            return list(await self.advanced_provider.generate(
                context.session,
                context.recent_weather,
                context.soil_sample,
                context.days_since_planting,
            ))
        except Exception as e:
            logger.warning(f"Failed to generate advanced recommendations for session {context.session.id}: {str(e)}")
            return []


@dataclass
class RecommendationAnalysisResult:
    session_id: int
    success: bool
    recommendations: list = field(default_factory=list)
    error_message: Optional[str] = None
    criticality_level: Optional[int] = None
    risk_factors: List[str] = field(default_factory=list)

    @property
    def total(self):
        return len(self.recommendations)

    @property
    def priority_counts(self):
        counts = Counter(r.priority for r in self.recommendations)
        return {priority: counts.get(priority, 0) for priority in (CRITICAL, HIGH, MEDIUM, LOW)}

    @property
    def by_category(self):
        grouped = defaultdict(list)
        for recommendation in self.recommendations:
            grouped[recommendation.category].append(recommendation)
        return dict(grouped)

    @property
    def intervention_required(self):
        counts = self.priority_counts
        return counts[CRITICAL] > 0 or counts[HIGH] > 0

    def summary(self):
        return {
            'session_id': self.session_id,
            'success': self.success,
            'error': self.error_message,
            'total': self.total,
            'priority_counts': self.priority_counts,
            'categories': {category: len(items) for category, items in self.by_category.items()},
            'intervention_required': self.intervention_required,
            'criticality_level': self.criticality_level,
            'risk_factors': self.risk_factors,
        }


class RecommendationService:
    """Loads session context, runs the engine and stores the resulting recommendations"""

    def __init__(self, config=None, engine=None, sessions=None, soil=None, weather=None,
                 history=None, predictions=None, recommendations=None):
        self.config = config or get_config()
        self.engine = engine or RecommendationEngine(
            self.config, advanced_provider=build_advanced_provider(self.config.advanced)
        )
        self.sessions = sessions or PlantingSessionStore()
        self.soil = soil or SoilSampleStore()
        self.weather = weather or WeatherObservationStore()
        self.history = history or YieldHistoryStore()
        self.predictions = predictions or YieldPredictionStore()
        self.recommendations = recommendations or RecommendationStore()

    def load_context(self, session, as_of):
        lookback = self.config.risk.lookback_days
        historical = self.history.average_yield(session.farm_id, session.variety_id)
        expected = self.engine.prediction_analyzer.expected_yield(
            historical, session.variety.average_yield_tons_per_hectare
        )
        return RecommendationContext(
            session=session,
            days_since_planting=session.days_since_planting(as_of),
            recent_weather=self.weather.between(session.farm_id, as_of - timedelta(days=lookback), as_of),
            soil_sample=self.soil.latest_for_farm(session.farm_id),
            expected_yield=expected,
        )

    async def analyze_and_store(self, session_id, prediction, user_id=None, as_of=None):
        """Run the engine for one session and persist its output. Returns (plan, records)"""
        as_of = as_of or timezone.localdate()
        if isinstance(prediction, dict):
            prediction = PredictionResult.from_dict(prediction)

        session = await sync_to_async(self.sessions.get)(session_id)
        if user_id is not None and session.farm.owner_id != user_id:
            raise UnauthorizedAccess(f"User {user_id} does not own planting session {session_id}")

        context = await sync_to_async(self.load_context)(session, as_of)
        plan = await self.engine.generate(context, prediction)

        records = [item.to_model(session, as_of) for item in plan.items]
        records = await sync_to_async(self.recommendations.save_all)(records)
        return plan, records

    async def trigger_recommendation_analysis(self, session_id, prediction, user_id=None, as_of=None):
        """
        Generate and store recommendations for a session from a prediction result.

        Failures are reported in the returned result instead of being raised.
        """
        try:
            plan, records = await self.analyze_and_store(session_id, prediction, user_id=user_id, as_of=as_of)
        except Exception as e:
            logger.error(f"Recommendation analysis failed for session {session_id}: {str(e)}")
            return RecommendationAnalysisResult(session_id=session_id, success=False, error_message=str(e))

        result = RecommendationAnalysisResult(
            session_id=session_id,
            success=True,
            recommendations=records,
            criticality_level=plan.analysis.criticality_level,
            risk_factors=plan.risk_factors,
        )
        logger.info(
            f"Generated {result.total} recommendations for session {session_id} "
            f"(critical={result.priority_counts[CRITICAL]}, high={result.priority_counts[HIGH]})"
        )
        return result

    async def generate_recommendations(self, session_id, as_of=None):
        """Recommendations from the latest stored prediction, or maintenance advice without one"""
        as_of = as_of or timezone.localdate()
        latest = await sync_to_async(self.predictions.latest_for_session)(session_id)
        if latest is None:
            session = await sync_to_async(self.sessions.get)(session_id)
            logger.info(f"No prediction for session {session_id}, generating maintenance recommendations")
            records = [item.to_model(session, as_of) for item in MAINTENANCE_RECOMMENDATIONS]
            return await sync_to_async(self.recommendations.save_all)(records)

        _, records = await self.analyze_and_store(session_id, latest.as_result(), as_of=as_of)
        return records

    async def process_batch(self, session_ids, as_of=None):
        processed = 0
        failed = 0
        results = []
        for session_id in session_ids:
            latest = await sync_to_async(self.predictions.latest_for_session)(session_id)
            if latest is None:
                logger.warning(f"Skipping session {session_id}: no prediction available")
                failed += 1
                continue
            result = await self.trigger_recommendation_analysis(session_id, latest.as_result(), as_of=as_of)
            results.append(result.summary())
            if result.success:
                processed += 1
            else:
                failed += 1

        logger.info(f"Processed recommendation batch: {processed} succeeded, {failed} failed")
        return {
            'success': failed == 0,
            'processed_count': processed,
            'failed_count': failed,
            'results': results,
        }
