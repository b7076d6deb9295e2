"""
Celery tasks for prediction follow-up work
"""

import logging

from asgiref.sync import async_to_sync
from celery import shared_task

from .recommendation_service import RecommendationService

logger = logging.getLogger(__name__)


@shared_task(name="yields.handle_prediction_completed")
def handle_prediction_completed(payload):
    """
    Generate recommendations after a prediction completes.

    Runs decoupled from the prediction request; every failure is logged and
    reported in the returned summary, never raised back to the producer.
    """
    session_id = payload.get('session_id')
    logger.info(f"Handling prediction completed event for session {session_id}")

    async def run_analysis():
        service = RecommendationService()
        return await service.trigger_recommendation_analysis(
            session_id,
            payload['prediction'],
            user_id=payload.get('user_id'),
        )

    try:
        result = async_to_sync(run_analysis)()
    except Exception as e:
        logger.error(f"Error generating recommendations for session {session_id}: {str(e)}")
        return {"success": False, "error": str(e), "session_id": session_id}

    if not result.success:
        logger.error(f"Recommendation generation failed for session {session_id}: {result.error_message}")
    for recommendation in result.recommendations:
        if recommendation.priority == 'CRITICAL':
            logger.warning(f"Critical recommendation for session {session_id}: {recommendation.title}")
    return result.summary()


@shared_task(name="yields.generate_recommendations_batch")
def generate_recommendations_batch(session_ids):
    logger.info(f"Starting recommendation batch for {len(session_ids)} sessions")
    try:
        return async_to_sync(RecommendationService().process_batch)(session_ids)
    except Exception as e:
        logger.error(f"Error in recommendation batch task: {str(e)}")
        return {"success": False, "error": str(e), "processed_count": 0}
