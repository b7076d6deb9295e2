import logging
from dataclasses import dataclass

from django.utils import timezone

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PredictionCompletedEvent:
    user_id: int
    session_id: int
    prediction: dict
    timestamp: str

    @classmethod
    def create(cls, user_id, session_id, prediction_result):
        return cls(
            user_id=user_id,
            session_id=session_id,
            prediction=prediction_result.as_dict(),
            timestamp=timezone.now().isoformat(),
        )

    def as_payload(self):
        return {
            'user_id': self.user_id,
            'session_id': self.session_id,
            'prediction': self.prediction,
            'timestamp': self.timestamp,
        }


class PredictionEventPublisher:
    """Queues completed predictions for the recommendation worker"""

    def publish(self, event):
        from .tasks import handle_prediction_completed

        try:
            handle_prediction_completed.delay(event.as_payload())
            logger.info(f"Published prediction completed event for session {event.session_id}")
            return True
        except Exception as e:
            logger.error(f"Failed to publish prediction completed event for session {event.session_id}: {str(e)}")
            return False
