import logging
from dataclasses import asdict

from asgiref.sync import sync_to_async
from dateutil.relativedelta import relativedelta
from django.utils import timezone

from .conf import get_config
from .events import PredictionCompletedEvent, PredictionEventPublisher
from .exceptions import PredictionError, UnauthorizedAccess
from .models import YieldPrediction
from .scoring_service import FactorScoringModel
from .stores import (
    PlantingSessionStore,
    SoilSampleStore,
    WeatherObservationStore,
    YieldPredictionStore,
)

logger = logging.getLogger(__name__)


class PredictionService:
    """Generate, store and publish yield predictions for planting sessions"""

    def __init__(self, config=None, model=None, weather_service=None, sessions=None, soil=None,
                 weather=None, predictions=None, publisher=None):
        self.config = config or get_config()
        self.model = model or FactorScoringModel(self.config.scoring)
        self._weather_service = weather_service
        self.sessions = sessions or PlantingSessionStore()
        self.soil = soil or SoilSampleStore()
        self.weather = weather or WeatherObservationStore()
        self.predictions = predictions or YieldPredictionStore()
        self.publisher = publisher or PredictionEventPublisher()

    @property
    def weather_service(self):
        if self._weather_service is None:
            from .weather_service import ResilientWeatherService
            self._weather_service = ResilientWeatherService(self.config.weather)
        return self._weather_service

    async def _load_session(self, user_id, session_id):
        session = await sync_to_async(self.sessions.get)(session_id)
        if session.farm.owner_id != user_id:
            raise UnauthorizedAccess(
                f"You don't have permission to generate predictions for planting session {session_id}"
            )
        return session

    async def _refresh_weather(self, session):
        """Best effort: a failed refresh only means the window misses today"""
        if not session.farm.has_geo_coordinates:
            return
        try:
            await self.weather_service.fetch_current(session.farm)
        except Exception as e:
            logger.warning(f"Could not refresh weather for farm {session.farm_id}: {str(e)}")

    def _score(self, session, as_of):
        soil_sample = self.soil.latest_for_farm(session.farm_id)
        window_start = as_of - relativedelta(months=self.config.scoring.weather_window_months)
        weather_window = self.weather.between(session.farm_id, window_start, as_of)
        return self.model.score(session, soil_sample, weather_window, as_of)

    async def generate_prediction(self, user_id, session_id, as_of=None):
        """
        Score a planting session, store the prediction and publish a completion event.

        Raises ResourceNotFound or UnauthorizedAccess for bad references and
        PredictionError when scoring itself fails.
        """
        as_of = as_of or timezone.localdate()
        session = await self._load_session(user_id, session_id)
        logger.info(f"Generating yield prediction for planting session {session_id}")

        if as_of == timezone.localdate():
            await self._refresh_weather(session)

        try:
            result = await sync_to_async(self._score)(session, as_of)
        except Exception as e:
            logger.error(f"Error generating yield prediction for session {session_id}: {str(e)}")
            raise PredictionError(
                "Failed to generate yield prediction",
                details={'session_id': session_id, 'cause': str(e)},
            ) from e

        prediction = YieldPrediction(
            planting_session=session,
            prediction_date=result.prediction_date,
            predicted_yield_tons_per_hectare=result.predicted_yield,
            confidence_percentage=result.confidence,
            model_version=result.model_version,
            features_used=list(result.features_used),
            factor_breakdown=[asdict(factor) for factor in result.factors],
        )
        prediction = await sync_to_async(self.predictions.save)(prediction)
        logger.info(
            f"Stored prediction {prediction.id} for session {session_id}: "
            f"{result.predicted_yield} t/ha at {result.confidence}% confidence"
        )

        event = PredictionCompletedEvent.create(user_id, session_id, result)
        # Eager consumers run inline, so publishing must not happen on the event loop
        await sync_to_async(self.publisher.publish)(event)
        return prediction

    async def generate_predictions_for_farm(self, user_id, farm_id, as_of=None):
        """Predict every active session on a farm; failures are logged and skipped"""
        as_of = as_of or timezone.localdate()
        sessions = await sync_to_async(self.sessions.for_farm)(farm_id)
        predictions = []
        for session in sessions:
            if not session.is_active(as_of):
                continue
            try:
                predictions.append(await self.generate_prediction(user_id, session.id, as_of))
            except UnauthorizedAccess:
                raise
            except Exception as e:
                logger.error(f"Failed to generate prediction for session {session.id}: {str(e)}")
        return predictions

    async def get_prediction_history(self, session_id, start=None, end=None):
        await sync_to_async(self.sessions.get)(session_id)
        return await sync_to_async(self.predictions.history)(session_id, start, end)

    async def get_latest_prediction(self, session_id):
        return await sync_to_async(self.predictions.latest_for_session)(session_id)
