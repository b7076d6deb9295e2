from datetime import date, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, Mock

from django.contrib.auth import get_user_model
from django.test import TestCase

from farms.models import Farm, MaizeVariety, PlantingSession, SoilSample, WeatherObservation
from yields.conf import YieldEstimatorConfig
from yields.exceptions import PredictionError, ResourceNotFound, UnauthorizedAccess
from yields.events import PredictionEventPublisher
from yields.models import Recommendation, YieldPrediction
from yields.prediction_service import PredictionService

AS_OF = date(2025, 2, 1)


class TestPredictionService(TestCase):
    def setUp(self):
        User = get_user_model()
        self.owner = User.objects.create_user(username="prediction_owner", password="password123")
        self.other_user = User.objects.create_user(username="prediction_other", password="password123")
        self.farm = Farm.objects.create(
            owner=self.owner,
            name="Test Farm",
            location="Musanze",
            latitude=Decimal("-1.499700"),
            longitude=Decimal("29.634900"),
            size_hectares=Decimal("2.50"),
        )
        self.variety = MaizeVariety.objects.create(
            name="Test Hybrid",
            maturity_days=120,
            drought_resistant=True,
            average_yield_tons_per_hectare=6.0,
        )
        self.session = PlantingSession.objects.create(
            farm=self.farm,
            variety=self.variety,
            planting_date=AS_OF - timedelta(days=60),
        )

        self.publisher = Mock()
        self.weather_service = Mock(fetch_current=AsyncMock(return_value=None))
        self.service = PredictionService(
            config=YieldEstimatorConfig(),
            weather_service=self.weather_service,
            publisher=self.publisher,
        )

    async def test_generate_prediction_stores_and_publishes(self):
        prediction = await self.service.generate_prediction(self.owner.id, self.session.id, as_of=AS_OF)

        self.assertIsNotNone(prediction.id)
        self.assertEqual(prediction.prediction_date, AS_OF)
        self.assertEqual(prediction.model_version, "1.0.0")
        self.assertGreaterEqual(prediction.confidence_percentage, 70.0)
        self.assertLessEqual(prediction.confidence_percentage, 95.0)
        self.assertEqual(prediction.features_used, ["PlantingDate", "DaysSincePlanting", "MaizeVariety"])
        self.assertEqual(len(prediction.factor_breakdown), 4)

        self.publisher.publish.assert_called_once()
        event = self.publisher.publish.call_args[0][0]
        self.assertEqual(event.session_id, self.session.id)
        self.assertEqual(event.user_id, self.owner.id)
        self.assertEqual(event.prediction['predicted_yield'], prediction.predicted_yield_tons_per_hectare)

    async def test_same_inputs_give_same_prediction(self):
        first = await self.service.generate_prediction(self.owner.id, self.session.id, as_of=AS_OF)
        second = await self.service.generate_prediction(self.owner.id, self.session.id, as_of=AS_OF)

        self.assertNotEqual(first.id, second.id)
        self.assertEqual(first.predicted_yield_tons_per_hectare, second.predicted_yield_tons_per_hectare)
        self.assertEqual(first.confidence_percentage, second.confidence_percentage)

    async def test_soil_and_weather_are_used_when_present(self):
        await SoilSample.objects.acreate(farm=self.farm, sample_date=AS_OF - timedelta(days=30), ph_level=6.5)
        await WeatherObservation.objects.acreate(
            farm=self.farm, date=AS_OF - timedelta(days=3), average_temperature=24.0, rainfall_mm=8.0
        )
        # Outside the one-month window
        await WeatherObservation.objects.acreate(
            farm=self.farm, date=AS_OF - timedelta(days=60), average_temperature=24.0, rainfall_mm=0.0
        )

        prediction = await self.service.generate_prediction(self.owner.id, self.session.id, as_of=AS_OF)

        self.assertIn("SoilData", prediction.features_used)
        self.assertIn("WeatherData", prediction.features_used)
        self.assertGreaterEqual(prediction.confidence_percentage, 90.0)
        weather = next(f for f in prediction.factor_breakdown if f['factor'] == "Weather Conditions")
        self.assertEqual(weather['impact'], "POSITIVE")

    async def test_unknown_session(self):
        with self.assertRaises(ResourceNotFound):
            await self.service.generate_prediction(self.owner.id, 999999, as_of=AS_OF)
        self.publisher.publish.assert_not_called()

    async def test_other_users_session_is_rejected(self):
        with self.assertRaises(UnauthorizedAccess):
            await self.service.generate_prediction(self.other_user.id, self.session.id, as_of=AS_OF)

        self.assertFalse(await YieldPrediction.objects.filter(planting_session=self.session).aexists())

    async def test_scoring_failure_is_wrapped(self):
        model = Mock()
        model.score.side_effect = ZeroDivisionError("division by zero")
        service = PredictionService(
            config=YieldEstimatorConfig(),
            model=model,
            weather_service=self.weather_service,
            publisher=self.publisher,
        )

        with self.assertRaises(PredictionError) as context:
            await service.generate_prediction(self.owner.id, self.session.id, as_of=AS_OF)

        self.assertEqual(context.exception.details['session_id'], self.session.id)
        self.assertIsInstance(context.exception.__cause__, ZeroDivisionError)
        self.publisher.publish.assert_not_called()

    async def test_weather_refresh_only_for_today(self):
        await self.service.generate_prediction(self.owner.id, self.session.id, as_of=AS_OF)
        self.weather_service.fetch_current.assert_not_awaited()

        await self.service.generate_prediction(self.owner.id, self.session.id)
        self.weather_service.fetch_current.assert_awaited_once()

    async def test_weather_refresh_failure_does_not_block_prediction(self):
        self.weather_service.fetch_current.side_effect = RuntimeError("providers down")

        prediction = await self.service.generate_prediction(self.owner.id, self.session.id)

        self.assertIsNotNone(prediction.id)

    async def test_completed_prediction_generates_recommendations(self):
        service = PredictionService(config=YieldEstimatorConfig(), weather_service=self.weather_service)
        self.assertIsInstance(service.publisher, PredictionEventPublisher)

        await service.generate_prediction(self.owner.id, self.session.id, as_of=AS_OF)

        stored = [r async for r in Recommendation.objects.filter(planting_session=self.session)]
        self.assertTrue(stored)
        self.assertEqual(len({r.title for r in stored}), len(stored))

    async def test_predictions_for_farm_skip_inactive_sessions(self):
        await PlantingSession.objects.acreate(
            farm=self.farm,
            variety=self.variety,
            planting_date=AS_OF - timedelta(days=300),
            expected_harvest_date=AS_OF - timedelta(days=150),
        )

        predictions = await self.service.generate_predictions_for_farm(self.owner.id, self.farm.id, as_of=AS_OF)

        self.assertEqual(len(predictions), 1)
        self.assertEqual(predictions[0].planting_session_id, self.session.id)

    async def test_history_and_latest(self):
        for offset in (20, 10, 0):
            await self.service.generate_prediction(self.owner.id, self.session.id, as_of=AS_OF - timedelta(days=offset))

        history = await self.service.get_prediction_history(self.session.id, start=AS_OF - timedelta(days=15))
        latest = await self.service.get_latest_prediction(self.session.id)

        self.assertEqual([p.prediction_date for p in history], [AS_OF - timedelta(days=10), AS_OF])
        self.assertEqual(latest.prediction_date, AS_OF)

    async def test_history_for_unknown_session(self):
        with self.assertRaises(ResourceNotFound):
            await self.service.get_prediction_history(424242)


class TestYieldPredictionModel(TestCase):
    def setUp(self):
        owner = get_user_model().objects.create_user(username="model_owner", password="password123")
        farm = Farm.objects.create(owner=owner, name="Model Farm", location="Huye", size_hectares=Decimal("1.00"))
        variety = MaizeVariety.objects.create(name="Model Variety", maturity_days=110)
        self.session = PlantingSession.objects.create(farm=farm, variety=variety, planting_date=AS_OF)
        self.prediction = YieldPrediction.objects.create(
            planting_session=self.session,
            prediction_date=AS_OF,
            predicted_yield_tons_per_hectare=4.8,
            confidence_percentage=72.5,
            model_version="1.0.0",
            features_used=["PlantingDate"],
            factor_breakdown=[{'factor': "Growth Stage", 'importance': 0.2, 'impact': "NEGATIVE"}],
        )

    def test_predictions_are_immutable(self):
        self.prediction.predicted_yield_tons_per_hectare = 9.9
        with self.assertRaises(ValueError):
            self.prediction.save()

        self.prediction.refresh_from_db()
        self.assertEqual(self.prediction.predicted_yield_tons_per_hectare, 4.8)

    def test_quality_label(self):
        self.assertEqual(self.prediction.quality, "MEDIUM")

    def test_as_result(self):
        result = self.prediction.as_result()

        self.assertEqual(result.predicted_yield, 4.8)
        self.assertEqual(result.features_used, ("PlantingDate",))
        self.assertEqual(result.factors[0].factor, "Growth Stage")
