"""
Django ORM accessors used by the prediction and recommendation services.

Each store is a small synchronous object keyed by farm or session id; async callers
wrap them with sync_to_async.
"""

import logging
from datetime import timedelta

from django.db import transaction
from django.db.models import Avg

from farms.models import Farm, PlantingSession, SoilSample, WeatherObservation, YieldHistory
from .exceptions import ResourceNotFound
from .models import Recommendation, YieldPrediction

logger = logging.getLogger(__name__)


class FarmStore:
    def get(self, farm_id):
        try:
            return Farm.objects.get(id=farm_id)
        except Farm.DoesNotExist:
            raise ResourceNotFound("Farm", farm_id) from None

    def with_coordinates(self):
        return list(Farm.objects.filter(latitude__isnull=False, longitude__isnull=False))


class SoilSampleStore:
    def latest_for_farm(self, farm_id):
        return SoilSample.objects.filter(farm_id=farm_id).order_by('-sample_date', '-id').first()


class WeatherObservationStore:
    def between(self, farm_id, start, end):
        return list(
            WeatherObservation.objects.filter(farm_id=farm_id, date__gte=start, date__lte=end).order_by('date')
        )

    def get(self, farm_id, day):
        return WeatherObservation.objects.filter(farm_id=farm_id, date=day).first()

    def exists(self, farm_id, day):
        return WeatherObservation.objects.filter(farm_id=farm_id, date=day).exists()

    def missing_dates(self, farm_id, start, end):
        stored = set(
            WeatherObservation.objects.filter(farm_id=farm_id, date__gte=start, date__lte=end)
            .values_list('date', flat=True)
        )
        days = (end - start).days + 1
        return [start + timedelta(days=offset) for offset in range(days) if start + timedelta(days=offset) not in stored]

    def save_if_absent(self, reading):
        """
        Store a fetched reading unless the farm already has an observation for that date.
        Returns (observation, created).
        """
        with transaction.atomic():
            observation, created = WeatherObservation.objects.get_or_create(
                farm_id=reading.farm_id,
                date=reading.date,
                defaults=reading.observation_fields(),
            )
        if created:
            logger.info(f"Stored {reading.source} weather for farm {reading.farm_id} on {reading.date}")
        return observation, created

    def purge_older_than(self, cutoff):
        deleted, _ = WeatherObservation.objects.filter(date__lt=cutoff).delete()
        return deleted


class PlantingSessionStore:
    def get(self, session_id):
        try:
            return PlantingSession.objects.select_related('farm', 'variety').get(id=session_id)
        except PlantingSession.DoesNotExist:
            raise ResourceNotFound("Planting session", session_id) from None

    def for_farm(self, farm_id):
        return list(PlantingSession.objects.select_related('farm', 'variety').filter(farm_id=farm_id))


class YieldHistoryStore:
    def average_yield(self, farm_id, variety_id):
        """Average harvested yield for a variety on a farm, or None without history"""
        result = YieldHistory.objects.filter(
            planting_session__farm_id=farm_id,
            planting_session__variety_id=variety_id,
        ).aggregate(average=Avg('yield_tons_per_hectare'))
        return result['average']


class YieldPredictionStore:
    def save(self, prediction):
        prediction.save()
        return prediction

    def latest_for_session(self, session_id):
        return (
            YieldPrediction.objects.filter(planting_session_id=session_id)
            .order_by('-prediction_date', '-created_at')
            .first()
        )

    def history(self, session_id, start=None, end=None):
        predictions = YieldPrediction.objects.filter(planting_session_id=session_id)
        if start is not None:
            predictions = predictions.filter(prediction_date__gte=start)
        if end is not None:
            predictions = predictions.filter(prediction_date__lte=end)
        return list(predictions.order_by('prediction_date', 'created_at'))


class RecommendationStore:
    def save_all(self, recommendations):
        with transaction.atomic():
            for recommendation in recommendations:
                recommendation.save()
        return recommendations
