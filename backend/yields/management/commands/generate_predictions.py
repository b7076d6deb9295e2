import asyncio
import logging
from datetime import date

from asgiref.sync import sync_to_async
from django.core.management.base import BaseCommand, CommandError

from farms.models import Farm
from yields.exceptions import YieldEstimatorError
from yields.prediction_service import PredictionService

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = 'Generates yield predictions for a planting session or every active session on a farm'

    def add_arguments(self, parser):
        parser.add_argument('--session_id', type=int, help='ID of a planting session to predict')
        parser.add_argument('--farm_id', type=int, help='ID of a farm whose active sessions to predict')
        parser.add_argument(
            '--date',
            type=date.fromisoformat,
            help='Prediction date (YYYY-MM-DD), defaults to today'
        )

    async def handle_async(self, *args, **options):
        session_id = options.get('session_id')
        farm_id = options.get('farm_id')
        as_of = options.get('date')
        if not session_id and not farm_id:
            raise CommandError("Provide --session_id or --farm_id")

        service = PredictionService()
        try:
            if session_id:
                session = await sync_to_async(service.sessions.get)(session_id)
                predictions = [await service.generate_prediction(session.farm.owner_id, session_id, as_of)]
            else:
                farm = await sync_to_async(Farm.objects.filter(id=farm_id).first)()
                if not farm:
                    raise CommandError(f"Farm with ID {farm_id} does not exist")
                predictions = await service.generate_predictions_for_farm(farm.owner_id, farm_id, as_of)
        except YieldEstimatorError as e:
            raise CommandError(str(e))

        for prediction in predictions:
            self.stdout.write(self.style.SUCCESS(
                f"Session {prediction.planting_session_id}: {prediction.predicted_yield_tons_per_hectare} t/ha "
                f"({prediction.confidence_percentage}% confidence, {prediction.quality})"
            ))
        if not predictions:
            self.stdout.write(self.style.WARNING("No active planting sessions to predict"))

    def handle(self, *args, **options):
        """Entry point for the command"""
        asyncio.run(self.handle_async(*args, **options))
