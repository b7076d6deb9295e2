import asyncio
import logging

from asgiref.sync import sync_to_async
from django.core.management.base import BaseCommand, CommandError

from farms.models import Farm
from yields.weather_service import ResilientWeatherService

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = 'Fetches current weather for farms, backfills missing days and purges old observations'

    def add_arguments(self, parser):
        parser.add_argument(
            '--farm_id',
            type=int,
            help='ID of a specific farm to update'
        )
        parser.add_argument(
            '--backfill',
            type=int,
            default=0,
            metavar='DAYS',
            help='Also backfill missing observations for the last DAYS days'
        )
        parser.add_argument(
            '--purge',
            action='store_true',
            help='Delete observations older than the retention period'
        )

    async def handle_async(self, *args, **options):
        farm_id = options.get('farm_id')
        backfill_days = options.get('backfill') or 0
        service = ResilientWeatherService()

        try:
            if farm_id:
                farm = await sync_to_async(Farm.objects.filter(id=farm_id).first)()
                if not farm:
                    raise CommandError(f"Farm with ID {farm_id} does not exist")
                if not farm.has_geo_coordinates:
                    self.stdout.write(self.style.WARNING(
                        f"Farm {farm_id} does not have coordinates. "
                        "Update coordinates before fetching weather data."
                    ))
                    return
                readings = await service.fetch_weather_data_for_farm(farm)
                if readings:
                    self.stdout.write(self.style.SUCCESS(
                        f"Stored weather for farm {farm_id} on {readings[0].date} from {readings[0].source}"
                    ))
                else:
                    self.stdout.write(self.style.WARNING(f"Weather for farm {farm_id} failed validation"))
            else:
                result = await service.update_daily_weather()
                style = self.style.SUCCESS if result['success'] else self.style.ERROR
                self.stdout.write(style(
                    f"Updated weather for {result['updated_count']} farms "
                    f"({result['skipped_count']} already current, {result['error_count']} errors "
                    f"out of {result['total_farms']} total)"
                ))

            if backfill_days:
                result = await service.backfill_missing_weather(days=backfill_days)
                self.stdout.write(self.style.SUCCESS(
                    f"Backfilled {result['filled_count']} days ({result['error_count']} errors)"
                ))

            if options.get('purge'):
                result = await service.purge_old_weather()
                self.stdout.write(self.style.SUCCESS(
                    f"Deleted {result['deleted_count']} observations older than {result['cutoff']}"
                ))
        except CommandError:
            raise
        except Exception as e:
            self.stdout.write(self.style.ERROR(f"Error updating weather data: {str(e)}"))
            raise CommandError(str(e))

    def handle(self, *args, **options):
        """Entry point for the command"""
        asyncio.run(self.handle_async(*args, **options))
