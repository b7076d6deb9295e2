"""
Celery tasks for scheduled farm weather maintenance
"""

import logging

from asgiref.sync import async_to_sync
from celery import shared_task

from yields.weather_service import ResilientWeatherService

logger = logging.getLogger(__name__)


@shared_task(name="farms.fetch_daily_weather_data")
def fetch_daily_weather_data():
    """
    Fetch today's weather for every farm with coordinates

    Returns:
        Dict with counts of updated, skipped and failed farms
    """
    logger.info("Starting scheduled daily weather fetch")
    try:
        result = async_to_sync(ResilientWeatherService().update_daily_weather)()
        logger.info(
            f"Completed daily weather fetch: "
            f"{result['updated_count']} updated, {result['error_count']} errors"
        )
        return result
    except Exception as e:
        logger.error(f"Error in daily weather fetch task: {str(e)}")
        return {
            "success": False,
            "error": str(e),
            "updated_count": 0
        }


@shared_task(name="farms.backfill_missing_weather_data")
def backfill_missing_weather_data(days=7):
    """Fill gaps in stored weather for the last few days"""
    logger.info(f"Starting weather backfill for the last {days} days")
    try:
        return async_to_sync(ResilientWeatherService().backfill_missing_weather)(days=days)
    except Exception as e:
        logger.error(f"Error in weather backfill task: {str(e)}")
        return {
            "success": False,
            "error": str(e),
            "filled_count": 0
        }


@shared_task(name="farms.purge_old_weather_data")
def purge_old_weather_data():
    """Delete weather observations past the retention period"""
    try:
        return async_to_sync(ResilientWeatherService().purge_old_weather)()
    except Exception as e:
        logger.error(f"Error purging old weather data: {str(e)}")
        return {
            "success": False,
            "error": str(e),
            "deleted_count": 0
        }
