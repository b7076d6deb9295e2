"""
Resilient weather acquisition: retry with backoff, ordered provider fallback,
validation and short-lived caching over the external weather providers.
"""

import asyncio
import logging
import time
from datetime import timedelta

import numpy as np
from asgiref.sync import sync_to_async
from dateutil.relativedelta import relativedelta
from django.core.cache import caches
from django.utils import timezone

from .conf import get_config
from .exceptions import ExternalServiceError, ValidationError
from .external.weather_api import WeatherReading, build_provider
from .stores import FarmStore, WeatherObservationStore
from .validators import WeatherDataValidator

logger = logging.getLogger(__name__)


async def retry_with_backoff(call, description, max_attempts=3, initial_delay=1.0, multiplier=2.0,
                             timeout=None, sleep=asyncio.sleep):
    """
    Await call() up to max_attempts times, sleeping initial_delay * multiplier**n
    between attempts. Exceptions and empty results both count as failed attempts.
    Returns the first non-empty result, or None once every attempt has failed.
    """
    delay = initial_delay
    for attempt in range(1, max_attempts + 1):
        try:
            if timeout:
                result = await asyncio.wait_for(call(), timeout=timeout)
            else:
                result = await call()
            if result:
                return result
            logger.warning(f"Attempt {attempt}/{max_attempts} for {description} returned no data")
        except Exception as e:
            logger.warning(f"Attempt {attempt}/{max_attempts} failed for {description}: {str(e)}")

        if attempt < max_attempts:
            logger.debug(f"Retrying {description} in {delay}s...")
            await sleep(delay)
            delay *= multiplier

    logger.error(f"All {max_attempts} attempts failed for {description}")
    return None


class ResilientWeatherService:
    """
    Weather lookups that survive flaky providers.

    The primary provider gets the full retry budget; each fallback provider is tried
    once, in configured order, until one returns data.
    """

    def __init__(self, config=None, providers=None, validator=None, store=None, farms=None,
                 cache=None, sleep=asyncio.sleep, clock=time.monotonic):
        self.config = config or get_config().weather
        if providers is None:
            providers = [build_provider(name, timeout=self.config.timeout_seconds) for name in self.config.provider_chain]
        self.providers = list(providers)
        self.validator = validator or WeatherDataValidator()
        self.store = store or WeatherObservationStore()
        self.farms = farms or FarmStore()
        self.cache = cache if cache is not None else caches['weather']
        self.sleep = sleep
        self.clock = clock

    @property
    def cache_ttl(self):
        return self.config.cache_ttl_minutes * 60

    @property
    def chain_description(self):
        return " -> ".join(provider.name for provider in self.providers)

    async def _fetch_with_fallback(self, method, farm, *args):
        if not self.providers:
            return None

        started = self.clock()
        deadline = self.config.deadline_seconds
        primary, fallbacks = self.providers[0], self.providers[1:]

        result = await retry_with_backoff(
            lambda: getattr(primary, method)(farm, *args),
            f"{primary.name}.{method} for farm {farm.id}",
            max_attempts=self.config.max_attempts,
            initial_delay=self.config.initial_delay,
            multiplier=self.config.multiplier,
            timeout=self.config.timeout_seconds,
            sleep=self.sleep,
        )
        if result:
            return result
        if not self.config.fallback_enabled:
            return None

        for provider in fallbacks:
            if deadline is not None and self.clock() - started >= deadline:
                logger.error(f"Weather fetch deadline of {deadline}s exceeded for farm {farm.id}, skipping remaining providers")
                return None
            logger.info(f"Falling back to {provider.name} for {method} on farm {farm.id}")
            result = await retry_with_backoff(
                lambda: getattr(provider, method)(farm, *args),
                f"{provider.name}.{method} for farm {farm.id}",
                max_attempts=1,
                timeout=self.config.timeout_seconds,
                sleep=self.sleep,
            )
            if result:
                return result
        return None

    def _accept(self, reading):
        """Validate and sanitize a reading; invalid readings are dropped"""
        if reading is None or not self.config.validation_enabled:
            return reading
        if not self.validator.validate(reading):
            return None
        return self.validator.sanitize(reading)

    async def _persist(self, reading):
        await sync_to_async(self.store.save_if_absent)(reading)

    async def _acquire_current(self, farm):
        """Returns (reading, exhausted)"""
        key = f"weather:current:{farm.id}"
        cached = await self.cache.aget(key)
        if cached is not None:
            return cached, False

        reading = await self._fetch_with_fallback('fetch_current', farm)
        if reading is None:
            return None, True

        reading = self._accept(reading)
        if reading is None:
            logger.warning(f"Discarded invalid current weather for farm {farm.id}")
            return None, False

        await self._persist(reading)
        await self.cache.aset(key, reading, self.cache_ttl)
        return reading, False

    async def fetch_current(self, farm):
        reading, exhausted = await self._acquire_current(farm)
        if exhausted:
            logger.warning(f"Failed to fetch current weather from all providers for farm {farm.id}")
        return reading

    async def fetch_forecast(self, farm, days=7):
        key = f"weather:forecast:{farm.id}:{days}"
        cached = await self.cache.aget(key)
        if cached is not None:
            return cached

        readings = await self._fetch_with_fallback('fetch_forecast', farm, days) or []
        accepted = [r for r in (self._accept(reading) for reading in readings) if r is not None]
        if accepted:
            await self.cache.aset(key, accepted, self.cache_ttl)
        else:
            logger.warning(f"No usable forecast for farm {farm.id}")
        return accepted

    async def fetch_historical(self, farm, day):
        stored = await sync_to_async(self.store.get)(farm.id, day)
        if stored is not None:
            return WeatherReading.from_observation(stored)

        reading = self._accept(await self._fetch_with_fallback('fetch_historical', farm, day))
        if reading is None:
            logger.warning(f"No historical weather for farm {farm.id} on {day}")
            return None

        await self._persist(reading)
        return reading

    async def fetch_alerts(self, farm):
        return await self._fetch_with_fallback('fetch_alerts', farm) or []

    async def fetch_weather_data_for_farm(self, farm):
        """
        Fetch and store today's weather for a farm.

        Raises ExternalServiceError when every provider fails; an invalid reading
        yields an empty list.
        """
        if not farm.has_geo_coordinates:
            raise ValidationError(
                f"Farm {farm.id} does not have latitude/longitude coordinates",
                errors={'coordinates': "Latitude and longitude are required"},
            )

        logger.info(f"Fetching current weather data for farm {farm.name}")
        reading, exhausted = await self._acquire_current(farm)
        if exhausted:
            raise ExternalServiceError(
                self.chain_description,
                f"Failed to fetch weather data for farm {farm.id} from providers: {self.chain_description}",
            )
        return [reading] if reading is not None else []

    async def fetch_historical_range(self, farm, start, end):
        """Stored observations for the range, with missing days fetched from providers"""
        stored = await sync_to_async(self.store.between)(farm.id, start, end)
        missing = await sync_to_async(self.store.missing_dates)(farm.id, start, end)
        readings = {o.date: WeatherReading.from_observation(o) for o in stored}

        for day in missing:
            reading = await self.fetch_historical(farm, day)
            if reading is not None:
                readings[day] = reading

        return [readings[day] for day in sorted(readings)]

    async def weather_statistics(self, farm, start, end):
        observations = await sync_to_async(self.store.between)(farm.id, start, end)
        return summarize_weather(observations, start, end)

    async def update_daily_weather(self, as_of=None):
        """Fetch today's weather for every farm with coordinates that lacks it"""
        as_of = as_of or timezone.localdate()
        farms = await sync_to_async(self.farms.with_coordinates)()
        updated = 0
        skipped = 0
        errors = 0

        logger.info(f"Starting daily weather fetch for {len(farms)} farms")
        for farm in farms:
            if await sync_to_async(self.store.exists)(farm.id, as_of):
                skipped += 1
                continue
            try:
                if await self.fetch_weather_data_for_farm(farm):
                    updated += 1
                else:
                    errors += 1
            except Exception as e:
                errors += 1
                logger.error(f"Error fetching daily weather for farm {farm.id}: {str(e)}")

        logger.info(f"Completed daily weather fetch: {updated} updated, {skipped} skipped, {errors} errors")
        return {
            "success": errors == 0,
            "updated_count": updated,
            "skipped_count": skipped,
            "error_count": errors,
            "total_farms": len(farms),
        }

    async def backfill_missing_weather(self, days=7, as_of=None):
        """Fill gaps in the last few days of stored weather"""
        as_of = as_of or timezone.localdate()
        start = as_of - timedelta(days=days)
        end = as_of - timedelta(days=1)
        farms = await sync_to_async(self.farms.with_coordinates)()
        filled = 0
        errors = 0

        for farm in farms:
            missing = await sync_to_async(self.store.missing_dates)(farm.id, start, end)
            for day in missing:
                try:
                    if await self.fetch_historical(farm, day) is not None:
                        filled += 1
                    else:
                        errors += 1
                except Exception as e:
                    errors += 1
                    logger.error(f"Error backfilling weather for farm {farm.id} on {day}: {str(e)}")

        logger.info(f"Completed weather backfill: {filled} days filled, {errors} errors")
        return {"success": errors == 0, "filled_count": filled, "error_count": errors}

    async def purge_old_weather(self, as_of=None):
        as_of = as_of or timezone.localdate()
        cutoff = as_of - relativedelta(years=self.config.history_retention_years)
        deleted = await sync_to_async(self.store.purge_older_than)(cutoff)
        logger.info(f"Purged {deleted} weather observations older than {cutoff}")
        return {"success": True, "deleted_count": deleted, "cutoff": cutoff.isoformat()}


def _stat(values, reducer):
    present = [v for v in values if v is not None]
    return float(reducer(present)) if present else None


def summarize_weather(observations, start, end):
    """Averages, totals and data quality for the stored observations in a range"""
    total_days = (end - start).days + 1
    count = len(observations)
    temperatures = [o.average_temperature for o in observations]
    rainfall = [o.rainfall_mm for o in observations]
    missing_temperature = sum(1 for t in temperatures if t is None)
    missing_rainfall = sum(1 for r in rainfall if r is None)

    return {
        'average_temperature': _stat(temperatures, np.mean),
        'max_temperature': _stat([o.max_temperature for o in observations], np.max),
        'min_temperature': _stat([o.min_temperature for o in observations], np.min),
        'total_rainfall': _stat(rainfall, np.sum) or 0.0,
        'average_humidity': _stat([o.humidity_percentage for o in observations], np.mean),
        'record_count': count,
        'data_quality': {
            'completeness': count / total_days * 100 if total_days > 0 else 0.0,
            'temperature_data_quality': (count - missing_temperature) / count * 100 if count else 0.0,
            'rainfall_data_quality': (count - missing_rainfall) / count * 100 if count else 0.0,
        },
    }
