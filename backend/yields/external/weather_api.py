import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timezone as dt_timezone
from typing import Optional, Tuple

import aiohttp
from django.conf import settings
from django.utils import timezone

logger = logging.getLogger(__name__)

# m/s to km/h
MS_TO_KMH = 3.6


class WeatherProviderError(Exception):
    """Raised by a provider when it cannot return usable data"""


@dataclass(frozen=True)
class WeatherReading:
    """One day of weather as returned by a provider, before it is stored"""
    farm_id: int
    date: date
    min_temperature: Optional[float] = None
    max_temperature: Optional[float] = None
    average_temperature: Optional[float] = None
    rainfall_mm: Optional[float] = None
    humidity_percentage: Optional[float] = None
    wind_speed_kmh: Optional[float] = None
    solar_radiation: Optional[float] = None
    source: str = ""

    @classmethod
    def from_observation(cls, observation):
        return cls(
            farm_id=observation.farm_id,
            date=observation.date,
            min_temperature=observation.min_temperature,
            max_temperature=observation.max_temperature,
            average_temperature=observation.average_temperature,
            rainfall_mm=observation.rainfall_mm,
            humidity_percentage=observation.humidity_percentage,
            wind_speed_kmh=observation.wind_speed_kmh,
            solar_radiation=observation.solar_radiation,
            source=observation.source,
        )

    def observation_fields(self):
        return {
            'min_temperature': self.min_temperature,
            'max_temperature': self.max_temperature,
            'average_temperature': self.average_temperature,
            'rainfall_mm': self.rainfall_mm,
            'humidity_percentage': self.humidity_percentage,
            'wind_speed_kmh': self.wind_speed_kmh,
            'solar_radiation': self.solar_radiation,
            'source': self.source,
        }


@dataclass(frozen=True)
class WeatherAlert:
    headline: str
    description: str = ""
    severity: str = ""
    urgency: str = ""
    areas: Tuple[str, ...] = field(default_factory=tuple)
    effective: Optional[str] = None
    expires: Optional[str] = None


def _float(value):
    return float(value) if value is not None else None


def _mean(values):
    return sum(values) / len(values) if values else None


class WeatherProvider:
    """
    Base class for a single external weather source.

    Subclasses raise WeatherProviderError (or let aiohttp errors escape) when a call
    fails; retry and fallback are handled by the caller.
    """
    name = None
    source = None
    base_url = None
    api_key_setting = None

    def __init__(self, api_key=None, timeout=30):
        self.api_key = api_key if api_key is not None else getattr(settings, self.api_key_setting, '')
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    def __repr__(self):
        return f"<{self.__class__.__name__} {self.name}>"

    async def _get(self, path, params):
        if not self.api_key:
            raise WeatherProviderError(f"{self.name} API key is not configured")

        url = f"{self.base_url}/{path}"
        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            async with session.get(url, params=params) as response:
                if response.status != 200:
                    body = await response.text()
                    raise WeatherProviderError(
                        f"{self.name} returned HTTP {response.status} for {path}: {body[:200]}"
                    )
                data = await response.json()

        if isinstance(data, dict) and data.get('error'):
            raise WeatherProviderError(f"{self.name} error for {path}: {data['error']}")
        return data

    @staticmethod
    def _coordinates(farm):
        if not farm.has_geo_coordinates:
            raise WeatherProviderError(f"Farm {farm.id} has no coordinates")
        return float(farm.latitude), float(farm.longitude)

    async def fetch_current(self, farm):
        raise NotImplementedError

    async def fetch_forecast(self, farm, days):
        return []

    async def fetch_historical(self, farm, day):
        return None

    async def fetch_alerts(self, farm):
        return []


class WeatherApiProvider(WeatherProvider):
    """weatherapi.com"""
    name = "weatherapi"
    source = "WeatherAPI"
    base_url = "https://api.weatherapi.com/v1"
    api_key_setting = "WEATHERAPI_KEY"
    max_forecast_days = 10

    def _params(self, farm, **extra):
        lat, lon = self._coordinates(farm)
        return {'key': self.api_key, 'q': f"{lat},{lon}", **extra}

    async def fetch_current(self, farm):
        data = await self._get("current.json", self._params(farm))
        return self.parse_current(data, farm.id, timezone.localdate())

    async def fetch_forecast(self, farm, days):
        days = max(1, min(days, self.max_forecast_days))
        data = await self._get("forecast.json", self._params(farm, days=days, alerts='no'))
        return self.parse_forecast(data, farm.id)

    async def fetch_historical(self, farm, day):
        data = await self._get("history.json", self._params(farm, dt=day.isoformat()))
        readings = self.parse_forecast(data, farm.id)
        return readings[0] if readings else None

    async def fetch_alerts(self, farm):
        data = await self._get("forecast.json", self._params(farm, days=1, alerts='yes'))
        return self.parse_alerts(data)

    @classmethod
    def parse_current(cls, data, farm_id, day):
        current = data.get('current')
        if not current:
            raise WeatherProviderError("weatherapi response has no current conditions")
        return WeatherReading(
            farm_id=farm_id,
            date=day,
            average_temperature=_float(current.get('temp_c')),
            rainfall_mm=_float(current.get('precip_mm')),
            humidity_percentage=_float(current.get('humidity')),
            wind_speed_kmh=_float(current.get('wind_kph')),
            source=cls.source,
        )

    @classmethod
    def parse_forecast(cls, data, farm_id):
        readings = []
        for forecast_day in data.get('forecast', {}).get('forecastday', []):
            day = forecast_day.get('day', {})
            readings.append(WeatherReading(
                farm_id=farm_id,
                date=date.fromisoformat(forecast_day['date']),
                min_temperature=_float(day.get('mintemp_c')),
                max_temperature=_float(day.get('maxtemp_c')),
                average_temperature=_float(day.get('avgtemp_c')),
                rainfall_mm=_float(day.get('totalprecip_mm')),
                humidity_percentage=_float(day.get('avghumidity')),
                wind_speed_kmh=_float(day.get('maxwind_kph')),
                source=cls.source,
            ))
        return readings

    @staticmethod
    def parse_alerts(data):
        alerts = []
        for alert in data.get('alerts', {}).get('alert', []):
            areas = alert.get('areas') or ''
            alerts.append(WeatherAlert(
                headline=alert.get('headline') or alert.get('event') or 'Weather alert',
                description=alert.get('desc') or '',
                severity=alert.get('severity') or '',
                urgency=alert.get('urgency') or '',
                areas=tuple(a.strip() for a in areas.split(';') if a.strip()),
                effective=alert.get('effective'),
                expires=alert.get('expires'),
            ))
        return alerts


class OpenWeatherMapProvider(WeatherProvider):
    """OpenWeatherMap: 2.5 for current and 3-hourly forecast, One Call 3.0 for history and alerts"""
    name = "openweather"
    source = "OpenWeatherMap"
    base_url = "https://api.openweathermap.org/data"
    api_key_setting = "OPENWEATHER_API_KEY"
    # The free forecast returns 3-hourly slots for five days
    max_forecast_slots = 40

    def _params(self, farm, **extra):
        lat, lon = self._coordinates(farm)
        return {'lat': lat, 'lon': lon, 'appid': self.api_key, 'units': 'metric', **extra}

    async def fetch_current(self, farm):
        data = await self._get("2.5/weather", self._params(farm))
        return self.parse_current(data, farm.id, timezone.localdate())

    async def fetch_forecast(self, farm, days):
        count = max(1, min(days * 8, self.max_forecast_slots))
        data = await self._get("2.5/forecast", self._params(farm, cnt=count))
        return self.parse_forecast(data, farm.id)

    async def fetch_historical(self, farm, day):
        timestamp = int(datetime(day.year, day.month, day.day, 12, tzinfo=dt_timezone.utc).timestamp())
        data = await self._get("3.0/onecall/timemachine", self._params(farm, dt=timestamp))
        return self.parse_historical(data, farm.id, day)

    async def fetch_alerts(self, farm):
        data = await self._get("3.0/onecall", self._params(farm, exclude='current,minutely,hourly,daily'))
        return self.parse_alerts(data)

    @classmethod
    def parse_current(cls, data, farm_id, day):
        main = data.get('main')
        if not main:
            raise WeatherProviderError("openweather response has no main block")
        wind_speed = data.get('wind', {}).get('speed')
        return WeatherReading(
            farm_id=farm_id,
            date=day,
            min_temperature=_float(main.get('temp_min')),
            max_temperature=_float(main.get('temp_max')),
            average_temperature=_float(main.get('temp')),
            rainfall_mm=_float(data.get('rain', {}).get('1h')),
            humidity_percentage=_float(main.get('humidity')),
            wind_speed_kmh=wind_speed * MS_TO_KMH if wind_speed is not None else None,
            source=cls.source,
        )

    @classmethod
    def parse_forecast(cls, data, farm_id):
        """Aggregate 3-hourly slots into one reading per calendar day"""
        slots_by_day = defaultdict(list)
        for slot in data.get('list', []):
            day = datetime.fromtimestamp(slot['dt'], tz=dt_timezone.utc).date()
            slots_by_day[day].append(slot)

        readings = []
        for day in sorted(slots_by_day):
            slots = slots_by_day[day]
            temps = [s['main']['temp'] for s in slots if s.get('main', {}).get('temp') is not None]
            humidity = [s['main']['humidity'] for s in slots if s.get('main', {}).get('humidity') is not None]
            winds = [s['wind']['speed'] for s in slots if s.get('wind', {}).get('speed') is not None]
            rainfall = sum(s.get('rain', {}).get('3h', 0.0) for s in slots)
            readings.append(WeatherReading(
                farm_id=farm_id,
                date=day,
                min_temperature=min(temps) if temps else None,
                max_temperature=max(temps) if temps else None,
                average_temperature=_mean(temps),
                rainfall_mm=rainfall if rainfall > 0 else None,
                humidity_percentage=_mean(humidity),
                wind_speed_kmh=max(winds) * MS_TO_KMH if winds else None,
                source=cls.source,
            ))
        return readings

    @classmethod
    def parse_historical(cls, data, farm_id, day):
        points = data.get('data') or []
        if not points:
            return None
        point = points[0]
        wind_speed = point.get('wind_speed')
        return WeatherReading(
            farm_id=farm_id,
            date=day,
            average_temperature=_float(point.get('temp')),
            rainfall_mm=_float((point.get('rain') or {}).get('1h')),
            humidity_percentage=_float(point.get('humidity')),
            wind_speed_kmh=wind_speed * MS_TO_KMH if wind_speed is not None else None,
            source=cls.source,
        )

    @staticmethod
    def parse_alerts(data):
        alerts = []
        for alert in data.get('alerts', []):
            alerts.append(WeatherAlert(
                headline=alert.get('event') or 'Weather alert',
                description=alert.get('description') or '',
                severity=', '.join(alert.get('tags') or []),
                areas=tuple(filter(None, [alert.get('sender_name')])),
                effective=_epoch_to_iso(alert.get('start')),
                expires=_epoch_to_iso(alert.get('end')),
            ))
        return alerts


class WeatherStackProvider(WeatherProvider):
    """weatherstack.com, current conditions only on the free plan"""
    name = "weatherstack"
    source = "WeatherStack"
    base_url = "http://api.weatherstack.com"
    api_key_setting = "WEATHERSTACK_API_KEY"

    async def fetch_current(self, farm):
        lat, lon = self._coordinates(farm)
        data = await self._get("current", {
            'access_key': self.api_key,
            'query': f"{lat},{lon}",
            'units': 'm',
        })
        return self.parse_current(data, farm.id, timezone.localdate())

    @classmethod
    def parse_current(cls, data, farm_id, day):
        current = data.get('current')
        if not current:
            raise WeatherProviderError("weatherstack response has no current conditions")
        return WeatherReading(
            farm_id=farm_id,
            date=day,
            average_temperature=_float(current.get('temperature')),
            rainfall_mm=_float(current.get('precip')),
            humidity_percentage=_float(current.get('humidity')),
            wind_speed_kmh=_float(current.get('wind_speed')),
            source=cls.source,
        )


def _epoch_to_iso(value):
    if value is None:
        return None
    return datetime.fromtimestamp(value, tz=dt_timezone.utc).isoformat()


PROVIDERS = {
    provider.name: provider
    for provider in (WeatherApiProvider, OpenWeatherMapProvider, WeatherStackProvider)
}


def build_provider(name, timeout=30):
    try:
        provider_class = PROVIDERS[name]
    except KeyError:
        raise ValueError(f"Unknown weather provider: {name}") from None
    return provider_class(timeout=timeout)
