from datetime import date, timedelta
from types import SimpleNamespace

import pytest

from yields.conf import WeatherAcquisitionConfig
from yields.exceptions import ExternalServiceError, ValidationError
from yields.external.weather_api import WeatherAlert, WeatherReading
from yields.weather_service import ResilientWeatherService, retry_with_backoff, summarize_weather

TODAY = date(2025, 2, 1)


def reading(day=TODAY, source="Test", **fields):
    values = {'min_temperature': 18.0, 'max_temperature': 30.0, 'average_temperature': 24.0, 'rainfall_mm': 6.0,
              'humidity_percentage': 60.0}
    values.update(fields)
    return WeatherReading(farm_id=1, date=day, source=source, **values)


class FakeProvider:
    """Records calls; each queued response is returned or raised in turn"""

    def __init__(self, name, calls, responses=None, default=None):
        self.name = name
        self.calls = calls
        self.responses = list(responses or [])
        self.default = default

    async def _respond(self, method):
        self.calls.append((self.name, method))
        response = self.responses.pop(0) if self.responses else self.default
        if isinstance(response, Exception):
            raise response
        return response

    async def fetch_current(self, farm):
        return await self._respond('fetch_current')

    async def fetch_forecast(self, farm, days):
        return await self._respond('fetch_forecast')

    async def fetch_historical(self, farm, day):
        return await self._respond('fetch_historical')

    async def fetch_alerts(self, farm):
        return await self._respond('fetch_alerts')


class FakeStore:
    def __init__(self, stored=None):
        self.stored = dict(stored or {})
        self.saved = []

    def get(self, farm_id, day):
        return self.stored.get(day)

    def exists(self, farm_id, day):
        return day in self.stored

    def between(self, farm_id, start, end):
        return [self.stored[d] for d in sorted(self.stored) if start <= d <= end]

    def missing_dates(self, farm_id, start, end):
        days = [start + timedelta(days=n) for n in range((end - start).days + 1)]
        return [d for d in days if d not in self.stored]

    def save_if_absent(self, value):
        created = value.date not in self.stored
        if created:
            self.stored[value.date] = value
            self.saved.append(value)
        return value, created


class FakeCache:
    """Async-only, like the calls made from inside the event loop"""

    def __init__(self):
        self.data = {}
        self.timeouts = {}

    async def aget(self, key):
        return self.data.get(key)

    async def aset(self, key, value, timeout=None):
        self.data[key] = value
        self.timeouts[key] = timeout


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.fixture
def farm():
    return SimpleNamespace(id=1, name="Test Farm", has_geo_coordinates=True)


@pytest.fixture
def calls():
    return []


@pytest.fixture
def sleeps():
    return []


def make_service(providers, sleeps, store=None, cache=None, clock=None, **config):
    async def fake_sleep(delay):
        sleeps.append(delay)
        if clock is not None:
            clock.now += delay

    options = {'primary_provider': providers[0].name, 'fallback_providers': tuple(p.name for p in providers[1:])}
    options.update(config)
    return ResilientWeatherService(
        config=WeatherAcquisitionConfig(**options),
        providers=providers,
        store=store or FakeStore(),
        cache=cache or FakeCache(),
        sleep=fake_sleep,
        clock=clock or FakeClock(),
    )


class TestRetryWithBackoff:
    @pytest.mark.asyncio
    async def test_returns_first_non_empty_result(self, sleeps):
        results = iter([None, [], "data"])

        async def call():
            return next(results)

        async def fake_sleep(delay):
            sleeps.append(delay)

        assert await retry_with_backoff(call, "test", max_attempts=3, sleep=fake_sleep) == "data"
        assert sleeps == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_returns_none_when_exhausted(self, sleeps):
        async def call():
            raise ConnectionError("boom")

        async def fake_sleep(delay):
            sleeps.append(delay)

        result = await retry_with_backoff(call, "test", max_attempts=4, initial_delay=0.5, multiplier=3.0, sleep=fake_sleep)
        assert result is None
        assert sleeps == [0.5, 1.5, 4.5]


class TestResilientWeatherService:
    @pytest.mark.asyncio
    async def test_primary_retried_then_each_fallback_once_in_order(self, farm, calls, sleeps):
        primary = FakeProvider("weatherapi", calls, default=ConnectionError("down"))
        first = FakeProvider("openweather", calls, default=None)
        second = FakeProvider("weatherstack", calls, default=reading(source="WeatherStack"))
        third = FakeProvider("spare", calls, default=reading(source="Spare"))
        service = make_service([primary, first, second, third], sleeps)

        result = await service.fetch_current(farm)

        assert result.source == "WeatherStack"
        assert calls == [
            ("weatherapi", "fetch_current"),
            ("weatherapi", "fetch_current"),
            ("weatherapi", "fetch_current"),
            ("openweather", "fetch_current"),
            ("weatherstack", "fetch_current"),
        ]
        assert sleeps == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_primary_success_skips_fallbacks(self, farm, calls, sleeps):
        primary = FakeProvider("weatherapi", calls, responses=[TimeoutError(), reading()])
        fallback = FakeProvider("openweather", calls, default=reading(source="OpenWeatherMap"))
        service = make_service([primary, fallback], sleeps)

        result = await service.fetch_current(farm)

        assert result.source == "Test"
        assert [name for name, _ in calls] == ["weatherapi", "weatherapi"]

    @pytest.mark.asyncio
    async def test_fallback_disabled(self, farm, calls, sleeps):
        primary = FakeProvider("weatherapi", calls, default=None)
        fallback = FakeProvider("openweather", calls, default=reading())
        service = make_service([primary, fallback], sleeps, fallback_enabled=False, max_attempts=2)

        assert await service.fetch_current(farm) is None
        assert [name for name, _ in calls] == ["weatherapi", "weatherapi"]

    @pytest.mark.asyncio
    async def test_exhaustion_results(self, farm, calls, sleeps):
        primary = FakeProvider("weatherapi", calls, default=RuntimeError("bad payload"))
        fallback = FakeProvider("openweather", calls, default=ValueError("worse"))
        service = make_service([primary, fallback], sleeps)

        assert await service.fetch_current(farm) is None
        assert await service.fetch_forecast(farm, 5) == []
        assert await service.fetch_historical(farm, TODAY - timedelta(days=3)) is None
        assert await service.fetch_alerts(farm) == []

    @pytest.mark.asyncio
    async def test_fetch_and_store_raises_when_all_providers_fail(self, farm, calls, sleeps):
        primary = FakeProvider("weatherapi", calls, default=ConnectionError("down"))
        fallback = FakeProvider("openweather", calls, default=None)
        service = make_service([primary, fallback], sleeps)

        with pytest.raises(ExternalServiceError) as excinfo:
            await service.fetch_weather_data_for_farm(farm)

        assert excinfo.value.service_name == "weatherapi -> openweather"

    @pytest.mark.asyncio
    async def test_fetch_and_store_requires_coordinates(self, calls, sleeps):
        service = make_service([FakeProvider("weatherapi", calls)], sleeps)
        farm = SimpleNamespace(id=2, name="No coords", has_geo_coordinates=False)

        with pytest.raises(ValidationError):
            await service.fetch_weather_data_for_farm(farm)
        assert calls == []

    @pytest.mark.asyncio
    async def test_fetch_and_store_persists_reading(self, farm, calls, sleeps):
        store = FakeStore()
        service = make_service([FakeProvider("weatherapi", calls, default=reading())], sleeps, store=store)

        result = await service.fetch_weather_data_for_farm(farm)

        assert result == [reading()]
        assert store.saved == [reading()]

    @pytest.mark.asyncio
    async def test_invalid_reading_is_discarded(self, farm, calls, sleeps):
        store = FakeStore()
        bad = reading(humidity_percentage=150.0)
        service = make_service([FakeProvider("weatherapi", calls, default=bad)], sleeps, store=store)

        assert await service.fetch_current(farm) is None
        assert await service.fetch_weather_data_for_farm(farm) == []
        assert store.saved == []

    @pytest.mark.asyncio
    async def test_validation_can_be_disabled(self, farm, calls, sleeps):
        bad = reading(humidity_percentage=150.0)
        service = make_service([FakeProvider("weatherapi", calls, default=bad)], sleeps, validation_enabled=False)

        assert await service.fetch_current(farm) == bad

    @pytest.mark.asyncio
    async def test_current_weather_is_cached(self, farm, calls, sleeps):
        cache = FakeCache()
        service = make_service([FakeProvider("weatherapi", calls, default=reading())], sleeps, cache=cache)

        first = await service.fetch_current(farm)
        second = await service.fetch_current(farm)

        assert first == second
        assert len(calls) == 1
        assert cache.timeouts["weather:current:1"] == 30 * 60

    @pytest.mark.asyncio
    async def test_forecast_is_cached_per_day_count(self, farm, calls, sleeps):
        forecast = [reading(day=TODAY + timedelta(days=n)) for n in range(3)]
        service = make_service([FakeProvider("weatherapi", calls, default=forecast)], sleeps)

        assert await service.fetch_forecast(farm, 3) == forecast
        assert await service.fetch_forecast(farm, 3) == forecast
        await service.fetch_forecast(farm, 5)

        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_forecast_drops_invalid_days(self, farm, calls, sleeps):
        forecast = [reading(day=TODAY), reading(day=TODAY + timedelta(days=1), rainfall_mm=-4.0)]
        service = make_service([FakeProvider("weatherapi", calls, default=forecast)], sleeps)

        assert await service.fetch_forecast(farm, 2) == [forecast[0]]

    @pytest.mark.asyncio
    async def test_historical_uses_stored_observation(self, farm, calls, sleeps):
        day = TODAY - timedelta(days=2)
        stored = SimpleNamespace(
            farm_id=1, date=day, min_temperature=15.0, max_temperature=27.0, average_temperature=21.0,
            rainfall_mm=2.0, humidity_percentage=55.0, wind_speed_kmh=8.0, solar_radiation=None, source="manual",
        )
        service = make_service([FakeProvider("weatherapi", calls)], sleeps, store=FakeStore({day: stored}))

        result = await service.fetch_historical(farm, day)

        assert result.source == "manual"
        assert result.rainfall_mm == 2.0
        assert calls == []

    @pytest.mark.asyncio
    async def test_historical_fetch_is_persisted(self, farm, calls, sleeps):
        day = TODAY - timedelta(days=2)
        store = FakeStore()
        service = make_service([FakeProvider("weatherapi", calls, default=reading(day=day))], sleeps, store=store)

        await service.fetch_historical(farm, day)

        assert [r.date for r in store.saved] == [day]

    @pytest.mark.asyncio
    async def test_historical_range_only_fetches_missing_days(self, farm, calls, sleeps):
        start = TODAY - timedelta(days=2)
        stored = reading(day=start)
        store = FakeStore({start: stored})
        provider = FakeProvider("weatherapi", calls, responses=[reading(day=start + timedelta(days=1)), reading(day=TODAY)])
        service = make_service([provider], sleeps, store=store)

        result = await service.fetch_historical_range(farm, start, TODAY)

        assert [r.date for r in result] == [start, start + timedelta(days=1), TODAY]
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_alerts(self, farm, calls, sleeps):
        alert = WeatherAlert(headline="Severe thunderstorm")
        service = make_service([FakeProvider("weatherapi", calls, default=[alert])], sleeps)

        assert await service.fetch_alerts(farm) == [alert]

    @pytest.mark.asyncio
    async def test_deadline_stops_fallback_chain(self, farm, calls, sleeps):
        clock = FakeClock()
        primary = FakeProvider("weatherapi", calls, default=None)
        fallback = FakeProvider("openweather", calls, default=reading())
        service = make_service([primary, fallback], sleeps, clock=clock, deadline_seconds=2.5)

        assert await service.fetch_current(farm) is None
        assert ("openweather", "fetch_current") not in calls

    @pytest.mark.asyncio
    async def test_update_daily_weather_skips_farms_with_data(self, farm, calls, sleeps):
        service = make_service([FakeProvider("weatherapi", calls, default=reading())], sleeps, store=FakeStore())
        service.farms = SimpleNamespace(with_coordinates=lambda: [farm])

        first = await service.update_daily_weather(as_of=TODAY)
        second = await service.update_daily_weather(as_of=TODAY)

        assert first["updated_count"] == 1
        assert second["skipped_count"] == 1
        assert second["updated_count"] == 0
        assert len(calls) == 1


def test_summarize_weather():
    observations = [
        reading(day=TODAY - timedelta(days=1), average_temperature=20.0, rainfall_mm=4.0),
        reading(day=TODAY, average_temperature=None, rainfall_mm=6.0, max_temperature=33.0),
    ]

    stats = summarize_weather(observations, TODAY - timedelta(days=3), TODAY)

    assert stats['average_temperature'] == 20.0
    assert stats['max_temperature'] == 33.0
    assert stats['total_rainfall'] == 10.0
    assert stats['record_count'] == 2
    assert stats['data_quality']['completeness'] == 50.0
    assert stats['data_quality']['temperature_data_quality'] == 50.0


def test_summarize_weather_without_records():
    stats = summarize_weather([], TODAY, TODAY)
    assert stats['average_temperature'] is None
    assert stats['total_rainfall'] == 0.0
    assert stats['data_quality']['completeness'] == 0.0
