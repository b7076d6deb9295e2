from unittest.mock import AsyncMock, Mock, patch

from farms.tasks import backfill_missing_weather_data, fetch_daily_weather_data, purge_old_weather_data


class TestWeatherTasks:
    def test_fetch_daily_weather_data(self):
        service = Mock(update_daily_weather=AsyncMock(return_value={
            "success": True, "updated_count": 3, "skipped_count": 1, "error_count": 0, "total_farms": 4,
        }))

        with patch('farms.tasks.ResilientWeatherService', return_value=service):
            result = fetch_daily_weather_data()

        assert result['updated_count'] == 3
        service.update_daily_weather.assert_awaited_once()

    def test_fetch_daily_weather_data_failure(self):
        service = Mock(update_daily_weather=AsyncMock(side_effect=RuntimeError("database unavailable")))

        with patch('farms.tasks.ResilientWeatherService', return_value=service):
            result = fetch_daily_weather_data()

        assert result == {"success": False, "error": "database unavailable", "updated_count": 0}

    def test_backfill_passes_days(self):
        service = Mock(backfill_missing_weather=AsyncMock(return_value={"success": True, "filled_count": 5, "error_count": 0}))

        with patch('farms.tasks.ResilientWeatherService', return_value=service):
            result = backfill_missing_weather_data(days=3)

        service.backfill_missing_weather.assert_awaited_once_with(days=3)
        assert result['filled_count'] == 5

    def test_purge_failure(self):
        service = Mock(purge_old_weather=AsyncMock(side_effect=RuntimeError("locked")))

        with patch('farms.tasks.ResilientWeatherService', return_value=service):
            result = purge_old_weather_data()

        assert not result['success']
        assert result['deleted_count'] == 0
