import logging
from dataclasses import replace

logger = logging.getLogger(__name__)

# (field, minimum, maximum); missing values are always accepted
WEATHER_RANGES = (
    ('min_temperature', -60.0, 60.0),
    ('max_temperature', -60.0, 60.0),
    ('average_temperature', -60.0, 60.0),
    ('rainfall_mm', 0.0, 1000.0),
    ('humidity_percentage', 0.0, 100.0),
    ('wind_speed_kmh', 0.0, 500.0),
)


class WeatherDataValidator:
    """Range checks for weather readings fetched from providers"""

    def __init__(self, ranges=WEATHER_RANGES):
        self.ranges = ranges

    def out_of_range_fields(self, reading):
        invalid = []
        for name, minimum, maximum in self.ranges:
            value = getattr(reading, name)
            if value is not None and not minimum <= value <= maximum:
                invalid.append(name)
        return invalid

    def validate(self, reading):
        invalid = self.out_of_range_fields(reading)
        if invalid:
            logger.warning(f"Weather reading for farm {reading.farm_id} on {reading.date} has out-of-range fields: {invalid}")
            return False

        temperatures = [reading.min_temperature, reading.average_temperature, reading.max_temperature]
        present = [t for t in temperatures if t is not None]
        if present != sorted(present):
            logger.warning(
                f"Weather reading for farm {reading.farm_id} on {reading.date} has inconsistent temperatures: "
                f"min={reading.min_temperature}, avg={reading.average_temperature}, max={reading.max_temperature}"
            )
            return False
        return True

    def sanitize(self, reading):
        """Return a copy with any out-of-range field cleared"""
        invalid = self.out_of_range_fields(reading)
        if not invalid:
            return reading
        return replace(reading, **{name: None for name in invalid})
