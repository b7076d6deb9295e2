"""
Immutable runtime configuration built once from Django settings.

Components take the section they need through their constructor, so tests can
build a config directly without touching settings.
"""

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional, Tuple

from django.conf import settings


@dataclass(frozen=True)
class WeatherAcquisitionConfig:
    primary_provider: str = "weatherapi"
    fallback_enabled: bool = True
    fallback_providers: Tuple[str, ...] = ("openweather", "weatherstack")
    max_attempts: int = 3
    initial_delay: float = 1.0
    multiplier: float = 2.0
    validation_enabled: bool = True
    cache_ttl_minutes: int = 30
    timeout_seconds: float = 30.0
    # None leaves the fallback chain without an overall time budget
    deadline_seconds: Optional[float] = None
    history_retention_years: int = 2

    @property
    def provider_chain(self):
        chain = [self.primary_provider]
        if self.fallback_enabled:
            chain.extend(p for p in self.fallback_providers if p != self.primary_provider)
        return tuple(chain)


@dataclass(frozen=True)
class RiskThresholds:
    lookback_days: int = 7
    low_rainfall_mm: float = 5.0
    heat_stress_temperature: float = 35.0
    excessive_rainfall_mm: float = 50.0
    ph_min: float = 5.5
    ph_max: float = 7.5
    nitrogen_min: float = 20.0
    phosphorus_min: float = 15.0
    moisture_min: float = 30.0
    late_season_fraction: float = 0.8


@dataclass(frozen=True)
class CriticalityThresholds:
    yield_deficit_percent: float = 15.0
    low_confidence_percent: float = 65.0
    critical_yield: float = 2.0
    optimal_yield_target: float = 6.0


@dataclass(frozen=True)
class ScoringConfig:
    seed: int = 1234
    model_version: str = "1.0.0"
    base_yield_min: float = 4.5
    base_yield_max: float = 6.0
    confidence_jitter: float = 5.0
    weather_window_months: int = 1


@dataclass(frozen=True)
class AdvancedRecommendationConfig:
    mode: str = "disabled"
    base_url: str = ""
    api_key: str = ""
    timeout_seconds: float = 30.0

    @property
    def enabled(self):
        if self.mode == "remote":
            return bool(self.base_url)
        return self.mode == "local"


@dataclass(frozen=True)
class YieldEstimatorConfig:
    weather: WeatherAcquisitionConfig = field(default_factory=WeatherAcquisitionConfig)
    risk: RiskThresholds = field(default_factory=RiskThresholds)
    criticality: CriticalityThresholds = field(default_factory=CriticalityThresholds)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    advanced: AdvancedRecommendationConfig = field(default_factory=AdvancedRecommendationConfig)

    @classmethod
    def from_settings(cls):
        weather = WeatherAcquisitionConfig(
            primary_provider=getattr(settings, 'WEATHER_PRIMARY_PROVIDER', 'weatherapi'),
            fallback_enabled=getattr(settings, 'WEATHER_FALLBACK_ENABLED', True),
            fallback_providers=tuple(getattr(settings, 'WEATHER_FALLBACK_PROVIDERS', WeatherAcquisitionConfig.fallback_providers)),
            max_attempts=getattr(settings, 'WEATHER_RETRY_MAX_ATTEMPTS', 3),
            initial_delay=getattr(settings, 'WEATHER_RETRY_DELAY_SECONDS', 1.0),
            multiplier=getattr(settings, 'WEATHER_RETRY_MULTIPLIER', 2.0),
            validation_enabled=getattr(settings, 'WEATHER_VALIDATION_ENABLED', True),
            cache_ttl_minutes=getattr(settings, 'WEATHER_CACHE_TTL_MINUTES', 30),
            timeout_seconds=getattr(settings, 'WEATHER_PROVIDER_TIMEOUT_SECONDS', 30.0),
            deadline_seconds=getattr(settings, 'WEATHER_FETCH_DEADLINE_SECONDS', None),
            history_retention_years=getattr(settings, 'WEATHER_HISTORY_RETENTION_YEARS', 2),
        )
        risk = RiskThresholds(
            lookback_days=getattr(settings, 'RECOMMENDATION_WEATHER_LOOKBACK_DAYS', 7),
            low_rainfall_mm=getattr(settings, 'RECOMMENDATION_LOW_RAINFALL_MM', 5.0),
            heat_stress_temperature=getattr(settings, 'RECOMMENDATION_HEAT_STRESS_TEMPERATURE', 35.0),
            excessive_rainfall_mm=getattr(settings, 'RECOMMENDATION_EXCESSIVE_RAINFALL_MM', 50.0),
            ph_min=getattr(settings, 'RECOMMENDATION_PH_MIN', 5.5),
            ph_max=getattr(settings, 'RECOMMENDATION_PH_MAX', 7.5),
            nitrogen_min=getattr(settings, 'RECOMMENDATION_NITROGEN_MIN', 20.0),
            phosphorus_min=getattr(settings, 'RECOMMENDATION_PHOSPHORUS_MIN', 15.0),
            moisture_min=getattr(settings, 'RECOMMENDATION_MOISTURE_MIN', 30.0),
            late_season_fraction=getattr(settings, 'RECOMMENDATION_LATE_SEASON_FRACTION', 0.8),
        )
        criticality = CriticalityThresholds(
            yield_deficit_percent=getattr(settings, 'RECOMMENDATION_YIELD_DEFICIT_THRESHOLD_PERCENT', 15.0),
            low_confidence_percent=getattr(settings, 'RECOMMENDATION_LOW_CONFIDENCE_THRESHOLD', 65.0),
            critical_yield=getattr(settings, 'RECOMMENDATION_CRITICAL_YIELD_THRESHOLD', 2.0),
            optimal_yield_target=getattr(settings, 'RECOMMENDATION_OPTIMAL_YIELD_TARGET', 6.0),
        )
        scoring = ScoringConfig(
            seed=getattr(settings, 'PREDICTION_RANDOM_SEED', 1234),
            model_version=getattr(settings, 'PREDICTION_MODEL_VERSION', '1.0.0'),
        )
        advanced = AdvancedRecommendationConfig(
            mode=getattr(settings, 'ADVANCED_RECOMMENDATIONS_MODE', 'disabled'),
            base_url=getattr(settings, 'ADVANCED_RECOMMENDATIONS_BASE_URL', ''),
            api_key=getattr(settings, 'ADVANCED_RECOMMENDATIONS_API_KEY', ''),
            timeout_seconds=getattr(settings, 'ADVANCED_RECOMMENDATIONS_TIMEOUT_SECONDS', 30.0),
        )
        return cls(
            weather=weather,
            risk=risk,
            criticality=criticality,
            scoring=scoring,
            advanced=advanced,
        )


@lru_cache(maxsize=1)
def get_config():
    """Load the configuration once per process"""
    return YieldEstimatorConfig.from_settings()
