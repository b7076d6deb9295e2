"""
Django settings for the maize yield estimator backend.
"""

import os
from pathlib import Path

import dj_database_url
from celery.schedules import crontab
from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(BASE_DIR / '.env')


def env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def env_list(name, default=''):
    return [item.strip() for item in os.environ.get(name, default).split(',') if item.strip()]


SECRET_KEY = os.environ.get('SECRET_KEY', 'django-insecure-maize-yield-dev-key')

DEBUG = env_bool('DEBUG', True)

ALLOWED_HOSTS = env_list('ALLOWED_HOSTS', 'localhost,127.0.0.1')

INSTALLED_APPS = [
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'farms',
    'yields',
]

DATABASES = {
    'default': dj_database_url.config(
        default=f"sqlite:///{BASE_DIR / 'db.sqlite3'}",
        conn_max_age=600,
    )
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

LANGUAGE_CODE = 'en-us'
TIME_ZONE = os.environ.get('TIME_ZONE', 'Africa/Harare')
USE_I18N = True
USE_TZ = True

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
    },
    'weather': {
        'BACKEND': os.environ.get('WEATHER_CACHE_BACKEND', 'django.core.cache.backends.locmem.LocMemCache'),
        'LOCATION': os.environ.get('WEATHER_CACHE_LOCATION', 'weather-observations'),
    },
}

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} {levelname} {name} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': os.environ.get('LOG_LEVEL', 'INFO'),
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': 'WARNING',
            'propagate': False,
        },
    },
}

# Celery
CELERY_BROKER_URL = os.environ.get('CELERY_BROKER_URL', 'redis://localhost:6379/0')
CELERY_RESULT_BACKEND = os.environ.get('CELERY_RESULT_BACKEND', CELERY_BROKER_URL)
CELERY_ACCEPT_CONTENT = ['json']
CELERY_TASK_SERIALIZER = 'json'
CELERY_RESULT_SERIALIZER = 'json'
CELERY_TIMEZONE = TIME_ZONE
CELERY_TASK_ALWAYS_EAGER = env_bool('CELERY_TASK_ALWAYS_EAGER', False)
CELERY_BEAT_SCHEDULE = {
    'fetch-daily-weather': {
        'task': 'farms.fetch_daily_weather_data',
        'schedule': crontab(hour=6, minute=0),
    },
    'backfill-missing-weather': {
        'task': 'farms.backfill_missing_weather_data',
        'schedule': crontab(hour=2, minute=0),
    },
    'purge-old-weather': {
        'task': 'farms.purge_old_weather_data',
        'schedule': crontab(hour=3, minute=0, day_of_month=1),
    },
}

# Weather providers
WEATHERAPI_KEY = os.environ.get('WEATHERAPI_KEY', '')
OPENWEATHER_API_KEY = os.environ.get('OPENWEATHER_API_KEY', '')
WEATHERSTACK_API_KEY = os.environ.get('WEATHERSTACK_API_KEY', '')

# Weather acquisition
WEATHER_PRIMARY_PROVIDER = os.environ.get('WEATHER_PRIMARY_PROVIDER', 'weatherapi')
WEATHER_FALLBACK_ENABLED = env_bool('WEATHER_FALLBACK_ENABLED', True)
WEATHER_FALLBACK_PROVIDERS = env_list('WEATHER_FALLBACK_PROVIDERS', 'openweather,weatherstack')
WEATHER_RETRY_MAX_ATTEMPTS = int(os.environ.get('WEATHER_RETRY_MAX_ATTEMPTS', 3))
WEATHER_RETRY_DELAY_SECONDS = float(os.environ.get('WEATHER_RETRY_DELAY_SECONDS', 1.0))
WEATHER_RETRY_MULTIPLIER = float(os.environ.get('WEATHER_RETRY_MULTIPLIER', 2.0))
WEATHER_VALIDATION_ENABLED = env_bool('WEATHER_VALIDATION_ENABLED', True)
WEATHER_CACHE_TTL_MINUTES = int(os.environ.get('WEATHER_CACHE_TTL_MINUTES', 30))
WEATHER_PROVIDER_TIMEOUT_SECONDS = float(os.environ.get('WEATHER_PROVIDER_TIMEOUT_SECONDS', 30))
WEATHER_FETCH_DEADLINE_SECONDS = (
    float(os.environ['WEATHER_FETCH_DEADLINE_SECONDS'])
    if os.environ.get('WEATHER_FETCH_DEADLINE_SECONDS') else None
)
WEATHER_HISTORY_RETENTION_YEARS = int(os.environ.get('WEATHER_HISTORY_RETENTION_YEARS', 2))

# Risk analysis and criticality thresholds
RECOMMENDATION_WEATHER_LOOKBACK_DAYS = 7
RECOMMENDATION_LOW_RAINFALL_MM = 5.0
RECOMMENDATION_HEAT_STRESS_TEMPERATURE = 35.0
RECOMMENDATION_EXCESSIVE_RAINFALL_MM = 50.0
RECOMMENDATION_PH_MIN = 5.5
RECOMMENDATION_PH_MAX = 7.5
RECOMMENDATION_NITROGEN_MIN = 20.0
RECOMMENDATION_PHOSPHORUS_MIN = 15.0
RECOMMENDATION_MOISTURE_MIN = 30.0
RECOMMENDATION_LATE_SEASON_FRACTION = 0.8
RECOMMENDATION_YIELD_DEFICIT_THRESHOLD_PERCENT = 15.0
RECOMMENDATION_LOW_CONFIDENCE_THRESHOLD = 65.0
RECOMMENDATION_CRITICAL_YIELD_THRESHOLD = 2.0
RECOMMENDATION_OPTIMAL_YIELD_TARGET = 6.0

# Advanced recommendations: disabled, remote or local
ADVANCED_RECOMMENDATIONS_MODE = os.environ.get('ADVANCED_RECOMMENDATIONS_MODE', 'disabled')
ADVANCED_RECOMMENDATIONS_BASE_URL = os.environ.get('ADVANCED_RECOMMENDATIONS_BASE_URL', '')
ADVANCED_RECOMMENDATIONS_API_KEY = os.environ.get('ADVANCED_RECOMMENDATIONS_API_KEY', '')
ADVANCED_RECOMMENDATIONS_TIMEOUT_SECONDS = float(os.environ.get('ADVANCED_RECOMMENDATIONS_TIMEOUT_SECONDS', 30))

# Yield prediction model
PREDICTION_MODEL_VERSION = os.environ.get('PREDICTION_MODEL_VERSION', '1.0.0')
PREDICTION_RANDOM_SEED = int(os.environ.get('PREDICTION_RANDOM_SEED', 1234))
