import os
import sys

import django
import pytest

# Add the project directory to the sys.path
project_path = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, project_path)

# Setup Django settings
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'backend.settings')
django.setup()


@pytest.fixture(scope="session", autouse=True)
def set_test_environment():
    """Keep tests away from real providers and brokers"""
    os.environ['DJANGO_TESTING'] = 'True'
    from django.conf import settings
    settings.CELERY_TASK_ALWAYS_EAGER = True
    from backend.celery import app
    app.conf.task_always_eager = True
    return


@pytest.fixture(autouse=True)
def clear_weather_cache():
    from django.core.cache import caches
    caches['weather'].clear()
    yield
