"""Pytest configuration and shared fixtures."""

import os

from django.test import Client

import pytest

# pytest-django reads this; manage.py test uses --settings instead
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "delivery_service.settings_test")


@pytest.fixture
def api_client():
    """Provide Django test client."""
    return Client()
