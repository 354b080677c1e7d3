"""WSGI config for the reliable delivery service."""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "delivery_service.settings")

application = get_wsgi_application()
