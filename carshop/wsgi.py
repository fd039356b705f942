"""WSGI entry point for Carshop."""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'carshop.settings')

application = get_wsgi_application()
