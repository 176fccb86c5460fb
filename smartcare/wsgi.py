"""WSGI application for synchronous deployments (gunicorn, uWSGI)."""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "smartcare.settings")
application = get_wsgi_application()
