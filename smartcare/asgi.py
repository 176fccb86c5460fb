"""
ASGI application: Django for HTTP, the notification consumer for
``ws/notifications/``.
"""
import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "smartcare.settings")
http_app = get_asgi_application()

from channels.routing import ProtocolTypeRouter, URLRouter  # noqa: E402
from django.urls import path  # noqa: E402

from clinic.realtime.consumers import NotificationConsumer  # noqa: E402

application = ProtocolTypeRouter({
    "http": http_app,
    "websocket": URLRouter([
        path("ws/notifications/", NotificationConsumer.as_asgi()),
    ]),
})
