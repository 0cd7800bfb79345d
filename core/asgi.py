"""
ASGI config for the adforge backend.

HTTP goes to Django; WebSocket connections are routed to the campaign status
consumer, which authenticates with a JWT passed as ``?token=``.
"""

import os

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "core.settings.local")

from django.core.asgi import get_asgi_application

django_asgi_app = get_asgi_application()

from channels.routing import ProtocolTypeRouter, URLRouter
from channels.security.websocket import AllowedHostsOriginValidator
import apps.realtime.routing

application = ProtocolTypeRouter({
    "http": django_asgi_app,
    "websocket": AllowedHostsOriginValidator(
        URLRouter(
            apps.realtime.routing.websocket_urlpatterns
        )
    ),
})
