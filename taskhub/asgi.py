"""
ASGI config for the taskhub project.

It exposes the ASGI callable as a module-level variable named ``application``.
HTTP is served by Django; WebSocket connections go through the activity
consumer behind the JWT and security middleware.
"""

import os

import django

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'taskhub.settings')
django.setup()

from channels.routing import ProtocolTypeRouter, URLRouter  # noqa: E402
from django.core.asgi import get_asgi_application  # noqa: E402

from websocket_chat.middleware import WebSocketAuthMiddleware, WebSocketSecurityMiddleware  # noqa: E402
from websocket_chat.routing import websocket_urlpatterns  # noqa: E402

django_asgi_app = get_asgi_application()

application = ProtocolTypeRouter({
    "http": django_asgi_app,
    "websocket": WebSocketSecurityMiddleware(
        WebSocketAuthMiddleware(
            URLRouter(
                websocket_urlpatterns
            )
        )
    ),
})
