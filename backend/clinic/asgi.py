"""
ASGI config for the clinic project.

It exposes the ASGI callable as a module-level variable named ``application``.

Supports both HTTP and WebSocket protocols for live stock updates.
"""

import os
from django.core.asgi import get_asgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'clinic.settings')

# Initialize Django ASGI application early to populate Django apps
django_asgi_app = get_asgi_application()

# Import routing after Django setup
from channels.routing import ProtocolTypeRouter, URLRouter
from inventory.routing import websocket_urlpatterns

application = ProtocolTypeRouter({
    "http": django_asgi_app,
    "websocket": URLRouter(
        websocket_urlpatterns
    ),
})
