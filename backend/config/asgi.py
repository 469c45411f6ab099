"""
ASGI config for the clinic project.

It exposes the ASGI callable as a module-level variable named ``application``.

Serves the HTTP API and the WebSocket feed of transaction and stock events.

For more information on this file, see
https://docs.djangoproject.com/en/5.2/howto/deployment/asgi/
"""

import os
from django.core.asgi import get_asgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

# Initialize Django ASGI application early to populate Django apps
django_asgi_app = get_asgi_application()

# Import routing after Django setup
from channels.routing import ProtocolTypeRouter, URLRouter
from clinic.routing import websocket_urlpatterns

application = ProtocolTypeRouter({
    "http": django_asgi_app,
    "websocket": URLRouter(
        websocket_urlpatterns
    ),
})
