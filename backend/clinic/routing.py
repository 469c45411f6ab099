"""
WebSocket URL routing for the clinic app.
"""
from django.urls import re_path
from . import consumers

websocket_urlpatterns = [
    re_path(r'^ws/transactions/$', consumers.TransactionConsumer.as_asgi()),
]
