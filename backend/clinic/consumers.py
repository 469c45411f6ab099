"""
WebSocket consumer for real-time clinic updates.

Broadcast-only: events are pushed by clinic.services.BroadcastService.
"""
import json
import logging

from channels.generic.websocket import AsyncWebsocketConsumer

from .services.broadcast_service import GROUP_NAME

logger = logging.getLogger(__name__)


class TransactionConsumer(AsyncWebsocketConsumer):
    """
    WebSocket consumer for transaction and stock events.

    Clients connect to ws://host/ws/transactions/ to receive:
    - New transactions
    - Status and notes changes
    - Low-stock and expiry alerts

    Messages sent to clients:
    {
        "type": "transaction.created" | "transaction.updated",
        "transaction": {...serialized transaction data...}
    }
    {
        "type": "stock.alert",
        "alert": {"low_stock": [...], "expiring": [...], "expired": [...]}
    }
    """

    async def connect(self):
        self.group_name = GROUP_NAME

        if self.channel_layer:
            await self.channel_layer.group_add(self.group_name, self.channel_name)
        else:
            logger.warning("Channel layer is not configured; WebSocket clients will not receive broadcasts")

        await self.accept()

    async def disconnect(self, close_code):
        if self.channel_layer and hasattr(self, 'group_name'):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def receive(self, text_data=None, bytes_data=None):
        # Clients only listen
        pass

    async def transaction_created(self, event):
        await self.send(text_data=json.dumps({
            'type': 'transaction.created',
            'transaction': event['transaction']
        }))

    async def transaction_updated(self, event):
        await self.send(text_data=json.dumps({
            'type': 'transaction.updated',
            'transaction': event['transaction']
        }))

    async def stock_alert(self, event):
        await self.send(text_data=json.dumps({
            'type': 'stock.alert',
            'alert': event['alert']
        }))
