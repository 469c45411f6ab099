"""
WebSocket broadcasts for transaction and stock events.

Messages go to the 'transactions' channel group served by
clinic.consumers.TransactionConsumer. Sends are deferred with on_commit so
work that rolls back is never announced, and a failed send is only logged.
"""

import json
import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction as db_transaction
from rest_framework.utils.encoders import JSONEncoder

logger = logging.getLogger(__name__)

GROUP_NAME = 'transactions'


class BroadcastService:

    @staticmethod
    def transaction_created(transaction):
        BroadcastService._send_transaction('transaction.created', transaction)

    @staticmethod
    def transaction_updated(transaction):
        BroadcastService._send_transaction('transaction.updated', transaction)

    @staticmethod
    def stock_alert(alert: dict):
        """
        Broadcast a stock alert summary.

        Args:
            alert: {'low_stock': [...], 'expiring': [...], 'expired': [...]}
        """
        db_transaction.on_commit(lambda: BroadcastService._group_send({
            'type': 'stock.alert',
            'alert': json.loads(json.dumps(alert, cls=JSONEncoder)),
        }))

    @staticmethod
    def _send_transaction(event_type, transaction):
        from clinic.serializers import TransactionSerializer

        def send():
            try:
                # Decimal amounts go out as JSON numbers, datetimes as ISO strings
                data = json.loads(json.dumps(TransactionSerializer(transaction).data, cls=JSONEncoder))
            except Exception as e:
                logger.error(f"Failed to serialize transaction #{transaction.pk} for broadcast: {e}")
                return
            BroadcastService._group_send({'type': event_type, 'transaction': data})

        db_transaction.on_commit(send)

    @staticmethod
    def _group_send(message):
        try:
            channel_layer = get_channel_layer()
            if channel_layer:
                async_to_sync(channel_layer.group_send)(GROUP_NAME, message)
                logger.info(f"Broadcasted {message['type']} to WebSocket clients")
        except Exception as e:
            logger.error(f"Failed to broadcast {message['type']}: {e}")
