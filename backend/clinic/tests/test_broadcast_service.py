"""
Tests for WebSocket broadcasts of transaction and stock events.

Messages are captured at BroadcastService._group_send; on-commit callbacks
are run explicitly with captureOnCommitCallbacks.
"""

from datetime import date
from decimal import Decimal
from unittest.mock import patch

from django.db import transaction
from django.test import TestCase

from clinic.models import Patient, Medicine, Service, Transaction
from clinic.services import SaleService, PaymentStatusService
from clinic.services.broadcast_service import BroadcastService
from utils.exceptions import InsufficientStockError


class BroadcastServiceTest(TestCase):

    def setUp(self):
        self.patient = Patient.objects.create(
            name='Dimas Saputra',
            date_of_birth=date(2015, 5, 2),
            gender=Patient.Gender.MALE,
        )
        self.service = Service.objects.create(name='Khitan Laser', price=Decimal('50000.00'))
        self.medicine = Medicine.objects.create(
            name='Paracetamol',
            unit='tablet',
            price_per_unit=Decimal('500.00'),
            stock_quantity=100,
            minimum_stock=10,
        )

    def _sale(self, quantity=10):
        return SaleService.create_transaction(
            patient_id=self.patient.id,
            payment_method=Transaction.PaymentMethod.CASH,
            services=[{'service_id': self.service.id, 'quantity': 1}],
            medicines=[{'medicine_id': self.medicine.id, 'quantity': quantity}],
        )

    @patch('clinic.services.broadcast_service.BroadcastService._group_send')
    def test_created_message_carries_numeric_amounts(self, mock_send):
        with self.captureOnCommitCallbacks(execute=True):
            txn = self._sale()

        mock_send.assert_called_once()
        message = mock_send.call_args[0][0]
        self.assertEqual(message['type'], 'transaction.created')

        payload = message['transaction']
        self.assertEqual(payload['id'], txn.id)
        self.assertIsInstance(payload['total_amount'], float)
        self.assertEqual(payload['total_amount'], 55000.0)
        self.assertEqual(payload['services'][0]['price_per_unit'], 50000.0)
        self.assertEqual(payload['medicines'][0]['total_price'], 5000.0)
        self.assertIsInstance(payload['created_at'], str)

    @patch('clinic.services.broadcast_service.BroadcastService._group_send')
    def test_status_change_sends_updated_message(self, mock_send):
        txn = self._sale()

        with self.captureOnCommitCallbacks(execute=True):
            PaymentStatusService.update_status(txn.id, Transaction.PaymentStatus.PAID)

        message = mock_send.call_args[0][0]
        self.assertEqual(message['type'], 'transaction.updated')
        self.assertEqual(message['transaction']['payment_status'], 'paid')
        self.assertIsInstance(message['transaction']['total_amount'], float)

    @patch('clinic.services.broadcast_service.BroadcastService._group_send')
    def test_failed_sale_is_not_announced(self, mock_send):
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            with self.assertRaises(InsufficientStockError):
                self._sale(quantity=150)

        self.assertEqual(callbacks, [])
        mock_send.assert_not_called()

    @patch('clinic.services.broadcast_service.BroadcastService._group_send')
    def test_rolled_back_sale_is_not_announced(self, mock_send):
        with self.captureOnCommitCallbacks(execute=True):
            with self.assertRaises(RuntimeError):
                with transaction.atomic():
                    self._sale()
                    raise RuntimeError('abort')

        mock_send.assert_not_called()
        self.assertFalse(Transaction.objects.exists())

    @patch('clinic.services.broadcast_service.get_channel_layer')
    def test_send_failure_is_only_logged(self, mock_get_layer):
        mock_get_layer.side_effect = RuntimeError('redis unavailable')

        with self.assertLogs('clinic.services.broadcast_service', level='ERROR') as logs:
            with self.captureOnCommitCallbacks(execute=True):
                txn = self._sale()

        self.assertTrue(Transaction.objects.filter(id=txn.id).exists())
        self.medicine.refresh_from_db()
        self.assertEqual(self.medicine.stock_quantity, 90)
        self.assertIn('Failed to broadcast transaction.created', logs.output[0])

    @patch('clinic.services.broadcast_service.BroadcastService._group_send')
    def test_stock_alert_message(self, mock_send):
        alert = {
            'low_stock': [{'name': 'Paracetamol', 'price_per_unit': Decimal('500.00')}],
            'expiring': [],
            'expired': [],
        }

        with self.captureOnCommitCallbacks(execute=True):
            BroadcastService.stock_alert(alert)

        message = mock_send.call_args[0][0]
        self.assertEqual(message['type'], 'stock.alert')
        self.assertEqual(message['alert']['low_stock'][0]['price_per_unit'], 500.0)
