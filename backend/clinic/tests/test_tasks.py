from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.test import TestCase
from django.utils import timezone

from clinic.models import Medicine, StockMovement
from clinic.services import SettingsService
from clinic.tasks import check_stock_alerts


class CheckStockAlertsTaskTest(TestCase):

    def setUp(self):
        self.today = timezone.localdate()

    def _medicine(self, name, stock=50, minimum=5, expiry=None):
        return Medicine.objects.create(
            name=name, unit='tablet', price_per_unit=Decimal('1000.00'),
            stock_quantity=stock, minimum_stock=minimum, expiry_date=expiry,
        )

    @patch('clinic.tasks.BroadcastService.stock_alert')
    def test_collects_and_broadcasts_alerts(self, mock_alert):
        self._medicine('Low', stock=2)
        self._medicine('Expiring', expiry=self.today + timedelta(days=10))
        self._medicine('Expired', expiry=self.today - timedelta(days=1))
        self._medicine('Fine', expiry=self.today + timedelta(days=365))

        alert = check_stock_alerts()

        self.assertEqual([item['name'] for item in alert['low_stock']], ['Low'])
        self.assertEqual([item['name'] for item in alert['expiring']], ['Expiring'])
        self.assertEqual([item['name'] for item in alert['expired']], ['Expired'])
        mock_alert.assert_called_once_with(alert)

    @patch('clinic.tasks.BroadcastService.stock_alert')
    def test_uses_expiry_warning_setting(self, mock_alert):
        self._medicine('In 45 days', expiry=self.today + timedelta(days=45))
        SettingsService.update('expiry_warning_days', '60')

        alert = check_stock_alerts()

        self.assertEqual(alert['expiry_warning_days'], 60)
        self.assertEqual([item['name'] for item in alert['expiring']], ['In 45 days'])

    @patch('clinic.tasks.BroadcastService.stock_alert')
    def test_nothing_to_report(self, mock_alert):
        self._medicine('Fine')

        alert = check_stock_alerts()

        self.assertEqual(alert['low_stock'], [])
        mock_alert.assert_not_called()

    @patch('clinic.tasks.BroadcastService.stock_alert')
    def test_does_not_touch_stock(self, mock_alert):
        medicine = self._medicine('Low', stock=1)

        check_stock_alerts.apply()

        medicine.refresh_from_db()
        self.assertEqual(medicine.stock_quantity, 1)
        self.assertFalse(StockMovement.objects.exists())
