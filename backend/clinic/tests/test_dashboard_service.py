from datetime import date, timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone

from clinic.models import Patient, Medicine, Service, Transaction
from clinic.services import SaleService, PaymentStatusService, DashboardService


class DashboardServiceTest(TestCase):

    def setUp(self):
        self.today = timezone.localdate()
        self.patient = Patient.objects.create(name='Yusuf', date_of_birth=date(2014, 1, 20), gender='male')
        self.khitan = Service.objects.create(name='Khitan Laser', price=Decimal('500000.00'))
        self.konsultasi = Service.objects.create(name='Konsultasi', price=Decimal('50000.00'))
        self.medicine = Medicine.objects.create(
            name='Paracetamol', unit='tablet', price_per_unit=Decimal('1000.00'),
            stock_quantity=5, minimum_stock=10,
        )
        Medicine.objects.create(
            name='Expired Salep', unit='tube', price_per_unit=Decimal('12000.00'),
            stock_quantity=20, minimum_stock=1, expiry_date=self.today - timedelta(days=1),
        )

        self.paid = self._sale(services=[(self.khitan, 1), (self.konsultasi, 2)])
        PaymentStatusService.update_status(self.paid.id, Transaction.PaymentStatus.PAID)
        self.pending = self._sale(services=[(self.konsultasi, 1)])
        self.cancelled = self._sale(services=[(self.khitan, 1)])
        PaymentStatusService.update_status(self.cancelled.id, Transaction.PaymentStatus.CANCELLED)

    def _sale(self, services):
        return SaleService.create_transaction(
            patient_id=self.patient.id,
            payment_method=Transaction.PaymentMethod.CASH,
            services=[{'service_id': service.id, 'quantity': quantity} for service, quantity in services],
        )

    def test_stats(self):
        stats = DashboardService.get_stats()

        self.assertEqual(stats, {
            'total_patients': 1,
            'total_transactions_today': 3,
            'total_revenue_today': 600000.0,
            'low_stock_medicines': 1,
            'expired_medicines': 1,
            'pending_transactions': 1,
        })

    def test_daily_revenue_counts_paid_only(self):
        result = DashboardService.get_daily_revenue()

        self.assertEqual(result['date'], self.today.isoformat())
        self.assertEqual(result['revenue'], 600000.0)
        self.assertEqual(result['transaction_count'], 1)

    def test_daily_revenue_for_empty_day(self):
        result = DashboardService.get_daily_revenue(self.today - timedelta(days=400))
        self.assertEqual(result['revenue'], 0.0)
        self.assertEqual(result['transaction_count'], 0)

    def test_monthly_revenue(self):
        result = DashboardService.get_monthly_revenue(self.today.year, self.today.month)

        self.assertEqual(result['revenue'], 600000.0)
        self.assertEqual(result['transaction_count'], 1)
        self.assertEqual(result['daily'], [{'date': self.today.isoformat(), 'revenue': 600000.0}])

    def test_top_services_uses_paid_transactions(self):
        top = DashboardService.get_top_services()

        self.assertEqual([row['service_name'] for row in top], ['Konsultasi', 'Khitan Laser'])
        self.assertEqual(top[0]['usage_count'], 2)
        self.assertEqual(top[0]['revenue'], 100000.0)
        self.assertEqual(top[1]['usage_count'], 1)
        self.assertEqual(top[1]['transaction_count'], 1)

    def test_top_services_limit(self):
        self.assertEqual(len(DashboardService.get_top_services(limit=1)), 1)
