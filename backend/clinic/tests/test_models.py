from datetime import date, timedelta
from decimal import Decimal

from django.db import IntegrityError, transaction
from django.test import TestCase
from django.utils import timezone

from clinic.models import Patient, Medicine, Transaction, TransactionMedicine, StockMovement
from utils.constants import STOCK_STATUS_OUT, STOCK_STATUS_LOW, STOCK_STATUS_OK


class MedicineModelTest(TestCase):

    def _medicine(self, **kwargs):
        fields = {'name': 'Paracetamol', 'unit': 'tablet', 'price_per_unit': Decimal('1000.00')}
        fields.update(kwargs)
        return Medicine.objects.create(**fields)

    def test_stock_status(self):
        self.assertEqual(self._medicine(stock_quantity=0, minimum_stock=5).stock_status, STOCK_STATUS_OUT)
        self.assertEqual(self._medicine(stock_quantity=5, minimum_stock=5).stock_status, STOCK_STATUS_LOW)
        self.assertEqual(self._medicine(stock_quantity=6, minimum_stock=5).stock_status, STOCK_STATUS_OK)

    def test_is_expired_on_expiry_day(self):
        today = timezone.localdate()
        self.assertTrue(self._medicine(expiry_date=today).is_expired)
        self.assertFalse(self._medicine(expiry_date=today + timedelta(days=1)).is_expired)
        self.assertFalse(self._medicine().is_expired)

    def test_negative_stock_is_rejected_by_database(self):
        medicine = self._medicine(stock_quantity=1)
        medicine.stock_quantity = -1

        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                medicine.save()


class TransactionModelTest(TestCase):

    def setUp(self):
        self.patient = Patient.objects.create(name='Rafi', date_of_birth=date(2015, 9, 9), gender='male')
        self.medicine = Medicine.objects.create(
            name='Amoxicillin', unit='capsule', price_per_unit=Decimal('2500.00'), stock_quantity=10
        )
        self.txn = Transaction.objects.create(
            patient=self.patient,
            total_amount=Decimal('7500.00'),
            payment_method=Transaction.PaymentMethod.CASH,
        )

    def test_line_total_is_calculated(self):
        line = TransactionMedicine.objects.create(
            transaction=self.txn, medicine=self.medicine, quantity=3, price_per_unit=Decimal('2500.00')
        )
        self.assertEqual(line.total_price, Decimal('7500.00'))

    def test_status_display(self):
        info = self.txn.status_display
        self.assertEqual(info['status'], 'pending')
        self.assertEqual(info['label'], 'Pending')
        self.assertIn('color', info)

    def test_deleting_transaction_keeps_movements(self):
        movement = StockMovement.objects.create(
            medicine=self.medicine,
            movement_type=StockMovement.MovementType.OUT,
            quantity=3,
            reference=self.txn,
        )
        self.txn.delete()

        movement.refresh_from_db()
        self.assertIsNone(movement.reference_id)
        self.assertEqual(movement.signed_quantity, -3)
