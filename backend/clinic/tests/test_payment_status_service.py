"""
Unit tests for PaymentStatusService.

Tests status transitions and their stock effects:
- pending <-> paid has no stock effect
- cancel returns stock, reactivation deducts it again
- repeated cancel/reactivate cycles keep stock and movements consistent
- failed reactivation changes nothing
- deletion rules
"""

from datetime import date
from decimal import Decimal

from django.test import TestCase

from clinic.models import Patient, Medicine, Service, Transaction, StockMovement, PatientVisit
from clinic.services import SaleService, PaymentStatusService, StockService
from utils.exceptions import (
    NotFoundError, InsufficientStockError, InvalidArgumentError, RecordInUseError,
)

PAID = Transaction.PaymentStatus.PAID
PENDING = Transaction.PaymentStatus.PENDING
CANCELLED = Transaction.PaymentStatus.CANCELLED


class PaymentStatusServiceTest(TestCase):
    """Test cases for PaymentStatusService."""

    def setUp(self):
        self.patient = Patient.objects.create(
            name='Ahmad Fauzi',
            date_of_birth=date(2014, 8, 17),
            gender=Patient.Gender.MALE,
        )
        self.paracetamol = Medicine.objects.create(
            name='Paracetamol',
            unit='tablet',
            price_per_unit=Decimal('1500.00'),
            stock_quantity=100,
            minimum_stock=10,
        )
        self.service = Service.objects.create(name='Khitan Laser', price=Decimal('50000.00'))
        self.txn = SaleService.create_transaction(
            patient_id=self.patient.id,
            payment_method=Transaction.PaymentMethod.CASH,
            services=[{'service_id': self.service.id, 'quantity': 1}],
            medicines=[{'medicine_id': self.paracetamol.id, 'quantity': 10}],
        )

    def _stock(self):
        self.paracetamol.refresh_from_db()
        return self.paracetamol.stock_quantity

    def _movements(self):
        return StockMovement.objects.filter(medicine=self.paracetamol).order_by('id')

    def test_pending_to_paid_has_no_stock_effect(self):
        txn = PaymentStatusService.update_status(self.txn.id, PAID)

        self.assertEqual(txn.payment_status, PAID)
        self.assertEqual(self._stock(), 90)
        self.assertEqual(self._movements().count(), 1)

    def test_cancel_restores_stock(self):
        PaymentStatusService.update_status(self.txn.id, CANCELLED)

        self.assertEqual(self._stock(), 100)
        movements = list(self._movements())
        self.assertEqual(len(movements), 2)
        restore = movements[-1]
        self.assertEqual(restore.movement_type, StockMovement.MovementType.IN)
        self.assertEqual(restore.quantity, 10)
        self.assertEqual(restore.reference_id, self.txn.id)
        self.assertEqual(restore.notes, f"Transaction #{self.txn.id} cancelled - stock restored")

    def test_paid_to_cancelled_to_paid(self):
        PaymentStatusService.update_status(self.txn.id, PAID)
        PaymentStatusService.update_status(self.txn.id, CANCELLED)
        self.assertEqual(self._stock(), 100)

        txn = PaymentStatusService.update_status(self.txn.id, PAID)
        self.assertEqual(txn.payment_status, PAID)
        self.assertEqual(self._stock(), 90)

        last = self._movements().last()
        self.assertEqual(last.movement_type, StockMovement.MovementType.OUT)
        self.assertEqual(last.notes, f"Transaction #{self.txn.id} reactivated - stock re-deducted")

    def test_repeated_cycles_stay_consistent(self):
        for _ in range(3):
            PaymentStatusService.update_status(self.txn.id, CANCELLED)
            self.assertEqual(self._stock(), 100)
            PaymentStatusService.update_status(self.txn.id, PENDING)
            self.assertEqual(self._stock(), 90)

        self.assertEqual(StockService.outstanding_debits(self.txn.id), {self.paracetamol.id: 10})
        # 1 sale + 3 x (restore + re-deduct)
        self.assertEqual(self._movements().count(), 7)

    def test_cancel_restores_repeated_lines_in_one_row(self):
        txn = SaleService.create_transaction(
            patient_id=self.patient.id,
            payment_method=Transaction.PaymentMethod.CASH,
            medicines=[
                {'medicine_id': self.paracetamol.id, 'quantity': 4},
                {'medicine_id': self.paracetamol.id, 'quantity': 6},
            ],
        )
        self.assertEqual(self._stock(), 80)

        PaymentStatusService.update_status(txn.id, CANCELLED)

        self.assertEqual(self._stock(), 90)
        restores = StockMovement.objects.filter(
            reference_id=txn.id, movement_type=StockMovement.MovementType.IN
        )
        self.assertEqual(restores.count(), 1)
        self.assertEqual(restores.get().quantity, 10)

    def test_same_status_changes_nothing(self):
        PaymentStatusService.update_status(self.txn.id, PENDING)
        self.assertEqual(self._stock(), 90)
        self.assertEqual(self._movements().count(), 1)

        PaymentStatusService.update_status(self.txn.id, CANCELLED)
        PaymentStatusService.update_status(self.txn.id, CANCELLED)
        self.assertEqual(self._stock(), 100)
        self.assertEqual(self._movements().count(), 2)

    def test_reactivation_without_stock_fails_as_a_whole(self):
        PaymentStatusService.update_status(self.txn.id, CANCELLED)
        StockService.set_absolute_stock(self.paracetamol.id, 5)
        movements_before = StockMovement.objects.count()

        with self.assertRaises(InsufficientStockError):
            PaymentStatusService.update_status(self.txn.id, PAID)

        self.txn.refresh_from_db()
        self.assertEqual(self.txn.payment_status, CANCELLED)
        self.assertEqual(self._stock(), 5)
        self.assertEqual(StockMovement.objects.count(), movements_before)

    def test_reactivation_with_several_medicines_is_all_or_nothing(self):
        amoxicillin = Medicine.objects.create(
            name='Amoxicillin', unit='capsule', price_per_unit=Decimal('3000.00'), stock_quantity=10
        )
        txn = SaleService.create_transaction(
            patient_id=self.patient.id,
            payment_method=Transaction.PaymentMethod.CASH,
            medicines=[
                {'medicine_id': self.paracetamol.id, 'quantity': 5},
                {'medicine_id': amoxicillin.id, 'quantity': 10},
            ],
        )
        PaymentStatusService.update_status(txn.id, CANCELLED)
        StockService.set_absolute_stock(amoxicillin.id, 0)

        with self.assertRaises(InsufficientStockError):
            PaymentStatusService.update_status(txn.id, PENDING)

        # Paracetamol line was processed first and must be rolled back too
        self.assertEqual(self._stock(), 90)
        amoxicillin.refresh_from_db()
        self.assertEqual(amoxicillin.stock_quantity, 0)

    def test_unknown_status(self):
        with self.assertRaises(InvalidArgumentError):
            PaymentStatusService.update_status(self.txn.id, 'refunded')

    def test_unknown_transaction(self):
        with self.assertRaises(NotFoundError):
            PaymentStatusService.update_status(99999, PAID)

    def test_add_notes(self):
        txn = PaymentStatusService.add_notes(self.txn.id, 'Paid at front desk')

        self.assertEqual(txn.notes, 'Paid at front desk')
        self.assertEqual(self._stock(), 90)

    def test_delete_pending_transaction_restores_stock(self):
        PaymentStatusService.delete_transaction(self.txn.id)

        self.assertFalse(Transaction.objects.filter(id=self.txn.id).exists())
        self.assertEqual(self._stock(), 100)
        # Movements stay as history with the reference cleared
        self.assertEqual(self._movements().count(), 2)
        self.assertFalse(self._movements().filter(reference__isnull=False).exists())
        self.assertTrue(PatientVisit.objects.filter(patient=self.patient, transaction__isnull=True).exists())

    def test_delete_cancelled_transaction_does_not_restore_twice(self):
        PaymentStatusService.update_status(self.txn.id, CANCELLED)
        PaymentStatusService.delete_transaction(self.txn.id)

        self.assertEqual(self._stock(), 100)
        self.assertEqual(self._movements().count(), 2)

    def test_paid_transaction_cannot_be_deleted(self):
        PaymentStatusService.update_status(self.txn.id, PAID)

        with self.assertRaises(RecordInUseError):
            PaymentStatusService.delete_transaction(self.txn.id)

        self.assertTrue(Transaction.objects.filter(id=self.txn.id).exists())
        self.assertEqual(self._stock(), 90)

    def test_today_and_pending_lists(self):
        other = SaleService.create_transaction(
            patient_id=self.patient.id,
            payment_method=Transaction.PaymentMethod.CASH,
            services=[{'service_id': self.service.id, 'quantity': 1}],
        )
        PaymentStatusService.update_status(other.id, PAID)

        today_ids = set(PaymentStatusService.get_today_transactions().values_list('id', flat=True))
        pending_ids = list(PaymentStatusService.get_pending_transactions().values_list('id', flat=True))
        self.assertEqual(today_ids, {self.txn.id, other.id})
        self.assertEqual(pending_ids, [self.txn.id])
