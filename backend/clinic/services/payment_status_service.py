"""
Payment Status (Reconciler) Service

Moves transactions between pending, paid and cancelled while keeping stock
consistent with the StockMovement log.

State machine (every state reaches every other state):
- into cancelled: stock still debited by the transaction is returned with
  offsetting 'in' movements that carry the transaction as reference
- out of cancelled: every medicine line is debited again, which fails as a
  whole if stock has since run short
- pending <-> paid: no stock effect
- same status: only updated_at is touched

Usage:
    from clinic.services import PaymentStatusService

    PaymentStatusService.update_status(transaction_id, 'cancelled')
"""

import logging
from typing import Optional

from django.db import transaction as db_transaction
from django.db.models import QuerySet
from django.utils import timezone

from clinic.models import Transaction, TransactionMedicine, StockMovement
from clinic.services.stock_service import StockService
from clinic.services.broadcast_service import BroadcastService
from utils.exceptions import NotFoundError, InvalidArgumentError, RecordInUseError

logger = logging.getLogger(__name__)


class PaymentStatusService:
    """
    Service class for payment status changes and the stock reconciliation
    they imply.
    """

    @staticmethod
    def update_status(transaction_id: int, new_status: str) -> Transaction:
        """
        Change a transaction's payment status.

        Args:
            transaction_id: ID of the transaction
            new_status: Target Transaction.PaymentStatus value

        Returns:
            Updated Transaction instance

        Raises:
            NotFoundError: If the transaction does not exist
            InvalidArgumentError: If new_status is not a known status
            InsufficientStockError: If reactivating a cancelled transaction
                needs more stock than is available (nothing is changed)
        """
        if new_status not in Transaction.PaymentStatus.values:
            raise InvalidArgumentError(f"Unknown payment status: {new_status}")

        with db_transaction.atomic():
            txn = PaymentStatusService._lock(transaction_id)
            current = txn.payment_status

            if current == new_status:
                txn.save(update_fields=['updated_at'])
                return txn

            if new_status == Transaction.PaymentStatus.CANCELLED:
                PaymentStatusService._restore_stock(txn)
            elif current == Transaction.PaymentStatus.CANCELLED:
                PaymentStatusService._rededuct_stock(txn)

            txn.payment_status = new_status
            txn.save(update_fields=['payment_status', 'updated_at'])

        logger.info(f"Transaction #{txn.id} status changed: {current} -> {new_status}")
        BroadcastService.transaction_updated(txn)
        return txn

    @staticmethod
    def add_notes(transaction_id: int, notes: Optional[str]) -> Transaction:
        """
        Replace the notes on a transaction. No stock effect.

        Raises:
            NotFoundError: If the transaction does not exist
        """
        with db_transaction.atomic():
            txn = PaymentStatusService._lock(transaction_id)
            txn.notes = notes
            txn.save(update_fields=['notes', 'updated_at'])

        BroadcastService.transaction_updated(txn)
        return txn

    @staticmethod
    def delete_transaction(transaction_id: int) -> None:
        """
        Delete a transaction that has not been paid.

        A pending transaction is cancelled first so its stock comes back.
        Line items are removed with the header; stock movements and visits
        keep their rows with the transaction reference cleared.

        Raises:
            NotFoundError: If the transaction does not exist
            RecordInUseError: If the transaction is paid
        """
        with db_transaction.atomic():
            txn = PaymentStatusService._lock(transaction_id)

            if txn.payment_status == Transaction.PaymentStatus.PAID:
                logger.warning(f"Refused to delete paid transaction #{txn.id}")
                raise RecordInUseError(f"Transaction #{txn.id} is paid and cannot be deleted")

            if txn.payment_status != Transaction.PaymentStatus.CANCELLED:
                PaymentStatusService._restore_stock(txn)

            txn.delete()

        logger.info(f"Deleted transaction #{transaction_id}")

    @staticmethod
    def get_today_transactions() -> QuerySet:
        today = timezone.localdate()
        return Transaction.objects.select_related('patient').filter(created_at__date=today)

    @staticmethod
    def get_pending_transactions() -> QuerySet:
        return Transaction.objects.select_related('patient').filter(
            payment_status=Transaction.PaymentStatus.PENDING
        )

    # ==================== helpers ====================

    @staticmethod
    def _lock(transaction_id: int) -> Transaction:
        try:
            return Transaction.objects.select_for_update().get(id=transaction_id)
        except Transaction.DoesNotExist:
            raise NotFoundError('transaction')

    @staticmethod
    def _restore_stock(txn: Transaction) -> None:
        """
        Return the stock a transaction still holds.

        Reversal rows are aggregated per medicine: one 'in' movement carries
        the net of every 'out' minus 'in' movement referencing the
        transaction, so two lines of the same medicine are restored by a
        single row. Repeated cancel/reactivate cycles never return more than
        was taken.
        """
        outstanding = StockService.outstanding_debits(txn.id)
        for medicine_id in sorted(outstanding):
            StockService.apply_movement(
                medicine_id=medicine_id,
                movement_type=StockMovement.MovementType.IN,
                quantity=outstanding[medicine_id],
                reference_id=txn.id,
                notes=f"Transaction #{txn.id} cancelled - stock restored",
            )

    @staticmethod
    def _rededuct_stock(txn: Transaction) -> None:
        lines = TransactionMedicine.objects.filter(transaction=txn).order_by('medicine_id', 'id')
        for line in lines:
            StockService.apply_movement(
                medicine_id=line.medicine_id,
                movement_type=StockMovement.MovementType.OUT,
                quantity=line.quantity,
                reference_id=txn.id,
                notes=f"Transaction #{txn.id} reactivated - stock re-deducted",
            )
