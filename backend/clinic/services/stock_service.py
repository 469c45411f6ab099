"""
Inventory Ledger Service

Owns medicine stock levels and the append-only StockMovement log.
Every change to Medicine.stock_quantity goes through apply_movement so the
stock level always equals the sum of its movements.

Business Rules:
- Stock never goes negative
- Every stock change writes exactly one StockMovement row
- Movements are never edited; corrections are new movements
"""

import logging
from typing import Optional

from django.db import transaction
from django.db.models import QuerySet

from clinic.models import Medicine, StockMovement, Transaction
from utils.exceptions import NotFoundError, InsufficientStockError, InvalidArgumentError

logger = logging.getLogger(__name__)


class StockService:
    """Service for applying and querying medicine stock movements."""

    @staticmethod
    def apply_movement(
        medicine_id: int,
        movement_type: str,
        quantity: int,
        reference_id: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> StockMovement:
        """
        Apply a stock movement to a medicine and record it.

        Runs in its own atomic block; when called from another service it
        joins the caller's unit of work as a savepoint.

        Args:
            medicine_id: ID of the medicine to move
            movement_type: StockMovement.MovementType.IN or OUT
            quantity: Number of units, must be > 0
            reference_id: Transaction that caused the movement, if any
            notes: Free-text audit note

        Returns:
            The created StockMovement

        Raises:
            NotFoundError: If the medicine or referenced transaction does not exist
            InvalidArgumentError: If quantity <= 0 or movement_type is unknown
            InsufficientStockError: If an 'out' movement exceeds current stock
        """
        if movement_type not in StockMovement.MovementType.values:
            raise InvalidArgumentError(f"Unknown movement type: {movement_type}")

        if quantity is None or quantity <= 0:
            raise InvalidArgumentError('Quantity must be greater than zero')

        with transaction.atomic():
            try:
                medicine = Medicine.objects.select_for_update().get(id=medicine_id)
            except Medicine.DoesNotExist:
                raise NotFoundError('medicine')

            if reference_id is not None and not Transaction.objects.filter(id=reference_id).exists():
                raise NotFoundError('transaction')

            quantity_before = medicine.stock_quantity

            if movement_type == StockMovement.MovementType.OUT:
                if quantity > medicine.stock_quantity:
                    logger.warning(
                        f"Insufficient stock for {medicine.name}: "
                        f"requested {quantity}, available {medicine.stock_quantity}"
                    )
                    raise InsufficientStockError(
                        f"Insufficient stock for {medicine.name}. "
                        f"Available: {medicine.stock_quantity}, Requested: {quantity}"
                    )
                medicine.stock_quantity -= quantity
            else:
                medicine.stock_quantity += quantity

            # auto_now on updated_at only fires when listed in update_fields
            medicine.save(update_fields=['stock_quantity', 'updated_at'])

            movement = StockMovement.objects.create(
                medicine=medicine,
                movement_type=movement_type,
                quantity=quantity,
                reference_id=reference_id,
                notes=notes,
            )

        logger.info(
            f"Stock {movement_type} {quantity} for medicine {medicine.id} ({medicine.name}): "
            f"{quantity_before} -> {medicine.stock_quantity}"
            + (f" [transaction #{reference_id}]" if reference_id else "")
        )
        return movement

    @staticmethod
    def set_absolute_stock(medicine_id: int, new_quantity: int, notes: Optional[str] = None) -> Optional[StockMovement]:
        """
        Set a medicine's stock to an absolute value (stock take / correction).

        The difference to the current level is written as a single movement.
        A zero difference is a no-op and records nothing.

        Args:
            medicine_id: ID of the medicine
            new_quantity: Target stock level, must be >= 0
            notes: Optional audit note (defaults to "Stock adjustment: old -> new")

        Returns:
            The created StockMovement, or None when nothing changed

        Raises:
            InvalidArgumentError: If new_quantity is negative
            NotFoundError: If the medicine does not exist
        """
        if new_quantity is None or new_quantity < 0:
            raise InvalidArgumentError('Stock quantity cannot be negative')

        with transaction.atomic():
            try:
                medicine = Medicine.objects.select_for_update().get(id=medicine_id)
            except Medicine.DoesNotExist:
                raise NotFoundError('medicine')

            current = medicine.stock_quantity
            delta = new_quantity - current
            if delta == 0:
                return None

            movement_type = StockMovement.MovementType.IN if delta > 0 else StockMovement.MovementType.OUT
            return StockService.apply_movement(
                medicine_id=medicine.id,
                movement_type=movement_type,
                quantity=abs(delta),
                notes=notes or f"Stock adjustment: {current} → {new_quantity}",
            )

    @staticmethod
    def get_stock_movements(medicine_id: Optional[int] = None) -> QuerySet:
        """Return stock movements newest first, optionally for one medicine."""
        queryset = StockMovement.objects.select_related('medicine', 'reference')
        if medicine_id is not None:
            queryset = queryset.filter(medicine_id=medicine_id)
        return queryset.order_by('-created_at', '-id')

    @staticmethod
    def outstanding_debits(transaction_id: int) -> dict:
        """
        Net quantity still debited from stock by a transaction, per medicine.

        Sums 'out' minus 'in' movements carrying the transaction as reference.
        Medicines whose debits are fully offset are left out.

        Returns:
            dict: {medicine_id: outstanding_quantity}
        """
        outstanding = {}
        movements = StockMovement.objects.filter(reference_id=transaction_id).values_list(
            'medicine_id', 'movement_type', 'quantity'
        )
        for medicine_id, movement_type, quantity in movements:
            if movement_type == StockMovement.MovementType.IN:
                quantity = -quantity
            outstanding[medicine_id] = outstanding.get(medicine_id, 0) + quantity
        return {medicine_id: qty for medicine_id, qty in outstanding.items() if qty > 0}
