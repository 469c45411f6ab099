"""
Medicine Catalog Service

Creates, updates and deletes medicines without bypassing the stock ledger:
- opening stock is written as an 'in' movement
- a stock_quantity change on update becomes a StockService adjustment
- a medicine used by any sale is never deleted
"""

import logging
from datetime import timedelta
from typing import Dict, Optional

from django.db import transaction
from django.db.models import F, Q, QuerySet
from django.utils import timezone

from clinic.models import Medicine, StockMovement, TransactionMedicine
from clinic.services.stock_service import StockService
from utils.exceptions import NotFoundError, RecordInUseError, InvalidArgumentError

logger = logging.getLogger(__name__)


class MedicineService:
    """Service for medicine catalog maintenance and stock queries."""

    @staticmethod
    def create_medicine(data: Dict) -> Medicine:
        """
        Create a medicine and record its opening stock.

        Args:
            data: Validated medicine fields (stock_quantity is the opening stock)

        Returns:
            The created Medicine
        """
        data = dict(data)
        opening_stock = data.pop('stock_quantity', 0) or 0
        if opening_stock < 0:
            raise InvalidArgumentError('Stock quantity cannot be negative')

        with transaction.atomic():
            medicine = Medicine.objects.create(stock_quantity=0, **data)
            if opening_stock > 0:
                StockService.apply_movement(
                    medicine_id=medicine.id,
                    movement_type=StockMovement.MovementType.IN,
                    quantity=opening_stock,
                    notes='Opening stock',
                )
                medicine.refresh_from_db()

        logger.info(f"Created medicine {medicine.id} ({medicine.name}) with opening stock {opening_stock}")
        return medicine

    @staticmethod
    def update_medicine(medicine_id: int, data: Dict) -> Medicine:
        """
        Update medicine fields. A changed stock_quantity is applied through
        StockService.set_absolute_stock so the change is recorded.

        Raises:
            NotFoundError: If the medicine does not exist
            InvalidArgumentError: If the new stock quantity is negative
        """
        data = dict(data)
        new_stock = data.pop('stock_quantity', None)

        with transaction.atomic():
            try:
                medicine = Medicine.objects.select_for_update().get(id=medicine_id)
            except Medicine.DoesNotExist:
                raise NotFoundError('medicine')

            if data:
                for name, value in data.items():
                    setattr(medicine, name, value)
                medicine.save(update_fields=list(data.keys()) + ['updated_at'])

            if new_stock is not None:
                StockService.set_absolute_stock(
                    medicine_id,
                    new_stock,
                    notes='Stock adjustment via medicine update',
                )

            medicine.refresh_from_db()

        return medicine

    @staticmethod
    def delete_medicine(medicine_id: int) -> None:
        """
        Delete a medicine together with its movement history.

        Raises:
            NotFoundError: If the medicine does not exist
            RecordInUseError: If any transaction line uses the medicine
        """
        with transaction.atomic():
            try:
                medicine = Medicine.objects.select_for_update().get(id=medicine_id)
            except Medicine.DoesNotExist:
                raise NotFoundError('medicine')

            if TransactionMedicine.objects.filter(medicine=medicine).exists():
                logger.warning(f"Refused to delete medicine {medicine_id}: used in transactions")
                raise RecordInUseError('Cannot delete medicine that has been used in transactions')

            StockMovement.objects.filter(medicine=medicine).delete()
            medicine.delete()

        logger.info(f"Deleted medicine {medicine_id} and its stock history")

    @staticmethod
    def search(query: Optional[str] = None, low_stock_only: bool = False, expired_only: bool = False) -> QuerySet:
        queryset = Medicine.objects.all()
        if query:
            queryset = queryset.filter(
                Q(name__icontains=query) | Q(description__icontains=query) | Q(supplier__icontains=query)
            )
        if low_stock_only:
            queryset = queryset.filter(stock_quantity__lte=F('minimum_stock'))
        if expired_only:
            queryset = queryset.filter(expiry_date__lte=timezone.localdate())
        return queryset.order_by('name', 'id')

    @staticmethod
    def get_low_stock() -> QuerySet:
        """Medicines at or below their minimum stock, lowest stock first."""
        return Medicine.objects.filter(stock_quantity__lte=F('minimum_stock')).order_by('stock_quantity', 'name')

    @staticmethod
    def get_expired(as_of=None) -> QuerySet:
        """Medicines whose expiry date is on or before as_of (default today)."""
        as_of = as_of or timezone.localdate()
        return Medicine.objects.filter(expiry_date__lte=as_of).order_by('expiry_date', 'name')

    @staticmethod
    def get_expiring(days: int, as_of=None) -> QuerySet:
        """Medicines that are not yet expired but expire within `days` days."""
        as_of = as_of or timezone.localdate()
        return Medicine.objects.filter(
            expiry_date__gt=as_of,
            expiry_date__lte=as_of + timedelta(days=days),
        ).order_by('expiry_date', 'name')
