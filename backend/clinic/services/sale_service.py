"""
Sale (Transaction Builder) Service

Creates a point-of-sale transaction in one unit of work:
1. Validate patient, services and medicine stock
2. Compute totals from current prices
3. Write the header and line items (prices frozen on the line)
4. Debit stock for each medicine line through StockService
5. Log a visit for the patient

Business Rules:
- Inactive services cannot be sold
- Requested medicine quantity may not exceed stock (repeated lines for the
  same medicine are checked against their combined quantity)
- Any failure leaves the database unchanged
"""

import logging
from decimal import Decimal
from typing import Dict, List, Optional

from django.db import transaction

from clinic.models import (
    Patient, Service, Medicine, Transaction, TransactionService,
    TransactionMedicine, StockMovement,
)
from clinic.services.stock_service import StockService
from clinic.services.visit_service import VisitService
from clinic.services.broadcast_service import BroadcastService
from utils.exceptions import (
    NotFoundError, InactiveServiceError, InsufficientStockError, InvalidArgumentError,
)

logger = logging.getLogger(__name__)


class SaleService:
    """Service for building point-of-sale transactions."""

    @staticmethod
    def create_transaction(
        patient_id: int,
        payment_method: str,
        payment_status: str = Transaction.PaymentStatus.PENDING,
        notes: Optional[str] = None,
        services: Optional[List[Dict]] = None,
        medicines: Optional[List[Dict]] = None,
    ) -> Transaction:
        """
        Create a transaction with its service and medicine lines.

        Args:
            patient_id: Patient being billed
            payment_method: Transaction.PaymentMethod value
            payment_status: Initial Transaction.PaymentStatus (default pending)
            notes: Optional transaction notes
            services: [{'service_id': int, 'quantity': int}, ...]
            medicines: [{'medicine_id': int, 'quantity': int}, ...]

        Returns:
            The persisted Transaction

        Raises:
            NotFoundError: If the patient, a service or a medicine does not exist
            InactiveServiceError: If a service is inactive
            InsufficientStockError: If a medicine lacks stock
            InvalidArgumentError: If a quantity is not positive or a choice is unknown
        """
        services = services or []
        medicines = medicines or []

        if payment_method not in Transaction.PaymentMethod.values:
            raise InvalidArgumentError(f"Unknown payment method: {payment_method}")
        if payment_status not in Transaction.PaymentStatus.values:
            raise InvalidArgumentError(f"Unknown payment status: {payment_status}")
        if payment_status == Transaction.PaymentStatus.CANCELLED:
            # A sale always debits stock; cancel it afterwards to restore stock
            raise InvalidArgumentError('A transaction cannot be created as cancelled')
        for line in services + medicines:
            if line.get('quantity') is None or line['quantity'] <= 0:
                raise InvalidArgumentError('Quantity must be greater than zero')

        with transaction.atomic():
            try:
                patient = Patient.objects.get(id=patient_id)
            except Patient.DoesNotExist:
                raise NotFoundError('patient')

            # Services
            service_total = Decimal('0.00')
            service_lines = []
            for line in services:
                try:
                    service = Service.objects.get(id=line['service_id'])
                except Service.DoesNotExist:
                    raise NotFoundError('service')

                if not service.is_active:
                    logger.warning(f"Sale rejected: service {service.id} ({service.name}) is inactive")
                    raise InactiveServiceError(f"Service {service.name} is not active")

                service_total += service.price * line['quantity']
                service_lines.append((service, line['quantity']))

            # Medicines, locked in id order so concurrent sales cannot deadlock
            requested = {}
            for line in medicines:
                requested[line['medicine_id']] = requested.get(line['medicine_id'], 0) + line['quantity']

            locked = {
                medicine.id: medicine
                for medicine in Medicine.objects.select_for_update()
                .filter(id__in=requested.keys()).order_by('id')
            }

            medicine_total = Decimal('0.00')
            for medicine_id, quantity in requested.items():
                medicine = locked.get(medicine_id)
                if medicine is None:
                    raise NotFoundError('medicine')

                if quantity > medicine.stock_quantity:
                    logger.warning(
                        f"Sale rejected: insufficient stock for {medicine.name} "
                        f"(requested {quantity}, available {medicine.stock_quantity})"
                    )
                    raise InsufficientStockError(
                        f"Insufficient stock for {medicine.name}. "
                        f"Available: {medicine.stock_quantity}, Requested: {quantity}"
                    )
                medicine_total += medicine.price_per_unit * quantity

            txn = Transaction.objects.create(
                patient=patient,
                total_amount=service_total + medicine_total,
                payment_method=payment_method,
                payment_status=payment_status,
                notes=notes,
            )

            for service, quantity in service_lines:
                TransactionService.objects.create(
                    transaction=txn,
                    service=service,
                    quantity=quantity,
                    price_per_unit=service.price,
                )

            for line in medicines:
                medicine = locked[line['medicine_id']]
                TransactionMedicine.objects.create(
                    transaction=txn,
                    medicine=medicine,
                    quantity=line['quantity'],
                    price_per_unit=medicine.price_per_unit,
                )
                StockService.apply_movement(
                    medicine_id=medicine.id,
                    movement_type=StockMovement.MovementType.OUT,
                    quantity=line['quantity'],
                    reference_id=txn.id,
                    notes=f"Sold in transaction #{txn.id}",
                )

            VisitService.record_visit(patient_id=patient.id, transaction_id=txn.id)

        logger.info(
            f"Created transaction #{txn.id} for patient {patient.id}: "
            f"{len(service_lines)} service line(s), {len(medicines)} medicine line(s), "
            f"total {txn.total_amount}"
        )
        BroadcastService.transaction_created(txn)
        return txn
