from django_filters import rest_framework as filters
from .models import Transaction, StockMovement


class TransactionFilter(filters.FilterSet):
    """
    Transaction list filtering.

    Available filters:
    - patient_id: Transactions of one patient
    - payment_status: pending, paid or cancelled
    - payment_method: cash, transfer or card
    - start_date, end_date: Inclusive range on the creation date
    """

    patient_id = filters.NumberFilter(
        field_name="patient_id",
        help_text="Patient ID"
    )
    payment_status = filters.ChoiceFilter(
        choices=Transaction.PaymentStatus.choices,
        help_text="Payment status"
    )
    payment_method = filters.ChoiceFilter(
        choices=Transaction.PaymentMethod.choices,
        help_text="Payment method"
    )
    start_date = filters.DateFilter(
        field_name="created_at",
        lookup_expr='date__gte',
        help_text="Created on or after this date (YYYY-MM-DD)"
    )
    end_date = filters.DateFilter(
        field_name="created_at",
        lookup_expr='date__lte',
        help_text="Created on or before this date (YYYY-MM-DD)"
    )

    class Meta:
        model = Transaction
        fields = ['patient_id', 'payment_status', 'payment_method', 'start_date', 'end_date']


class StockMovementFilter(filters.FilterSet):
    """Filter stock movements by medicine, type, transaction and date range."""

    medicine_id = filters.NumberFilter(field_name="medicine_id")
    movement_type = filters.ChoiceFilter(choices=StockMovement.MovementType.choices)
    reference_id = filters.NumberFilter(field_name="reference_id")
    start_date = filters.DateFilter(field_name="created_at", lookup_expr='date__gte')
    end_date = filters.DateFilter(field_name="created_at", lookup_expr='date__lte')

    class Meta:
        model = StockMovement
        fields = ['medicine_id', 'movement_type', 'reference_id', 'start_date', 'end_date']
