from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from utils.constants import (
    PAYMENT_STATUS_COLORS, PAYMENT_STATUS_ICONS,
    STOCK_STATUS_OUT, STOCK_STATUS_LOW, STOCK_STATUS_OK,
)


# ============================================================
# PATIENTS
# ============================================================

class Patient(models.Model):
    """
    Patient record.

    A patient is never deleted while transactions or visits reference it
    (see PatientService.delete_patient).
    """

    class Gender(models.TextChoices):
        MALE = 'male', 'Laki-laki'
        FEMALE = 'female', 'Perempuan'

    name = models.CharField(max_length=255, help_text="Full name")
    date_of_birth = models.DateField()
    gender = models.CharField(max_length=10, choices=Gender.choices)
    phone = models.CharField(max_length=50, blank=True, null=True)
    address = models.TextField(blank=True, null=True)
    emergency_contact = models.CharField(
        max_length=255,
        blank=True,
        null=True,
        help_text="Name and phone of an emergency contact"
    )
    medical_notes = models.TextField(
        blank=True,
        null=True,
        help_text="Allergies, chronic conditions, etc."
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['name'], name='patient_name_idx'),
        ]

    def __str__(self):
        return self.name


# ============================================================
# INVENTORY
# ============================================================

class Medicine(models.Model):
    """
    Medicine catalog entry with its current stock level.

    stock_quantity is only changed through StockService so that every change
    has a matching StockMovement row.
    """
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)
    unit = models.CharField(
        max_length=50,
        help_text="Dispensing unit (tablet, botol, strip, ...)"
    )
    price_per_unit = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text="Current selling price per unit"
    )
    stock_quantity = models.IntegerField(
        default=0,
        help_text="Current stock level (never negative)"
    )
    minimum_stock = models.IntegerField(
        default=0,
        help_text="Stock level at or below which the medicine is flagged as low"
    )
    expiry_date = models.DateField(blank=True, null=True)
    supplier = models.CharField(max_length=255, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']
        indexes = [
            models.Index(fields=['name'], name='medicine_name_idx'),
            models.Index(fields=['expiry_date'], name='medicine_expiry_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(stock_quantity__gte=0),
                name='medicine_stock_quantity_non_negative',
                violation_error_message='Stock quantity cannot be negative'
            ),
            models.CheckConstraint(
                condition=models.Q(minimum_stock__gte=0),
                name='medicine_minimum_stock_non_negative',
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.unit})"

    @property
    def is_low_stock(self):
        """Check if medicine is at or below its minimum stock"""
        return self.stock_quantity <= self.minimum_stock

    @property
    def is_expired(self):
        return self.expiry_date is not None and self.expiry_date <= timezone.localdate()

    @property
    def stock_status(self):
        if self.stock_quantity <= 0:
            return STOCK_STATUS_OUT
        elif self.is_low_stock:
            return STOCK_STATUS_LOW
        return STOCK_STATUS_OK

    def clean(self):
        """Validate medicine data"""
        super().clean()

        if self.price_per_unit is not None and self.price_per_unit <= Decimal('0.00'):
            raise ValidationError({
                'price_per_unit': 'Price must be greater than zero'
            })

        if self.stock_quantity < 0:
            raise ValidationError({
                'stock_quantity': 'Stock quantity cannot be negative'
            })

        if self.minimum_stock < 0:
            raise ValidationError({
                'minimum_stock': 'Minimum stock cannot be negative'
            })


class Service(models.Model):
    """
    Billable clinic service (consultation, procedure, ...).

    Services referenced by a sale are deactivated instead of deleted.
    """
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    is_active = models.BooleanField(
        default=True,
        help_text="Inactive services cannot be sold"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.name

    def clean(self):
        super().clean()

        if self.price is not None and self.price <= Decimal('0.00'):
            raise ValidationError({'price': 'Price must be greater than zero'})


# ============================================================
# TRANSACTIONS
# ============================================================

class Transaction(models.Model):
    """
    Point-of-sale transaction.

    The header and its line items are written once by SaleService. Afterwards
    only payment_status and notes change; stock effects of status changes are
    handled by PaymentStatusService.
    """

    class PaymentMethod(models.TextChoices):
        CASH = 'cash', 'Tunai'
        TRANSFER = 'transfer', 'Transfer'
        CARD = 'card', 'Kartu'

    class PaymentStatus(models.TextChoices):
        PENDING = 'pending', 'Pending'
        PAID = 'paid', 'Paid'
        CANCELLED = 'cancelled', 'Cancelled'

    patient = models.ForeignKey(
        Patient,
        on_delete=models.PROTECT,
        related_name='transactions'
    )
    total_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text="Sum of all line item totals at creation time"
    )
    payment_method = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices
    )
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
        db_index=True
    )
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['-created_at'], name='transaction_created_idx'),
            models.Index(fields=['patient', '-created_at'], name='transaction_patient_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(total_amount__gte=0),
                name='transaction_total_non_negative',
            ),
        ]

    def __str__(self):
        return f"Transaction #{self.pk} - {self.total_amount} ({self.payment_status})"

    @property
    def is_cancelled(self):
        return self.payment_status == self.PaymentStatus.CANCELLED

    @property
    def is_paid(self):
        return self.payment_status == self.PaymentStatus.PAID

    @property
    def status_display(self):
        """
        Return status information for frontend display.

        Returns:
            dict: {
                'status': 'paid',
                'label': 'Paid',
                'color': '#10B981',
                'icon': '✅'
            }
        """
        return {
            'status': self.payment_status,
            'label': self.get_payment_status_display(),
            'color': PAYMENT_STATUS_COLORS.get(self.payment_status, '#6B7280'),
            'icon': PAYMENT_STATUS_ICONS.get(self.payment_status, '❓'),
        }


class TransactionService(models.Model):
    """Service line of a transaction, with the price frozen at sale time."""
    transaction = models.ForeignKey(
        Transaction,
        on_delete=models.CASCADE,
        related_name='service_items'
    )
    service = models.ForeignKey(
        Service,
        on_delete=models.PROTECT,
        related_name='transaction_items'
    )
    quantity = models.IntegerField()
    price_per_unit = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text="Service price at sale time"
    )
    total_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text="quantity × price_per_unit"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['id']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0),
                name='transaction_service_quantity_positive',
            ),
        ]

    def __str__(self):
        return f"{self.quantity}x {self.service.name} (TX #{self.transaction_id})"

    def save(self, *args, **kwargs):
        """Auto-calculate line total on save"""
        self.total_price = self.quantity * self.price_per_unit
        super().save(*args, **kwargs)


class TransactionMedicine(models.Model):
    """Medicine line of a transaction, with the price frozen at sale time."""
    transaction = models.ForeignKey(
        Transaction,
        on_delete=models.CASCADE,
        related_name='medicine_items'
    )
    medicine = models.ForeignKey(
        Medicine,
        on_delete=models.PROTECT,
        related_name='transaction_items'
    )
    quantity = models.IntegerField()
    price_per_unit = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text="Medicine price at sale time"
    )
    total_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text="quantity × price_per_unit"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['id']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0),
                name='transaction_medicine_quantity_positive',
            ),
        ]

    def __str__(self):
        return f"{self.quantity}x {self.medicine.name} (TX #{self.transaction_id})"

    def save(self, *args, **kwargs):
        """Auto-calculate line total on save"""
        self.total_price = self.quantity * self.price_per_unit
        super().save(*args, **kwargs)


class StockMovement(models.Model):
    """
    Append-only audit trail for medicine stock.

    Sales write an 'out' row referencing the transaction; cancelling the
    transaction writes offsetting 'in' rows with the same reference.
    """

    class MovementType(models.TextChoices):
        IN = 'in', 'Masuk'
        OUT = 'out', 'Keluar'

    medicine = models.ForeignKey(
        Medicine,
        on_delete=models.CASCADE,
        related_name='movements'
    )
    movement_type = models.CharField(
        max_length=3,
        choices=MovementType.choices
    )
    quantity = models.IntegerField(help_text="Always positive; direction comes from movement_type")
    reference = models.ForeignKey(
        Transaction,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='stock_movements',
        help_text="Transaction that caused this movement (empty for manual adjustments)"
    )
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['medicine', '-created_at'], name='movement_medicine_idx'),
            models.Index(fields=['reference', 'movement_type'], name='movement_reference_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0),
                name='stock_movement_quantity_positive',
            ),
        ]

    def __str__(self):
        sign = '+' if self.movement_type == self.MovementType.IN else '-'
        return f"{sign}{self.quantity} {self.medicine.name}"

    @property
    def signed_quantity(self):
        return self.quantity if self.movement_type == self.MovementType.IN else -self.quantity


# ============================================================
# VISITS & SETTINGS
# ============================================================

class PatientVisit(models.Model):
    """Clinical visit, usually logged automatically for each sale."""
    patient = models.ForeignKey(
        Patient,
        on_delete=models.PROTECT,
        related_name='visits'
    )
    transaction = models.ForeignKey(
        Transaction,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='visits'
    )
    visit_date = models.DateTimeField(default=timezone.now)
    diagnosis = models.TextField(blank=True, null=True)
    treatment = models.TextField(blank=True, null=True)
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-visit_date', '-id']
        indexes = [
            models.Index(fields=['patient', '-visit_date'], name='visit_patient_idx'),
        ]

    def __str__(self):
        return f"Visit of {self.patient.name} on {self.visit_date:%Y-%m-%d}"


class Setting(models.Model):
    """Key/value clinic configuration (branding, receipt footer, alert windows)."""
    key = models.CharField(max_length=100, unique=True)
    value = models.TextField(blank=True)
    description = models.TextField(blank=True, null=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['key']

    def __str__(self):
        return f"{self.key}={self.value}"
