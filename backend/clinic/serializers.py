from decimal import Decimal

from rest_framework import serializers
from .models import (
    Patient, Medicine, Service, Transaction, TransactionService,
    TransactionMedicine, StockMovement, PatientVisit, Setting,
)


# ============================================================================
# Patients
# ============================================================================

class PatientSerializer(serializers.ModelSerializer):
    gender_display = serializers.CharField(source='get_gender_display', read_only=True)

    class Meta:
        model = Patient
        fields = [
            'id', 'name', 'date_of_birth', 'gender', 'gender_display',
            'phone', 'address', 'emergency_contact', 'medical_notes',
            'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'created_at', 'updated_at', 'gender_display']


# ============================================================================
# Medicines & Stock
# ============================================================================

class MedicineSerializer(serializers.ModelSerializer):
    """Serializer for medicines with stock status."""
    price_per_unit = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.01'))
    stock_quantity = serializers.IntegerField(min_value=0, required=False)
    minimum_stock = serializers.IntegerField(min_value=0, required=False)
    stock_status = serializers.CharField(read_only=True)
    is_low_stock = serializers.BooleanField(read_only=True)
    is_expired = serializers.BooleanField(read_only=True)

    class Meta:
        model = Medicine
        fields = [
            'id', 'name', 'description', 'unit', 'price_per_unit',
            'stock_quantity', 'minimum_stock', 'stock_status', 'is_low_stock', 'is_expired',
            'expiry_date', 'supplier', 'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'created_at', 'updated_at', 'stock_status', 'is_low_stock', 'is_expired']


class StockMovementSerializer(serializers.ModelSerializer):
    """Serializer for stock movements (audit trail)."""
    movement_type_display = serializers.CharField(source='get_movement_type_display', read_only=True)
    medicine_name = serializers.CharField(source='medicine.name', read_only=True)
    reference_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = StockMovement
        fields = [
            'id', 'medicine', 'medicine_name', 'movement_type', 'movement_type_display',
            'quantity', 'reference_id', 'notes', 'created_at'
        ]
        read_only_fields = fields


class StockMovementCreateSerializer(serializers.Serializer):
    """Input for a manual stock movement."""
    medicine_id = serializers.IntegerField()
    movement_type = serializers.ChoiceField(choices=StockMovement.MovementType.choices)
    quantity = serializers.IntegerField(min_value=1)
    reference_id = serializers.IntegerField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class StockAdjustSerializer(serializers.Serializer):
    """Input for setting a medicine's stock to an absolute value."""
    new_quantity = serializers.IntegerField()
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


# ============================================================================
# Services
# ============================================================================

class ServiceSerializer(serializers.ModelSerializer):
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.01'))

    class Meta:
        model = Service
        fields = ['id', 'name', 'description', 'price', 'is_active', 'created_at', 'updated_at']
        read_only_fields = ['id', 'created_at', 'updated_at']


# ============================================================================
# Transactions
# ============================================================================

class TransactionServiceSerializer(serializers.ModelSerializer):
    service_name = serializers.CharField(source='service.name', read_only=True)

    class Meta:
        model = TransactionService
        fields = ['id', 'service', 'service_name', 'quantity', 'price_per_unit', 'total_price', 'created_at']
        read_only_fields = fields


class TransactionMedicineSerializer(serializers.ModelSerializer):
    medicine_name = serializers.CharField(source='medicine.name', read_only=True)
    unit = serializers.CharField(source='medicine.unit', read_only=True)

    class Meta:
        model = TransactionMedicine
        fields = ['id', 'medicine', 'medicine_name', 'unit', 'quantity', 'price_per_unit', 'total_price', 'created_at']
        read_only_fields = fields


class TransactionSerializer(serializers.ModelSerializer):
    """Transaction with line items, as returned by list and detail endpoints."""
    patient_name = serializers.CharField(source='patient.name', read_only=True)
    payment_method_display = serializers.CharField(source='get_payment_method_display', read_only=True)
    status_display = serializers.ReadOnlyField()
    services = TransactionServiceSerializer(source='service_items', many=True, read_only=True)
    medicines = TransactionMedicineSerializer(source='medicine_items', many=True, read_only=True)
    visit = serializers.SerializerMethodField()

    class Meta:
        model = Transaction
        fields = [
            'id', 'patient', 'patient_name', 'total_amount',
            'payment_method', 'payment_method_display', 'payment_status', 'status_display',
            'notes', 'services', 'medicines', 'visit', 'created_at', 'updated_at'
        ]
        read_only_fields = fields

    def get_visit(self, obj):
        visit = obj.visits.order_by('-visit_date', '-id').first()
        if visit is None:
            return None
        return {
            'id': visit.id,
            'visit_date': serializers.DateTimeField().to_representation(visit.visit_date),
            'diagnosis': visit.diagnosis,
            'treatment': visit.treatment,
        }


class TransactionLineInputSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=1)


class ServiceLineInputSerializer(TransactionLineInputSerializer):
    service_id = serializers.IntegerField()


class MedicineLineInputSerializer(TransactionLineInputSerializer):
    medicine_id = serializers.IntegerField()


class TransactionCreateSerializer(serializers.Serializer):
    """
    Input for creating a sale.

    Services may be empty for medicine-only sales.
    """
    patient_id = serializers.IntegerField()
    payment_method = serializers.ChoiceField(choices=Transaction.PaymentMethod.choices)
    payment_status = serializers.ChoiceField(
        choices=Transaction.PaymentStatus.choices,
        default=Transaction.PaymentStatus.PENDING
    )
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    services = ServiceLineInputSerializer(many=True, required=False, default=list)
    medicines = MedicineLineInputSerializer(many=True, required=False, default=list)

    def validate(self, data):
        if not data.get('services') and not data.get('medicines'):
            raise serializers.ValidationError('At least one service or medicine is required')
        return data


class TransactionStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Transaction.PaymentStatus.choices)


class TransactionNotesSerializer(serializers.Serializer):
    notes = serializers.CharField(allow_blank=True, allow_null=True)


# ============================================================================
# Visits & Settings
# ============================================================================

class PatientVisitSerializer(serializers.ModelSerializer):
    patient_name = serializers.CharField(source='patient.name', read_only=True)
    patient_id = serializers.IntegerField()
    transaction_id = serializers.IntegerField(required=False, allow_null=True)

    class Meta:
        model = PatientVisit
        fields = [
            'id', 'patient_id', 'patient_name', 'transaction_id', 'visit_date',
            'diagnosis', 'treatment', 'notes', 'created_at'
        ]
        read_only_fields = ['id', 'patient_name', 'created_at']


class PatientVisitUpdateSerializer(serializers.Serializer):
    visit_date = serializers.DateTimeField(required=False)
    diagnosis = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    treatment = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class SettingSerializer(serializers.ModelSerializer):
    class Meta:
        model = Setting
        fields = ['id', 'key', 'value', 'description', 'updated_at']
        read_only_fields = ['id', 'updated_at']
        # Upserts are keyed on `key`, so the unique validator must not reject existing keys
        extra_kwargs = {'key': {'validators': []}}
