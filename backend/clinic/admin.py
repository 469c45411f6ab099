from django.contrib import admin
from django.utils.html import format_html
from rest_framework.exceptions import APIException

from .models import (
    Patient, Medicine, Service, Transaction, TransactionService,
    TransactionMedicine, StockMovement, PatientVisit, Setting,
)
from .services import PaymentStatusService
from utils.constants import STOCK_STATUS_OUT, STOCK_STATUS_LOW, STOCK_STATUS_OK


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ['name', 'gender', 'date_of_birth', 'phone', 'created_at']
    list_filter = ['gender']
    search_fields = ['name', 'phone']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(Medicine)
class MedicineAdmin(admin.ModelAdmin):
    """Stock is read-only here; it only changes through stock movements."""
    list_display = ['name', 'unit', 'price_per_unit', 'stock_badge', 'minimum_stock', 'expiry_date', 'supplier']
    list_filter = ['unit', 'expiry_date']
    search_fields = ['name', 'supplier', 'description']
    readonly_fields = ['stock_quantity', 'created_at', 'updated_at']

    fieldsets = (
        ('Medicine Information', {
            'fields': ('name', 'description', 'unit', 'price_per_unit', 'supplier', 'expiry_date')
        }),
        ('Stock', {
            'fields': ('stock_quantity', 'minimum_stock')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def stock_badge(self, obj):
        """Display stock with a colour for its status"""
        colors = {
            STOCK_STATUS_OUT: '#EF4444',  # Red
            STOCK_STATUS_LOW: '#F59E0B',  # Amber
            STOCK_STATUS_OK: '#10B981',   # Green
        }
        return format_html(
            '<span style="color: {}; font-weight: bold;">{}</span>',
            colors.get(obj.stock_status, '#6B7280'),
            obj.stock_quantity
        )
    stock_badge.short_description = 'Stock'
    stock_badge.admin_order_field = 'stock_quantity'


@admin.register(Service)
class ServiceAdmin(admin.ModelAdmin):
    list_display = ['name', 'price', 'is_active', 'updated_at']
    list_filter = ['is_active']
    search_fields = ['name', 'description']
    readonly_fields = ['created_at', 'updated_at']


class ReadOnlyInline(admin.TabularInline):
    extra = 0
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False


class TransactionServiceInline(ReadOnlyInline):
    model = TransactionService
    fields = ['service', 'quantity', 'price_per_unit', 'total_price']
    readonly_fields = fields


class TransactionMedicineInline(ReadOnlyInline):
    model = TransactionMedicine
    fields = ['medicine', 'quantity', 'price_per_unit', 'total_price']
    readonly_fields = fields


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    """
    Transactions are created through the API. Status changes here go
    through PaymentStatusService so stock follows them.
    """
    list_display = ['id', 'patient', 'amount_display', 'payment_method', 'status_badge', 'created_at']
    list_filter = ['payment_status', 'payment_method', 'created_at']
    search_fields = ['patient__name', 'notes']
    readonly_fields = ['patient', 'total_amount', 'payment_method', 'payment_status', 'created_at', 'updated_at']
    date_hierarchy = 'created_at'
    inlines = [TransactionServiceInline, TransactionMedicineInline]
    actions = ['mark_as_paid', 'cancel_selected_transactions']

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        # Deleting must return stock first; use the API
        return False

    def amount_display(self, obj):
        return f'Rp {obj.total_amount:,.2f}'
    amount_display.short_description = 'Total'
    amount_display.admin_order_field = 'total_amount'

    def status_badge(self, obj):
        """Display status with color badge"""
        status_info = obj.status_display
        return format_html(
            '<span style="background-color: {}; color: white; padding: 3px 10px; border-radius: 3px;">'
            '{} {}</span>',
            status_info['color'],
            status_info['icon'],
            status_info['label']
        )
    status_badge.short_description = 'Status'
    status_badge.admin_order_field = 'payment_status'

    def _change_status(self, request, queryset, new_status):
        count = 0
        for txn in queryset:
            try:
                PaymentStatusService.update_status(txn.id, new_status)
                count += 1
            except APIException as e:
                self.message_user(request, f"Transaction #{txn.id}: {e.detail}", level='ERROR')
        return count

    def mark_as_paid(self, request, queryset):
        count = self._change_status(request, queryset, Transaction.PaymentStatus.PAID)
        self.message_user(request, f"{count} transaction(s) marked as paid", level='SUCCESS')
    mark_as_paid.short_description = "Mark as paid"

    def cancel_selected_transactions(self, request, queryset):
        count = self._change_status(request, queryset, Transaction.PaymentStatus.CANCELLED)
        self.message_user(request, f"{count} transaction(s) cancelled", level='WARNING')
    cancel_selected_transactions.short_description = "Cancel selected transactions"


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    """Audit trail. Rows are written by StockService only."""
    list_display = ['created_at', 'medicine', 'movement_type', 'quantity', 'reference', 'notes']
    list_filter = ['movement_type', 'created_at']
    search_fields = ['medicine__name', 'notes']
    date_hierarchy = 'created_at'

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(PatientVisit)
class PatientVisitAdmin(admin.ModelAdmin):
    list_display = ['visit_date', 'patient', 'transaction', 'diagnosis']
    list_filter = ['visit_date']
    search_fields = ['patient__name', 'diagnosis', 'treatment']
    readonly_fields = ['created_at']


@admin.register(Setting)
class SettingAdmin(admin.ModelAdmin):
    list_display = ['key', 'value', 'updated_at']
    search_fields = ['key', 'description']
    readonly_fields = ['updated_at']
