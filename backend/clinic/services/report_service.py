"""
Report Data Service

Builds the data behind the sales, inventory and patient reports and the
printable receipt. Rendering lives in PDFReportService (ReportLab) and
ExportService (openpyxl/csv); both read the tables() view of a report.

All amounts in returned dicts are floats so they serialize as JSON numbers.
"""

from collections import Counter
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Dict, List, Tuple

from django.db.models import Count, F, Sum
from django.utils import timezone
import logging

from clinic.models import (
    Medicine, Patient, PatientVisit, StockMovement, Transaction,
    TransactionMedicine, TransactionService,
)
from clinic.services.medicine_service import MedicineService
from clinic.services.settings_service import SettingsService
from utils.constants import DEFAULT_EXPIRY_WARNING_DAYS
from utils.exceptions import InvalidArgumentError, NotFoundError

logger = logging.getLogger(__name__)


class ReportService:
    """
    Service for assembling report data.

    Report types:
    - sales: transaction summary, revenue split, payment methods, daily trend
    - inventory: stock levels, movements, alerts, stock value
    - patients: registrations, visit frequency, diagnoses, gender split
    """

    REPORT_TYPES = ('sales', 'inventory', 'patients')

    @staticmethod
    def generate(report_type: str, start_date: date, end_date: date) -> Dict:
        """
        Build a report of the given type for an inclusive date range.

        Raises:
            InvalidArgumentError: If the type is unknown or the range is reversed
        """
        if report_type not in ReportService.REPORT_TYPES:
            raise InvalidArgumentError(f"Unknown report type: {report_type}")
        if start_date > end_date:
            raise InvalidArgumentError('start_date must be before or equal to end_date')

        builder = {
            'sales': ReportService.generate_sales_report,
            'inventory': ReportService.generate_inventory_report,
            'patients': ReportService.generate_patient_report,
        }[report_type]

        logger.info(f"Generating {report_type} report for {start_date} to {end_date}")
        return builder(start_date, end_date)

    # ==================== Sales ====================

    @staticmethod
    def generate_sales_report(start_date: date, end_date: date) -> Dict:
        transactions = ReportService._transactions_between(start_date, end_date).select_related('patient')
        paid = transactions.filter(payment_status=Transaction.PaymentStatus.PAID)

        total_revenue = paid.aggregate(total=Sum('total_amount'))['total'] or Decimal('0.00')
        paid_count = paid.count()

        status_counts = {
            row['payment_status']: row['count']
            for row in transactions.values('payment_status').annotate(count=Count('id'))
        }

        service_revenue = TransactionService.objects.filter(transaction__in=paid).aggregate(
            total=Sum('total_price'))['total'] or Decimal('0.00')
        medicine_revenue = TransactionMedicine.objects.filter(transaction__in=paid).aggregate(
            total=Sum('total_price'))['total'] or Decimal('0.00')

        payment_methods = []
        method_rows = paid.values('payment_method').annotate(count=Count('id'), total=Sum('total_amount'))
        method_totals = {row['payment_method']: row for row in method_rows}
        for value, label in Transaction.PaymentMethod.choices:
            row = method_totals.get(value, {})
            payment_methods.append({
                'method': value,
                'label': label,
                'count': row.get('count', 0),
                'total': float(row.get('total') or 0),
            })

        daily = {}
        for txn in transactions:
            key = timezone.localtime(txn.created_at).date().isoformat()
            entry = daily.setdefault(key, {'date': key, 'transactions': 0, 'revenue': Decimal('0.00')})
            entry['transactions'] += 1
            if txn.payment_status == Transaction.PaymentStatus.PAID:
                entry['revenue'] += txn.total_amount

        return {
            'report_type': 'sales',
            'title': 'Sales Report',
            'start_date': start_date.isoformat(),
            'end_date': end_date.isoformat(),
            'generated_at': timezone.now().isoformat(),
            'summary': {
                'total_transactions': transactions.count(),
                'paid_transactions': paid_count,
                'pending_transactions': status_counts.get(Transaction.PaymentStatus.PENDING, 0),
                'cancelled_transactions': status_counts.get(Transaction.PaymentStatus.CANCELLED, 0),
                'total_revenue': float(total_revenue),
                'average_transaction': float(total_revenue / paid_count) if paid_count else 0.0,
            },
            'revenue_breakdown': {
                'services': float(service_revenue),
                'medicines': float(medicine_revenue),
            },
            'payment_methods': payment_methods,
            'daily_trend': [
                {**entry, 'revenue': float(entry['revenue'])} for _, entry in sorted(daily.items())
            ],
            'transactions': [
                {
                    'id': txn.id,
                    'date': timezone.localtime(txn.created_at).strftime('%Y-%m-%d %H:%M'),
                    'patient': txn.patient.name,
                    'payment_method': txn.get_payment_method_display(),
                    'payment_status': txn.get_payment_status_display(),
                    'total_amount': float(txn.total_amount),
                }
                for txn in transactions.order_by('created_at', 'id')
            ],
        }

    # ==================== Inventory ====================

    @staticmethod
    def generate_inventory_report(start_date: date, end_date: date) -> Dict:
        today = timezone.localdate()
        warning_days = SettingsService.get_int('expiry_warning_days', DEFAULT_EXPIRY_WARNING_DAYS)

        medicines = Medicine.objects.order_by('name', 'id')
        stock_value = medicines.aggregate(
            total=Sum(F('stock_quantity') * F('price_per_unit'))
        )['total'] or Decimal('0.00')

        start_dt, end_dt = ReportService._bounds(start_date, end_date)
        movements = StockMovement.objects.select_related('medicine').filter(
            created_at__gte=start_dt, created_at__lt=end_dt
        ).order_by('created_at', 'id')

        totals_in = movements.filter(movement_type=StockMovement.MovementType.IN).aggregate(
            total=Sum('quantity'))['total'] or 0
        totals_out = movements.filter(movement_type=StockMovement.MovementType.OUT).aggregate(
            total=Sum('quantity'))['total'] or 0

        low_stock = MedicineService.get_low_stock()
        expired = MedicineService.get_expired(today)
        expiring = MedicineService.get_expiring(warning_days, today)

        return {
            'report_type': 'inventory',
            'title': 'Inventory Report',
            'start_date': start_date.isoformat(),
            'end_date': end_date.isoformat(),
            'generated_at': timezone.now().isoformat(),
            'summary': {
                'total_medicines': medicines.count(),
                'total_stock_units': medicines.aggregate(total=Sum('stock_quantity'))['total'] or 0,
                'stock_value': float(stock_value),
                'units_in': totals_in,
                'units_out': totals_out,
                'low_stock_count': low_stock.count(),
                'expired_count': expired.count(),
                'expiring_count': expiring.count(),
            },
            'stock_levels': [ReportService._medicine_row(medicine) for medicine in medicines],
            'movements': [
                {
                    'id': movement.id,
                    'date': timezone.localtime(movement.created_at).strftime('%Y-%m-%d %H:%M'),
                    'medicine': movement.medicine.name,
                    'movement_type': movement.get_movement_type_display(),
                    'quantity': movement.quantity,
                    'reference_id': movement.reference_id,
                    'notes': movement.notes or '',
                }
                for movement in movements
            ],
            'low_stock': [ReportService._medicine_row(medicine) for medicine in low_stock],
            'expired': [ReportService._medicine_row(medicine) for medicine in expired],
            'expiring': [ReportService._medicine_row(medicine) for medicine in expiring],
        }

    # ==================== Patients ====================

    @staticmethod
    def generate_patient_report(start_date: date, end_date: date) -> Dict:
        start_dt, end_dt = ReportService._bounds(start_date, end_date)
        new_patients = Patient.objects.filter(created_at__gte=start_dt, created_at__lt=end_dt).order_by('created_at')
        visits = PatientVisit.objects.filter(visit_date__gte=start_dt, visit_date__lt=end_dt)

        frequency = (
            visits.values('patient_id', 'patient__name')
            .annotate(visit_count=Count('id'))
            .order_by('-visit_count', 'patient__name')[:10]
        )

        diagnoses = Counter(
            diagnosis.strip()
            for diagnosis in visits.exclude(diagnosis__isnull=True).values_list('diagnosis', flat=True)
            if diagnosis and diagnosis.strip()
        )

        gender_counts = {
            row['gender']: row['count']
            for row in Patient.objects.values('gender').annotate(count=Count('id'))
        }

        return {
            'report_type': 'patients',
            'title': 'Patient Report',
            'start_date': start_date.isoformat(),
            'end_date': end_date.isoformat(),
            'generated_at': timezone.now().isoformat(),
            'summary': {
                'total_patients': Patient.objects.count(),
                'new_patients': new_patients.count(),
                'total_visits': visits.count(),
                'unique_visitors': visits.values('patient_id').distinct().count(),
            },
            'new_registrations': [
                {
                    'id': patient.id,
                    'name': patient.name,
                    'gender': patient.get_gender_display(),
                    'date_of_birth': patient.date_of_birth.isoformat(),
                    'registered': timezone.localtime(patient.created_at).strftime('%Y-%m-%d'),
                }
                for patient in new_patients
            ],
            'visit_frequency': [
                {
                    'patient_id': row['patient_id'],
                    'patient_name': row['patient__name'],
                    'visit_count': row['visit_count'],
                }
                for row in frequency
            ],
            'common_diagnoses': [
                {'diagnosis': diagnosis, 'count': count} for diagnosis, count in diagnoses.most_common(10)
            ],
            'gender_distribution': [
                {'gender': value, 'label': label, 'count': gender_counts.get(value, 0)}
                for value, label in Patient.Gender.choices
            ],
        }

    # ==================== Receipt ====================

    @staticmethod
    def generate_receipt_data(transaction_id: int) -> Dict:
        """
        Data for a printable receipt: clinic header from settings, patient,
        itemized lines, totals, payment details and footer.

        Raises:
            NotFoundError: If the transaction does not exist
        """
        try:
            txn = Transaction.objects.select_related('patient').get(id=transaction_id)
        except Transaction.DoesNotExist:
            raise NotFoundError('transaction')

        settings = SettingsService.as_dict()

        items = []
        services_total = Decimal('0.00')
        for line in txn.service_items.select_related('service'):
            services_total += line.total_price
            items.append({
                'type': 'service',
                'name': line.service.name,
                'quantity': line.quantity,
                'price_per_unit': float(line.price_per_unit),
                'total_price': float(line.total_price),
            })

        medicines_total = Decimal('0.00')
        for line in txn.medicine_items.select_related('medicine'):
            medicines_total += line.total_price
            items.append({
                'type': 'medicine',
                'name': line.medicine.name,
                'unit': line.medicine.unit,
                'quantity': line.quantity,
                'price_per_unit': float(line.price_per_unit),
                'total_price': float(line.total_price),
            })

        return {
            'clinic': {
                'name': settings.get('clinic_name', ''),
                'address': settings.get('address', ''),
                'phone': settings.get('phone', ''),
                'logo_url': settings.get('logo_url', ''),
            },
            'transaction': {
                'id': txn.id,
                'date': timezone.localtime(txn.created_at).strftime('%Y-%m-%d %H:%M'),
                'payment_method': txn.payment_method,
                'payment_method_label': txn.get_payment_method_display(),
                'payment_status': txn.payment_status,
                'payment_status_label': txn.get_payment_status_display(),
                'notes': txn.notes or '',
            },
            'patient': {
                'id': txn.patient.id,
                'name': txn.patient.name,
                'phone': txn.patient.phone or '',
                'address': txn.patient.address or '',
            },
            'items': items,
            'services_total': float(services_total),
            'medicines_total': float(medicines_total),
            'total_amount': float(txn.total_amount),
            'footer': settings.get('receipt_footer', ''),
        }

    # ==================== Tabular view ====================

    @staticmethod
    def tables(report: Dict) -> List[Tuple[str, List[str], List[list]]]:
        """
        Flatten a report into (title, headers, rows) tables for rendering.
        """
        summary = [[key.replace('_', ' ').title(), value] for key, value in report['summary'].items()]
        tables = [('Summary', ['Metric', 'Value'], summary)]
        report_type = report['report_type']

        if report_type == 'sales':
            tables += [
                ('Revenue by Category', ['Category', 'Revenue'], [
                    ['Services', report['revenue_breakdown']['services']],
                    ['Medicines', report['revenue_breakdown']['medicines']],
                ]),
                ('Payment Methods', ['Method', 'Count', 'Total'], [
                    [row['label'], row['count'], row['total']] for row in report['payment_methods']
                ]),
                ('Daily Trend', ['Date', 'Transactions', 'Revenue'], [
                    [row['date'], row['transactions'], row['revenue']] for row in report['daily_trend']
                ]),
                ('Transactions', ['ID', 'Date', 'Patient', 'Method', 'Status', 'Total'], [
                    [row['id'], row['date'], row['patient'], row['payment_method'],
                     row['payment_status'], row['total_amount']]
                    for row in report['transactions']
                ]),
            ]
        elif report_type == 'inventory':
            medicine_headers = ['Medicine', 'Unit', 'Stock', 'Minimum', 'Price', 'Value', 'Expiry']

            def medicine_rows(rows):
                return [
                    [row['name'], row['unit'], row['stock_quantity'], row['minimum_stock'],
                     row['price_per_unit'], row['stock_value'], row['expiry_date'] or '']
                    for row in rows
                ]

            tables += [
                ('Stock Levels', medicine_headers, medicine_rows(report['stock_levels'])),
                ('Low Stock', medicine_headers, medicine_rows(report['low_stock'])),
                ('Expired', medicine_headers, medicine_rows(report['expired'])),
                ('Expiring Soon', medicine_headers, medicine_rows(report['expiring'])),
                ('Stock Movements', ['Date', 'Medicine', 'Type', 'Quantity', 'Transaction', 'Notes'], [
                    [row['date'], row['medicine'], row['movement_type'], row['quantity'],
                     row['reference_id'] or '', row['notes']]
                    for row in report['movements']
                ]),
            ]
        elif report_type == 'patients':
            tables += [
                ('New Registrations', ['ID', 'Name', 'Gender', 'Date of Birth', 'Registered'], [
                    [row['id'], row['name'], row['gender'], row['date_of_birth'], row['registered']]
                    for row in report['new_registrations']
                ]),
                ('Visit Frequency', ['Patient', 'Visits'], [
                    [row['patient_name'], row['visit_count']] for row in report['visit_frequency']
                ]),
                ('Common Diagnoses', ['Diagnosis', 'Count'], [
                    [row['diagnosis'], row['count']] for row in report['common_diagnoses']
                ]),
                ('Gender Distribution', ['Gender', 'Patients'], [
                    [row['label'], row['count']] for row in report['gender_distribution']
                ]),
            ]

        return tables

    # ==================== helpers ====================

    @staticmethod
    def _transactions_between(start_date: date, end_date: date):
        start_dt, end_dt = ReportService._bounds(start_date, end_date)
        return Transaction.objects.filter(created_at__gte=start_dt, created_at__lt=end_dt)

    @staticmethod
    def _bounds(start_date: date, end_date: date):
        """Aware datetimes covering start_date 00:00 up to (not including) the day after end_date."""
        tz = timezone.get_current_timezone()
        start_dt = timezone.make_aware(datetime.combine(start_date, time.min), tz)
        end_dt = timezone.make_aware(datetime.combine(end_date, time.min), tz) + timedelta(days=1)
        return start_dt, end_dt

    @staticmethod
    def _medicine_row(medicine: Medicine) -> Dict:
        return {
            'id': medicine.id,
            'name': medicine.name,
            'unit': medicine.unit,
            'stock_quantity': medicine.stock_quantity,
            'minimum_stock': medicine.minimum_stock,
            'price_per_unit': float(medicine.price_per_unit),
            'stock_value': float(medicine.price_per_unit * medicine.stock_quantity),
            'expiry_date': medicine.expiry_date.isoformat() if medicine.expiry_date else None,
            'stock_status': medicine.stock_status,
        }
