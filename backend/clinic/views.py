from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status, generics
from rest_framework.decorators import api_view
from django_filters.rest_framework import DjangoFilterBackend
from django.http import HttpResponse
from django.utils import timezone
from django.utils.dateparse import parse_date

from .serializers import (
    PatientSerializer, MedicineSerializer, StockMovementSerializer,
    StockMovementCreateSerializer, StockAdjustSerializer, ServiceSerializer,
    TransactionSerializer, TransactionCreateSerializer, TransactionStatusSerializer,
    TransactionNotesSerializer, PatientVisitSerializer, PatientVisitUpdateSerializer,
    SettingSerializer,
)
from .models import Patient, Medicine, Service, Transaction
from .filters import TransactionFilter, StockMovementFilter
from .services import (
    StockService, SaleService, PaymentStatusService, VisitService, PatientService,
    MedicineService, ServiceCatalogService, SettingsService, DashboardService, ReportService,
)
from .services.pdf_report_service import PDFReportService
from .services.export_service import ExportService
from utils.exceptions import InvalidArgumentError

XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
TRUE_VALUES = ('1', 'true', 'yes')


def _flag(request, name):
    return request.query_params.get(name, '').lower() in TRUE_VALUES


def _int_param(request, name, default=None):
    value = request.query_params.get(name)
    if value in (None, ''):
        return default
    try:
        return int(value)
    except ValueError:
        raise InvalidArgumentError(f"{name} must be an integer")


def _date_param(request, name, default=None):
    value = request.query_params.get(name)
    if not value:
        return default
    parsed = parse_date(value)
    if not parsed:
        raise InvalidArgumentError(f"Invalid {name}. Use YYYY-MM-DD")
    return parsed


def _date_range(request):
    today = timezone.localdate()
    start_date = _date_param(request, 'start_date', today)
    end_date = _date_param(request, 'end_date', today)
    if start_date > end_date:
        raise InvalidArgumentError('start_date must be before or equal to end_date')
    return start_date, end_date


class LimitOffsetListMixin:
    """
    Slice list responses with ?limit= and ?offset=.

    Lists stay plain JSON arrays; default_limit None means no limit.
    """
    default_limit = None

    def paginate_queryset(self, queryset):
        limit = _int_param(self.request, 'limit', self.default_limit)
        offset = _int_param(self.request, 'offset', 0)
        if (limit is not None and limit < 0) or offset < 0:
            raise InvalidArgumentError('limit and offset must not be negative')
        if limit is None:
            return list(queryset[offset:])
        return list(queryset[offset:offset + limit])

    def get_paginated_response(self, data):
        return Response(data)


# ============================================================================
# Patients
# ============================================================================

class PatientListCreateView(LimitOffsetListMixin, generics.ListCreateAPIView):
    """
    List and create patients.

    GET: ?search=<name> (case-insensitive), ?limit= (default 10), ?offset=
    POST: Create a patient
    """
    serializer_class = PatientSerializer
    default_limit = 10

    def get_queryset(self):
        return PatientService.search(self.request.query_params.get('search'))


class PatientDetailView(generics.RetrieveUpdateDestroyAPIView):
    """
    Retrieve, update or delete a patient.

    DELETE is refused (409) while the patient has transactions or visits.
    """
    queryset = Patient.objects.all()
    serializer_class = PatientSerializer

    def perform_destroy(self, instance):
        PatientService.delete_patient(instance.id)


@api_view(['GET'])
def patient_visits(request, patient_id):
    """Visits of one patient, most recent first."""
    visits = VisitService.get_patient_visits(patient_id).select_related('patient')
    return Response(PatientVisitSerializer(visits, many=True).data)


# ============================================================================
# Medicines & Stock
# ============================================================================

class MedicineListCreateView(LimitOffsetListMixin, generics.ListCreateAPIView):
    """
    List and create medicines.

    GET filters:
    - search: Name, description or supplier contains
    - low_stock_only: stock_quantity <= minimum_stock
    - expired_only: expiry_date on or before today

    POST: Opening stock_quantity is recorded as an 'in' movement.
    """
    serializer_class = MedicineSerializer

    def get_queryset(self):
        return MedicineService.search(
            query=self.request.query_params.get('search'),
            low_stock_only=_flag(self.request, 'low_stock_only'),
            expired_only=_flag(self.request, 'expired_only'),
        )

    def perform_create(self, serializer):
        serializer.instance = MedicineService.create_medicine(serializer.validated_data)


class MedicineDetailView(generics.RetrieveUpdateDestroyAPIView):
    """
    Retrieve, update or delete a medicine.

    A changed stock_quantity is written as a stock adjustment movement.
    DELETE is refused (409) once the medicine has been sold.
    """
    queryset = Medicine.objects.all()
    serializer_class = MedicineSerializer

    def perform_update(self, serializer):
        serializer.instance = MedicineService.update_medicine(
            self.kwargs['pk'], serializer.validated_data
        )

    def perform_destroy(self, instance):
        MedicineService.delete_medicine(instance.id)


@api_view(['GET'])
def low_stock_medicines(request):
    medicines = MedicineService.get_low_stock()
    return Response(MedicineSerializer(medicines, many=True).data)


@api_view(['GET'])
def expired_medicines(request):
    medicines = MedicineService.get_expired()
    return Response(MedicineSerializer(medicines, many=True).data)


@api_view(['POST'])
def adjust_stock(request, pk):
    """
    Set a medicine's stock to an absolute value.

    Request body:
    {
        "new_quantity": 80,
        "notes": "Stock opname"   // optional
    }

    The difference is recorded as a single 'in' or 'out' movement; no
    movement is written when the quantity does not change.
    """
    serializer = StockAdjustSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    StockService.set_absolute_stock(
        pk,
        serializer.validated_data['new_quantity'],
        notes=serializer.validated_data.get('notes'),
    )
    return Response(status=status.HTTP_204_NO_CONTENT)


class StockMovementListCreateView(generics.ListCreateAPIView):
    """
    Stock movement log.

    GET: Newest first. Filters: medicine_id, movement_type, reference_id,
    start_date, end_date
    POST: Record a manual movement
    {
        "medicine_id": 1,
        "movement_type": "in",
        "quantity": 50,
        "reference_id": null,
        "notes": "Delivery from supplier"
    }
    """
    serializer_class = StockMovementSerializer
    filter_backends = [DjangoFilterBackend]
    filterset_class = StockMovementFilter

    def get_queryset(self):
        return StockService.get_stock_movements()

    def create(self, request, *args, **kwargs):
        serializer = StockMovementCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        movement = StockService.apply_movement(**serializer.validated_data)
        return Response(StockMovementSerializer(movement).data, status=status.HTTP_201_CREATED)


# ============================================================================
# Services
# ============================================================================

class ServiceListCreateView(generics.ListCreateAPIView):
    """List (?active_only=true) and create billable services."""
    serializer_class = ServiceSerializer

    def get_queryset(self):
        return ServiceCatalogService.list_services(active_only=_flag(self.request, 'active_only'))


class ServiceDetailView(generics.RetrieveUpdateDestroyAPIView):
    """
    Retrieve, update or delete a service.

    DELETE removes an unused service (204). A service already billed is
    deactivated instead and returned (200).
    """
    queryset = Service.objects.all()
    serializer_class = ServiceSerializer

    def destroy(self, request, *args, **kwargs):
        instance = self.get_object()
        if ServiceCatalogService.delete_service(instance.id):
            return Response(status=status.HTTP_204_NO_CONTENT)
        instance.refresh_from_db()
        return Response(ServiceSerializer(instance).data)


# ============================================================================
# Transactions
# ============================================================================

class TransactionListCreateView(LimitOffsetListMixin, generics.ListCreateAPIView):
    """
    List and create transactions.

    GET filters (see TransactionFilter): patient_id, payment_status,
    payment_method, start_date, end_date; ?limit= and ?offset=

    POST:
    {
        "patient_id": 1,
        "payment_method": "cash",
        "payment_status": "pending",
        "notes": "",
        "services": [{"service_id": 1, "quantity": 1}],
        "medicines": [{"medicine_id": 3, "quantity": 10}]
    }
    """
    queryset = Transaction.objects.select_related('patient').prefetch_related(
        'service_items__service', 'medicine_items__medicine'
    )
    serializer_class = TransactionSerializer
    filter_backends = [DjangoFilterBackend]
    filterset_class = TransactionFilter

    def create(self, request, *args, **kwargs):
        serializer = TransactionCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        txn = SaleService.create_transaction(**serializer.validated_data)
        return Response(TransactionSerializer(txn).data, status=status.HTTP_201_CREATED)


class TransactionDetailView(generics.RetrieveDestroyAPIView):
    """
    Retrieve or delete a transaction.

    DELETE is refused (409) for paid transactions. Deleting a pending
    transaction returns its stock first.
    """
    queryset = Transaction.objects.select_related('patient')
    serializer_class = TransactionSerializer

    def perform_destroy(self, instance):
        PaymentStatusService.delete_transaction(instance.id)


@api_view(['POST'])
def update_transaction_status(request, pk):
    """
    Change payment status.

    Request body:
    {
        "status": "cancelled"   // pending, paid or cancelled
    }

    Cancelling returns the medicines to stock; moving a cancelled
    transaction back to pending/paid deducts them again.
    """
    serializer = TransactionStatusSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    txn = PaymentStatusService.update_status(pk, serializer.validated_data['status'])
    return Response(TransactionSerializer(txn).data)


@api_view(['POST'])
def add_transaction_notes(request, pk):
    serializer = TransactionNotesSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    txn = PaymentStatusService.add_notes(pk, serializer.validated_data['notes'])
    return Response(TransactionSerializer(txn).data)


@api_view(['GET'])
def today_transactions(request):
    transactions = PaymentStatusService.get_today_transactions()
    return Response(TransactionSerializer(transactions, many=True).data)


@api_view(['GET'])
def pending_transactions(request):
    transactions = PaymentStatusService.get_pending_transactions()
    return Response(TransactionSerializer(transactions, many=True).data)


@api_view(['GET'])
def transaction_receipt(request, pk):
    """
    Receipt for a transaction.

    Query params:
    - format: json (default) or pdf
    """
    receipt = ReportService.generate_receipt_data(pk)
    if request.query_params.get('format') == 'pdf':
        pdf_buffer = PDFReportService.generate_receipt_pdf(receipt)
        response = HttpResponse(pdf_buffer, content_type='application/pdf')
        response['Content-Disposition'] = f'attachment; filename="receipt_{pk}.pdf"'
        return response
    return Response(receipt)


@api_view(['GET'])
def export_transactions(request):
    """
    Export transactions to CSV or XLSX.

    Query params:
    - format: csv (default) or xlsx
    - start_date, end_date: Inclusive range (YYYY-MM-DD), default today

    Examples:
    GET /api/v1/exports/transactions/?start_date=2025-10-01&end_date=2025-10-09
    GET /api/v1/exports/transactions/?format=xlsx
    """
    export_format = request.query_params.get('format', 'csv')
    if export_format not in ('csv', 'xlsx'):
        raise InvalidArgumentError('format must be csv or xlsx')

    start_date, end_date = _date_range(request)
    transactions = Transaction.objects.filter(
        created_at__date__gte=start_date,
        created_at__date__lte=end_date,
    ).order_by('created_at', 'id')
    filename = f'transactions_{start_date}_to_{end_date}.{export_format}'

    if export_format == 'csv':
        csv_buffer = ExportService.transactions_to_csv(transactions)
        response = HttpResponse(csv_buffer.getvalue(), content_type='text/csv')
    else:
        xlsx_buffer = ExportService.transactions_to_xlsx(transactions)
        response = HttpResponse(xlsx_buffer.getvalue(), content_type=XLSX_CONTENT_TYPE)
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response


# ============================================================================
# Visits
# ============================================================================

class PatientVisitCreateView(APIView):
    """
    Record a visit.

    POST /api/v1/visits/
    {
        "patient_id": 1,
        "transaction_id": null,
        "visit_date": "2025-10-09T10:30:00+07:00",   // optional, default now
        "diagnosis": "...",
        "treatment": "...",
        "notes": "..."
    }
    """

    def post(self, request, *args, **kwargs):
        serializer = PatientVisitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        visit = VisitService.record_visit(**serializer.validated_data)
        return Response(PatientVisitSerializer(visit).data, status=status.HTTP_201_CREATED)


class PatientVisitDetailView(APIView):
    """GET a visit, or PATCH its date, diagnosis, treatment and notes."""

    def get(self, request, pk, *args, **kwargs):
        return Response(PatientVisitSerializer(VisitService.get_visit(pk)).data)

    def patch(self, request, pk, *args, **kwargs):
        serializer = PatientVisitUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        visit = VisitService.update_visit(pk, **serializer.validated_data)
        return Response(PatientVisitSerializer(visit).data)


# ============================================================================
# Settings
# ============================================================================

class SettingListView(APIView):
    """
    GET: All settings
    POST: Upsert one setting by key
    {
        "key": "clinic_name",
        "value": "Klinik Sehat",
        "description": "..."   // optional
    }
    """

    def get(self, request, *args, **kwargs):
        return Response(SettingSerializer(SettingsService.get_all(), many=True).data)

    def post(self, request, *args, **kwargs):
        serializer = SettingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        setting = SettingsService.update(
            serializer.validated_data['key'],
            serializer.validated_data.get('value', ''),
            description=serializer.validated_data.get('description'),
        )
        return Response(SettingSerializer(setting).data)


class SettingDetailView(APIView):
    """GET or PUT a single setting addressed by key."""

    def get(self, request, key, *args, **kwargs):
        return Response(SettingSerializer(SettingsService.get_by_key(key)).data)

    def put(self, request, key, *args, **kwargs):
        serializer = SettingSerializer(data={**request.data, 'key': key})
        serializer.is_valid(raise_exception=True)
        setting = SettingsService.update(
            key,
            serializer.validated_data.get('value', ''),
            description=serializer.validated_data.get('description'),
        )
        return Response(SettingSerializer(setting).data)


@api_view(['POST'])
def initialize_settings(request):
    """Insert any missing default settings. Existing values are kept."""
    created = SettingsService.initialize_defaults()
    return Response({
        'created': created,
        'settings': SettingSerializer(SettingsService.get_all(), many=True).data,
    })


# ============================================================================
# Dashboard
# ============================================================================

@api_view(['GET'])
def dashboard_stats(request):
    return Response(DashboardService.get_stats())


@api_view(['GET'])
def daily_revenue(request):
    """Paid revenue for ?date=YYYY-MM-DD (default today)."""
    return Response(DashboardService.get_daily_revenue(_date_param(request, 'date')))


@api_view(['GET'])
def monthly_revenue(request):
    """Paid revenue for ?year=&month= (default current month), with a daily breakdown."""
    today = timezone.localdate()
    year = _int_param(request, 'year', today.year)
    month = _int_param(request, 'month', today.month)
    if not 1 <= month <= 12:
        raise InvalidArgumentError('month must be between 1 and 12')
    return Response(DashboardService.get_monthly_revenue(year, month))


@api_view(['GET'])
def top_services(request):
    limit = _int_param(request, 'limit', 5)
    if limit < 1:
        raise InvalidArgumentError('limit must be positive')
    return Response(DashboardService.get_top_services(limit))


# ============================================================================
# Reports
# ============================================================================

@api_view(['GET'])
def generate_report(request):
    """
    Sales, inventory or patient report.

    Query params:
    - type: sales, inventory or patients
    - start_date, end_date: Inclusive range (YYYY-MM-DD), default today
    - format: json (default), pdf or excel

    Examples:
    GET /api/v1/reports/?type=sales&start_date=2025-10-01&end_date=2025-10-31&format=pdf
    GET /api/v1/reports/?type=inventory&format=excel
    """
    report_type = request.query_params.get('type', 'sales')
    report_format = request.query_params.get('format', 'json')
    if report_format not in ('json', 'pdf', 'excel'):
        raise InvalidArgumentError('format must be json, pdf or excel')

    start_date, end_date = _date_range(request)
    report = ReportService.generate(report_type, start_date, end_date)
    filename = f'{report_type}_report_{start_date}_to_{end_date}'

    if report_format == 'pdf':
        pdf_buffer = PDFReportService.generate_report_pdf(report)
        response = HttpResponse(pdf_buffer, content_type='application/pdf')
        response['Content-Disposition'] = f'attachment; filename="{filename}.pdf"'
        return response

    if report_format == 'excel':
        xlsx_buffer = ExportService.report_to_xlsx(report)
        response = HttpResponse(xlsx_buffer.getvalue(), content_type=XLSX_CONTENT_TYPE)
        response['Content-Disposition'] = f'attachment; filename="{filename}.xlsx"'
        return response

    return Response(report)


@api_view(['GET'])
def healthcheck(request):
    return Response({'status': 'ok', 'timestamp': timezone.now().isoformat()})
