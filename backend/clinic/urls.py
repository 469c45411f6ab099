from django.urls import path
from .views import (
    PatientListCreateView, PatientDetailView, patient_visits,
    MedicineListCreateView, MedicineDetailView, low_stock_medicines, expired_medicines,
    adjust_stock, StockMovementListCreateView,
    ServiceListCreateView, ServiceDetailView,
    TransactionListCreateView, TransactionDetailView, update_transaction_status,
    add_transaction_notes, today_transactions, pending_transactions,
    transaction_receipt, export_transactions,
    PatientVisitCreateView, PatientVisitDetailView,
    SettingListView, SettingDetailView, initialize_settings,
    dashboard_stats, daily_revenue, monthly_revenue, top_services,
    generate_report, healthcheck,
)

urlpatterns = [
    path('healthcheck/', healthcheck, name='healthcheck'),

    # Patients & visits
    path('patients/', PatientListCreateView.as_view(), name='patient-list'),
    path('patients/<int:pk>/', PatientDetailView.as_view(), name='patient-detail'),
    path('patients/<int:patient_id>/visits/', patient_visits, name='patient-visits'),
    path('visits/', PatientVisitCreateView.as_view(), name='visit-create'),
    path('visits/<int:pk>/', PatientVisitDetailView.as_view(), name='visit-detail'),

    # Medicines & stock
    path('medicines/', MedicineListCreateView.as_view(), name='medicine-list'),
    path('medicines/low-stock/', low_stock_medicines, name='medicine-low-stock'),
    path('medicines/expired/', expired_medicines, name='medicine-expired'),
    path('medicines/<int:pk>/', MedicineDetailView.as_view(), name='medicine-detail'),
    path('medicines/<int:pk>/adjust-stock/', adjust_stock, name='medicine-adjust-stock'),
    path('stock-movements/', StockMovementListCreateView.as_view(), name='stock-movement-list'),

    # Services
    path('services/', ServiceListCreateView.as_view(), name='service-list'),
    path('services/<int:pk>/', ServiceDetailView.as_view(), name='service-detail'),

    # Transactions
    path('transactions/', TransactionListCreateView.as_view(), name='transaction-list'),
    path('transactions/today/', today_transactions, name='transaction-today'),
    path('transactions/pending/', pending_transactions, name='transaction-pending'),
    path('transactions/<int:pk>/', TransactionDetailView.as_view(), name='transaction-detail'),
    path('transactions/<int:pk>/status/', update_transaction_status, name='transaction-status'),
    path('transactions/<int:pk>/notes/', add_transaction_notes, name='transaction-notes'),
    path('transactions/<int:pk>/receipt/', transaction_receipt, name='transaction-receipt'),
    path('exports/transactions/', export_transactions, name='transactions-export'),

    # Settings
    path('settings/', SettingListView.as_view(), name='setting-list'),
    path('settings/initialize/', initialize_settings, name='setting-initialize'),
    path('settings/<str:key>/', SettingDetailView.as_view(), name='setting-detail'),

    # Dashboard & reports
    path('dashboard/stats/', dashboard_stats, name='dashboard-stats'),
    path('dashboard/revenue/daily/', daily_revenue, name='dashboard-daily-revenue'),
    path('dashboard/revenue/monthly/', monthly_revenue, name='dashboard-monthly-revenue'),
    path('dashboard/top-services/', top_services, name='dashboard-top-services'),
    path('reports/', generate_report, name='report-generate'),
]
