"""
Services package for clinic business logic.
"""
from .stock_service import StockService
from .sale_service import SaleService
from .payment_status_service import PaymentStatusService
from .visit_service import VisitService
from .patient_service import PatientService
from .medicine_service import MedicineService
from .catalog_service import ServiceCatalogService
from .settings_service import SettingsService
from .dashboard_service import DashboardService
from .report_service import ReportService

__all__ = [
    'StockService', 'SaleService', 'PaymentStatusService', 'VisitService',
    'PatientService', 'MedicineService', 'ServiceCatalogService',
    'SettingsService', 'DashboardService', 'ReportService',
]
