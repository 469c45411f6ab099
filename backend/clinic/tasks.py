from celery import shared_task
from django.utils import timezone
import logging

from .services import MedicineService, SettingsService
from .services.broadcast_service import BroadcastService
from utils.constants import DEFAULT_EXPIRY_WARNING_DAYS

logger = logging.getLogger(__name__)


def _medicine_alert(medicine):
    return {
        'id': medicine.id,
        'name': medicine.name,
        'stock_quantity': medicine.stock_quantity,
        'minimum_stock': medicine.minimum_stock,
        'expiry_date': medicine.expiry_date.isoformat() if medicine.expiry_date else None,
    }


@shared_task
def check_stock_alerts():
    """
    Collect low-stock, expiring and expired medicines, log them and push a
    stock.alert to WebSocket clients. Never changes stock.

    Returns:
        dict: The alert that was broadcast (empty lists when nothing is due)
    """
    today = timezone.localdate()
    warning_days = SettingsService.get_int('expiry_warning_days', DEFAULT_EXPIRY_WARNING_DAYS)

    alert = {
        'checked_at': timezone.now().isoformat(),
        'expiry_warning_days': warning_days,
        'low_stock': [_medicine_alert(m) for m in MedicineService.get_low_stock()],
        'expiring': [_medicine_alert(m) for m in MedicineService.get_expiring(warning_days, as_of=today)],
        'expired': [_medicine_alert(m) for m in MedicineService.get_expired(as_of=today)],
    }

    for item in alert['low_stock']:
        logger.warning(f"Low stock: {item['name']} ({item['stock_quantity']} left, minimum {item['minimum_stock']})")
    for item in alert['expiring']:
        logger.warning(f"Expiring soon: {item['name']} on {item['expiry_date']}")
    for item in alert['expired']:
        logger.warning(f"Expired: {item['name']} since {item['expiry_date']}")

    if alert['low_stock'] or alert['expiring'] or alert['expired']:
        BroadcastService.stock_alert(alert)
    else:
        logger.info("Stock check found nothing to report")

    return alert
