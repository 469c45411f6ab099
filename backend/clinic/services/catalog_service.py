"""
Billable service catalog.
"""

import logging

from django.db import transaction
from django.db.models import QuerySet

from clinic.models import Service, TransactionService
from utils.exceptions import NotFoundError

logger = logging.getLogger(__name__)


class ServiceCatalogService:

    @staticmethod
    def list_services(active_only: bool = False) -> QuerySet:
        queryset = Service.objects.all()
        if active_only:
            queryset = queryset.filter(is_active=True)
        return queryset.order_by('name', 'id')

    @staticmethod
    def delete_service(service_id: int) -> bool:
        """
        Delete a service, or deactivate it when a sale references it.

        Returns:
            True if the row was deleted, False if it was deactivated

        Raises:
            NotFoundError: If the service does not exist
        """
        with transaction.atomic():
            try:
                service = Service.objects.select_for_update().get(id=service_id)
            except Service.DoesNotExist:
                raise NotFoundError('service')

            if TransactionService.objects.filter(service=service).exists():
                service.is_active = False
                service.save(update_fields=['is_active', 'updated_at'])
                logger.info(f"Service {service_id} is referenced by transactions; deactivated instead of deleted")
                return False

            service.delete()

        logger.info(f"Deleted service {service_id}")
        return True
