"""
Patient records: search and guarded deletion.
Plain create/update go through the serializers.
"""

import logging

from django.db import transaction
from django.db.models import QuerySet

from clinic.models import Patient
from utils.exceptions import NotFoundError, RecordInUseError

logger = logging.getLogger(__name__)


class PatientService:

    @staticmethod
    def search(query: str = None) -> QuerySet:
        """Patients whose name contains query (case-insensitive), newest first."""
        queryset = Patient.objects.all()
        if query:
            queryset = queryset.filter(name__icontains=query.strip())
        return queryset.order_by('-created_at', '-id')

    @staticmethod
    def delete_patient(patient_id: int) -> None:
        """
        Delete a patient without history.

        Raises:
            NotFoundError: If the patient does not exist
            RecordInUseError: If the patient has transactions or visits
        """
        with transaction.atomic():
            try:
                patient = Patient.objects.select_for_update().get(id=patient_id)
            except Patient.DoesNotExist:
                raise NotFoundError('patient')

            if patient.transactions.exists():
                logger.warning(f"Refused to delete patient {patient_id}: has transactions")
                raise RecordInUseError('Cannot delete patient with existing transactions')

            if patient.visits.exists():
                logger.warning(f"Refused to delete patient {patient_id}: has visits")
                raise RecordInUseError('Cannot delete patient with existing visits')

            patient.delete()

        logger.info(f"Deleted patient {patient_id}")
