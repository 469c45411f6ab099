"""
Patient Visit Service

Logs clinical visits. SaleService records one visit per new transaction;
staff can also record visits directly and fill in diagnosis/treatment later.
"""

import logging
from typing import Optional

from django.db import transaction
from django.db.models import QuerySet
from django.utils import timezone

from clinic.models import Patient, PatientVisit, Transaction
from utils.exceptions import NotFoundError

logger = logging.getLogger(__name__)


class VisitService:
    """Service for recording and editing patient visits."""

    UPDATABLE_FIELDS = ('visit_date', 'diagnosis', 'treatment', 'notes')

    @staticmethod
    def record_visit(
        patient_id: int,
        transaction_id: Optional[int] = None,
        visit_date=None,
        diagnosis: Optional[str] = None,
        treatment: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> PatientVisit:
        """
        Record a visit for a patient.

        Args:
            patient_id: Patient being seen
            transaction_id: Transaction billed for this visit, if any
            visit_date: When the visit happened (defaults to now)
            diagnosis, treatment, notes: Optional clinical notes

        Returns:
            The created PatientVisit

        Raises:
            NotFoundError: If the patient or the given transaction does not exist
        """
        with transaction.atomic():
            if not Patient.objects.filter(id=patient_id).exists():
                raise NotFoundError('patient')

            if transaction_id is not None and not Transaction.objects.filter(id=transaction_id).exists():
                raise NotFoundError('transaction')

            visit = PatientVisit.objects.create(
                patient_id=patient_id,
                transaction_id=transaction_id,
                visit_date=visit_date or timezone.now(),
                diagnosis=diagnosis,
                treatment=treatment,
                notes=notes,
            )

        logger.info(f"Recorded visit {visit.id} for patient {patient_id}")
        return visit

    @staticmethod
    def get_patient_visits(patient_id: int) -> QuerySet:
        """Return a patient's visits, most recent first."""
        if not Patient.objects.filter(id=patient_id).exists():
            raise NotFoundError('patient')
        return PatientVisit.objects.filter(patient_id=patient_id).order_by('-visit_date', '-id')

    @staticmethod
    def get_visit(visit_id: int) -> PatientVisit:
        try:
            return PatientVisit.objects.select_related('patient', 'transaction').get(id=visit_id)
        except PatientVisit.DoesNotExist:
            raise NotFoundError('visit')

    @staticmethod
    def update_visit(visit_id: int, **fields) -> PatientVisit:
        """
        Update the given fields of a visit. Fields not passed are left alone.

        Raises:
            NotFoundError: If the visit does not exist
        """
        with transaction.atomic():
            try:
                visit = PatientVisit.objects.select_for_update().get(id=visit_id)
            except PatientVisit.DoesNotExist:
                raise NotFoundError('visit')

            changed = []
            for name in VisitService.UPDATABLE_FIELDS:
                if name in fields:
                    setattr(visit, name, fields[name])
                    changed.append(name)

            if changed:
                visit.save(update_fields=changed)

        return visit
