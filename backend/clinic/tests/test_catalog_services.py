"""
Tests for the patient, medicine, service catalog and visit services.
"""

from datetime import date, timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone

from clinic.models import Patient, Medicine, Service, Transaction, StockMovement, PatientVisit
from clinic.services import (
    SaleService, PatientService, MedicineService, ServiceCatalogService, VisitService,
)
from utils.exceptions import NotFoundError, RecordInUseError


class PatientServiceTest(TestCase):

    def setUp(self):
        self.budi = Patient.objects.create(name='Budi Santoso', date_of_birth=date(2015, 1, 1), gender='male')
        self.siti = Patient.objects.create(name='Siti Aminah', date_of_birth=date(2012, 6, 9), gender='female')
        self.service = Service.objects.create(name='Konsultasi', price=Decimal('75000.00'))

    def test_search_is_case_insensitive(self):
        results = list(PatientService.search('BUDI'))
        self.assertEqual(results, [self.budi])

    def test_search_without_query_returns_everyone_newest_first(self):
        self.assertEqual(list(PatientService.search()), [self.siti, self.budi])

    def test_delete_patient_without_history(self):
        PatientService.delete_patient(self.siti.id)
        self.assertFalse(Patient.objects.filter(id=self.siti.id).exists())

    def test_delete_patient_with_transactions_is_refused(self):
        SaleService.create_transaction(
            patient_id=self.budi.id,
            payment_method=Transaction.PaymentMethod.CASH,
            services=[{'service_id': self.service.id, 'quantity': 1}],
        )
        with self.assertRaises(RecordInUseError):
            PatientService.delete_patient(self.budi.id)

    def test_delete_patient_with_visits_is_refused(self):
        VisitService.record_visit(patient_id=self.siti.id, diagnosis='Demam')
        with self.assertRaises(RecordInUseError):
            PatientService.delete_patient(self.siti.id)

    def test_delete_unknown_patient(self):
        with self.assertRaises(NotFoundError):
            PatientService.delete_patient(99999)


class MedicineServiceTest(TestCase):

    def setUp(self):
        self.today = timezone.localdate()
        self.patient = Patient.objects.create(name='Andi', date_of_birth=date(2010, 2, 2), gender='male')

    def _medicine(self, name, stock=50, minimum=10, expiry=None):
        return Medicine.objects.create(
            name=name,
            unit='tablet',
            price_per_unit=Decimal('1000.00'),
            stock_quantity=stock,
            minimum_stock=minimum,
            expiry_date=expiry,
        )

    def test_create_records_opening_stock(self):
        medicine = MedicineService.create_medicine({
            'name': 'Ibuprofen',
            'unit': 'tablet',
            'price_per_unit': Decimal('2000.00'),
            'stock_quantity': 30,
            'minimum_stock': 5,
        })

        self.assertEqual(medicine.stock_quantity, 30)
        movement = StockMovement.objects.get(medicine=medicine)
        self.assertEqual(movement.movement_type, StockMovement.MovementType.IN)
        self.assertEqual(movement.quantity, 30)
        self.assertEqual(movement.notes, 'Opening stock')

    def test_create_without_stock_records_no_movement(self):
        medicine = MedicineService.create_medicine({
            'name': 'Betadine',
            'unit': 'botol',
            'price_per_unit': Decimal('15000.00'),
        })

        self.assertEqual(medicine.stock_quantity, 0)
        self.assertFalse(StockMovement.objects.exists())

    def test_update_stock_goes_through_ledger(self):
        medicine = self._medicine('Cetirizine', stock=20)

        updated = MedicineService.update_medicine(medicine.id, {'stock_quantity': 12, 'supplier': 'PT Kimia'})

        self.assertEqual(updated.stock_quantity, 12)
        self.assertEqual(updated.supplier, 'PT Kimia')
        movement = StockMovement.objects.get(medicine=medicine)
        self.assertEqual(movement.movement_type, StockMovement.MovementType.OUT)
        self.assertEqual(movement.quantity, 8)
        self.assertEqual(movement.notes, 'Stock adjustment via medicine update')

    def test_update_without_stock_change_records_nothing(self):
        medicine = self._medicine('Cetirizine', stock=20)
        MedicineService.update_medicine(medicine.id, {'stock_quantity': 20, 'name': 'Cetirizine 10mg'})

        medicine.refresh_from_db()
        self.assertEqual(medicine.name, 'Cetirizine 10mg')
        self.assertFalse(StockMovement.objects.exists())

    def test_delete_unused_medicine_removes_history(self):
        medicine = MedicineService.create_medicine({
            'name': 'Vitamin C', 'unit': 'tablet', 'price_per_unit': Decimal('500.00'), 'stock_quantity': 10,
        })
        MedicineService.delete_medicine(medicine.id)

        self.assertFalse(Medicine.objects.filter(id=medicine.id).exists())
        self.assertFalse(StockMovement.objects.exists())

    def test_delete_sold_medicine_is_refused(self):
        medicine = self._medicine('Amoxicillin')
        SaleService.create_transaction(
            patient_id=self.patient.id,
            payment_method=Transaction.PaymentMethod.CASH,
            medicines=[{'medicine_id': medicine.id, 'quantity': 1}],
        )

        with self.assertRaises(RecordInUseError):
            MedicineService.delete_medicine(medicine.id)
        self.assertTrue(Medicine.objects.filter(id=medicine.id).exists())

    def test_low_stock_includes_boundary(self):
        at_minimum = self._medicine('At minimum', stock=10, minimum=10)
        below = self._medicine('Below', stock=3, minimum=10)
        self._medicine('Plenty', stock=50, minimum=10)

        self.assertEqual(list(MedicineService.get_low_stock()), [below, at_minimum])

    def test_expired_includes_today(self):
        expired_today = self._medicine('Expires today', expiry=self.today)
        expired_last_week = self._medicine('Expired', expiry=self.today - timedelta(days=7))
        self._medicine('Still good', expiry=self.today + timedelta(days=1))
        self._medicine('No expiry')

        self.assertEqual(list(MedicineService.get_expired()), [expired_last_week, expired_today])

    def test_expiring_window(self):
        soon = self._medicine('Soon', expiry=self.today + timedelta(days=10))
        self._medicine('Later', expiry=self.today + timedelta(days=60))
        self._medicine('Expired', expiry=self.today)

        self.assertEqual(list(MedicineService.get_expiring(30)), [soon])

    def test_search_filters(self):
        low = self._medicine('Paracetamol Sirup', stock=2, minimum=5)
        expired = self._medicine('Paracetamol Tablet', expiry=self.today - timedelta(days=1))
        self._medicine('Amoxicillin')

        self.assertEqual(list(MedicineService.search('paracetamol')), [low, expired])
        self.assertEqual(list(MedicineService.search(low_stock_only=True)), [low])
        self.assertEqual(list(MedicineService.search(expired_only=True)), [expired])


class ServiceCatalogServiceTest(TestCase):

    def setUp(self):
        self.active = Service.objects.create(name='Khitan Laser', price=Decimal('500000.00'))
        self.inactive = Service.objects.create(name='Bius Total', price=Decimal('300000.00'), is_active=False)

    def test_list_active_only(self):
        self.assertEqual(list(ServiceCatalogService.list_services(active_only=True)), [self.active])
        self.assertEqual(ServiceCatalogService.list_services().count(), 2)

    def test_delete_unused_service(self):
        self.assertTrue(ServiceCatalogService.delete_service(self.inactive.id))
        self.assertFalse(Service.objects.filter(id=self.inactive.id).exists())

    def test_delete_used_service_deactivates_it(self):
        patient = Patient.objects.create(name='Dimas', date_of_birth=date(2013, 4, 4), gender='male')
        SaleService.create_transaction(
            patient_id=patient.id,
            payment_method=Transaction.PaymentMethod.CASH,
            services=[{'service_id': self.active.id, 'quantity': 1}],
        )

        self.assertFalse(ServiceCatalogService.delete_service(self.active.id))
        self.active.refresh_from_db()
        self.assertFalse(self.active.is_active)

    def test_delete_unknown_service(self):
        with self.assertRaises(NotFoundError):
            ServiceCatalogService.delete_service(99999)


class VisitServiceTest(TestCase):

    def setUp(self):
        self.patient = Patient.objects.create(name='Fajar', date_of_birth=date(2011, 11, 11), gender='male')

    def test_record_and_list_visits_newest_first(self):
        older = VisitService.record_visit(
            patient_id=self.patient.id,
            visit_date=timezone.now() - timedelta(days=3),
            diagnosis='Kontrol',
        )
        newer = VisitService.record_visit(patient_id=self.patient.id, diagnosis='Khitan')

        self.assertEqual(list(VisitService.get_patient_visits(self.patient.id)), [newer, older])

    def test_visits_of_unknown_patient(self):
        with self.assertRaises(NotFoundError):
            VisitService.get_patient_visits(99999)

    def test_record_visit_for_unknown_patient(self):
        with self.assertRaises(NotFoundError):
            VisitService.record_visit(patient_id=99999)
        self.assertFalse(PatientVisit.objects.exists())

    def test_update_only_given_fields(self):
        visit = VisitService.record_visit(
            patient_id=self.patient.id, diagnosis='Phimosis', treatment='Sirkumsisi'
        )

        updated = VisitService.update_visit(visit.id, notes='Kontrol 3 hari lagi')

        self.assertEqual(updated.notes, 'Kontrol 3 hari lagi')
        self.assertEqual(updated.diagnosis, 'Phimosis')
        self.assertEqual(updated.treatment, 'Sirkumsisi')

    def test_get_unknown_visit(self):
        with self.assertRaises(NotFoundError):
            VisitService.get_visit(99999)
