"""
Tests for report data, receipts and their PDF/XLSX/CSV renderings.
"""

from datetime import date, timedelta
from decimal import Decimal
from io import BytesIO

from django.test import TestCase
from django.utils import timezone
from openpyxl import load_workbook

from clinic.models import Patient, Medicine, Service, Transaction
from clinic.services import (
    SaleService, PaymentStatusService, VisitService, SettingsService, ReportService,
)
from clinic.services.pdf_report_service import PDFReportService
from clinic.services.export_service import ExportService
from utils.exceptions import InvalidArgumentError, NotFoundError


class ReportServiceTest(TestCase):

    def setUp(self):
        self.today = timezone.localdate()
        SettingsService.initialize_defaults()

        self.patient = Patient.objects.create(name='Hasan', date_of_birth=date(2013, 7, 7), gender='male')
        Patient.objects.create(name='Nur', date_of_birth=date(2012, 3, 3), gender='female')
        self.service = Service.objects.create(name='Khitan Laser', price=Decimal('500000.00'))
        self.medicine = Medicine.objects.create(
            name='Paracetamol', unit='tablet', price_per_unit=Decimal('1000.00'),
            stock_quantity=100, minimum_stock=10,
        )

        self.paid = SaleService.create_transaction(
            patient_id=self.patient.id,
            payment_method=Transaction.PaymentMethod.CASH,
            services=[{'service_id': self.service.id, 'quantity': 1}],
            medicines=[{'medicine_id': self.medicine.id, 'quantity': 10}],
        )
        PaymentStatusService.update_status(self.paid.id, Transaction.PaymentStatus.PAID)
        self.pending = SaleService.create_transaction(
            patient_id=self.patient.id,
            payment_method=Transaction.PaymentMethod.TRANSFER,
            medicines=[{'medicine_id': self.medicine.id, 'quantity': 5}],
        )

    def test_unknown_report_type(self):
        with self.assertRaises(InvalidArgumentError):
            ReportService.generate('profit', self.today, self.today)

    def test_reversed_range(self):
        with self.assertRaises(InvalidArgumentError):
            ReportService.generate('sales', self.today, self.today - timedelta(days=1))

    def test_sales_report(self):
        report = ReportService.generate('sales', self.today, self.today)

        self.assertEqual(report['summary']['total_transactions'], 2)
        self.assertEqual(report['summary']['paid_transactions'], 1)
        self.assertEqual(report['summary']['pending_transactions'], 1)
        self.assertEqual(report['summary']['total_revenue'], 510000.0)
        self.assertEqual(report['revenue_breakdown'], {'services': 500000.0, 'medicines': 10000.0})

        cash = next(row for row in report['payment_methods'] if row['method'] == 'cash')
        self.assertEqual(cash['count'], 1)
        self.assertEqual(cash['total'], 510000.0)

        self.assertEqual(len(report['daily_trend']), 1)
        self.assertEqual(report['daily_trend'][0]['transactions'], 2)
        self.assertEqual(len(report['transactions']), 2)

    def test_sales_report_outside_range_is_empty(self):
        past = self.today - timedelta(days=30)
        report = ReportService.generate('sales', past, past)

        self.assertEqual(report['summary']['total_transactions'], 0)
        self.assertEqual(report['summary']['average_transaction'], 0.0)

    def test_inventory_report(self):
        report = ReportService.generate('inventory', self.today, self.today)

        self.assertEqual(report['summary']['total_medicines'], 1)
        self.assertEqual(report['summary']['total_stock_units'], 85)
        self.assertEqual(report['summary']['stock_value'], 85000.0)
        self.assertEqual(report['summary']['units_out'], 15)
        self.assertEqual(len(report['movements']), 2)

    def test_patient_report(self):
        VisitService.record_visit(patient_id=self.patient.id, diagnosis='Phimosis')

        report = ReportService.generate('patients', self.today, self.today)

        self.assertEqual(report['summary']['new_patients'], 2)
        # Two visits from sales plus one recorded directly
        self.assertEqual(report['summary']['total_visits'], 3)
        self.assertEqual(report['visit_frequency'][0]['patient_name'], 'Hasan')
        self.assertEqual(report['common_diagnoses'], [{'diagnosis': 'Phimosis', 'count': 1}])
        genders = {row['gender']: row['count'] for row in report['gender_distribution']}
        self.assertEqual(genders, {'male': 1, 'female': 1})

    def test_receipt_data(self):
        receipt = ReportService.generate_receipt_data(self.paid.id)

        self.assertEqual(receipt['clinic']['name'], 'Rumah Khitan Super Modern Pak Nopi')
        self.assertEqual(receipt['footer'], 'Terima kasih atas kepercayaan Anda')
        self.assertEqual(receipt['patient']['name'], 'Hasan')
        self.assertEqual([item['type'] for item in receipt['items']], ['service', 'medicine'])
        self.assertEqual(receipt['services_total'], 500000.0)
        self.assertEqual(receipt['medicines_total'], 10000.0)
        self.assertEqual(receipt['total_amount'], 510000.0)
        self.assertEqual(receipt['transaction']['payment_status'], 'paid')

    def test_receipt_for_unknown_transaction(self):
        with self.assertRaises(NotFoundError):
            ReportService.generate_receipt_data(99999)

    def test_every_report_renders_as_pdf_and_xlsx(self):
        for report_type in ReportService.REPORT_TYPES:
            report = ReportService.generate(report_type, self.today, self.today)

            pdf = PDFReportService.generate_report_pdf(report)
            self.assertTrue(pdf.getvalue().startswith(b'%PDF'))

            workbook = load_workbook(ExportService.report_to_xlsx(report))
            self.assertEqual(workbook.sheetnames[0], 'Summary')
            self.assertEqual(
                len(workbook.sheetnames), len(ReportService.tables(report))
            )

    def test_receipt_pdf(self):
        receipt = ReportService.generate_receipt_data(self.paid.id)
        pdf = PDFReportService.generate_receipt_pdf(receipt)
        self.assertTrue(pdf.getvalue().startswith(b'%PDF'))

    def test_transaction_exports(self):
        transactions = Transaction.objects.order_by('id')

        csv_text = ExportService.transactions_to_csv(transactions).getvalue()
        lines = csv_text.strip().splitlines()
        self.assertEqual(len(lines), 3)
        self.assertTrue(lines[0].startswith('Transaction ID,Date,Patient'))

        workbook = load_workbook(BytesIO(ExportService.transactions_to_xlsx(transactions).getvalue()))
        sheet = workbook['Transactions']
        self.assertEqual(sheet.max_row, 3)
        self.assertEqual(sheet.cell(row=2, column=1).value, self.paid.id)
        self.assertEqual(sheet.cell(row=2, column=8).value, 510000.0)
