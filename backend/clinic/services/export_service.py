"""
Export Service

Generates XLSX workbooks for reports and CSV/XLSX exports of transactions.
"""

import csv
from io import BytesIO, StringIO
from typing import Dict, List

from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, PatternFill, Border, Side
from openpyxl.utils import get_column_letter
from django.db.models import QuerySet
from django.utils import timezone
import logging

from clinic.models import Transaction
from clinic.services.report_service import ReportService

logger = logging.getLogger(__name__)

HEADER_FONT = Font(name='Calibri', size=11, bold=True, color='FFFFFF')
HEADER_FILL = PatternFill(start_color='4A5568', end_color='4A5568', fill_type='solid')
HEADER_ALIGNMENT = Alignment(horizontal='center', vertical='center', wrap_text=True)
NUMBER_ALIGNMENT = Alignment(horizontal='right', vertical='center')
BORDER = Border(
    left=Side(style='thin', color='CBD5E0'),
    right=Side(style='thin', color='CBD5E0'),
    top=Side(style='thin', color='CBD5E0'),
    bottom=Side(style='thin', color='CBD5E0')
)

STATUS_FILLS = {
    Transaction.PaymentStatus.PAID: PatternFill(start_color='D4EDDA', end_color='D4EDDA', fill_type='solid'),
    Transaction.PaymentStatus.CANCELLED: PatternFill(start_color='F8D7DA', end_color='F8D7DA', fill_type='solid'),
    Transaction.PaymentStatus.PENDING: PatternFill(start_color='FFF3CD', end_color='FFF3CD', fill_type='solid'),
}


class ExportService:
    """
    Service for exporting clinic data to CSV and XLSX formats.
    """

    TRANSACTION_HEADERS = [
        'Transaction ID',
        'Date',
        'Patient',
        'Payment Method',
        'Payment Status',
        'Services Total',
        'Medicines Total',
        'Total Amount',
        'Notes',
        'Updated At',
    ]

    @staticmethod
    def report_to_xlsx(report: Dict) -> BytesIO:
        """
        Write a ReportService report to a workbook, one sheet per table.

        Returns:
            BytesIO object containing XLSX data
        """
        logger.info(f"Generating XLSX {report['report_type']} report")

        wb = Workbook()
        wb.remove(wb.active)

        for title, headers, rows in ReportService.tables(report):
            # Sheet titles are limited to 31 characters
            ws = wb.create_sheet(title=title[:31])
            ExportService._write_table(ws, headers, rows)

        output = BytesIO()
        wb.save(output)
        output.seek(0)
        return output

    @staticmethod
    def transactions_to_csv(transactions: QuerySet) -> StringIO:
        """
        Export transactions to CSV format.

        Args:
            transactions: QuerySet of Transaction objects

        Returns:
            StringIO object containing CSV data
        """
        logger.info(f"Generating CSV export with {transactions.count()} transactions")

        output = StringIO()
        writer = csv.writer(output)
        writer.writerow(ExportService.TRANSACTION_HEADERS)
        for row in ExportService._transaction_rows(transactions):
            writer.writerow(row)

        output.seek(0)
        return output

    @staticmethod
    def transactions_to_xlsx(transactions: QuerySet) -> BytesIO:
        """
        Export transactions to XLSX with status colouring.

        Returns:
            BytesIO object containing XLSX data
        """
        logger.info(f"Generating XLSX export with {transactions.count()} transactions")

        wb = Workbook()
        ws = wb.active
        ws.title = "Transactions"
        rows = ExportService._transaction_rows(transactions)
        ExportService._write_table(ws, ExportService.TRANSACTION_HEADERS, rows)

        status_column = ExportService.TRANSACTION_HEADERS.index('Payment Status') + 1
        for row_num, txn in enumerate(transactions, 2):
            fill = STATUS_FILLS.get(txn.payment_status)
            if fill:
                ws.cell(row=row_num, column=status_column).fill = fill

        output = BytesIO()
        wb.save(output)
        output.seek(0)
        return output

    @staticmethod
    def _transaction_rows(transactions: QuerySet) -> List[list]:
        rows = []
        for txn in transactions.select_related('patient').prefetch_related('service_items', 'medicine_items'):
            services_total = sum(item.total_price for item in txn.service_items.all())
            medicines_total = sum(item.total_price for item in txn.medicine_items.all())
            rows.append([
                txn.id,
                timezone.localtime(txn.created_at).strftime('%Y-%m-%d %H:%M:%S'),
                txn.patient.name,
                txn.get_payment_method_display(),
                txn.get_payment_status_display(),
                float(services_total),
                float(medicines_total),
                float(txn.total_amount),
                txn.notes or '',
                timezone.localtime(txn.updated_at).strftime('%Y-%m-%d %H:%M:%S'),
            ])
        return rows

    @staticmethod
    def _write_table(ws, headers: List[str], rows: List[list]) -> None:
        for col_num, header in enumerate(headers, 1):
            cell = ws.cell(row=1, column=col_num, value=header)
            cell.font = HEADER_FONT
            cell.fill = HEADER_FILL
            cell.alignment = HEADER_ALIGNMENT
            cell.border = BORDER

        widths = [len(str(header)) for header in headers]
        for row_num, row in enumerate(rows, 2):
            for col_num, value in enumerate(row, 1):
                cell = ws.cell(row=row_num, column=col_num, value=value)
                cell.border = BORDER
                if isinstance(value, float):
                    cell.number_format = '#,##0.00'
                    cell.alignment = NUMBER_ALIGNMENT
                widths[col_num - 1] = max(widths[col_num - 1], len(str(value)))

        for col_num, width in enumerate(widths, 1):
            ws.column_dimensions[get_column_letter(col_num)].width = min(width + 2, 50)
        ws.freeze_panes = 'A2'
