"""
PDF Report Generation Service

Renders report data from ReportService and receipts as PDF.
Uses ReportLab for PDF generation.
"""

from io import BytesIO
from typing import Dict

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4, A6
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch, mm
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from django.utils import timezone
import logging

from clinic.services.report_service import ReportService
from clinic.services.settings_service import SettingsService

logger = logging.getLogger(__name__)

HEADER_TABLE_STYLE = [
    ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#4a5568')),
    ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
    ('TEXTCOLOR', (0, 1), (-1, -1), colors.HexColor('#2d3748')),
    ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
    ('FONTNAME', (0, 1), (-1, -1), 'Helvetica'),
    ('FONTSIZE', (0, 0), (-1, -1), 8),
    ('BOTTOMPADDING', (0, 0), (-1, -1), 5),
    ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor('#cbd5e0')),
    ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
]


class PDFReportService:
    """
    Service for generating PDF documents.

    Provides methods to:
    - Render sales, inventory and patient reports
    - Render a transaction receipt
    """

    @staticmethod
    def generate_report_pdf(report: Dict) -> BytesIO:
        """
        Render a report built by ReportService.

        Args:
            report: Report dict (any type supported by ReportService.tables)

        Returns:
            BytesIO object containing the PDF
        """
        logger.info(f"Generating PDF {report['report_type']} report")

        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=48,
            leftMargin=48,
            topMargin=48,
            bottomMargin=36,
            title=report['title'],
        )

        styles = getSampleStyleSheet()
        title_style = ParagraphStyle(
            'ReportTitle',
            parent=styles['Heading1'],
            fontSize=20,
            textColor=colors.HexColor('#1a202c'),
            spaceAfter=6,
            alignment=TA_CENTER
        )
        subtitle_style = ParagraphStyle(
            'ReportSubtitle',
            parent=styles['Normal'],
            fontSize=10,
            textColor=colors.HexColor('#4a5568'),
            alignment=TA_CENTER
        )
        heading_style = ParagraphStyle(
            'SectionHeading',
            parent=styles['Heading2'],
            fontSize=13,
            textColor=colors.HexColor('#2d3748'),
            spaceAfter=8,
            spaceBefore=12
        )

        clinic_name = SettingsService.get_value('clinic_name', '')
        elements = [
            Paragraph(clinic_name, subtitle_style),
            Paragraph(report['title'], title_style),
            Paragraph(f"{report['start_date']} to {report['end_date']}", subtitle_style),
            Spacer(1, 16),
        ]

        for title, headers, rows in ReportService.tables(report):
            elements.append(Paragraph(title, heading_style))
            if not rows:
                elements.append(Paragraph('<i>No data</i>', styles['Normal']))
                continue
            data = [headers] + [[PDFReportService._format_cell(value) for value in row] for row in rows]
            table = Table(data, repeatRows=1, hAlign='LEFT')
            table.setStyle(TableStyle(HEADER_TABLE_STYLE))
            elements.append(table)

        elements.append(Spacer(1, 24))
        elements.append(Paragraph(
            f"<i>Generated on {timezone.localtime().strftime('%Y-%m-%d %H:%M:%S')}</i>",
            ParagraphStyle('Footer', parent=styles['Normal'], fontSize=8,
                           textColor=colors.HexColor('#a0aec0'), alignment=TA_CENTER)
        ))

        doc.build(elements)
        buffer.seek(0)
        logger.info(f"Successfully generated PDF {report['report_type']} report")
        return buffer

    @staticmethod
    def generate_receipt_pdf(receipt: Dict) -> BytesIO:
        """
        Render a receipt from ReportService.generate_receipt_data.

        Returns:
            BytesIO object containing the PDF
        """
        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A6,
            rightMargin=6 * mm,
            leftMargin=6 * mm,
            topMargin=6 * mm,
            bottomMargin=6 * mm,
            title=f"Receipt #{receipt['transaction']['id']}",
        )
        styles = getSampleStyleSheet()
        center = ParagraphStyle('Center', parent=styles['Normal'], fontSize=7, alignment=TA_CENTER)
        bold_center = ParagraphStyle('BoldCenter', parent=center, fontSize=10, fontName='Helvetica-Bold')
        small = ParagraphStyle('Small', parent=styles['Normal'], fontSize=7)

        clinic = receipt['clinic']
        txn = receipt['transaction']
        elements = [Paragraph(clinic['name'], bold_center)]
        for line in (clinic['address'], clinic['phone']):
            if line:
                elements.append(Paragraph(line, center))
        elements += [
            Spacer(1, 6),
            Paragraph(f"Receipt #{txn['id']} &nbsp; {txn['date']}", small),
            Paragraph(f"Patient: {receipt['patient']['name']}", small),
            Spacer(1, 4),
        ]

        data = [['Item', 'Qty', 'Price', 'Total']]
        for item in receipt['items']:
            data.append([
                Paragraph(item['name'], small),
                str(item['quantity']),
                PDFReportService._format_currency(item['price_per_unit']),
                PDFReportService._format_currency(item['total_price']),
            ])
        data.append(['Total', '', '', PDFReportService._format_currency(receipt['total_amount'])])

        table = Table(data, colWidths=[1.6 * inch, 0.35 * inch, 0.7 * inch, 0.8 * inch])
        table.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 7),
            ('ALIGN', (1, 0), (-1, -1), 'RIGHT'),
            ('LINEBELOW', (0, 0), (-1, 0), 0.5, colors.black),
            ('LINEABOVE', (0, -1), (-1, -1), 0.5, colors.black),
            ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
        ]))
        elements.append(table)
        elements += [
            Spacer(1, 6),
            Paragraph(f"Payment: {txn['payment_method_label']} ({txn['payment_status_label']})", small),
        ]
        if receipt['footer']:
            elements += [Spacer(1, 8), Paragraph(receipt['footer'], center)]

        doc.build(elements)
        buffer.seek(0)
        return buffer

    @staticmethod
    def _format_cell(value) -> str:
        if isinstance(value, float):
            return PDFReportService._format_currency(value)
        return '' if value is None else str(value)

    @staticmethod
    def _format_currency(amount: float) -> str:
        """
        Format amount as currency string.

        Args:
            amount: Amount to format

        Returns:
            Formatted currency string
        """
        return f"{amount:,.2f}"
