"""
Dashboard Service

Aggregates for the dashboard tab. Revenue only counts paid transactions.
"""

import calendar
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from django.db.models import Count, Sum
from django.utils import timezone

from clinic.models import Patient, Transaction, TransactionService
from clinic.services.medicine_service import MedicineService


class DashboardService:

    @staticmethod
    def get_stats() -> Dict:
        """
        Headline numbers for today.

        Returns:
            dict: {
                'total_patients': int,
                'total_transactions_today': int,
                'total_revenue_today': float,
                'low_stock_medicines': int,
                'expired_medicines': int,
                'pending_transactions': int
            }
        """
        today = timezone.localdate()
        todays = Transaction.objects.filter(created_at__date=today)

        return {
            'total_patients': Patient.objects.count(),
            'total_transactions_today': todays.count(),
            'total_revenue_today': float(DashboardService._paid_total(todays)),
            'low_stock_medicines': MedicineService.get_low_stock().count(),
            'expired_medicines': MedicineService.get_expired(today).count(),
            'pending_transactions': Transaction.objects.filter(
                payment_status=Transaction.PaymentStatus.PENDING
            ).count(),
        }

    @staticmethod
    def get_daily_revenue(day: Optional[date] = None) -> Dict:
        day = day or timezone.localdate()
        transactions = Transaction.objects.filter(created_at__date=day)
        return {
            'date': day.isoformat(),
            'revenue': float(DashboardService._paid_total(transactions)),
            'transaction_count': transactions.filter(payment_status=Transaction.PaymentStatus.PAID).count(),
        }

    @staticmethod
    def get_monthly_revenue(year: int, month: int) -> Dict:
        """
        Paid revenue for a calendar month, with a per-day breakdown.
        """
        last_day = calendar.monthrange(year, month)[1]
        start, end = date(year, month, 1), date(year, month, last_day)
        paid = Transaction.objects.filter(
            created_at__date__gte=start,
            created_at__date__lte=end,
            payment_status=Transaction.PaymentStatus.PAID,
        )

        daily = {}
        for created_at, total in paid.values_list('created_at', 'total_amount'):
            key = timezone.localtime(created_at).date().isoformat()
            daily[key] = daily.get(key, Decimal('0.00')) + total

        return {
            'year': year,
            'month': month,
            'revenue': float(DashboardService._paid_total(paid)),
            'transaction_count': paid.count(),
            'daily': [{'date': key, 'revenue': float(value)} for key, value in sorted(daily.items())],
        }

    @staticmethod
    def get_top_services(limit: int = 5) -> List[Dict]:
        """Services ranked by quantity sold in paid transactions."""
        rows = (
            TransactionService.objects
            .filter(transaction__payment_status=Transaction.PaymentStatus.PAID)
            .values('service_id', 'service__name')
            .annotate(
                usage_count=Sum('quantity'),
                transaction_count=Count('transaction', distinct=True),
                revenue=Sum('total_price'),
            )
            .order_by('-usage_count', 'service__name')[:limit]
        )
        return [
            {
                'service_id': row['service_id'],
                'service_name': row['service__name'],
                'usage_count': row['usage_count'],
                'transaction_count': row['transaction_count'],
                'revenue': float(row['revenue'] or 0),
            }
            for row in rows
        ]

    @staticmethod
    def _paid_total(queryset) -> Decimal:
        total = queryset.filter(
            payment_status=Transaction.PaymentStatus.PAID
        ).aggregate(total=Sum('total_amount'))['total']
        return total or Decimal('0.00')
