"""
Services 패키지

비즈니스 로직 서비스 클래스와 순수 계산 함수들을 제공합니다.
"""

from .category_service import CategoryService, CATEGORY_COLORS
from .transaction_service import TransactionService
from .subscription_service import SubscriptionService, PaymentGateway, HttpPaymentGateway
from .recurrence import generate_occurrence_dates, iter_occurrence_dates
from .summary import aggregate, monthly_totals, available_years, PeriodSummary

__all__ = [
    "CategoryService",
    "CATEGORY_COLORS",
    "TransactionService",
    "SubscriptionService",
    "PaymentGateway",
    "HttpPaymentGateway",
    "generate_occurrence_dates",
    "iter_occurrence_dates",
    "aggregate",
    "monthly_totals",
    "available_years",
    "PeriodSummary",
]
