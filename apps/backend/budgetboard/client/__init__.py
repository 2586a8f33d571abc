"""
Client 패키지

API 래퍼, 폼 검증, 변경 코디네이터와 대시보드 로더.
"""

from .api import ApiRequestError, BudgetboardClient
from .coordinator import MutationCoordinator
from .dashboard import DashboardData, load_dashboard
from .events import VisibilityChannel
from .feedback import Notice, classify_error
from .forms import FormValidationError, TransactionDraft, preview_occurrences

__all__ = [
    "ApiRequestError",
    "BudgetboardClient",
    "MutationCoordinator",
    "DashboardData",
    "load_dashboard",
    "VisibilityChannel",
    "Notice",
    "classify_error",
    "FormValidationError",
    "TransactionDraft",
    "preview_occurrences",
]
