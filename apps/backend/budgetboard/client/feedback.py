from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional

from budgetboard.core.errors import NOT_FOUND_CODES, ErrorCode

from .api import ApiRequestError


NoticeLevel = Literal["error", "warning", "info"]

_VALIDATION_CODES = {
    ErrorCode.INVALID_DATA.value,
    ErrorCode.MISSING_FIELDS.value,
    ErrorCode.INVALID_DATE.value,
    ErrorCode.TOO_MANY_OCCURRENCES.value,
    ErrorCode.INVALID_PRICE_ID.value,
    ErrorCode.MISSING_CUSTOMER_ID.value,
}
_NOT_FOUND = {code.value for code in NOT_FOUND_CODES}


@dataclass(frozen=True)
class Notice:
    """Transient user-facing message produced from a failed call."""

    level: NoticeLevel
    message: str
    error: Optional[str] = None


def classify_error(exc: Exception) -> Notice:
    """Map a failure to a notice; never raises."""
    if not isinstance(exc, ApiRequestError):
        return Notice("error", "An unexpected error occurred. Please try again.", ErrorCode.SERVER_ERROR.value)

    code = exc.error
    if code == ErrorCode.UNAUTHORIZED.value or exc.status_code == 401:
        return Notice("error", "Session expired. Please sign in again.", ErrorCode.UNAUTHORIZED.value)
    if code == ErrorCode.CONNECTION_ERROR.value:
        return Notice("error", "Could not reach the server. Check your connection.", ErrorCode.CONNECTION_ERROR.value)
    if code in (ErrorCode.DATABASE_ERROR.value, ErrorCode.SERVER_ERROR.value) or exc.status_code >= 500:
        return Notice("error", "Something went wrong on our side. Please try again later.", code)
    if code in _NOT_FOUND or exc.status_code == 404:
        # 이미 삭제된 항목: 목록을 새로고침하면 됨
        return Notice("warning", "That item no longer exists.", code)
    if code in _VALIDATION_CODES or exc.status_code in (400, 422):
        return Notice("warning", exc.message or "Please check the form and try again.", code)
    if exc.status_code == 409:
        return Notice("warning", exc.message, code)
    return Notice("error", exc.message or "Request failed", code)
