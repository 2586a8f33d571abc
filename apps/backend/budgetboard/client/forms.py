"""Transaction form drafts: validation and request payloads.

The form takes the amount as a magnitude plus an income/expense switch, and an
empty description falls back to the category name. Nothing here talks to the
network; a draft that fails validation raises :class:`FormValidationError`.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from itertools import islice
from typing import Any, Iterable, Mapping, Optional

from budgetboard.services.recurrence import coerce_recurrence_type, iter_occurrence_dates


PREVIEW_LIMIT = 5

# Numeric(18, 4): 14 integer digits
MAX_AMOUNT = Decimal("1e14")


class FormValidationError(ValueError):
    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


@dataclass
class TransactionDraft:
    transaction_date: Optional[datetime] = None
    amount: str = ""
    category_id: Optional[int] = None
    description: str = ""
    is_income: bool = False
    recurrence_enabled: bool = False
    recurrence_type: Optional[str] = None
    recurrence_end_date: Optional[date] = None


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def draft_from_transaction(txn: Mapping[str, Any]) -> TransactionDraft:
    """Pre-fill the edit form from an API transaction."""
    amount = Decimal(str(txn.get("amount", 0)))
    return TransactionDraft(
        transaction_date=_parse_datetime(txn.get("transaction_date")),
        amount=str(abs(amount)),
        category_id=txn.get("category_id"),
        description=txn.get("description") or "",
        is_income=amount >= 0,
    )


def parse_amount(raw: Any) -> Decimal:
    text = str(raw if raw is not None else "").strip().replace(",", ".")
    if not text:
        raise FormValidationError("amount", "Amount is required")
    try:
        value = Decimal(text)
    except InvalidOperation:
        raise FormValidationError("amount", "Invalid amount") from None
    if not value.is_finite():
        raise FormValidationError("amount", "Invalid amount")
    if abs(value) >= MAX_AMOUNT:
        raise FormValidationError("amount", "Amount is too large")
    return value


def _find_category(category_id: Optional[int], categories: Iterable[Mapping[str, Any]]) -> Mapping[str, Any]:
    if category_id is None:
        raise FormValidationError("category_id", "Select a category")
    for cat in categories:
        if cat.get("id") == category_id:
            return cat
    raise FormValidationError("category_id", "Selected category no longer exists")


def validate_draft(
    draft: TransactionDraft,
    categories: Iterable[Mapping[str, Any]],
    *,
    creating: bool = True,
) -> Mapping[str, Any]:
    """Check ``draft``; returns the selected category."""
    if draft.transaction_date is None:
        raise FormValidationError("date", "Date is required")
    parse_amount(draft.amount)
    category = _find_category(draft.category_id, categories)

    if creating and draft.recurrence_enabled:
        if not draft.recurrence_type:
            raise FormValidationError("recurrence_type", "Choose how often the transaction repeats")
        try:
            coerce_recurrence_type(draft.recurrence_type)
        except ValueError:
            raise FormValidationError("recurrence_type", "Unknown recurrence type") from None
        if draft.recurrence_end_date is None:
            raise FormValidationError("recurrence_end_date", "Recurrence end date is required")
        if draft.recurrence_end_date < draft.transaction_date.date():
            raise FormValidationError("recurrence_end_date", "End date cannot be before the start date")
    return category


def build_payload(
    draft: TransactionDraft,
    categories: Iterable[Mapping[str, Any]],
    *,
    creating: bool = True,
    include_date: bool = True,
) -> dict[str, Any]:
    """Validated request body for create (``creating=True``) or update."""
    category = validate_draft(draft, categories, creating=creating)
    magnitude = abs(parse_amount(draft.amount))
    amount = magnitude if draft.is_income else -magnitude

    payload: dict[str, Any] = {
        "description": draft.description.strip() or category.get("name", ""),
        "amount": float(amount),
        "category_id": category["id"],
    }
    if include_date:
        payload["date"] = draft.transaction_date
    if creating and draft.recurrence_enabled:
        payload["recurrence_type"] = coerce_recurrence_type(draft.recurrence_type).value  # type: ignore[arg-type]
        payload["recurrence_end_date"] = draft.recurrence_end_date
    return payload


def preview_occurrences(draft: TransactionDraft, limit: int = PREVIEW_LIMIT) -> list[datetime]:
    """First ``limit`` dates the recurrence would create; empty while incomplete."""
    if not draft.recurrence_enabled or draft.transaction_date is None:
        return []
    if not draft.recurrence_type or draft.recurrence_end_date is None:
        return []
    occurrences = iter_occurrence_dates(draft.transaction_date, draft.recurrence_end_date, draft.recurrence_type)
    try:
        return list(islice(occurrences, limit))
    except ValueError:
        return []
