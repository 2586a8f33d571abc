"""Period aggregation: per-category and total income/expense.

Works on ORM rows as well as on the plain dicts the client receives from the
API, so the dashboard and the ``/summaries`` endpoints share one implementation.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, Literal, Mapping


log = logging.getLogger(__name__)

MatchBy = Literal["id", "name"]


def _field(obj: Any, name: str, default: Any = None) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(name, default)
    return getattr(obj, name, default)


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value if value is not None else 0))


def _to_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    return None


def _txn_category_name(txn: Any) -> str | None:
    name = _field(txn, "category_name")
    if name is None:
        raw = _field(txn, "category")
        name = raw if isinstance(raw, str) else _field(raw, "name") if raw is not None else None
    return name


@dataclass
class PeriodSummary:
    per_category_income: dict[str, Decimal] = field(default_factory=dict)
    per_category_expense: dict[str, Decimal] = field(default_factory=dict)
    total_income: Decimal = Decimal("0")
    total_expense: Decimal = Decimal("0")
    skipped: int = 0

    @property
    def balance(self) -> Decimal:
        return self.total_income - self.total_expense


def aggregate(
    transactions: Iterable[Any],
    categories: Iterable[Any],
    *,
    match_by: MatchBy = "id",
) -> PeriodSummary:
    """Group amounts by category; ``amount > 0`` is income, the rest expense (as magnitude).

    Transactions whose category cannot be resolved are skipped and logged.
    """
    if match_by == "id":
        lookup = {_field(c, "id"): _field(c, "name") for c in categories}
    else:
        lookup = {_field(c, "name"): _field(c, "name") for c in categories}

    income: defaultdict[str, Decimal] = defaultdict(Decimal)
    expense: defaultdict[str, Decimal] = defaultdict(Decimal)
    summary = PeriodSummary()

    for txn in transactions:
        key = _field(txn, "category_id") if match_by == "id" else _txn_category_name(txn)
        name = lookup.get(key) if key is not None else None
        if name is None:
            summary.skipped += 1
            log.warning(
                "transaction %s skipped: category %r not found",
                _field(txn, "id"),
                key,
            )
            continue
        amount = _to_decimal(_field(txn, "amount"))
        if amount > 0:
            income[name] += amount
            summary.total_income += amount
        else:
            expense[name] += abs(amount)
            summary.total_expense += abs(amount)

    summary.per_category_income = dict(income)
    summary.per_category_expense = dict(expense)
    return summary


def monthly_totals(transactions: Iterable[Any], year: int) -> list[dict[str, Any]]:
    """Twelve ``{month, income, expense}`` buckets for ``year``; other years are ignored."""
    buckets = [{"month": m, "income": Decimal("0"), "expense": Decimal("0")} for m in range(1, 13)]
    for txn in transactions:
        day = _to_date(_field(txn, "transaction_date"))
        if day is None or day.year != year:
            continue
        amount = _to_decimal(_field(txn, "amount"))
        bucket = buckets[day.month - 1]
        if amount > 0:
            bucket["income"] += amount
        else:
            bucket["expense"] += abs(amount)
    return buckets


def available_years(transactions: Iterable[Any]) -> list[int]:
    years = {d.year for d in (_to_date(_field(t, "transaction_date")) for t in transactions) if d is not None}
    return sorted(years)
