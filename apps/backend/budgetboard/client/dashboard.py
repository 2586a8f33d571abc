from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Optional

from budgetboard.services.summary import PeriodSummary, aggregate, available_years


log = logging.getLogger(__name__)


@dataclass
class DashboardData:
    year: int
    month: Optional[int]
    transactions: list[dict[str, Any]]
    categories: list[dict[str, Any]]
    all_transactions: list[dict[str, Any]]
    summary: PeriodSummary
    available_years: list[int]


def load_dashboard(client: Any, year: int, month: Optional[int] = None, *, max_workers: int = 3) -> DashboardData:
    """Fetch the period, the categories and the full history concurrently, then summarize.

    Any fetch failure (``ApiRequestError``) propagates once all fetches finished.
    """
    txns = client.transactions
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="dashboard") as pool:
        if month is None:
            period_f = pool.submit(txns.list_year, year)
        else:
            period_f = pool.submit(txns.list_month, year, month)
        categories_f = pool.submit(client.categories.list_all)
        all_f = pool.submit(txns.list_all)

    period = period_f.result() or []
    categories = categories_f.result() or []
    everything = all_f.result() or []

    summary = aggregate(period, categories, match_by="id")
    if summary.skipped:
        log.info("dashboard %s/%s: %d transactions without a known category", year, month, summary.skipped)
    return DashboardData(
        year=year,
        month=month,
        transactions=period,
        categories=categories,
        all_transactions=everything,
        summary=summary,
        available_years=available_years(everything),
    )
