from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from budgetboard.core.database import get_db
from budgetboard.core.deps import get_current_user
from budgetboard.schemas import ApiResponse, MonthlyTotalOut, PeriodSummaryOut
from budgetboard.services.category_service import CategoryService
from budgetboard.services.summary import PeriodSummary, aggregate, monthly_totals
from budgetboard.services.transaction_service import TransactionService


router = APIRouter(prefix="/summaries", tags=["summaries"])


def _summary_out(summary: PeriodSummary, *, year: int, month: int | None = None, monthly=None) -> PeriodSummaryOut:
    return PeriodSummaryOut(
        year=year,
        month=month,
        per_category_income={k: float(v) for k, v in summary.per_category_income.items()},
        per_category_expense={k: float(v) for k, v in summary.per_category_expense.items()},
        total_income=float(summary.total_income),
        total_expense=float(summary.total_expense),
        balance=float(summary.balance),
        skipped=summary.skipped,
        monthly=monthly,
    )


@router.get("/{year}", response_model=ApiResponse[PeriodSummaryOut])
def annual_summary(year: int, db: Session = Depends(get_db), current_user=Depends(get_current_user)):
    txns = TransactionService(db).list_period(user_id=current_user.id, year=year)
    cats = CategoryService(db).get_all(user_id=current_user.id)
    monthly = [
        MonthlyTotalOut(month=b["month"], income=float(b["income"]), expense=float(b["expense"]))
        for b in monthly_totals(txns, year)
    ]
    return ApiResponse(data=_summary_out(aggregate(txns, cats), year=year, monthly=monthly))


@router.get("/{year}/{month}", response_model=ApiResponse[PeriodSummaryOut])
def monthly_summary(year: int, month: int, db: Session = Depends(get_db), current_user=Depends(get_current_user)):
    txns = TransactionService(db).list_period(user_id=current_user.id, year=year, month=month)
    cats = CategoryService(db).get_all(user_id=current_user.id)
    return ApiResponse(data=_summary_out(aggregate(txns, cats), year=year, month=month))
