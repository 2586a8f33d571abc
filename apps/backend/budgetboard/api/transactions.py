from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from budgetboard import models
from budgetboard.core.database import get_db
from budgetboard.core.deps import get_current_user
from budgetboard.schemas import (
    ApiResponse,
    DeleteResult,
    TransactionCreate,
    TransactionOut,
    TransactionUpdate,
)
from budgetboard.services.transaction_service import TransactionService


router = APIRouter(prefix="/transactions", tags=["transactions"])


def _out(rows: list[models.Transaction]) -> list[TransactionOut]:
    return [TransactionOut.model_validate(r) for r in rows]


@router.get("/all", response_model=ApiResponse[list[TransactionOut]])
def list_all_transactions(db: Session = Depends(get_db), current_user=Depends(get_current_user)):
    rows = TransactionService(db).list_all(user_id=current_user.id)
    return ApiResponse(data=_out(rows), message="Transactions retrieved")


@router.get("/category/{category_id}", response_model=ApiResponse[list[TransactionOut]])
def list_transactions_by_category(
    category_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    rows = TransactionService(db).list_by_category(user_id=current_user.id, category_id=category_id)
    return ApiResponse(data=_out(rows), message="Transactions retrieved")


@router.post("/create", response_model=ApiResponse[list[TransactionOut]], status_code=201)
def create_transaction(
    payload: TransactionCreate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    rows = TransactionService(db).create(payload, user_id=current_user.id)
    message = "Transaction created" if len(rows) == 1 else f"{len(rows)} recurring transactions created"
    return ApiResponse(data=_out(rows), message=message)


@router.get("/{year}", response_model=ApiResponse[list[TransactionOut]])
def list_transactions_by_year(
    year: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    rows = TransactionService(db).list_period(user_id=current_user.id, year=year)
    return ApiResponse(data=_out(rows), message="Transactions retrieved")


@router.get("/{year}/{month}", response_model=ApiResponse[list[TransactionOut]])
def list_transactions_by_month(
    year: int,
    month: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    rows = TransactionService(db).list_period(user_id=current_user.id, year=year, month=month)
    return ApiResponse(data=_out(rows), message="Transactions retrieved")


@router.put("/{txn_id}", response_model=ApiResponse[list[TransactionOut]])
def update_transaction(
    txn_id: int,
    payload: TransactionUpdate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    svc = TransactionService(db)
    row = svc.get_by_id(current_user.id, txn_id)
    changes = payload.model_dump(exclude_unset=True, exclude={"update_all"})
    rows = svc.update(row, changes, update_all=payload.update_all)
    return ApiResponse(data=_out(rows), message="Transaction updated")


@router.delete("/{txn_id}", response_model=ApiResponse[DeleteResult])
def delete_transaction(
    txn_id: int,
    delete_all: bool = Query(False, description="Delete every occurrence of the recurrence group"),
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    svc = TransactionService(db)
    row = svc.get_by_id(current_user.id, txn_id)
    group = row.recurrence_id
    removed = svc.delete(row, delete_all=delete_all)
    return ApiResponse(data=DeleteResult(deleted=removed, recurrence_id=group), message="Transaction deleted")
