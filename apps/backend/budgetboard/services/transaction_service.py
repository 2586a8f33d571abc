from __future__ import annotations

import logging
import uuid
from datetime import MAXYEAR, MINYEAR, datetime
from itertools import islice
from typing import Optional

from sqlalchemy.orm import Session, selectinload

from budgetboard import models
from budgetboard.core.config import settings
from budgetboard.core.errors import ApiError, ErrorCode
from budgetboard.schemas import TransactionCreate
from budgetboard.services.recurrence import add_months, iter_occurrence_dates


log = logging.getLogger(__name__)

# Fields that propagate to every occurrence when an edit targets the whole group
GROUP_FIELDS = ("amount", "category_id", "description")


class TransactionService:
    """Occurrence persistence plus the single-vs-group mutation rules."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ---- Queries ---------------------------------------------------------
    def _base_query(self, user_id: int):
        return (
            self.db.query(models.Transaction)
            .options(selectinload(models.Transaction.category))
            .filter(models.Transaction.user_id == user_id)
        )

    @staticmethod
    def _ordered(q):
        return q.order_by(models.Transaction.transaction_date.desc(), models.Transaction.id.desc())

    def list_all(self, *, user_id: int) -> list[models.Transaction]:
        return self._ordered(self._base_query(user_id)).all()

    def list_period(self, *, user_id: int, year: int, month: Optional[int] = None) -> list[models.Transaction]:
        # 다음 해 1월 1일까지 표현 가능해야 함
        if not MINYEAR <= year < MAXYEAR:
            raise ApiError(400, ErrorCode.INVALID_DATE, f"year must be between {MINYEAR} and {MAXYEAR - 1}")
        if month is None:
            start = datetime(year, 1, 1)
            end = datetime(year + 1, 1, 1)
        else:
            if not 1 <= month <= 12:
                raise ApiError(400, ErrorCode.INVALID_DATE, "month must be between 1 and 12")
            start = datetime(year, month, 1)
            end = add_months(start, 1)
        q = self._base_query(user_id).filter(
            models.Transaction.transaction_date >= start,
            models.Transaction.transaction_date < end,
        )
        return self._ordered(q).all()

    def list_by_category(self, *, user_id: int, category_id: int) -> list[models.Transaction]:
        q = self._base_query(user_id).filter(models.Transaction.category_id == category_id)
        return self._ordered(q).all()

    def get_by_id(self, user_id: int, txn_id: int) -> models.Transaction:
        row = self._base_query(user_id).filter(models.Transaction.id == txn_id).first()
        if row is None:
            raise ApiError(404, ErrorCode.TRANSACTION_NOT_FOUND, "Transaction not found")
        return row

    def group_members(self, row: models.Transaction) -> list[models.Transaction]:
        if row.recurrence_id is None:
            return [row]
        return (
            self.db.query(models.Transaction)
            .filter(
                models.Transaction.user_id == row.user_id,
                models.Transaction.recurrence_id == row.recurrence_id,
            )
            .order_by(models.Transaction.transaction_date.asc(), models.Transaction.id.asc())
            .all()
        )

    # ---- Helpers ---------------------------------------------------------
    def _require_category(self, user_id: int, category_id: int) -> models.Category:
        cat = (
            self.db.query(models.Category)
            .filter(models.Category.id == category_id, models.Category.user_id == user_id)
            .first()
        )
        if cat is None:
            raise ApiError(404, ErrorCode.CATEGORY_NOT_FOUND, "Category not found")
        return cat

    @staticmethod
    def _description_or_default(description: Optional[str], category: models.Category) -> str:
        text = (description or "").strip()
        return text or category.name

    def _promote_original(self, recurrence_id: str, *, exclude_ids: set[int]) -> None:
        """Keep exactly one original per group after its original left the group."""
        q = self.db.query(models.Transaction).filter(models.Transaction.recurrence_id == recurrence_id)
        if exclude_ids:
            q = q.filter(models.Transaction.id.notin_(exclude_ids))
        remaining = q.order_by(models.Transaction.transaction_date.asc(), models.Transaction.id.asc()).all()
        if remaining and not any(r.is_original_recurrence for r in remaining):
            remaining[0].is_original_recurrence = True

    # ---- Mutations -------------------------------------------------------
    def create(self, payload: TransactionCreate, *, user_id: int) -> list[models.Transaction]:
        """Persist one occurrence, or the full series when a recurrence is given."""
        category = self._require_category(user_id, payload.category_id)
        occurred = models.to_local_naive(payload.transaction_date)
        description = self._description_or_default(payload.description, category)

        if payload.recurrence_type is None:
            dates = [occurred]
            recurrence_id = None
        else:
            end_date = payload.recurrence_end_date
            if end_date < occurred.date():  # type: ignore[operator]
                raise ApiError(
                    400,
                    ErrorCode.INVALID_DATE,
                    "recurrence_end_date must not be before the transaction date",
                    details=[{"field": "recurrence_end_date", "message": "before transaction date"}],
                )
            limit = settings.MAX_RECURRENCE_OCCURRENCES
            occurrences = iter_occurrence_dates(occurred, end_date, payload.recurrence_type)  # type: ignore[arg-type]
            dates = list(islice(occurrences, limit + 1))
            if len(dates) > limit:
                raise ApiError(
                    400,
                    ErrorCode.TOO_MANY_OCCURRENCES,
                    f"Recurrence would create more than {limit} transactions",
                )
            recurrence_id = uuid.uuid4().hex

        rows: list[models.Transaction] = []
        for index, when in enumerate(dates):
            row = models.Transaction(
                user_id=user_id,
                transaction_date=when,
                description=description,
                amount=payload.amount,
                category_id=category.id,
                recurrence_type=payload.recurrence_type,
                recurrence_end_date=payload.recurrence_end_date,
                recurrence_id=recurrence_id,
                is_original_recurrence=recurrence_id is not None and index == 0,
            )
            self.db.add(row)
            rows.append(row)
        self.db.commit()
        for row in rows:
            self.db.refresh(row)
        if recurrence_id:
            log.info(
                "created %d %s occurrences in group %s for user %s",
                len(rows),
                payload.recurrence_type.value,  # type: ignore[union-attr]
                recurrence_id,
                user_id,
            )
        return rows

    def update(self, row: models.Transaction, changes: dict, *, update_all: bool = False) -> list[models.Transaction]:
        """Apply ``changes`` to one occurrence or to its whole group.

        Group edits propagate amount/category/description and never touch
        dates. A single edit of a grouped occurrence detaches it from the group.
        """
        if "category_id" in changes:
            if changes["category_id"] is None:
                raise ApiError(400, ErrorCode.INVALID_DATA, "category_id must not be null")
            self._require_category(row.user_id, changes["category_id"])
        if "transaction_date" in changes:
            if changes["transaction_date"] is None:
                raise ApiError(400, ErrorCode.INVALID_DATA, "transaction_date must not be null")
            changes["transaction_date"] = models.to_local_naive(changes["transaction_date"])
        if "amount" in changes and changes["amount"] is None:
            raise ApiError(400, ErrorCode.INVALID_DATA, "amount must not be null")

        if update_all and row.recurrence_id is not None:
            targets = self.group_members(row)
            group_changes = {k: v for k, v in changes.items() if k in GROUP_FIELDS}
            for target in targets:
                for key, value in group_changes.items():
                    setattr(target, key, value)
            self.db.commit()
            log.info("updated %d occurrences of group %s", len(targets), row.recurrence_id)
        else:
            targets = [row]
            for key, value in changes.items():
                setattr(row, key, value)
            if row.recurrence_id is not None and changes:
                self._detach(row)
            self.db.commit()

        for target in targets:
            self.db.refresh(target)
        return targets

    def _detach(self, row: models.Transaction) -> None:
        group = row.recurrence_id
        was_original = row.is_original_recurrence
        row.recurrence_id = None
        row.recurrence_type = None
        row.recurrence_end_date = None
        row.is_original_recurrence = False
        if group and was_original:
            self.db.flush()
            self._promote_original(group, exclude_ids={row.id})

    def delete(self, row: models.Transaction, *, delete_all: bool = False) -> int:
        if delete_all and row.recurrence_id is not None:
            targets = self.group_members(row)
        else:
            targets = [row]
        group = row.recurrence_id
        removed_original = any(t.is_original_recurrence for t in targets)
        for target in targets:
            self.db.delete(target)
        self.db.flush()
        if group and removed_original and not delete_all:
            self._promote_original(group, exclude_ids={t.id for t in targets})
        self.db.commit()
        if len(targets) > 1:
            log.info("deleted %d occurrences of group %s", len(targets), group)
        return len(targets)
