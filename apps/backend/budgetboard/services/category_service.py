from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy.orm import Session

from budgetboard import models
from budgetboard.core.errors import ApiError, ErrorCode


log = logging.getLogger(__name__)

# Enumerated palette offered by the category picker
CATEGORY_COLORS: tuple[str, ...] = (
    "#EF5350",
    "#EC407A",
    "#AB47BC",
    "#7E57C2",
    "#5C6BC0",
    "#42A5F5",
    "#26C6DA",
    "#26A69A",
    "#66BB6A",
    "#D4E157",
    "#FFCA28",
    "#FFA726",
    "#8D6E63",
    "#78909C",
)


class CategoryService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get_all(self, *, user_id: int) -> list[models.Category]:
        return (
            self.db.query(models.Category)
            .filter(models.Category.user_id == user_id)
            .order_by(models.Category.name, models.Category.id)
            .all()
        )

    def get_by_id(self, user_id: int, category_id: int) -> models.Category:
        row = (
            self.db.query(models.Category)
            .filter(models.Category.user_id == user_id, models.Category.id == category_id)
            .first()
        )
        if row is None:
            raise ApiError(404, ErrorCode.CATEGORY_NOT_FOUND, "Category not found")
        return row

    def _ensure_unique_name(self, user_id: int, name: str, *, exclude_id: int | None = None) -> None:
        q = self.db.query(models.Category).filter(
            models.Category.user_id == user_id,
            models.Category.name == name,
        )
        if exclude_id is not None:
            q = q.filter(models.Category.id != exclude_id)
        if q.first() is not None:
            raise ApiError(409, ErrorCode.DUPLICATE_CATEGORY, f"Category '{name}' already exists")

    def create(self, payload: dict, *, user_id: int) -> models.Category:
        self._ensure_unique_name(user_id, payload["name"])
        row = models.Category(user_id=user_id, name=payload["name"], color=payload["color"])
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        log.info("category %s created for user %s", row.id, user_id)
        return row

    def create_defaults(self, items: Iterable[dict], *, user_id: int) -> list[models.Category]:
        """Create the starter categories that are still missing.

        Idempotent by name; returns every requested category (created or existing).
        """
        existing = {c.name: c for c in self.get_all(user_id=user_id)}
        result: list[models.Category] = []
        for item in items:
            row = existing.get(item["name"])
            if row is None:
                row = models.Category(user_id=user_id, name=item["name"], color=item["color"])
                self.db.add(row)
                self.db.flush()
                existing[row.name] = row
            result.append(row)
        self.db.commit()
        for row in result:
            self.db.refresh(row)
        return result

    def update(self, row: models.Category, patch: dict) -> models.Category:
        if not patch:
            return row
        if "name" in patch and patch["name"] != row.name:
            self._ensure_unique_name(row.user_id, patch["name"], exclude_id=row.id)
        for key, value in patch.items():
            setattr(row, key, value)
        self.db.commit()
        self.db.refresh(row)
        return row

    def delete(self, row: models.Category, *, reassign_to: int | None = None, force: bool = False) -> int:
        """Delete a category; returns the number of transactions moved or orphaned.

        In-use categories need ``reassign_to`` (same user) or ``force``, which
        leaves their transactions without a category.
        """
        refs = self.db.query(models.Transaction).filter(models.Transaction.category_id == row.id)
        in_use = refs.count()
        if in_use:
            if reassign_to is not None:
                if reassign_to == row.id:
                    raise ApiError(400, ErrorCode.INVALID_DATA, "Cannot reassign a category to itself")
                target = self.get_by_id(row.user_id, reassign_to)
                refs.update({models.Transaction.category_id: target.id}, synchronize_session=False)
            elif force:
                refs.update({models.Transaction.category_id: None}, synchronize_session=False)
                log.warning("category %s deleted with %d orphaned transactions", row.id, in_use)
            else:
                raise ApiError(
                    409,
                    ErrorCode.CATEGORY_IN_USE,
                    "Category in use; specify reassign_to or force",
                )
        self.db.delete(row)
        self.db.commit()
        return in_use
