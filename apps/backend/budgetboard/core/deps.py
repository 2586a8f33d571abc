from __future__ import annotations

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from budgetboard.core.database import get_db
from budgetboard.core.errors import ApiError, ErrorCode
from budgetboard import models


def get_current_user(
    x_user_id: int | None = Header(default=None, alias="X-User-Id"),
    db: Session = Depends(get_db),
) -> models.User:
    """Very lightweight current user resolver.

    Session handling lives outside this service. An ``X-User-Id`` header must
    name an active user; without it the first user is used (a demo user is
    created on an empty database). Tests may override this dependency.
    """
    if x_user_id is not None:
        user = db.get(models.User, x_user_id)
        if user is None or not user.is_active:
            raise ApiError(401, ErrorCode.UNAUTHORIZED, "Session expired. Please sign in again.")
        return user

    user = db.query(models.User).order_by(models.User.id).first()
    if not user:
        user = models.User(email="demo@example.com", display_name="Demo", is_active=True)
        db.add(user)
        db.commit()
        db.refresh(user)
    return user
