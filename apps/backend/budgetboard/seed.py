from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from .core.database import SessionLocal, init_db
from .core.logs import configure_logging
from .models import Category, Subscription, User


log = logging.getLogger(__name__)

# Starter categories offered to new users
DEFAULT_CATEGORIES: tuple[tuple[str, str], ...] = (
    ("Salary", "#66BB6A"),
    ("Housing", "#5C6BC0"),
    ("Groceries", "#FFA726"),
    ("Transport", "#42A5F5"),
    ("Leisure", "#AB47BC"),
    ("Health", "#EF5350"),
    ("Other", "#78909C"),
)


def seed(db: Session | None = None) -> User:
    """Create the demo user, its trial subscription and the missing default categories."""
    owns_session = db is None
    if db is None:
        db = SessionLocal()
    try:
        # 기본 사용자(데모)
        user = db.query(User).filter_by(email="demo@example.com").first()
        if not user:
            user = User(email="demo@example.com", display_name="Demo", is_active=True)
            db.add(user)
            db.flush()
            db.add(Subscription(user_id=user.id))

        existing = {c.name for c in db.query(Category).filter_by(user_id=user.id)}
        for name, color in DEFAULT_CATEGORIES:
            if name not in existing:
                db.add(Category(user_id=user.id, name=name, color=color))

        db.commit()
        log.info("seeded demo user %s", user.id)
        return user
    except Exception:
        db.rollback()
        raise
    finally:
        if owns_session:
            db.close()


if __name__ == "__main__":
    configure_logging()
    init_db()
    seed()
