from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from .core.config import settings
from .core.database import SessionLocal, init_db
from .core.logging_config import configure_logging
from .models import User
from .services import CategoryService

logger = logging.getLogger(__name__)


def seed() -> None:
    init_db()
    db: Session = SessionLocal()
    try:
        # demo user
        user = db.query(User).filter_by(email="demo@example.com").first()
        if not user:
            user = User(
                email="demo@example.com",
                display_name="Demo",
                currency=settings.DEFAULT_CURRENCY,
                is_active=True,
            )
            db.add(user)
            db.flush()
            logger.info("Created demo user %s", user.id)

        CategoryService(db).seed_defaults(user_id=user.id, commit=False)
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    configure_logging()
    seed()
