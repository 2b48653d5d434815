from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session

from app.database.engine import SessionLocal
from app.database.base import Base


def get_db():
    """Provides a synchronous database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """Commit everything done inside the block, or roll all of it back."""
    try:
        yield db
        db.commit()
    except BaseException:
        db.rollback()
        raise


def init_db():
    """Create all tables (for quick dev bootstrap, prefer Alembic in prod)."""
    from app.database.engine import engine
    import app.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
