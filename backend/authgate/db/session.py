"""Database session management."""

from typing import Generator

from sqlalchemy.orm import Session, sessionmaker

from authgate.db.engine import engine

# Create session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False,  # Gate results hand ORM users to the endpoint after commits
)


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session; uncommitted work is rolled back when a request fails."""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
