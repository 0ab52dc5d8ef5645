import logging

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from .config import settings
from .errors import StorageFailure

logger = logging.getLogger(__name__)

MAX_WRITE_ATTEMPTS = 3


def normalize_database_url(url: str) -> str:
    # Hosted Postgres hands out postgres:// but SQLAlchemy needs postgresql://
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)

    if url.startswith("postgresql://") and "sslmode" not in url:
        url += "&sslmode=require" if "?" in url else "?sslmode=require"
    return url


def make_engine(url: str):
    url = normalize_database_url(url)
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(url, pool_pre_ping=True)


engine = make_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def commit_with_retry(db: Session, operation, attempts: int = MAX_WRITE_ATTEMPTS):
    """
    Run a read-modify-write ``operation`` and commit it.

    ``operation`` must re-read whatever rows it mutates, because a lost race
    (a stale ``version`` or a duplicate row) rolls the session back and runs
    it again from scratch.
    """
    for attempt in range(1, attempts + 1):
        try:
            result = operation()
        except Exception:
            db.rollback()
            raise
        try:
            db.commit()
            return result
        except (StaleDataError, IntegrityError) as e:
            db.rollback()
            if attempt == attempts:
                logger.error("Write conflict persisted after %s attempts: %s", attempts, e)
                raise StorageFailure("Document was modified concurrently, please retry") from e
            logger.warning("Write conflict on attempt %s, retrying: %s", attempt, e)
