import logging
from contextlib import contextmanager
from typing import Callable, Iterator

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from storefront_admin.config import settings
from storefront_admin.results import ErrorKind, Result

logger = logging.getLogger(__name__)

engine = create_engine(settings.database_url, echo=False, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def init_db(bind=None) -> None:
    """Initialize database tables."""
    # models must be imported so their tables register on Base.metadata
    from storefront_admin import models  # noqa: F401

    logger.info("Initializing database...")
    Base.metadata.create_all(bind=bind or engine)
    logger.info("Database initialized")


def get_db():
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


class Transaction:
    """Handle for one unit of work on a session.

    Nothing is committed unless ``commit()`` is called before the owning
    ``transaction()`` block exits.
    """

    def __init__(self, session: Session):
        self.session = session
        self.committed = False

    def commit(self) -> None:
        self.session.commit()
        self.committed = True


@contextmanager
def transaction(session: Session) -> Iterator[Transaction]:
    """Scope a unit of work; roll back on any exit path that did not commit."""
    tx = Transaction(session)
    try:
        yield tx
    finally:
        if not tx.committed:
            session.rollback()
            logger.debug("Transaction rolled back")


def run_in_transaction(db: Session, operation: str, step: Callable[..., Result], *args) -> Result:
    """Run ``step`` in a transaction, committing only when it returns a successful Result.

    Unique-key and foreign-key violations surface as conflicts, any other
    SQLAlchemy error as a persistence failure. Other exceptions propagate
    after the rollback.
    """
    try:
        with transaction(db) as tx:
            result = step(*args)
            if result.ok:
                tx.commit()
            else:
                logger.warning(f"{operation} failed: {result.error.message}")
            return result
    except IntegrityError as e:
        logger.warning(f"{operation} violated a constraint: {e.orig}")
        return Result.failure(ErrorKind.CONFLICT, f"{operation} failed: {e.orig}")
    except SQLAlchemyError as e:
        logger.error(f"{operation} failed on database error: {e}")
        return Result.failure(ErrorKind.PERSISTENCE, f"{operation} failed: {e}")
