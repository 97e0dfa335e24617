import logging
from contextlib import contextmanager
from typing import Optional

from sqlalchemy.exc import IntegrityError, OperationalError

from pagepub.domain.errors import ConflictError
from pagepub.extensions import db

logger = logging.getLogger(__name__)

# SQLSTATEs for serialization failure and deadlock
_RETRYABLE_PGCODES = {"40001", "40P01"}


def is_write_conflict(exc: Exception) -> bool:
    if isinstance(exc, IntegrityError):
        return True
    if isinstance(exc, OperationalError):
        orig = getattr(exc, "orig", None)
        if getattr(orig, "pgcode", None) in _RETRYABLE_PGCODES:
            return True
        return "database is locked" in str(orig)
    return False


@contextmanager
def transactional(isolation_level: Optional[str] = None):
    """
    Context manager for database transactions.

    With an isolation level, the level is applied to the connection the
    session procures for this transaction. Write conflicts (duplicate
    version numbers, serialization failures) are rolled back and surfaced
    as ConflictError; callers decide whether to retry.
    """
    if isolation_level:
        if db.session().in_transaction():
            logger.debug("Session already in a transaction; isolation level %s not applied", isolation_level)
        else:
            db.session.connection(execution_options={"isolation_level": isolation_level})

    try:
        yield
        db.session.commit()
    except Exception as exc:
        db.session.rollback()
        if is_write_conflict(exc):
            logger.warning("Transaction conflict, rolled back: %s", exc.__class__.__name__)
            raise ConflictError("Concurrent modification detected; re-read state and retry.") from exc
        raise
