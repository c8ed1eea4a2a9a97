# cartorder/services/transaction.py
from sqlalchemy.orm import Session

from cartorder.domain.errors import InconsistentStateError
from cartorder.utils.logging import get_logger

logger = get_logger(__name__)


def rollback_or_raise(db: Session, context: str) -> None:
    """
    Roll back the current transaction after a failed use case.
    If the rollback itself fails we can no longer prove that reserved
    stock was given back, so that is reported as inconsistent.
    """
    try:
        db.rollback()
    except Exception as e:
        logger.exception(f"Rollback failed during {context}")
        raise InconsistentStateError(f"{context} failed and could not be rolled back, needs reconciliation") from e


def commit_or_raise(db: Session, context: str) -> None:
    """
    Flush first so constraint errors surface while a clean rollback is
    still possible; a failing COMMIT leaves the outcome unknown.
    """
    db.flush()
    try:
        db.commit()
    except Exception as e:
        logger.exception(f"Commit failed during {context}")
        raise InconsistentStateError(f"{context}: commit outcome unknown, needs reconciliation") from e
