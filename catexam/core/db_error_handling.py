"""
Database error handling utilities.

Centralizes the pattern used by the SQL-backed stores:
1. Roll back the database session on error
2. Log the error with context
3. Re-raise: engine errors unchanged, SQLAlchemy errors wrapped in
   DatabaseOperationError

The stores run outside any HTTP context, so nothing here raises
HTTPException; the API layer translates DatabaseOperationError into a 500.

Usage:
    from catexam.core.db_error_handling import handle_db_error

    with handle_db_error(db, "save exam session"):
        db.add(record)
        db.commit()
"""

import logging
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from catexam.core.cat.exceptions import CATError

logger = logging.getLogger(__name__)


class DatabaseOperationError(Exception):
    """Exception raised when a database operation fails.

    Attributes:
        operation_name: Human-readable name of the operation that failed
        original_error: The underlying exception that caused the failure
        message: The formatted error message
    """

    def __init__(
        self,
        operation_name: str,
        original_error: Exception,
        message: Optional[str] = None,
    ):
        self.operation_name = operation_name
        self.original_error = original_error
        self.message = message or f"Failed to {operation_name}: {str(original_error)}"
        super().__init__(self.message)


@contextmanager
def handle_db_error(
    db: Session,
    operation_name: str,
    *,
    log_level: int = logging.ERROR,
) -> Generator[None, None, None]:
    """Context manager for handling database errors consistently.

    Args:
        db: The SQLAlchemy database session to rollback on error.
        operation_name: Human-readable name of the operation for error messages
            and logging (e.g., "save exam session").
        log_level: Logging level for database errors. Defaults to logging.ERROR.

    Raises:
        CATError: Re-raised unchanged after rollback.
        DatabaseOperationError: Wrapping any SQLAlchemyError.
    """
    try:
        yield
    except CATError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.log(
            log_level,
            f"Database error during {operation_name}: {e}",
            exc_info=True,
        )
        raise DatabaseOperationError(operation_name, e) from e
