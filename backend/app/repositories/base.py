"""Shared helpers for repositories."""

import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import RepositoryError

logger = logging.getLogger(__name__)


def store_failure(operation: str, exc: SQLAlchemyError, **context: Any) -> RepositoryError:
    """Log a store failure and build the RepositoryError to raise in its place."""
    logger.error("Record store failure during %s: %s", operation, str(exc))
    return RepositoryError(
        kind=RepositoryError.UNAVAILABLE,
        message=f"Record store failure during {operation}",
        context={
            "operation": operation,
            "error_type": type(exc).__name__,
            **{k: str(v) for k, v in context.items()},
        },
    )


async def commit(db: AsyncSession, operation: str) -> None:
    """Commit the session, raising RepositoryError if the store refuses."""
    try:
        await db.commit()
    except SQLAlchemyError as e:
        raise store_failure(f"{operation} commit", e)


async def rollback(db: AsyncSession) -> None:
    """Roll the session back. A failing rollback is logged, not raised."""
    try:
        await db.rollback()
    except SQLAlchemyError as e:
        logger.warning("Rollback failed: %s", str(e))
