"""Helpers shared by the repository modules.

Timestamps are stored as integer epoch microseconds (UTC), the resolution
of `datetime`, so an entity read back equals the one written and answers a
fraction of a millisecond apart keep their order. Store failures are
logged once here and re-raised as StoreError; nothing is retried.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError

from moodjournal.logic.errors import StoreError

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_US = timedelta(microseconds=1)


def to_epoch_us(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    # timedelta floor division is exact; float timestamps are not
    return (value - _EPOCH) // _ONE_US


def from_epoch_us(value) -> datetime:  # type: ignore[no-untyped-def]
    return _EPOCH + timedelta(microseconds=int(value))


@contextmanager
def store_errors(operation: str, **context) -> Iterator[None]:  # type: ignore[no-untyped-def]
    """Translate SQLAlchemy failures into StoreError after logging them."""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error(
            "store_operation_failed op=%s context=%s", operation, context, exc_info=True
        )
        raise StoreError(f"{operation} failed: {exc.__class__.__name__}") from exc


__all__ = ["to_epoch_us", "from_epoch_us", "store_errors"]
