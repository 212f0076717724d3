"""
Transaction helpers: outermost atomic block with a bounded retry on lock
contention and serialization failures.
"""
from __future__ import annotations
import functools
import logging
import time

from django.conf import settings
from django.db import DatabaseError, OperationalError, transaction

from .errors import InternalError

logger = logging.getLogger(__name__)


def _cfg(key: str, default: int) -> int:
    gs = getattr(settings, 'GANG_SETTINGS', {}) or {}
    return int(gs.get(key, default))


def atomic_with_retry(func):
    """Run ``func`` in its own transaction, retrying on OperationalError.

    Nested inside an existing atomic block the call runs once: the enclosing
    transaction owns commit, rollback and any retry.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        if transaction.get_connection().in_atomic_block:
            return func(*args, **kwargs)

        attempts = max(1, _cfg('TX_RETRY_ATTEMPTS', 3))
        backoff_s = max(0, _cfg('TX_RETRY_BACKOFF_MS', 50)) / 1000.0
        for attempt in range(1, attempts + 1):
            try:
                with transaction.atomic():
                    return func(*args, **kwargs)
            except OperationalError as exc:
                if attempt >= attempts:
                    logger.error(f"{func.__name__} failed after {attempts} attempts: {exc}")
                    raise InternalError('The game database is busy, please try again') from exc
                logger.warning(f"{func.__name__} hit storage contention (attempt {attempt}/{attempts}): {exc}")
                time.sleep(backoff_s * attempt)
            except DatabaseError as exc:
                logger.exception(f"{func.__name__} failed with a database error")
                raise InternalError('Unexpected storage failure') from exc
    return wrapper
