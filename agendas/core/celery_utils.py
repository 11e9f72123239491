"""Helpers for queueing Celery tasks without a hard dependency on the broker."""

from __future__ import annotations

import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)


def safe_celery_delay(task, *args, **kwargs) -> Optional[Any]:
    """Queue ``task`` and return its ``AsyncResult``, or ``None`` on failure.

    When the broker is unreachable (local development without Redis) the
    failure is logged as a warning and the caller carries on.
    """
    try:
        result = task.delay(*args, **kwargs)
    except Exception as exc:
        logger.warning(f"Failed to queue Celery task {task.name}: {exc}")
        return None
    logger.debug(f"Celery task {task.name} queued with ID: {result.id}")
    return result
