"""Celery tasks for notifications."""

from __future__ import annotations

import logging
from typing import Any

from sqlmodel import Session

from agendas.celery_app import celery_app
from agendas.db import engine
from agendas.services.notifications import build_notifications

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, max_retries=3, default_retry_delay=60)
def deliver_notifications_task(
    self,
    recipient_ids: list[str],
    type: str,
    payload: dict[str, Any],
) -> dict:
    """
    Persist one notification per recipient.

    Args:
        recipient_ids: Users to notify
        type: NotificationType value
        payload: Output of ``build_payload``

    Returns:
        dict: Number of notifications created
    """
    try:
        with Session(engine) as session:
            notifications = build_notifications(recipient_ids, type, payload)
            session.add_all(notifications)
            session.commit()
    except Exception as exc:
        logger.error(
            f"Error delivering {type} notification to {len(recipient_ids)} user(s): {exc}",
            exc_info=True,
        )
        raise self.retry(exc=exc)

    logger.info(f"Delivered {type} notification to {len(notifications)} user(s)")
    return {"success": True, "created": len(notifications)}
