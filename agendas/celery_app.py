"""Celery application configuration."""

from __future__ import annotations

import logging

from celery import Celery

from agendas.core.config import settings

logger = logging.getLogger(__name__)

celery_app = Celery(
    "agendas",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["agendas.tasks.notifications"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    broker_connection_retry_on_startup=True,
    # Acknowledge after execution so a lost worker re-queues the delivery
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_default_retry_delay=60,
    result_expires=3600,
    worker_prefetch_multiplier=1,
)

logger.debug(f"Celery app configured with broker: {settings.CELERY_BROKER_URL}")
