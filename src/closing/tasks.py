"""Celery tasks for the team closing."""
from __future__ import annotations

import logging

from celery import shared_task
from django.contrib.auth import get_user_model

from closing.exceptions import InProgressError
from closing.services import recompute_closing

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3, default_retry_delay=30)
def recompute_team_closing(self, *, reference_month: str, actor_id=None):
    """Recompute one month in the background.

    Only a concurrent recompute of the same month is retried; every other
    error propagates to the caller.
    """
    actor = None
    if actor_id is not None:
        actor = get_user_model().objects.filter(pk=actor_id).first()

    try:
        closing = recompute_closing(reference_month, actor=actor)
    except InProgressError as exc:
        logger.info("Team closing %s busy, retrying", reference_month)
        raise self.retry(exc=exc, countdown=5)

    logger.info("Recomputed team closing %s", reference_month)
    return {
        "team_closing_id": str(closing.pk),
        "reference_month": reference_month,
        "status": closing.status,
        "line_count": closing.lines.count(),
    }
