"""Service helpers shared across apps."""
from __future__ import annotations

from typing import Any

from core.middleware import get_current_user
from core.models import AuditLog


def create_audit_log(
    actor,
    action: str,
    entity_type: str,
    entity_id: str,
    before: dict[str, Any] | None = None,
    after: dict[str, Any] | None = None,
    ip: str | None = None,
) -> AuditLog:
    """Create and return a new :class:`~core.models.AuditLog` entry.

    When *actor* is None the user captured by ``AuditLogMiddleware`` for the
    current request is used, if any.
    """
    if actor is None:
        actor = get_current_user()
    if actor is not None and not getattr(actor, "is_authenticated", False):
        actor = None
    return AuditLog.objects.create(
        actor=actor,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        before_json=before,
        after_json=after,
        ip_address=ip,
    )
