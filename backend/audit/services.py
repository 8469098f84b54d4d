"""Non-fatal audit trail writer shared by the lifecycle services."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from django.core.serializers.json import DjangoJSONEncoder
from django.db import DatabaseError, transaction

from .models import SYSTEM_ACTOR, AuditLogEntry

logger = logging.getLogger("audit")


def _normalise_details(details: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if details is None:
        return None
    # Datetimes, Decimals and UUIDs become strings so the JSON column accepts them.
    return json.loads(json.dumps(details, cls=DjangoJSONEncoder))


def record_audit(
    *,
    action: str,
    entity: str,
    entity_id: Any,
    tenant_id: Any = None,
    user=None,
    user_name: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> Optional[AuditLogEntry]:
    """Append an audit entry; failures are logged and never propagate.

    The insert runs in its own savepoint so a failed write leaves the caller's
    transaction usable.
    """

    if user_name is None:
        user_name = user.display_name if user is not None else SYSTEM_ACTOR
    try:
        with transaction.atomic():
            return AuditLogEntry.objects.create(
                action=action,
                entity=entity,
                entity_id=str(entity_id),
                tenant_id=tenant_id,
                user=user,
                user_name=user_name,
                details=_normalise_details(details),
            )
    except (DatabaseError, TypeError, ValueError):
        logger.exception("Failed to write audit entry %s for %s %s", action, entity, entity_id)
        return None
