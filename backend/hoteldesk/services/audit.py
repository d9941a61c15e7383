from __future__ import annotations
from typing import Any, Dict, Optional
from hoteldesk import get_db
from hoteldesk.models.audit import AuditLog
from hoteldesk.services.policy import current_user


def add_audit(action: str, entity: Optional[str] = None, entity_id: Optional[str] = None, meta: Optional[Dict[str, Any]] = None):
    """Persist an audit log entry within the current DB session.

    Parameters:
      action: short action code e.g. REPAIR.CREATE, REPAIR.ACCEPT, USER.ROLE.SET
      entity: optional entity name (Repair, User)
      entity_id: optional primary key string
      meta: additional JSON-safe dictionary (will be shallow copied)
    """
    session = get_db()
    actor = current_user()
    log = AuditLog(
        actor_user_id=actor.id if actor else 0,
        actor_role=actor.role if actor else None,
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        meta=dict(meta or {}),
    )
    session.add(log)
    # No commit here; caller's transaction boundary controls durability.
    return log
