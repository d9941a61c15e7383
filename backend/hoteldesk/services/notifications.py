from __future__ import annotations
"""Notification recording and inbox operations.

dispatch() turns the intents returned by the lifecycle controller into Notification
rows. It runs after the triggering change is committed and is best-effort: a failure
is logged and swallowed so the repair/user change stands.
"""
from typing import Iterable, List, Optional
from flask import current_app
from sqlalchemy import select, update, func
from hoteldesk import get_db
from hoteldesk.models.notification import Notification
from hoteldesk.models.user import utcnow
from hoteldesk.services.policy import audience_user_ids


def _recipients(intent) -> List[int]:
    if intent.user_id is not None:
        return [intent.user_id]
    if intent.audience:
        return audience_user_ids(intent.audience, exclude=intent.exclude_user_ids)
    return []


def dispatch(intents: Iterable) -> int:
    """Record one Notification per recipient of each intent. Returns rows written (0 on failure)."""
    session = get_db()
    written = 0
    try:
        for intent in intents:
            for user_id in _recipients(intent):
                session.add(Notification(
                    user_id=user_id,
                    title=intent.title,
                    description=intent.description,
                    type=intent.type,
                    related_id=intent.related_id,
                ))
                written += 1
        session.commit()
    except Exception:
        session.rollback()
        current_app.logger.exception('Failed to record notifications')
        return 0
    current_app.logger.debug('Recorded %d notification(s)', written)
    return written


def list_for_user(user_id: int, is_read: Optional[bool], limit: int, offset: int):
    session = get_db()
    q = session.query(Notification).filter(Notification.user_id == user_id)
    if is_read is not None:
        q = q.filter(Notification.is_read.is_(is_read))
    total = q.count()
    rows = q.order_by(Notification.created_at.desc(), Notification.id.desc()).offset(offset).limit(limit).all()
    return rows, total


def unread_count(user_id: int) -> int:
    session = get_db()
    return session.execute(
        select(func.count(Notification.id)).where(Notification.user_id == user_id, Notification.is_read.is_(False))
    ).scalar_one()


def mark_read(notification_id: int, user_id: int) -> Optional[Notification]:
    """Mark one of the user's notifications read; None if it does not exist or belongs to someone else."""
    session = get_db()
    n = session.execute(
        select(Notification).where(Notification.id == notification_id, Notification.user_id == user_id)
    ).scalar_one_or_none()
    if not n:
        return None
    if not n.is_read:
        n.is_read = True
        session.commit()
    return n


def mark_all_read(user_id: int) -> int:
    session = get_db()
    result = session.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        .values(is_read=True, updated_at=utcnow())
        .execution_options(synchronize_session='fetch')
    )
    session.commit()
    return result.rowcount or 0


def notification_json(n: Notification):
    return {
        'id': n.id,
        'user_id': n.user_id,
        'title': n.title,
        'description': n.description,
        'type': n.type,
        'is_read': n.is_read,
        'related_id': n.related_id,
        'created_at': n.created_at.isoformat() if n.created_at else None,
    }
