from __future__ import annotations
from typing import Iterable, Optional, Tuple
from flask import g
from flask_jwt_extended import get_jwt_identity
from sqlalchemy import select
from hoteldesk.constants.permissions import ALL_ROLES, CAPABILITY_NAMES, ROLE_CAPABILITIES, CapabilitySet
from hoteldesk.errors import Forbidden, InvalidRole
from hoteldesk import get_db


def resolve(role: str) -> CapabilitySet:
    """Return the capability set for role; unknown roles raise InvalidRole."""
    try:
        return ROLE_CAPABILITIES[role]
    except (KeyError, TypeError):
        raise InvalidRole(role) from None


def roles_with(capability: str) -> Tuple[str, ...]:
    """Roles whose capability set grants capability, in declaration order."""
    if capability not in CAPABILITY_NAMES:
        raise ValueError(f'Unknown capability {capability}')
    return tuple(r for r in ALL_ROLES if getattr(ROLE_CAPABILITIES[r], capability))


def has_capabilities(capabilities: CapabilitySet, *names: str) -> bool:
    return all(getattr(capabilities, n) for n in names)


def assert_capabilities(capabilities: CapabilitySet, *names: str):
    if not has_capabilities(capabilities, *names):
        raise Forbidden('Missing capability: ' + ', '.join(n for n in names if not getattr(capabilities, n)))


def load_current_user():
    """Resolve the JWT identity to an active user record (None when unknown/inactive)."""
    from hoteldesk.models.user import User
    ident = get_jwt_identity()
    if ident is None:
        return None
    try:
        user_id = int(ident)
    except (TypeError, ValueError):
        return None
    user = get_db().execute(select(User).where(User.id == user_id)).scalar_one_or_none()
    if not user or not user.is_active:
        return None
    return user


def current_user():
    return g.get('current_user')


def current_capabilities() -> Optional[CapabilitySet]:
    return g.get('capabilities')


def current_user_id() -> Optional[int]:
    user = current_user()
    return user.id if user else None


def audience_user_ids(capability: str, exclude: Iterable[int] = ()) -> list[int]:
    """Ids of active users whose role grants capability."""
    from hoteldesk.models.user import User
    excluded = set(exclude)
    rows = get_db().execute(
        select(User.id).where(User.role.in_(roles_with(capability)), User.is_active.is_(True)).order_by(User.id)
    ).scalars().all()
    return [uid for uid in rows if uid not in excluded]
