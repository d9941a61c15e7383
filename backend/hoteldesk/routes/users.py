from __future__ import annotations
from flask import Blueprint, request, g, current_app, abort
from sqlalchemy import select, or_
from sqlalchemy.exc import IntegrityError
from hoteldesk.constants.permissions import ALL_ROLES, ROLE_ADMIN
from hoteldesk.decorators.auth import require_capabilities
from hoteldesk.decorators.audit import audit_log
from hoteldesk.errors import Forbidden, NotFound
from hoteldesk.models.notification import Notification
from hoteldesk.models.user import User
from hoteldesk.services.lifecycle import NotificationIntent
from hoteldesk.services.notifications import dispatch
from hoteldesk.utils.listing import apply_pagination, build_list_payload
from hoteldesk.utils.validation import UserInput, validate_choice, optional_choice
from hoteldesk import get_db

users_bp = Blueprint('users', __name__)


@users_bp.get('/users')
@require_capabilities('can_view_all_users')
def list_users():
    session = get_db()
    q = session.query(User)
    role = optional_choice(request.args.get('role'), ALL_ROLES, 'role')
    search = (request.args.get('search') or '').strip()
    if role:
        q = q.filter(User.role == role)
    if search:
        q = q.filter(or_(User.name.ilike(f'%{search}%'), User.email.ilike(f'%{search}%')))
    paged_q, total, limit, offset = apply_pagination(q.order_by(User.id.asc()))
    rows = paged_q.all()
    return build_list_payload([user_json(u) for u in rows], total, limit, offset)


@users_bp.post('/users')
@require_capabilities('can_add_users')
@audit_log('USER.CREATE', entity='User', entity_id_key='id', meta_keys=['email', 'role'])
def create_user():
    session = get_db()
    data = UserInput.from_json(request.get_json(silent=True))
    if session.execute(select(User).where(User.email == data.email)).scalar_one_or_none():
        abort(409, description='Email already exists')
    user = User(name=data.name, email=data.email, role=data.role, language=data.language,
                first_name=data.first_name, last_name=data.last_name, password_hash='')
    user.set_password(data.password)
    session.add(user)
    try:
        session.commit()
    except IntegrityError:
        # Lost a race with a concurrent create for the same email
        session.rollback()
        abort(409, description='Email already exists')
    current_app.logger.info('User %s (%s) created by user %s', user.id, user.role, g.current_user.id)
    dispatch([NotificationIntent(
        type=Notification.TYPE_USER_CREATED,
        title=f'New user: {user.name}',
        description=f'{g.current_user.name} added {user.role} account {user.name} ({user.email})',
        audience='can_manage_users',
        related=user,
        exclude_user_ids=(g.current_user.id,),
    )])
    return user_json(user), 201


@users_bp.patch('/users/<int:user_id>/role')
@require_capabilities('can_manage_users')
@audit_log('USER.ROLE.SET', entity='User', entity_id_key='id', diff_keys=['role'],
           pre_fetch=lambda a, kw: _prefetch_user(kw.get('user_id')), meta_keys=['role'])
def set_user_role(user_id: int):
    session = get_db()
    data = request.get_json(silent=True) or {}
    role = validate_choice(data.get('role'), ALL_ROLES, 'role')
    user = session.execute(select(User).where(User.id == user_id)).scalar_one_or_none()
    if not user:
        raise NotFound('User not found')
    if user.id == g.current_user.id:
        raise Forbidden('Cannot change your own role')
    # Granting or revoking admin is reserved to callers who may create accounts
    if ROLE_ADMIN in (role, user.role) and not g.capabilities.can_add_users:
        raise Forbidden('Only administrators can grant or revoke the admin role')
    if user.role != role:
        current_app.logger.info('User %s role %s -> %s by user %s', user.id, user.role, role, g.current_user.id)
        user.role = role
    session.commit()
    return user_json(user)


def user_json(u: User):
    return {
        'id': u.id,
        'name': u.name,
        'email': u.email,
        'first_name': u.first_name,
        'last_name': u.last_name,
        'profile_image_url': u.profile_image_url,
        'role': u.role,
        'language': u.language,
        'is_active': u.is_active,
        'created_at': u.created_at.isoformat() if u.created_at else None,
    }


def _prefetch_user(user_id: int):
    u = get_db().execute(select(User).where(User.id == user_id)).scalar_one_or_none()
    return {'role': u.role} if u else {}
