from __future__ import annotations
from flask import Blueprint, request, g, current_app
from sqlalchemy import select, or_
from hoteldesk.decorators.auth import require_capabilities, login_required
from hoteldesk.decorators.audit import audit_log
from hoteldesk.errors import Forbidden, NotFound, ValidationFailed
from hoteldesk.utils.listing import make_cached_list_response, apply_pagination
from hoteldesk.utils.sorting import apply_multi_sort
from hoteldesk.utils.validation import RepairInput, validate_choice, optional_choice
from hoteldesk.services import lifecycle
from hoteldesk.services.notifications import dispatch
from hoteldesk.services.policy import resolve
from hoteldesk import get_db
from hoteldesk.models.repair import Repair
from hoteldesk.models.user import User

repairs_bp = Blueprint('repairs', __name__)

SORTABLE = {
    'id': Repair.id,
    'room': Repair.room,
    'status': Repair.status,
    'urgency': Repair.urgency,
    'category': Repair.category,
    'created_at': Repair.created_at,
    'updated_at': Repair.updated_at,
}


@repairs_bp.get('/repairs')
@login_required
def list_repairs():
    session = get_db()
    status = optional_choice(request.args.get('status'), Repair.ALL_STATUSES, 'status')
    category = optional_choice(request.args.get('category'), Repair.CATEGORIES, 'category')
    urgency = optional_choice(request.args.get('urgency'), Repair.URGENCIES, 'urgency')
    search = (request.args.get('search') or '').strip()
    q = lifecycle.scope_query(g.capabilities, g.current_user.id, session.query(Repair))
    if status:
        q = q.filter(Repair.status == status)
    if category:
        q = q.filter(Repair.category == category)
    if urgency:
        q = q.filter(Repair.urgency == urgency)
    if search:
        q = q.filter(or_(Repair.room.ilike(f'%{search}%'), Repair.description.ilike(f'%{search}%')))
    q = apply_multi_sort(q, request.args.get('sort'), SORTABLE, Repair.id.desc())
    paged_q, total, limit, offset = apply_pagination(q)
    rows = paged_q.all()
    latest_ts = max((r.updated_at for r in rows if r.updated_at), default=None)
    return make_cached_list_response([repair_json(r) for r in rows], total, limit, offset, latest_ts)


@repairs_bp.get('/repairs/<int:repair_id>')
@login_required
def get_repair(repair_id: int):
    repair = _load_repair(repair_id)
    if not lifecycle.can_view(g.capabilities, g.current_user.id, repair):
        raise Forbidden('Access denied')
    return repair_json(repair)


@repairs_bp.post('/repairs')
@require_capabilities('can_create_repairs')
@audit_log('REPAIR.CREATE', entity='Repair', entity_id_key='id', meta_keys=['room', 'category', 'urgency', 'status'])
def create_repair():
    session = get_db()
    data = RepairInput.from_json(request.get_json(silent=True))
    result = lifecycle.create(g.capabilities, g.current_user.id, data)
    session.add(result.repair)
    session.commit()
    current_app.logger.info('Repair %s created by user %s (%s, %s)', result.repair.id, g.current_user.id,
                            result.repair.category, result.repair.urgency)
    dispatch(result.intents)
    return repair_json(result.repair), 201


@repairs_bp.patch('/repairs/<int:repair_id>/status')
@require_capabilities('can_update_repair_status')
@audit_log('REPAIR.STATUS', entity='Repair', entity_id_key='id', diff_keys=['status', 'assignee_id'],
           pre_fetch=lambda a, kw: _prefetch_repair(kw.get('repair_id')), meta_keys=['status'])
def update_repair_status(repair_id: int):
    data = request.get_json(silent=True) or {}
    new_status = validate_choice(data.get('status'), Repair.ALL_STATUSES, 'status')
    repair = _load_repair(repair_id, for_update=True)
    result = lifecycle.update_status(g.capabilities, repair, new_status, g.current_user.id)
    return _persist(result, 'status -> ' + new_status)


@repairs_bp.post('/repairs/<int:repair_id>/accept')
@require_capabilities('can_accept_jobs')
@audit_log('REPAIR.ACCEPT', entity='Repair', entity_id_key='id', diff_keys=['status', 'assignee_id'],
           pre_fetch=lambda a, kw: _prefetch_repair(kw.get('repair_id')), meta_keys=['status', 'assignee_id'])
def accept_repair(repair_id: int):
    repair = _load_repair(repair_id, for_update=True)
    result = lifecycle.accept(g.capabilities, repair, g.current_user.id)
    return _persist(result, 'accepted')


@repairs_bp.post('/repairs/<int:repair_id>/cancel')
@require_capabilities('can_cancel_jobs')
@audit_log('REPAIR.CANCEL', entity='Repair', entity_id_key='id', diff_keys=['status', 'assignee_id'],
           pre_fetch=lambda a, kw: _prefetch_repair(kw.get('repair_id')), meta_keys=['status'])
def cancel_repair(repair_id: int):
    repair = _load_repair(repair_id, for_update=True)
    result = lifecycle.cancel(g.capabilities, repair, g.current_user.id)
    return _persist(result, 'cancelled')


@repairs_bp.post('/repairs/<int:repair_id>/assign')
@require_capabilities('can_assign_repairs')
@audit_log('REPAIR.ASSIGN', entity='Repair', entity_id_key='id', diff_keys=['status', 'assignee_id'],
           pre_fetch=lambda a, kw: _prefetch_repair(kw.get('repair_id')), meta_keys=['status', 'assignee_id'])
def assign_repair(repair_id: int):
    session = get_db()
    data = request.get_json(silent=True) or {}
    technician_id = data.get('technician_id')
    if not isinstance(technician_id, int) or isinstance(technician_id, bool):
        raise ValidationFailed('technician_id must be int')
    technician = session.execute(select(User).where(User.id == technician_id)).scalar_one_or_none()
    if not technician or not technician.is_active:
        raise NotFound('Technician not found')
    if not resolve(technician.role).can_accept_jobs:
        raise ValidationFailed('Assignee cannot accept jobs')
    repair = _load_repair(repair_id, for_update=True)
    result = lifecycle.assign(g.capabilities, repair, technician.id)
    return _persist(result, f'assigned to user {technician.id}')


def _persist(result: lifecycle.TransitionResult, what: str):
    get_db().commit()
    if result.changed:
        current_app.logger.info('Repair %s %s by user %s', result.repair.id, what, g.current_user.id)
        dispatch(result.intents)
    return repair_json(result.repair)


def _load_repair(repair_id: int, for_update: bool = False) -> Repair:
    stmt = select(Repair).where(Repair.id == repair_id)
    if for_update:
        stmt = stmt.with_for_update()
    repair = get_db().execute(stmt).scalar_one_or_none()
    if not repair:
        raise NotFound('Repair not found')
    return repair


def repair_json(r: Repair):
    return {
        'id': r.id,
        'room': r.room,
        'category': r.category,
        'urgency': r.urgency,
        'description': r.description,
        'images': list(r.images or []),
        'status': r.status,
        'requester_id': r.requester_id,
        'assignee_id': r.assignee_id,
        'created_at': r.created_at.isoformat() if r.created_at else None,
        'updated_at': r.updated_at.isoformat() if r.updated_at else None,
    }


def _prefetch_repair(repair_id: int):
    r = get_db().execute(select(Repair).where(Repair.id == repair_id)).scalar_one_or_none()
    if not r:
        return {}
    return {'status': r.status, 'assignee_id': r.assignee_id}
