from __future__ import annotations
from flask import Blueprint, request, g
from hoteldesk.decorators.auth import login_required
from hoteldesk.errors import NotFound
from hoteldesk.utils.listing import build_list_payload, request_pagination
from hoteldesk.utils.validation import parse_bool
from hoteldesk.services import notifications as inbox

notifications_bp = Blueprint('notifications', __name__)

DEFAULT_NOTIFICATION_LIMIT = 20


@notifications_bp.get('/notifications')
@login_required
def list_notifications():
    is_read = parse_bool(request.args.get('is_read'), 'is_read')
    limit, offset = request_pagination(DEFAULT_NOTIFICATION_LIMIT)
    rows, total = inbox.list_for_user(g.current_user.id, is_read, limit, offset)
    return build_list_payload([inbox.notification_json(n) for n in rows], total, limit, offset)


@notifications_bp.get('/notifications/unread-count')
@login_required
def unread_count():
    return {'unread': inbox.unread_count(g.current_user.id)}


@notifications_bp.patch('/notifications/read-all')
@login_required
def mark_all_read():
    updated = inbox.mark_all_read(g.current_user.id)
    return {'success': True, 'updated': updated}


@notifications_bp.patch('/notifications/<int:notification_id>/read')
@login_required
def mark_read(notification_id: int):
    n = inbox.mark_read(notification_id, g.current_user.id)
    if not n:
        raise NotFound('Notification not found')
    return inbox.notification_json(n)
