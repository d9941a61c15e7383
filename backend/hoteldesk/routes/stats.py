from __future__ import annotations
from datetime import datetime, timedelta, timezone
from flask import Blueprint, request, g
from sqlalchemy import func
from hoteldesk.decorators.auth import require_capabilities
from hoteldesk.errors import ValidationFailed
from hoteldesk.services.lifecycle import scope_query
from hoteldesk.models.repair import Repair
from hoteldesk import get_db

stats_bp = Blueprint('stats', __name__)

MAX_MONTHS = 24


def _month_starts(now: datetime, months: int):
    """First day (UTC) of each of the last `months` months, oldest first, current month last."""
    year, month = now.year, now.month
    starts = []
    for _ in range(months):
        starts.append(datetime(year, month, 1, tzinfo=timezone.utc))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(starts))


def _gather_summary(now: datetime):
    session = get_db()

    def scoped(q):
        return scope_query(g.capabilities, g.current_user.id, q)

    by_status = {s: 0 for s in Repair.ALL_STATUSES}
    for status, count in scoped(session.query(Repair.status, func.count(Repair.id))).group_by(Repair.status).all():
        by_status[status] = int(count)
    by_category = {c: 0 for c in Repair.CATEGORIES}
    for category, count in scoped(session.query(Repair.category, func.count(Repair.id))).group_by(Repair.category).all():
        by_category[category] = int(count)
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    week_ago = today - timedelta(days=7)
    today_count = scoped(session.query(Repair)).filter(Repair.created_at >= today).count()
    week_count = scoped(session.query(Repair)).filter(Repair.created_at >= week_ago).count()
    return {
        'total': sum(by_status.values()),
        'pending': by_status[Repair.STATUS_PENDING],
        'in_progress': by_status[Repair.STATUS_IN_PROGRESS],
        'completed': by_status[Repair.STATUS_COMPLETED],
        'today_count': today_count,
        'week_count': week_count,
        'by_status': by_status,
        'by_category': by_category,
    }


def _gather_monthly(now: datetime, months: int):
    session = get_db()
    starts = _month_starts(now, months)
    buckets = {s.strftime('%Y-%m'): {'count': 0, 'completed': 0} for s in starts}
    rows = session.query(Repair.created_at, Repair.status).filter(Repair.created_at >= starts[0]).all()
    for created_at, status in rows:
        key = created_at.strftime('%Y-%m')
        if key not in buckets:
            continue
        buckets[key]['count'] += 1
        if status == Repair.STATUS_COMPLETED:
            buckets[key]['completed'] += 1
    return [
        {'month': s.strftime('%Y-%m'), 'label': s.strftime('%b'), **buckets[s.strftime('%Y-%m')]}
        for s in starts
    ]


@stats_bp.get('/stats/summary')
@require_capabilities('can_view_dashboard')
def summary():
    return _gather_summary(datetime.now(timezone.utc))


@stats_bp.get('/stats/monthly')
@require_capabilities('can_view_analytics')
def monthly():
    try:
        months = int(request.args.get('months', 6))
    except ValueError:
        raise ValidationFailed('months must be int')
    months = max(1, min(months, MAX_MONTHS))
    return {'data': _gather_monthly(datetime.now(timezone.utc), months)}
