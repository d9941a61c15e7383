from __future__ import annotations
from typing import Iterable, Optional, Tuple
from flask import request, make_response
from sqlalchemy.orm import Query
from hoteldesk.config.pagination import normalize_pagination, DEFAULT_LIMIT
from hoteldesk.errors import ValidationFailed
import hashlib
from datetime import datetime, timezone
from email.utils import format_datetime


def canonicalize_timestamp(dt: datetime) -> datetime:
    """Return UTC tz-aware timestamp truncated to whole seconds."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).replace(microsecond=0)


def request_pagination(default_limit: int = DEFAULT_LIMIT) -> Tuple[int, int]:
    try:
        return normalize_pagination(request.args.get('limit'), request.args.get('offset'), default_limit)
    except ValueError as e:
        raise ValidationFailed(str(e))


def apply_pagination(q: Query, default_limit: int = DEFAULT_LIMIT) -> Tuple[Query, int, int, int]:
    limit, offset = request_pagination(default_limit)
    total = q.count()
    return q.offset(offset).limit(limit), total, limit, offset


def compute_etag(ids: Iterable[int], total: int, limit: int, offset: int, latest_ts: Optional[str] = '') -> str:
    seed = f"{list(ids)}|{total}|{limit}|{offset}|{latest_ts or ''}"
    return hashlib.sha256(seed.encode()).hexdigest()[:32]


def build_list_payload(rows: list, total: int, limit: int, offset: int):
    return {
        'data': rows,
        'pagination': {
            'total': total,
            'limit': limit,
            'offset': offset,
            'returned': len(rows)
        }
    }


def make_cached_list_response(rows: list, total: int, limit: int, offset: int, latest_ts: Optional[datetime] = None):
    """JSON list response carrying an ETag (and Last-Modified when latest_ts is known).

    Returns a 304 with empty body when If-None-Match matches the computed tag.
    """
    latest_c = canonicalize_timestamp(latest_ts) if isinstance(latest_ts, datetime) else None
    latest_iso = latest_c.isoformat().replace('+00:00', 'Z') if latest_c else ''
    etag = compute_etag([r.get('id') for r in rows], total, limit, offset, latest_iso)
    inm = request.headers.get('If-None-Match')
    if inm and inm.strip('"') == etag:
        resp = make_response('', 304)
    else:
        resp = make_response(build_list_payload(rows, total, limit, offset))
    resp.headers['ETag'] = etag
    if latest_c:
        resp.headers['Last-Modified'] = format_datetime(latest_c, usegmt=True)
    return resp
