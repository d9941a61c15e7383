from __future__ import annotations
"""Audit logging decorator for mutating route handlers.

Usage:

@audit_log('REPAIR.CREATE', entity='Repair', entity_id_key='id', meta_keys=['room', 'status'])
def create_repair():
    ... return repair_json(r), 201

@audit_log('REPAIR.ACCEPT', entity='Repair', entity_id_key='id', diff_keys=['status', 'assignee_id'],
           pre_fetch=lambda a, kw: _prefetch_repair(kw.get('repair_id')))
def accept_repair(repair_id): ...

Parameters:
  action: required audit action code
  entity: optional entity label (Repair, User)
  entity_id_key: key in the returned JSON object whose value becomes entity_id.
  entity_id_arg: path parameter used for entity_id when entity_id_key is absent.
  meta_keys: keys projected from the returned JSON into meta.
  meta_builder: callable(data, rv, args, kwargs) -> dict; overrides meta_keys.
  diff_keys / pre_fetch: snapshot taken before the handler runs; changed keys are
    recorded under meta['changes'] as {'before', 'after'}.

Only successful (status < 400) handler results are audited. Audit failures are
logged and never change the response.
"""

from functools import wraps
from typing import Any, Callable, Iterable, Optional, Dict

from flask import current_app
from hoteldesk.services.audit import add_audit
from hoteldesk import get_db


def _extract_payload(rv: Any):
    """Return (data, status) for dict, (dict, status) and (dict, status, headers) returns."""
    if isinstance(rv, tuple) and rv:
        status = rv[1] if len(rv) > 1 and isinstance(rv[1], int) else 200
        return rv[0], status
    return rv, 200


def audit_log(
    action: str,
    *,
    entity: Optional[str] = None,
    entity_id_key: Optional[str] = None,
    entity_id_arg: Optional[str] = None,
    meta_keys: Optional[Iterable[str]] = None,
    meta_builder: Optional[Callable[[dict, Any, tuple, dict], dict]] = None,
    diff_keys: Optional[Iterable[str]] = None,
    pre_fetch: Optional[Callable[[tuple, dict], Dict[str, Any]]] = None,
):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            before_snapshot = None
            if diff_keys and pre_fetch:
                try:
                    before_snapshot = pre_fetch(args, kwargs)
                except Exception:
                    current_app.logger.warning('Audit pre-fetch failed for %s', action, exc_info=True)
            rv = fn(*args, **kwargs)
            try:
                data, status = _extract_payload(rv)
                if status >= 400:
                    return rv
                if not isinstance(data, dict):
                    add_audit(action, entity, None, None)
                    get_db().commit()
                    return rv
                entity_id = None
                if entity_id_key and entity_id_key in data:
                    entity_id = data.get(entity_id_key)
                elif entity_id_arg and entity_id_arg in kwargs:
                    entity_id = kwargs.get(entity_id_arg)
                meta = None
                if meta_builder:
                    meta = meta_builder(data, rv, args, kwargs)
                elif meta_keys:
                    meta = {k: data.get(k) for k in meta_keys if k in data}
                if diff_keys and isinstance(before_snapshot, dict):
                    changes = {}
                    for k in diff_keys:
                        if k in before_snapshot and k in data and before_snapshot.get(k) != data.get(k):
                            changes[k] = {'before': before_snapshot.get(k), 'after': data.get(k)}
                    if changes:
                        meta = dict(meta or {})
                        meta['changes'] = changes
                add_audit(action, entity, entity_id, meta)
                get_db().commit()
            except Exception:
                get_db().rollback()
                current_app.logger.exception('Audit entry for %s not recorded', action)
            return rv
        return wrapper
    return outer
