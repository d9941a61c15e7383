"""Reusable test helpers for the repair lifecycle endpoints.

Patterns unified:
 - Auth header creation by minting a JWT directly (bypasses /auth/login).
 - Creation + transition sequencing with assertion helpers.
"""
from __future__ import annotations
from typing import Dict, Optional
from flask_jwt_extended import create_access_token


def jwt_headers(user) -> Dict[str, str]:
    token = create_access_token(identity=str(user.id), additional_claims={'role': user.role})
    return {'Authorization': f'Bearer {token}'}


def repair_payload(**overrides):
    payload = {
        'room': '203',
        'category': 'plumbing',
        'urgency': 'medium',
        'description': 'Leaking faucet under sink in bathroom',
    }
    payload.update(overrides)
    return payload


def create_repair_and_assert(client, headers: Dict[str, str], payload: Optional[dict] = None):
    resp = client.post('/api/repairs', json=payload or repair_payload(), headers=headers)
    assert resp.status_code == 201, resp.get_json()
    body = resp.get_json()
    assert body['status'] == 'pending'
    assert body['assignee_id'] is None
    return body


def assert_transition(client, url: str, headers: Dict[str, str], expected_status: int,
                      expected_body_value: str = None, json: dict = None, method: str = 'post'):
    resp = getattr(client, method)(url, headers=headers, json=json)
    assert resp.status_code == expected_status, resp.get_json()
    if expected_status < 400 and expected_body_value is not None:
        assert resp.get_json()['status'] == expected_body_value
    return resp


def exercise_repair_lifecycle(client, staff_headers, tech_headers, admin_headers):
    repair = create_repair_and_assert(client, staff_headers)
    rid = repair['id']
    assert_transition(client, f'/api/repairs/{rid}/accept', tech_headers, 200, 'in_progress')
    assert_transition(client, f'/api/repairs/{rid}/status', admin_headers, 200, 'completed',
                      json={'status': 'completed'}, method='patch')
    return rid


__all__ = ['jwt_headers', 'repair_payload', 'create_repair_and_assert', 'assert_transition', 'exercise_repair_lifecycle']
