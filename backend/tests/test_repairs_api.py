from test_utils_seed import make_user, create_repair
from test_lifecycle_helpers import (jwt_headers, repair_payload, create_repair_and_assert, assert_transition,
                                    exercise_repair_lifecycle)
from hoteldesk import get_db
from hoteldesk.models.notification import Notification
from hoteldesk.models.repair import Repair


def _notifications_for(user_id):
    return get_db().query(Notification).filter(Notification.user_id == user_id).all()


def test_full_lifecycle_scenario(client):
    staff, tech, admin = make_user('staff'), make_user('technician'), make_user('admin')
    rid = exercise_repair_lifecycle(client, jwt_headers(staff), jwt_headers(tech), jwt_headers(admin))

    body = client.get(f'/api/repairs/{rid}', headers=jwt_headers(staff)).get_json()
    assert body['status'] == 'completed'
    assert body['assignee_id'] == tech.id
    # Completed is terminal
    assert_transition(client, f'/api/repairs/{rid}/status', jwt_headers(admin), 409,
                      json={'status': 'pending'}, method='patch')

    types = sorted(n.type for n in _notifications_for(staff.id) if n.related_id == rid)
    assert types == ['assigned', 'completed']
    assert any(n.type == 'new_request' and n.related_id == rid for n in _notifications_for(tech.id))


def test_create_notifies_job_receivers_only(client):
    staff = make_user('staff')
    tech = make_user('technician')
    other_staff = make_user('staff')
    repair = create_repair_and_assert(client, jwt_headers(staff))
    assert [n.type for n in _notifications_for(tech.id) if n.related_id == repair['id']] == ['new_request']
    assert not [n for n in _notifications_for(other_staff.id) if n.related_id == repair['id']]
    assert not [n for n in _notifications_for(staff.id) if n.related_id == repair['id']]


def test_create_validation_and_permissions(client):
    staff, tech = make_user('staff'), make_user('technician')
    resp = client.post('/api/repairs', json=repair_payload(), headers=jwt_headers(tech))
    assert resp.status_code == 403
    resp = client.post('/api/repairs', json=repair_payload(urgency='high', description='Water everywhere'),
                       headers=jwt_headers(staff))
    assert resp.status_code == 400
    assert 'High urgency' in resp.get_json()['error']['detail']
    resp = client.post('/api/repairs', json=repair_payload(category='roof'), headers=jwt_headers(staff))
    assert resp.status_code == 400
    resp = client.post('/api/repairs', json=repair_payload(images=['a'] * 6), headers=jwt_headers(staff))
    assert resp.status_code == 400
    resp = client.post('/api/repairs', json=repair_payload(images=['https://img.example/1.jpg']),
                       headers=jwt_headers(staff))
    assert resp.status_code == 201
    assert resp.get_json()['images'] == ['https://img.example/1.jpg']


def test_requires_authentication(client):
    assert client.get('/api/repairs').status_code == 401
    assert client.post('/api/repairs', json=repair_payload()).status_code == 401


def test_accept_conflicts_and_permissions(client):
    staff, tech, other_tech = make_user('staff'), make_user('technician'), make_user('technician')
    repair = create_repair(staff)
    assert_transition(client, f'/api/repairs/{repair.id}/accept', jwt_headers(staff), 403)
    assert_transition(client, f'/api/repairs/{repair.id}/accept', jwt_headers(tech), 200, 'in_progress')
    resp = assert_transition(client, f'/api/repairs/{repair.id}/accept', jwt_headers(other_tech), 409)
    assert resp.get_json()['error']['title'] == 'Illegal Transition'
    body = client.get(f'/api/repairs/{repair.id}', headers=jwt_headers(tech)).get_json()
    assert body['assignee_id'] == tech.id
    assert client.post('/api/repairs/999999/accept', headers=jwt_headers(tech)).status_code == 404


def test_status_update_rules(client):
    staff, tech = make_user('staff'), make_user('technician')
    repair = create_repair(staff)
    url = f'/api/repairs/{repair.id}/status'
    assert_transition(client, url, jwt_headers(tech), 409, json={'status': 'completed'}, method='patch')
    assert_transition(client, url, jwt_headers(tech), 400, json={'status': 'done'}, method='patch')
    assert_transition(client, url, jwt_headers(staff), 403, json={'status': 'in_progress'}, method='patch')
    resp = assert_transition(client, url, jwt_headers(tech), 200, 'in_progress', json={'status': 'in_progress'},
                             method='patch')
    assert resp.get_json()['assignee_id'] == tech.id
    before = len(_notifications_for(staff.id))
    # Re-sending the current status changes nothing
    assert_transition(client, url, jwt_headers(tech), 200, 'in_progress', json={'status': 'in_progress'},
                      method='patch')
    assert len(_notifications_for(staff.id)) == before
    resp = assert_transition(client, url, jwt_headers(tech), 200, 'pending', json={'status': 'pending'},
                             method='patch')
    assert resp.get_json()['assignee_id'] is None


def test_cancel_returns_job_to_queue(client):
    staff, tech, manager = make_user('staff'), make_user('technician'), make_user('manager')
    repair = create_repair(staff, status='in_progress', assignee=tech)
    url = f'/api/repairs/{repair.id}/cancel'
    assert_transition(client, url, jwt_headers(staff), 403)
    assert_transition(client, url, jwt_headers(tech), 403)
    resp = assert_transition(client, url, jwt_headers(manager), 200, 'pending')
    assert resp.get_json()['assignee_id'] is None
    staff_notes = [n for n in _notifications_for(staff.id) if n.related_id == repair.id]
    assert [n.type for n in staff_notes] == ['status_update']
    assert any(n.related_id == repair.id for n in _notifications_for(tech.id))
    assert not any(n.related_id == repair.id for n in _notifications_for(manager.id))

    done = create_repair(staff, status='completed', assignee=tech)
    assert_transition(client, f'/api/repairs/{done.id}/cancel', jwt_headers(manager), 409)


def test_assign_to_technician(client):
    staff, tech, manager = make_user('staff'), make_user('technician'), make_user('manager')
    repair = create_repair(staff)
    url = f'/api/repairs/{repair.id}/assign'
    assert_transition(client, url, jwt_headers(tech), 403, json={'technician_id': tech.id})
    assert_transition(client, url, jwt_headers(manager), 400, json={'technician_id': 'x'})
    assert_transition(client, url, jwt_headers(manager), 400, json={'technician_id': staff.id})
    assert_transition(client, url, jwt_headers(manager), 404, json={'technician_id': 999999})
    resp = assert_transition(client, url, jwt_headers(manager), 200, 'in_progress', json={'technician_id': tech.id})
    assert resp.get_json()['assignee_id'] == tech.id
    assert [n.type for n in _notifications_for(tech.id) if n.related_id == repair.id] == ['assigned']
    assert [n.type for n in _notifications_for(staff.id) if n.related_id == repair.id] == ['assigned']


def test_view_scope_over_http(client):
    staff, other_staff, tech = make_user('staff'), make_user('staff'), make_user('technician')
    mine = create_repair(staff, room='701')
    theirs = create_repair(other_staff, room='702')

    body = client.get('/api/repairs?limit=100', headers=jwt_headers(staff)).get_json()
    assert {r['requester_id'] for r in body['data']} == {staff.id}
    assert mine.id in [r['id'] for r in body['data']]

    resp = client.get(f'/api/repairs/{theirs.id}', headers=jwt_headers(staff))
    assert resp.status_code == 403
    assert resp.get_json()['error']['detail'] == 'Access denied'
    assert client.get(f'/api/repairs/{theirs.id}', headers=jwt_headers(tech)).status_code == 200
    assert client.get('/api/repairs/999999', headers=jwt_headers(tech)).status_code == 404


def test_list_filters_sort_and_etag(client):
    staff = make_user('staff')
    headers = jwt_headers(staff)
    create_repair(staff, room='801', category='furniture', urgency='low', description='Wobbly desk chair leg')
    create_repair(staff, room='802', category='furniture', urgency='high', description='Wardrobe door fell off')
    create_repair(staff, room='803', category='plumbing', urgency='low', description='Shower head clogged')

    body = client.get('/api/repairs?category=furniture&sort=room', headers=headers).get_json()
    assert [r['room'] for r in body['data']] == ['801', '802']
    body = client.get('/api/repairs?category=furniture&sort=-room', headers=headers).get_json()
    assert [r['room'] for r in body['data']] == ['802', '801']
    body = client.get('/api/repairs?search=WARDROBE', headers=headers).get_json()
    assert [r['room'] for r in body['data']] == ['802']
    body = client.get('/api/repairs?urgency=low&limit=1', headers=headers).get_json()
    assert body['pagination'] == {'total': 2, 'limit': 1, 'offset': 0, 'returned': 1}

    assert client.get('/api/repairs?sort=password', headers=headers).status_code == 400
    assert client.get('/api/repairs?urgency=extreme', headers=headers).status_code == 400

    first = client.get('/api/repairs', headers=headers)
    etag = first.headers['ETag']
    again = client.get('/api/repairs', headers={**headers, 'If-None-Match': f'"{etag}"'})
    assert again.status_code == 304
    create_repair(staff, room='804')
    changed = client.get('/api/repairs', headers={**headers, 'If-None-Match': etag})
    assert changed.status_code == 200
    assert changed.headers['ETag'] != etag


def test_notification_failure_keeps_repair_change(client, monkeypatch):
    staff, tech = make_user('staff'), make_user('technician')
    repair = create_repair(staff)

    import hoteldesk.services.notifications as inbox

    def broken_recipients(intent):
        raise RuntimeError('notification store unavailable')

    monkeypatch.setattr(inbox, '_recipients', broken_recipients)
    assert_transition(client, f'/api/repairs/{repair.id}/accept', jwt_headers(tech), 200, 'in_progress')
    monkeypatch.undo()

    session = get_db()
    session.expire_all()
    stored = session.get(Repair, repair.id)
    assert stored.status == 'in_progress'
    assert stored.assignee_id == tech.id
    assert not session.query(Notification).filter(Notification.related_id == repair.id,
                                                  Notification.user_id == staff.id).all()
