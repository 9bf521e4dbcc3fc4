from conftest import criteria_of, login, team_named
from extensions import db
from models import Event, Criterion, Team, Score, EventJudge, User
from scoring import upsert_score


# --- Доступ ---

def test_admin_routes_require_login(app):
    assert app.test_client().get('/api/admin/events').status_code == 401


def test_admin_routes_require_admin_role(judge_client):
    response = judge_client.get('/api/admin/events')
    assert response.status_code == 403
    assert response.get_json() == {'error': 'Forbidden'}


def test_login_with_unknown_code(app, users):
    response = app.test_client().post('/login', json={'code': '999999'})
    assert response.status_code == 401


def test_me_and_logout(admin_client):
    assert admin_client.get('/me').get_json()['user']['role'] == 'admin'
    admin_client.post('/logout')
    assert admin_client.get('/me').status_code == 401


# --- События ---

def test_create_event_defaults_to_setup(admin_client):
    response = admin_client.post('/api/admin/events', json={'name': '  Autumn Hack  '})
    assert response.status_code == 201
    event = response.get_json()['event']
    assert event['name'] == 'Autumn Hack'
    assert event['status'] == 'setup'
    assert event['max_team_size'] == 5


def test_create_event_requires_name(admin_client):
    assert admin_client.post('/api/admin/events', json={}).status_code == 400


def test_second_active_event_is_rejected(admin_client, active_event):
    response = admin_client.post('/api/admin/events', json={'name': 'Rival', 'status': 'active'})

    assert response.status_code == 409
    assert response.get_json()['error'] == 'Another event is already active. Please deactivate it first.'
    assert Event.query.filter_by(name='Rival').first() is None


def test_activating_event_when_another_is_active(admin_client, active_event):
    other = Event(name='Next')
    db.session.add(other)
    db.session.commit()

    response = admin_client.put(f'/api/admin/events/{other.id}', json={'name': 'Next', 'status': 'active'})

    assert response.status_code == 409
    assert db.session.get(Event, other.id).status == 'setup'
    assert Event.query.filter_by(status='active').count() == 1


def test_active_event_can_be_updated_in_place(admin_client, active_event):
    response = admin_client.put(f'/api/admin/events/{active_event.id}', json={
        'name': 'Hack Day 2', 'status': 'active', 'registration_open': True,
        'registration_close_at': '2030-01-01T12:00:00Z',
    })

    assert response.status_code == 200
    event = response.get_json()['event']
    assert event['name'] == 'Hack Day 2'
    assert event['registration_close_at'] == '2030-01-01T12:00:00'


def test_deactivate_then_activate_another(admin_client, active_event):
    other = Event(name='Next')
    db.session.add(other)
    db.session.commit()

    admin_client.put(f'/api/admin/events/{active_event.id}', json={'name': 'Hack Day', 'status': 'completed'})
    response = admin_client.put(f'/api/admin/events/{other.id}', json={'name': 'Next', 'status': 'active'})

    assert response.status_code == 200
    assert response.get_json()['event']['status'] == 'active'


def test_invalid_status(admin_client):
    response = admin_client.post('/api/admin/events', json={'name': 'X', 'status': 'archived'})
    assert response.status_code == 400


def test_delete_event_cascades(admin_client, users, active_event):
    alpha = team_named(active_event, 'Alpha')
    upsert_score(users['judge'].id, alpha.id, criteria_of(active_event, 'technical')[0].id, 5)

    response = admin_client.delete(f'/api/admin/events/{active_event.id}')

    assert response.status_code == 200
    assert Team.query.count() == 0
    assert Criterion.query.count() == 0
    assert Score.query.count() == 0
    assert EventJudge.query.count() == 0


def test_delete_missing_event(admin_client):
    response = admin_client.delete('/api/admin/events/404')
    assert response.status_code == 404
    assert response.get_json() == {'error': 'Event not found'}


# --- Критерии ---

def test_list_criteria_with_weight_totals(admin_client, active_event):
    body = admin_client.get(f'/api/admin/criteria?event_id={active_event.id}').get_json()
    assert [c['display_order'] for c in body['criteria']] == [1, 2, 3, 4, 5, 6, 7]
    assert body['weight_totals'] == {'technical': 100, 'business': 100}


def test_create_criterion_appends_to_order(admin_client, active_event):
    response = admin_client.post('/api/admin/criteria', json={
        'event_id': active_event.id, 'name': ' Pitch ', 'min_score': 0, 'max_score': 5,
        'weight': 0, 'category': 'business',
    })

    assert response.status_code == 201
    criterion = response.get_json()['criterion']
    assert criterion['name'] == 'Pitch'
    assert criterion['display_order'] == 8


def test_create_criterion_default_weight(admin_client):
    event = Event(name='Fresh')
    db.session.add(event)
    db.session.commit()

    response = admin_client.post('/api/admin/criteria', json={
        'event_id': event.id, 'name': 'Impact', 'min_score': 1, 'max_score': 10, 'category': 'technical',
    })

    assert response.status_code == 201
    assert response.get_json()['criterion']['weight'] == 20
    assert response.get_json()['criterion']['display_order'] == 1


def test_duplicate_criterion_name(admin_client, active_event):
    response = admin_client.post('/api/admin/criteria', json={
        'event_id': active_event.id, 'name': 'technical 1', 'min_score': 1, 'max_score': 10,
        'weight': 0, 'category': 'technical',
    })
    assert response.status_code == 409
    assert response.get_json()['error'] == 'A criterion with this name already exists'


def test_duplicate_display_order(admin_client, active_event):
    response = admin_client.post('/api/admin/criteria', json={
        'event_id': active_event.id, 'name': 'Clash', 'min_score': 1, 'max_score': 10,
        'weight': 0, 'category': 'technical', 'display_order': 3,
    })
    assert response.status_code == 409
    assert response.get_json()['error'] == 'A criterion with this display order already exists'


def test_criterion_score_range_is_validated(admin_client, active_event):
    response = admin_client.post('/api/admin/criteria', json={
        'event_id': active_event.id, 'name': 'Broken', 'min_score': 10, 'max_score': 10,
        'weight': 0, 'category': 'technical',
    })
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Min score must be less than max score'


def test_create_criterion_requires_event(admin_client):
    response = admin_client.post('/api/admin/criteria', json={'name': 'Orphan', 'min_score': 1, 'max_score': 2})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Event ID is required'


def test_update_criterion_keeps_own_weight_out_of_total(admin_client, active_event):
    criterion = criteria_of(active_event, 'technical')[2]  # вес 30

    response = admin_client.put(f'/api/admin/criteria/{criterion.id}', json={
        'name': 'Innovation', 'min_score': 1, 'max_score': 5, 'weight': 30,
    })

    assert response.status_code == 200
    updated = response.get_json()['criterion']
    assert updated['name'] == 'Innovation'
    assert updated['max_score'] == 5
    assert updated['weight'] == 30


def test_delete_criterion(admin_client, active_event):
    criterion = criteria_of(active_event, 'business')[0]
    assert admin_client.delete(f'/api/admin/criteria/{criterion.id}').status_code == 200
    assert len(criteria_of(active_event, 'business')) == 1


# --- Команды ---

def test_create_team_gets_next_order(admin_client, active_event):
    response = admin_client.post('/api/admin/teams', json={
        'event_id': active_event.id, 'name': 'Delta', 'award_type': 'technical',
        'repo_url': 'https://example.com/delta',
    })

    assert response.status_code == 201
    team = response.get_json()['team']
    assert team['presentation_order'] == 4
    assert team['repo_url'] == 'https://example.com/delta'


def test_duplicate_team_name(admin_client, active_event):
    response = admin_client.post('/api/admin/teams', json={'event_id': active_event.id, 'name': 'Alpha'})
    assert response.status_code == 409
    assert response.get_json()['error'] == 'A team with this name already exists'


def test_invalid_award_type(admin_client, active_event):
    response = admin_client.post('/api/admin/teams', json={
        'event_id': active_event.id, 'name': 'Delta', 'award_type': 'design',
    })
    assert response.status_code == 400


def test_update_team_to_taken_order(admin_client, active_event):
    alpha = team_named(active_event, 'Alpha')
    response = admin_client.put(f'/api/admin/teams/{alpha.id}', json={'name': 'Alpha', 'presentation_order': 2})
    assert response.status_code == 409
    assert response.get_json()['error'] == 'A team with this presentation order already exists'


def test_update_and_delete_team(admin_client, active_event):
    gamma = team_named(active_event, 'Gamma')

    response = admin_client.put(f'/api/admin/teams/{gamma.id}', json={
        'name': 'Gamma Rays', 'award_type': 'business', 'description': 'Solar',
    })
    assert response.status_code == 200
    assert response.get_json()['team']['award_type'] == 'business'

    assert admin_client.delete(f'/api/admin/teams/{gamma.id}').status_code == 200
    assert Team.query.filter_by(event_id=active_event.id).count() == 2


def test_list_teams(admin_client, active_event):
    body = admin_client.get(f'/api/admin/teams?event_id={active_event.id}').get_json()
    assert [t['name'] for t in body['teams']] == ['Alpha', 'Beta', 'Gamma']
    assert body['teams'][0]['members'] == []


# --- Судьи события ---

def test_list_event_judges(admin_client, users, active_event):
    body = admin_client.get(f'/api/admin/event-judges?event_id={active_event.id}').get_json()
    assert [a['judge_id'] for a in body['assigned']] == [users['judge'].id]
    assert {j['id'] for j in body['available']} == {users['judge'].id, users['other_judge'].id}


def test_replace_event_judges(admin_client, users, active_event):
    response = admin_client.post('/api/admin/event-judges', json={
        'event_id': active_event.id, 'judge_ids': [users['other_judge'].id],
    })

    assert response.status_code == 200
    assigned = [a.judge_id for a in EventJudge.query.filter_by(event_id=active_event.id)]
    assert assigned == [users['other_judge'].id]


def test_only_judges_can_be_assigned(admin_client, users, active_event):
    response = admin_client.post('/api/admin/event-judges', json={
        'event_id': active_event.id, 'judge_ids': [users['participant'].id],
    })

    assert response.status_code == 400
    assert EventJudge.query.filter_by(event_id=active_event.id).count() == 1


def test_remove_event_judge(admin_client, users, active_event):
    response = admin_client.delete(
        f'/api/admin/event-judges?event_id={active_event.id}&judge_id={users["judge"].id}'
    )
    assert response.status_code == 200
    assert EventJudge.query.count() == 0

    judge = login(admin_client.application, users['judge'])
    assert judge.get('/api/judge/teams').status_code == 403


# --- Пользователи ---

def test_change_role(admin_client, users):
    response = admin_client.put(f'/api/admin/users/{users["participant"].id}/role', json={'role': 'judge'})
    assert response.status_code == 200
    assert db.session.get(User, users['participant'].id).role == 'judge'


def test_admin_cannot_demote_self(admin_client, users):
    response = admin_client.put(f'/api/admin/users/{users["admin"].id}/role', json={'role': 'judge'})
    assert response.status_code == 409


def test_admin_cannot_delete_self(admin_client, users):
    assert admin_client.delete(f'/api/admin/users/{users["admin"].id}').status_code == 409


def test_delete_user_removes_scores(admin_client, users, active_event):
    alpha = team_named(active_event, 'Alpha')
    upsert_score(users['judge'].id, alpha.id, criteria_of(active_event, 'technical')[0].id, 5)

    response = admin_client.delete(f'/api/admin/users/{users["judge"].id}')

    assert response.status_code == 200
    assert Score.query.count() == 0
    assert EventJudge.query.count() == 0
