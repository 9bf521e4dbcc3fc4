import pytest

from app import create_app
from config import TestConfig
from extensions import db
from models import User, Event, Criterion, Team, EventJudge


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def users(app):
    admin = User(email='admin@example.com', code='000001', role='admin')
    judge = User(email='judge@example.com', code='200001', role='judge')
    other_judge = User(email='judge2@example.com', code='200002', role='judge')
    participant = User(email='p1@example.com', code='100001', role='participant')
    other_participant = User(email='p2@example.com', code='100002', role='participant')
    db.session.add_all([admin, judge, other_judge, participant, other_participant])
    db.session.commit()
    return {
        'admin': admin,
        'judge': judge,
        'other_judge': other_judge,
        'participant': participant,
        'other_participant': other_participant,
    }


def login(app, user):
    client = app.test_client()
    response = client.post('/login', json={'code': user.code})
    assert response.status_code == 200
    return client


@pytest.fixture
def admin_client(app, users):
    return login(app, users['admin'])


@pytest.fixture
def judge_client(app, users):
    return login(app, users['judge'])


@pytest.fixture
def participant_client(app, users):
    return login(app, users['participant'])


def add_criteria(event, weights, category='technical', start_order=1):
    """Имена критериев генерируются по категории и порядку."""
    criteria = []
    for offset, weight in enumerate(weights):
        order = start_order + offset
        criterion = Criterion(event_id=event.id, name=f'{category} {order}', min_score=1, max_score=10,
                              display_order=order, weight=weight, category=category)
        db.session.add(criterion)
        criteria.append(criterion)
    db.session.commit()
    return criteria


@pytest.fixture
def active_event(users):
    """Активное событие: 5 технических критериев (100%), 2 бизнес-критерия, 3 команды, судья назначен."""
    event = Event(name='Hack Day', status='active')
    db.session.add(event)
    db.session.commit()

    add_criteria(event, [25, 20, 30, 15, 10], 'technical', start_order=1)
    add_criteria(event, [60, 40], 'business', start_order=6)

    db.session.add_all([
        Team(event_id=event.id, name='Alpha', presentation_order=1, award_type='technical'),
        Team(event_id=event.id, name='Beta', presentation_order=2, award_type='business'),
        Team(event_id=event.id, name='Gamma', presentation_order=3, award_type='both'),
    ])
    db.session.add(EventJudge(event_id=event.id, judge_id=users['judge'].id))
    db.session.commit()
    return event


def team_named(event, name):
    return Team.query.filter_by(event_id=event.id, name=name).one()


def criteria_of(event, category):
    return Criterion.query.filter_by(event_id=event.id, category=category).order_by(Criterion.display_order).all()
