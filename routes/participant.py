# routes/participant.py
# Маршруты участника: события с открытой регистрацией и управление своей командой

from flask import Blueprint, request, jsonify, g, current_app
from sqlalchemy import func

from errors import AuthorizationError, ConflictError, NotFoundError, ValidationError, commit_or_raise
from extensions import db, utcnow
from models import Event, Criterion, Team, TeamMember, AWARD_TYPES
from routes.auth import participant_required

participant_bp = Blueprint('participant', __name__, url_prefix='/api/participant')


def open_event_or_404(event_id):
    event = Event.query.filter_by(id=event_id, status='setup').first()
    if event is None:
        raise NotFoundError('Event not found or not accessible')
    return event


def require_registration_open(event, message='Registration is closed for this event'):
    if not event.is_registration_open():
        raise AuthorizationError(message)


def current_membership(event_id):
    return TeamMember.query.filter_by(user_id=g.user.id, event_id=event_id).first()


@participant_bp.route('/events')
@participant_required
def events():
    now = utcnow()
    setup_events = Event.query.filter_by(status='setup').order_by(Event.created_at.desc(), Event.id.desc()).all()
    result = []
    for event in setup_events:
        data = event.to_dict()
        data['is_registration_open'] = event.is_registration_open(now)
        membership = current_membership(event.id)
        data['my_team_id'] = membership.team_id if membership else None
        result.append(data)
    return jsonify({'events': result})


@participant_bp.route('/events/<int:event_id>/criteria')
@participant_required
def event_criteria(event_id):
    open_event_or_404(event_id)
    criteria = Criterion.query.filter_by(event_id=event_id).order_by(Criterion.display_order).all()
    return jsonify({'criteria': [c.to_dict() for c in criteria]})


@participant_bp.route('/events/<int:event_id>/teams')
@participant_required
def event_teams(event_id):
    open_event_or_404(event_id)
    teams = Team.query.filter_by(event_id=event_id).order_by(Team.presentation_order).all()
    return jsonify({'teams': [t.to_dict(with_members=True) for t in teams]})


@participant_bp.route('/teams', methods=['POST'])
@participant_required
def create_team():
    data = request.get_json(silent=True) or {}
    name = (data.get('name') or '').strip()
    event_id = data.get('event_id')
    if not name or not event_id:
        raise ValidationError('Team name and event ID are required')

    award_type = data.get('award_type') or 'both'
    if award_type not in AWARD_TYPES:
        raise ValidationError(f'Award type must be one of: {", ".join(AWARD_TYPES)}')

    event = open_event_or_404(event_id)
    require_registration_open(event)

    if current_membership(event.id):
        raise ConflictError('You are already on a team for this event')
    if Team.query.filter_by(event_id=event.id, name=name).first():
        raise ConflictError('A team with this name already exists for this event')

    max_order = db.session.query(func.max(Team.presentation_order)).filter_by(event_id=event.id).scalar()
    team = Team(
        event_id=event.id,
        name=name,
        description=(data.get('description') or '').strip() or None,
        demo_url=(data.get('demo_url') or '').strip() or None,
        repo_url=(data.get('repo_url') or '').strip() or None,
        award_type=award_type,
        presentation_order=(max_order or 0) + 1,
    )
    # Создатель команды сразу становится ее участником
    team.members.append(TeamMember(user_id=g.user.id, event_id=event.id))
    db.session.add(team)
    commit_or_raise()
    current_app.logger.info("Team '%s' registered for event %s", team.name, event.id)
    return jsonify({'team': team.to_dict(with_members=True)}), 201


@participant_bp.route('/teams/<int:team_id>')
@participant_required
def team_details(team_id):
    team = db.session.get(Team, team_id)
    if team is None:
        raise NotFoundError('Team not found')
    return jsonify({'team': team.to_dict(with_members=True)})


@participant_bp.route('/teams/<int:team_id>/join', methods=['POST'])
@participant_required
def join_team(team_id):
    team = db.session.get(Team, team_id)
    if team is None:
        raise NotFoundError('Team not found')
    event = team.event
    require_registration_open(event)

    if current_membership(event.id):
        raise ConflictError('You are already on a team for this event')
    if len(team.members) >= event.max_team_size:
        raise ConflictError('Team is at maximum capacity')

    db.session.add(TeamMember(team_id=team.id, user_id=g.user.id, event_id=event.id))
    commit_or_raise()
    return jsonify({'message': 'Successfully joined the team'})


@participant_bp.route('/teams/<int:team_id>/leave', methods=['DELETE'])
@participant_required
def leave_team(team_id):
    team = db.session.get(Team, team_id)
    if team is None:
        raise NotFoundError('Team not found')

    membership = TeamMember.query.filter_by(team_id=team.id, user_id=g.user.id).first()
    if membership is None:
        raise AuthorizationError('You are not a member of this team')
    require_registration_open(team.event, 'Registration is closed, cannot leave team')

    # Последний участник уходит - команда удаляется
    if len(team.members) <= 1:
        db.session.delete(team)
        message = 'Left team and team was deleted (no remaining members)'
    else:
        db.session.delete(membership)
        message = 'Successfully left the team'
    db.session.commit()
    return jsonify({'message': message})
