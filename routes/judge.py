# routes/judge.py
# Маршруты судьи: активное событие, команды, оценки и прогресс

from flask import Blueprint, request, jsonify, g

from errors import AuthorizationError, ValidationError
from logic import get_active_event, require_active_event, is_judge_assigned, compute_completion
from models import Team, Score
from routes.auth import judge_required
from scoring import upsert_score

judge_bp = Blueprint('judge', __name__, url_prefix='/api/judge')


def require_assignment(event):
    if not is_judge_assigned(event.id, g.user.id):
        raise AuthorizationError('You are not assigned to the current active event', 'NOT_ASSIGNED')


@judge_bp.route('/event')
@judge_required
def active_event():
    event = get_active_event()
    if event is None:
        return jsonify({'event': None, 'assigned': False})
    return jsonify({'event': event.to_dict(), 'assigned': bool(is_judge_assigned(event.id, g.user.id))})


@judge_bp.route('/teams')
@judge_required
def teams():
    event = get_active_event()
    if event is None:
        return jsonify({'teams': []})
    require_assignment(event)

    event_teams = Team.query.filter_by(event_id=event.id).order_by(Team.presentation_order).all()
    return jsonify({'teams': [t.to_dict() for t in event_teams]})


@judge_bp.route('/scores', methods=['GET'])
@judge_required
def my_scores():
    team_id = request.args.get('team_id', type=int)
    if not team_id:
        raise ValidationError('Team ID is required')

    event = require_active_event()
    require_assignment(event)

    scores = Score.query.filter_by(judge_id=g.user.id, team_id=team_id, event_id=event.id).all()
    return jsonify({'scores': [s.to_dict() for s in scores]})


@judge_bp.route('/scores', methods=['POST'])
@judge_required
def save_score():
    data = request.get_json(silent=True)
    if not data:
        raise ValidationError('Request body is empty')

    team_id = data.get('team_id')
    criterion_id = data.get('criterion_id')
    if not team_id or not criterion_id:
        raise ValidationError('Missing required fields')

    score = upsert_score(
        judge_id=g.user.id,
        team_id=team_id,
        criterion_id=criterion_id,
        score=data.get('score'),
        comment=data.get('comment'),
    )
    return jsonify({'success': True, 'score': score.to_dict()})


@judge_bp.route('/completion')
@judge_required
def completion():
    event = get_active_event()
    if event is None:
        return jsonify({'completion': []})
    return jsonify({'completion': compute_completion(event.id, g.user.id)})
