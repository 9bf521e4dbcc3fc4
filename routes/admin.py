# routes/admin.py

from datetime import datetime, timezone

from flask import Blueprint, request, jsonify, g, current_app, Response
from sqlalchemy import func

from errors import (
    ConflictError, NotFoundError, ValidationError, commit_or_raise,
)
from extensions import db
from invitations import create_invitations, revoke_invitation
from logic import set_event_status
from models import (
    User, ROLES, Event, Criterion, Team, AWARD_TYPES, TeamMember, EventJudge, Invitation,
)
from ordering import reorder
from results import event_results, export_judge_scores_csv, export_results_csv
from routes.auth import admin_required
from scoring import validate_weight, category_weight_totals, is_whole_number


admin_bp = Blueprint('admin', __name__, url_prefix='/api/admin')


def get_json_body():
    return request.get_json(silent=True) or {}


def get_or_404(model, object_id, message):
    obj = db.session.get(model, object_id)
    if obj is None:
        raise NotFoundError(message)
    return obj


def required_event_id(value):
    if value in (None, ''):
        raise ValidationError('Event ID is required')
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError('Event ID must be a number')


def parse_datetime(value):
    """ISO-строка -> naive datetime в UTC."""
    if value in (None, ''):
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        raise ValidationError('Invalid date format, expected ISO 8601')
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def clean_text(value):
    return (value or '').strip() or None


# --- БЛОК CRUD для Event ---
def apply_event_fields(event, data):
    name = (data.get('name') or '').strip()
    if not name:
        raise ValidationError('Event name is required')
    event.name = name
    event.description = clean_text(data.get('description'))

    if 'registration_open' in data:
        event.registration_open = bool(data['registration_open'])
    if 'registration_close_at' in data:
        event.registration_close_at = parse_datetime(data['registration_close_at'])
    if 'max_team_size' in data:
        max_team_size = data['max_team_size']
        if not is_whole_number(max_team_size) or max_team_size < 1:
            raise ValidationError('Max team size must be a positive whole number')
        event.max_team_size = max_team_size


@admin_bp.route('/events', methods=['GET'])
@admin_required
def list_events():
    # Новые события первыми
    events = Event.query.order_by(Event.created_at.desc(), Event.id.desc()).all()
    return jsonify({'events': [e.to_dict() for e in events]})


@admin_bp.route('/events', methods=['POST'])
@admin_required
def create_event():
    data = get_json_body()
    event = Event(status='setup')
    apply_event_fields(event, data)
    set_event_status(event, data.get('status') or 'setup')

    db.session.add(event)
    commit_or_raise()
    current_app.logger.info("Event '%s' created with status %s", event.name, event.status)
    return jsonify({'event': event.to_dict()}), 201


@admin_bp.route('/events/<int:event_id>', methods=['PUT'])
@admin_required
def update_event(event_id):
    event = get_or_404(Event, event_id, 'Event not found')
    data = get_json_body()
    try:
        apply_event_fields(event, data)
        set_event_status(event, data.get('status') or event.status)
        commit_or_raise()
    except Exception:
        db.session.rollback()
        raise
    return jsonify({'event': event.to_dict()})


@admin_bp.route('/events/<int:event_id>', methods=['DELETE'])
@admin_required
def delete_event(event_id):
    event = get_or_404(Event, event_id, 'Event not found')
    # Благодаря 'cascade' в моделях, все команды, критерии и оценки
    # будут удалены автоматически вместе с событием.
    db.session.delete(event)
    db.session.commit()
    current_app.logger.info("Event '%s' deleted", event.name)
    return jsonify({'success': True})


# --- БЛОК CRUD для Criterion ---
def validated_score_range(data):
    min_score = data.get('min_score')
    max_score = data.get('max_score')
    if not is_whole_number(min_score) or not is_whole_number(max_score):
        raise ValidationError('Min and max scores must be numbers')
    if min_score >= max_score:
        raise ValidationError('Min score must be less than max score')
    return min_score, max_score


@admin_bp.route('/criteria', methods=['GET'])
@admin_required
def list_criteria():
    query = Criterion.query
    event_id = request.args.get('event_id', type=int)
    if event_id:
        query = query.filter_by(event_id=event_id)
    criteria = query.order_by(Criterion.event_id, Criterion.display_order).all()
    body = {'criteria': [c.to_dict() for c in criteria]}
    if event_id:
        body['weight_totals'] = category_weight_totals(event_id)
    return jsonify(body)


@admin_bp.route('/criteria', methods=['POST'])
@admin_required
def create_criterion():
    data = get_json_body()
    event_id = required_event_id(data.get('event_id'))

    name = (data.get('name') or '').strip()
    if not name:
        raise ValidationError('Criteria name is required')
    min_score, max_score = validated_score_range(data)

    display_order = data.get('display_order')
    if display_order is not None and not is_whole_number(display_order):
        raise ValidationError('Display order must be a number')

    get_or_404(Event, event_id, 'Event not found')

    category = data.get('category')
    weight = data.get('weight', 20)
    validate_weight(event_id, category, weight)

    if display_order is None:
        # Автоматически определяем порядок для нового критерия
        max_order = db.session.query(func.max(Criterion.display_order)).filter_by(event_id=event_id).scalar()
        display_order = (max_order or 0) + 1

    criterion = Criterion(
        event_id=event_id,
        name=name,
        description=clean_text(data.get('description')),
        min_score=min_score,
        max_score=max_score,
        display_order=display_order,
        weight=weight,
        category=category,
    )
    db.session.add(criterion)
    commit_or_raise()
    return jsonify({'criterion': criterion.to_dict()}), 201


@admin_bp.route('/criteria/<int:criterion_id>', methods=['PUT'])
@admin_required
def update_criterion(criterion_id):
    criterion = get_or_404(Criterion, criterion_id, 'Criterion not found')
    data = get_json_body()

    name = (data.get('name') or '').strip()
    if not name:
        raise ValidationError('Criteria name is required')
    min_score, max_score = validated_score_range(data)

    display_order = data.get('display_order', criterion.display_order)
    if not is_whole_number(display_order):
        raise ValidationError('Display order must be a number')

    category = data.get('category', criterion.category)
    weight = data.get('weight', criterion.weight)
    # Старый вес самого критерия в сумму не входит
    validate_weight(criterion.event_id, category, weight, exclude_criterion_id=criterion.id)

    criterion.name = name
    criterion.description = clean_text(data.get('description'))
    criterion.min_score = min_score
    criterion.max_score = max_score
    criterion.display_order = display_order
    criterion.category = category
    criterion.weight = weight
    commit_or_raise()
    return jsonify({'criterion': criterion.to_dict()})


@admin_bp.route('/criteria/<int:criterion_id>', methods=['DELETE'])
@admin_required
def delete_criterion(criterion_id):
    criterion = get_or_404(Criterion, criterion_id, 'Criterion not found')
    # Оценки по критерию удаляются каскадно
    db.session.delete(criterion)
    db.session.commit()
    return jsonify({'success': True})


def parse_order_entries(items, order_key, label):
    if not isinstance(items, list) or not items:
        raise ValidationError(f'{label} orders array is required')
    entries = []
    for item in items:
        if not isinstance(item, dict) or not item.get('id') or not is_whole_number(item.get(order_key)):
            raise ValidationError(f'Each {label.lower()} order must have id and {order_key}')
        entries.append((item['id'], item[order_key]))
    return entries


@admin_bp.route('/criteria/reorder', methods=['POST'])
@admin_required
def reorder_criteria():
    data = get_json_body()
    event_id = required_event_id(data.get('event_id'))
    entries = parse_order_entries(data.get('criteria_orders'), 'display_order', 'Criteria')
    updated = reorder(Criterion, event_id, entries)
    return jsonify({
        'message': 'Criteria orders updated successfully',
        'updated_criteria': [c.to_dict() for c in updated],
    })


# --- БЛОК CRUD для Team ---
def validated_award_type(value):
    award_type = value or 'both'
    if award_type not in AWARD_TYPES:
        raise ValidationError(f'Award type must be one of: {", ".join(AWARD_TYPES)}')
    return award_type


@admin_bp.route('/teams', methods=['GET'])
@admin_required
def list_teams():
    query = Team.query
    event_id = request.args.get('event_id', type=int)
    if event_id:
        query = query.filter_by(event_id=event_id)
    teams = query.order_by(Team.event_id, Team.presentation_order).all()
    return jsonify({'teams': [t.to_dict(with_members=True) for t in teams]})


@admin_bp.route('/teams', methods=['POST'])
@admin_required
def create_team():
    data = get_json_body()
    event_id = required_event_id(data.get('event_id'))

    name = (data.get('name') or '').strip()
    if not name:
        raise ValidationError('Team name is required')
    award_type = validated_award_type(data.get('award_type'))

    get_or_404(Event, event_id, 'Event not found')

    max_order = db.session.query(func.max(Team.presentation_order)).filter_by(event_id=event_id).scalar()
    team = Team(
        event_id=event_id,
        name=name,
        description=clean_text(data.get('description')),
        demo_url=clean_text(data.get('demo_url')),
        repo_url=clean_text(data.get('repo_url')),
        award_type=award_type,
        presentation_order=(max_order or 0) + 1,
    )
    db.session.add(team)
    commit_or_raise()
    return jsonify({'team': team.to_dict()}), 201


@admin_bp.route('/teams/<int:team_id>', methods=['PUT'])
@admin_required
def update_team(team_id):
    team = get_or_404(Team, team_id, 'Team not found')
    data = get_json_body()

    name = (data.get('name') or '').strip()
    if not name:
        raise ValidationError('Team name is required')
    presentation_order = data.get('presentation_order', team.presentation_order)
    if not is_whole_number(presentation_order):
        raise ValidationError('Presentation order must be a number')

    team.name = name
    team.description = clean_text(data.get('description'))
    team.demo_url = clean_text(data.get('demo_url'))
    team.repo_url = clean_text(data.get('repo_url'))
    team.award_type = validated_award_type(data.get('award_type', team.award_type))
    team.presentation_order = presentation_order
    commit_or_raise()
    return jsonify({'team': team.to_dict()})


@admin_bp.route('/teams/<int:team_id>', methods=['DELETE'])
@admin_required
def delete_team(team_id):
    team = get_or_404(Team, team_id, 'Team not found')
    db.session.delete(team)
    db.session.commit()
    return jsonify({'success': True})


@admin_bp.route('/teams/reorder', methods=['POST'])
@admin_required
def reorder_teams():
    data = get_json_body()
    event_id = required_event_id(data.get('event_id'))
    entries = parse_order_entries(data.get('team_orders'), 'presentation_order', 'Team')
    updated = reorder(Team, event_id, entries)
    return jsonify({
        'message': 'Team orders updated successfully',
        'updated_teams': [t.to_dict() for t in updated],
    })


@admin_bp.route('/teams/<int:team_id>/members/<int:user_id>', methods=['DELETE'])
@admin_required
def remove_team_member(team_id, user_id):
    membership = TeamMember.query.filter_by(team_id=team_id, user_id=user_id).first()
    if membership is None:
        raise NotFoundError('Team member not found')
    db.session.delete(membership)
    db.session.commit()
    return jsonify({'success': True})


# --- Назначение судей на событие ---
@admin_bp.route('/event-judges', methods=['GET'])
@admin_required
def list_event_judges():
    event_id = required_event_id(request.args.get('event_id'))
    assigned = EventJudge.query.filter_by(event_id=event_id).join(User).order_by(User.email).all()
    judges = User.query.filter_by(role='judge').order_by(User.email).all()
    return jsonify({
        'assigned': [
            {'judge_id': a.judge_id, 'email': a.judge.email,
             'assigned_at': a.assigned_at.isoformat() if a.assigned_at else None}
            for a in assigned
        ],
        'available': [{'id': j.id, 'email': j.email} for j in judges],
    })


@admin_bp.route('/event-judges', methods=['POST'])
@admin_required
def replace_event_judges():
    data = get_json_body()
    event_id = required_event_id(data.get('event_id'))
    judge_ids = data.get('judge_ids')
    if not isinstance(judge_ids, list):
        raise ValidationError('Event ID and judge IDs are required')
    get_or_404(Event, event_id, 'Event not found')

    judge_ids = list(dict.fromkeys(judge_ids))
    if judge_ids:
        found = User.query.filter(User.id.in_(judge_ids), User.role == 'judge').count()
        if found != len(judge_ids):
            raise ValidationError('All assigned users must be judges')

    # Полная замена списка назначений одной транзакцией
    EventJudge.query.filter_by(event_id=event_id).delete(synchronize_session=False)
    db.session.add_all([EventJudge(event_id=event_id, judge_id=judge_id) for judge_id in judge_ids])
    commit_or_raise()
    current_app.logger.info('Event %s now has %s judge(s)', event_id, len(judge_ids))
    return jsonify({'success': True})


@admin_bp.route('/event-judges', methods=['DELETE'])
@admin_required
def remove_event_judge():
    event_id = required_event_id(request.args.get('event_id'))
    judge_id = request.args.get('judge_id', type=int)
    if not judge_id:
        raise ValidationError('Event ID and judge ID are required')
    EventJudge.query.filter_by(event_id=event_id, judge_id=judge_id).delete(synchronize_session=False)
    db.session.commit()
    return jsonify({'success': True})


# --- БЛОК CRUD для User ---
@admin_bp.route('/users', methods=['GET'])
@admin_required
def list_users():
    users = User.query.order_by(User.created_at.desc(), User.id.desc()).all()
    return jsonify({'users': [u.to_dict() for u in users]})


@admin_bp.route('/users/<int:user_id>/role', methods=['PUT'])
@admin_required
def change_user_role(user_id):
    user = get_or_404(User, user_id, 'User not found')
    role = get_json_body().get('role')
    if role not in ROLES:
        raise ValidationError(f'Role must be one of: {", ".join(ROLES)}')
    if user.id == g.user.id and role != 'admin':
        raise ConflictError('You cannot remove your own admin role')
    user.role = role
    db.session.commit()
    return jsonify({'user': user.to_dict()})


@admin_bp.route('/users/<int:user_id>', methods=['DELETE'])
@admin_required
def delete_user(user_id):
    if user_id == g.user.id:
        raise ConflictError('You cannot delete your own account')
    user = get_or_404(User, user_id, 'User not found')
    db.session.delete(user)
    db.session.commit()
    return jsonify({'success': True})


# --- Приглашения ---
@admin_bp.route('/invitations', methods=['GET'])
@admin_required
def list_invitations():
    invitations = Invitation.query.order_by(Invitation.created_at.desc(), Invitation.id.desc()).all()
    return jsonify({'invitations': [i.to_dict() for i in invitations]})


@admin_bp.route('/invitations', methods=['POST'])
@admin_required
def invite():
    data = get_json_body()
    emails = data.get('emails')
    if emails is None and data.get('email'):
        emails = [data['email']]
    if not isinstance(emails, list):
        raise ValidationError('At least one email is required')

    expires_in_days = data.get('expires_in_days')
    if expires_in_days is not None and (not is_whole_number(expires_in_days) or expires_in_days < 1):
        raise ValidationError('Expiry must be a positive number of days')

    invitations = create_invitations(
        emails,
        data.get('role'),
        created_by=g.user.id,
        custom_message=data.get('custom_message'),
        expires_in_days=expires_in_days,
    )
    return jsonify({'invitations': [i.to_dict() for i in invitations]}), 201


@admin_bp.route('/invitations/<int:invitation_id>', methods=['DELETE'])
@admin_required
def revoke(invitation_id):
    invitation = revoke_invitation(invitation_id)
    return jsonify({'invitation': invitation.to_dict()})


# --- Результаты ---
@admin_bp.route('/results')
@admin_required
def results():
    event_id = required_event_id(request.args.get('event_id'))
    return jsonify(event_results(event_id))


@admin_bp.route('/results/export')
@admin_required
def export_results():
    event_id = required_event_id(request.args.get('event_id'))
    filename, content = export_results_csv(
        event_id,
        score_mode=request.args.get('score_mode', 'total'),
        award_type_filter=request.args.get('award_type_filter', 'all'),
    )
    return Response(
        content,
        mimetype='text/csv',
        headers={'Content-Disposition': f'attachment; filename="{filename}"'},
    )


@admin_bp.route('/results/export-judge-scores')
@admin_required
def export_judge_scores():
    event_id = required_event_id(request.args.get('event_id'))
    filename, content = export_judge_scores_csv(event_id)
    return Response(
        content,
        mimetype='text/csv',
        headers={'Content-Disposition': f'attachment; filename="{filename}"'},
    )
