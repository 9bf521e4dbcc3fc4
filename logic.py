import logging

from sqlalchemy import func, or_

from errors import ConflictError, NotFoundError, ValidationError
from extensions import db
from models import Event, EVENT_STATUSES, Team, Criterion, Score, EventJudge

logger = logging.getLogger(__name__)


def get_active_event():
    """
    Возвращает единственное активное событие или None.
    Если активных событий несколько, состояние считается некорректным и тоже дает None.
    """
    active = Event.query.filter_by(status='active').limit(2).all()
    if len(active) != 1:
        if len(active) > 1:
            logger.error('More than one active event found')
        return None
    return active[0]


def require_active_event():
    event = get_active_event()
    if event is None:
        raise NotFoundError('No active event')
    return event


def is_judge_assigned(event_id, judge_id):
    return db.session.query(
        EventJudge.query.filter_by(event_id=event_id, judge_id=judge_id).exists()
    ).scalar()


def set_event_status(event, status):
    """
    Меняет статус события. Проверка "только одно активное событие" выполняется
    в той же транзакции, что и сама смена статуса; коммит остается за вызывающим.
    """
    if status not in EVENT_STATUSES:
        raise ValidationError(f'Status must be one of: {", ".join(EVENT_STATUSES)}')

    if status == 'active' and event.status != 'active':
        # Блокируем строки активных событий (PostgreSQL), чтобы сузить окно гонки
        query = Event.query.filter(Event.status == 'active')
        if event.id is not None:
            query = query.filter(Event.id != event.id)
        other_active = query.with_for_update().first()
        if other_active:
            raise ConflictError('Another event is already active. Please deactivate it first.')
        logger.info("Event '%s' is being activated", event.name)

    event.status = status


# --- Подсчет прогресса судейства ---

def applicable_criteria_count(award_type, category_counts):
    if award_type == 'technical':
        return category_counts.get('technical', 0)
    if award_type == 'business':
        return category_counts.get('business', 0)
    return sum(category_counts.values())


def team_completion(teams, category_counts, scored_counts):
    """
    Чистая функция: по типам наград команд, числу критериев в каждой категории
    и числу оценок судьи для каждой команды определяет статус завершенности.

    teams           - последовательность пар (team_id, award_type)
    category_counts - {'technical': n, 'business': m}
    scored_counts   - {team_id: число выставленных оценок}
    """
    completion = []
    for team_id, award_type in teams:
        total = applicable_criteria_count(award_type, category_counts)
        scored = scored_counts.get(team_id, 0)
        completion.append({
            'team_id': team_id,
            'completed': total > 0 and scored == total,
            'partial': 0 < scored < total,
        })
    return completion


def compute_completion(event_id, judge_id):
    """Пересчитывает прогресс судьи по всем командам события при каждом вызове."""
    teams = db.session.query(Team.id, Team.award_type).filter(
        Team.event_id == event_id
    ).order_by(Team.presentation_order).all()

    category_counts = dict(
        db.session.query(Criterion.category, func.count(Criterion.id))
        .filter(Criterion.event_id == event_id)
        .group_by(Criterion.category)
        .all()
    )

    # Учитываем только выставленные (не NULL) оценки по критериям,
    # которые относятся к типу награды команды
    applicable = or_(Team.award_type == 'both', Team.award_type == Criterion.category)
    scored_counts = dict(
        db.session.query(Score.team_id, func.count(Score.id))
        .join(Team, Team.id == Score.team_id)
        .join(Criterion, Criterion.id == Score.criterion_id)
        .filter(
            Score.event_id == event_id,
            Score.judge_id == judge_id,
            Score.score.isnot(None),
            applicable,
        )
        .group_by(Score.team_id)
        .all()
    )

    return team_completion(teams, category_counts, scored_counts)
