"""
Проверка весов критериев и сохранение оценок судей.

Веса критериев одной категории внутри события в сумме не превышают 100%.
Оценка судьи по паре (команда, критерий) хранится в единственной строке и
перезаписывается атомарным INSERT ... ON CONFLICT DO UPDATE.
"""

import logging

from sqlalchemy import func
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from errors import (
    AuthorizationError, DataIntegrityError, NotFoundError, ValidationError, WeightBudgetExceeded,
)
from extensions import db
from logic import is_judge_assigned, require_active_event
from models import Criterion, CATEGORIES, Score, Team

logger = logging.getLogger(__name__)

MAX_CATEGORY_WEIGHT = 100


def is_whole_number(value):
    return isinstance(value, int) and not isinstance(value, bool)


def validate_weight(event_id, category, weight, exclude_criterion_id=None):
    """
    Проверяет, что вес нового (или измененного) критерия не выводит сумму
    весов категории за 100%. При редактировании передается exclude_criterion_id,
    чтобы старый вес этого критерия не учитывался дважды.

    Возвращает итоговую сумму весов категории. Ничего не сохраняет.
    """
    if category not in CATEGORIES:
        raise ValidationError(f'Category must be one of: {", ".join(CATEGORIES)}')
    if not is_whole_number(weight) or not 0 <= weight <= MAX_CATEGORY_WEIGHT:
        raise ValidationError('Weight must be a whole number between 0 and 100')

    query = db.session.query(Criterion.weight).filter(
        Criterion.event_id == event_id,
        Criterion.category == category,
    )
    if exclude_criterion_id is not None:
        query = query.filter(Criterion.id != exclude_criterion_id)

    # FOR UPDATE: параллельное добавление критерия в ту же категорию ждет нашего коммита
    existing = sum(w for (w,) in query.with_for_update().all())
    total = existing + weight
    if total > MAX_CATEGORY_WEIGHT:
        logger.warning('Weight budget exceeded for event %s, %s: %s%%', event_id, category, total)
        raise WeightBudgetExceeded(category, total)
    return total


def category_weight_totals(event_id):
    rows = db.session.query(Criterion.category, func.sum(Criterion.weight)).filter(
        Criterion.event_id == event_id
    ).group_by(Criterion.category).all()
    totals = {category: 0 for category in CATEGORIES}
    totals.update({category: int(total or 0) for category, total in rows})
    return totals


def _insert_for_dialect():
    if db.engine.dialect.name == 'postgresql':
        return pg_insert(Score.__table__)
    return sqlite_insert(Score.__table__)


def upsert_score(judge_id, team_id, criterion_id, score, comment=None):
    """
    Проверяет и сохраняет оценку судьи. Проверки выполняются строго по порядку,
    любая из них прерывает операцию:

    1. существует ровно одно активное событие;
    2. судья назначен на это событие;
    3. команда принадлежит активному событию;
    4. критерий принадлежит активному событию;
    5. команда и критерий относятся к одному событию;
    6. оценка (если не NULL) лежит в границах критерия.
    """
    event = require_active_event()

    if not is_judge_assigned(event.id, judge_id):
        raise AuthorizationError('You are not assigned to the current active event', 'NOT_ASSIGNED')

    team = Team.query.filter_by(id=team_id, event_id=event.id).first()
    if team is None:
        raise NotFoundError('Team not found in active event')

    criterion = Criterion.query.filter_by(id=criterion_id, event_id=event.id).first()
    if criterion is None:
        raise NotFoundError('Invalid criterion for active event')

    if team.event_id != criterion.event_id:
        raise DataIntegrityError('Team and criterion must belong to the same event')

    if score is not None:
        if not is_whole_number(score):
            raise ValidationError('Score must be a whole number')
        if score < criterion.min_score or score > criterion.max_score:
            raise ValidationError(
                f'Score must be between {criterion.min_score} and {criterion.max_score}'
            )

    comment = comment or None
    stmt = _insert_for_dialect().values(
        event_id=event.id,
        judge_id=judge_id,
        team_id=team.id,
        criterion_id=criterion.id,
        score=score,
        comment=comment,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=['judge_id', 'team_id', 'criterion_id'],
        set_={
            'event_id': stmt.excluded.event_id,
            'score': stmt.excluded.score,
            'comment': stmt.excluded.comment,
            'updated_at': func.current_timestamp(),
        },
    )

    try:
        db.session.execute(stmt)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    return Score.query.filter_by(
        judge_id=judge_id, team_id=team.id, criterion_id=criterion.id
    ).one()
