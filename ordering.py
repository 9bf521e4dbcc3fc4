# ordering.py
# Перестановка порядка критериев и команд внутри события

import logging
import random

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from errors import ConflictError, PartialFailureError, ValidationError
from extensions import db
from models import Criterion, Team

logger = logging.getLogger(__name__)

# Модель -> (столбец порядка, название для сообщений)
ORDER_COLUMNS = {
    Criterion: ('display_order', 'display order'),
    Team: ('presentation_order', 'presentation order'),
}


def _validate_entries(entries, label):
    if not entries:
        raise ValidationError(f'At least one {label} entry is required')
    ids = [item_id for item_id, _ in entries]
    orders = [order for _, order in entries]
    for _, order in entries:
        if not isinstance(order, int) or isinstance(order, bool) or order < 1:
            raise ValidationError(f'Each entry must have an id and a positive numeric {label}')
    if len(set(ids)) != len(ids):
        raise ValidationError('Each id may appear only once')
    if len(set(orders)) != len(orders):
        raise ConflictError(f'Duplicate {label} detected')


def temporary_orders(current_max, count, offset):
    """
    Различные временные значения выше current_max: это максимум из
    существующих порядков события и всех запрошенных итоговых значений.
    Случайный шум не дает двум параллельным перестановкам выбрать одни и те же числа.
    """
    base = (current_max or 0) + offset
    return random.sample(range(base, base + count * 10), count)


def reorder(model, event_id, entries):
    """
    Назначает новый порядок строкам одного события за одну транзакцию.

    entries - список пар (id, новый порядок). Сначала все затронутые строки
    уводятся на временные значения (фаза 1), и только после этого получают
    итоговые (фаза 2), поэтому уникальный индекс (event_id, порядок) не
    нарушается ни на одном шаге. Если обновлено меньше строк, чем запрошено,
    транзакция откатывается целиком.
    """
    column_name, label = ORDER_COLUMNS[model]
    column = getattr(model, column_name)
    _validate_entries(entries, label)

    try:
        current_max = db.session.query(func.max(column)).filter(model.event_id == event_id).scalar()
        # Временные значения не должны совпасть ни с одним итоговым
        highest = max([current_max or 0] + [order for _, order in entries])
        temps = temporary_orders(highest, len(entries), current_app.config['REORDER_TEMP_OFFSET'])

        # Фаза 1: освобождаем все спорные позиции
        for (item_id, _), temp in zip(entries, temps):
            model.query.filter(model.id == item_id, model.event_id == event_id).update(
                {column: temp}, synchronize_session=False
            )

        # Фаза 2: итоговые значения
        updated = 0
        for item_id, new_order in entries:
            updated += model.query.filter(model.id == item_id, model.event_id == event_id).update(
                {column: new_order}, synchronize_session=False
            )

        if updated != len(entries):
            db.session.rollback()
            logger.warning('Reorder of %s for event %s touched %s of %s rows',
                           model.__tablename__, event_id, updated, len(entries))
            raise PartialFailureError(f'Some {model.__tablename__} could not be updated')

        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError(f'Duplicate {label} detected') from exc

    logger.info('Reordered %s %s for event %s', len(entries), model.__tablename__, event_id)
    ids = [item_id for item_id, _ in entries]
    return model.query.filter(model.id.in_(ids)).order_by(column).all()
