# errors.py
# Ошибки предметной области и их перевод в JSON-ответы

from flask import jsonify
from sqlalchemy.exc import IntegrityError

from extensions import db


class JudgingError(Exception):
    """Базовая ошибка: отказ с понятным пользователю сообщением."""
    status_code = 400

    def __init__(self, message):
        super().__init__(message)
        self.message = message

    def to_response(self):
        return jsonify({'error': self.message}), self.status_code


class ValidationError(JudgingError):
    status_code = 400


class ConflictError(JudgingError):
    status_code = 409


class WeightBudgetExceeded(ConflictError):
    def __init__(self, category, total):
        super().__init__(
            f'Total weight for {category} criteria would be {total}% (maximum is 100%)'
        )
        self.category = category
        self.total = total


class NotFoundError(JudgingError):
    status_code = 404


class AuthorizationError(JudgingError):
    status_code = 403

    def __init__(self, message, error_type=None):
        super().__init__(message)
        self.error_type = error_type

    def to_response(self):
        body = {'error': self.message}
        if self.error_type:
            body['error_type'] = self.error_type
        return jsonify(body), self.status_code


class DataIntegrityError(JudgingError):
    status_code = 400


class PartialFailureError(JudgingError):
    status_code = 400


# (имя ограничения в PostgreSQL, столбцы в сообщении SQLite, текст для пользователя)
UNIQUE_VIOLATIONS = (
    ('uq_teams_event_name', 'teams.event_id, teams.name',
     'A team with this name already exists'),
    ('uq_teams_event_order', 'teams.event_id, teams.presentation_order',
     'A team with this presentation order already exists'),
    ('uq_criteria_event_name', 'criteria.event_id, criteria.name',
     'A criterion with this name already exists'),
    ('uq_criteria_event_order', 'criteria.event_id, criteria.display_order',
     'A criterion with this display order already exists'),
    ('uq_scores_judge_team_criterion', 'scores.judge_id, scores.team_id, scores.criterion_id',
     'A score for this judge, team and criterion already exists'),
    ('uq_event_judges_event_judge', 'event_judges.event_id, event_judges.judge_id',
     'This judge is already assigned to the event'),
    ('uq_team_members_user_event', 'team_members.user_id, team_members.event_id',
     'You are already on a team for this event'),
    ('users_email_key', 'users.email',
     'A user with this email already exists'),
    ('users_code_key', 'users.code',
     'A user with this code already exists'),
)

CHECK_VIOLATIONS = (
    ('check_score_range', 'Min score must be less than max score'),
    ('check_weight_range', 'Weight must be between 0 and 100'),
)


def translate_integrity_error(exc):
    """
    Сопоставляет нарушение ограничения базы с ошибкой предметной области.
    Возвращает None, если ограничение неизвестно.
    """
    message = str(exc.orig)
    for constraint, columns, text in UNIQUE_VIOLATIONS:
        if constraint in message or columns in message:
            return ConflictError(text)
    for constraint, text in CHECK_VIOLATIONS:
        if constraint in message:
            return ValidationError(text)
    return None


def commit_or_raise():
    """Коммитит сессию; нарушение ограничения откатывается и превращается в JudgingError."""
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        translated = translate_integrity_error(exc)
        if translated is None:
            raise
        raise translated from exc


def register_error_handlers(app):
    @app.errorhandler(JudgingError)
    def handle_judging_error(error):
        app.logger.warning('Rejected request: %s', error.message)
        return error.to_response()

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(error):
        db.session.rollback()
        translated = translate_integrity_error(error)
        if translated is not None:
            return handle_judging_error(translated)
        app.logger.exception('Unmapped integrity error')
        return jsonify({'error': 'Internal server error'}), 500

    @app.errorhandler(404)
    def handle_not_found(error):
        return jsonify({'error': 'Not found'}), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(error):
        return jsonify({'error': 'Method not allowed'}), 405

    @app.errorhandler(500)
    def handle_internal_error(error):
        db.session.rollback()
        app.logger.exception('Unhandled error')
        return jsonify({'error': 'Internal server error'}), 500
