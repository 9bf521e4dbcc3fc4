# routes/auth.py
# Маршруты для авторизации и проверки ролей

from functools import wraps

from flask import Blueprint, request, session, jsonify, g, current_app
from extensions import db
from models import User

auth_bp = Blueprint('auth', __name__)


def role_required(*roles):
    """
    Пускает только вошедшего пользователя с одной из ролей roles
    (без ролей - любого вошедшего). Пользователь кладется в g.user.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = db.session.get(User, session['user_id']) if 'user_id' in session else None
            if user is None:
                session.clear()
                return jsonify({'error': 'Unauthorized'}), 401
            if roles and user.role not in roles:
                return jsonify({'error': 'Forbidden'}), 403
            g.user = user
            return f(*args, **kwargs)
        return decorated_function
    return decorator


login_required = role_required()
admin_required = role_required('admin')
judge_required = role_required('judge')
participant_required = role_required('participant')


def log_in(user):
    # Очищаем старую сессию для безопасности
    session.clear()
    session['user_id'] = user.id
    session['user_role'] = user.role


@auth_bp.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}
    user_code = (data.get('code') or '').strip()
    if not user_code:
        return jsonify({'error': 'Code is required'}), 400

    # Ищем пользователя в базе данных по коду
    user = User.query.filter_by(code=user_code).first()
    if user is None:
        current_app.logger.info('Failed login attempt')
        return jsonify({'error': 'Invalid access code'}), 401

    log_in(user)
    return jsonify({'user': user.to_dict()})


@auth_bp.route('/logout', methods=['POST'])
def logout():
    session.clear()
    return jsonify({'success': True})


@auth_bp.route('/me')
@login_required
def me():
    return jsonify({'user': g.user.to_dict()})
