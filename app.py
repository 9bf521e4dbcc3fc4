# app.py
# Основной файл Flask-приложения с использованием паттерна Application Factory

import logging

import click
from flask import Flask, jsonify
from config import Config
from extensions import db, migrate
from errors import register_error_handlers

# Важно импортировать модели здесь, чтобы Alembic (Migrate) мог их видеть
from models import User, Event, Criterion, Team, TeamMember, EventJudge, Score, Invitation  # noqa: F401


def configure_logging(app):
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    if not logging.getLogger().handlers:
        logging.basicConfig(level=level, format='%(asctime)s %(name)s %(levelname)s %(message)s')
    logging.getLogger().setLevel(level)
    app.logger.setLevel(level)


def create_app(config_class=Config):
    # Создаем экземпляр приложения
    app = Flask(__name__)
    app.config.from_object(config_class)
    configure_logging(app)

    # --- Инициализируем расширения С ПРИЛОЖЕНИЕМ ---
    db.init_app(app)
    migrate.init_app(app, db)

    register_error_handlers(app)

    # --- Регистрируем наши Blueprints (маршруты) ---
    from routes.auth import auth_bp
    from routes.admin import admin_bp
    from routes.judge import judge_bp
    from routes.participant import participant_bp
    from routes.invite import invite_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(judge_bp)
    app.register_blueprint(participant_bp)
    app.register_blueprint(invite_bp)

    @app.route('/health')
    def health():
        return jsonify({'status': 'ok'})

    @app.cli.command('seed')
    def seed_command():
        """Заполнить базу демонстрационными данными."""
        from seed_data import seed_demo_data
        event = seed_demo_data()
        click.echo(f"Demo event '{event.name}' created.")

    @app.cli.command('init-db')
    def init_db_command():
        """Создать таблицы без миграций (для локального запуска)."""
        db.create_all()
        click.echo('Database tables created.')

    return app
