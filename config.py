# config.py
# Конфигурация приложения Flask

import os


class Config:
    # Относительный путь SQLite Flask-SQLAlchemy размещает в папке instance/
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL', 'sqlite:///judging.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SECRET_KEY = os.environ.get('SECRET_KEY', 'your-secret-key-change-me')  # Замени на случайный ключ в продакшене
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # Срок жизни приглашения по умолчанию (в днях)
    INVITATION_EXPIRY_DAYS = int(os.environ.get('INVITATION_EXPIRY_DAYS', 7))
    # Смещение временных значений порядка при перестановке
    REORDER_TEMP_OFFSET = 1000


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SECRET_KEY = 'test'
    LOG_LEVEL = 'DEBUG'
