# extensions.py
# Файл для хранения экземпляров расширений Flask

import sqlite3
from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from sqlalchemy import event
from sqlalchemy.engine import Engine

db = SQLAlchemy()
migrate = Migrate()


@event.listens_for(Engine, 'connect')
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite по умолчанию не проверяет внешние ключи и не выполняет ON DELETE CASCADE
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()


def utcnow():
    """Текущее время в UTC без tzinfo, в том же виде, в каком его хранит база."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
