# models/event.py

from extensions import db, utcnow
from sqlalchemy import CheckConstraint

EVENT_STATUSES = ('setup', 'active', 'completed')


class Event(db.Model):
    __tablename__ = 'events'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String, nullable=False)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(20), nullable=False, default='setup')  # 'setup', 'active', 'completed'

    # Регистрация команд участниками
    registration_open = db.Column(db.Boolean, nullable=False, default=False)
    registration_close_at = db.Column(db.DateTime, nullable=True)
    max_team_size = db.Column(db.Integer, nullable=False, default=5)

    created_at = db.Column(db.DateTime, server_default=db.func.current_timestamp())
    updated_at = db.Column(db.DateTime, server_default=db.func.current_timestamp(),
                           onupdate=db.func.current_timestamp())

    # Каскадное удаление на уровне ORM: команды, критерии, оценки и назначения судей
    teams = db.relationship('Team', backref='event', lazy=True, cascade="all, delete-orphan")
    criteria = db.relationship('Criterion', backref='event', lazy=True, cascade="all, delete-orphan")
    scores = db.relationship('Score', backref='event', lazy=True, cascade="all, delete-orphan")
    judge_assignments = db.relationship('EventJudge', backref='event', lazy=True, cascade="all, delete-orphan")
    memberships = db.relationship('TeamMember', backref='event', lazy=True, cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("status IN ('setup', 'active', 'completed')", name="check_event_status"),
        CheckConstraint("max_team_size >= 1", name="check_max_team_size"),
    )

    def is_registration_open(self, now=None):
        now = now or utcnow()
        if not self.registration_open:
            return False
        return self.registration_close_at is None or self.registration_close_at > now

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'status': self.status,
            'registration_open': self.registration_open,
            'registration_close_at': self.registration_close_at.isoformat() if self.registration_close_at else None,
            'max_team_size': self.max_team_size,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
