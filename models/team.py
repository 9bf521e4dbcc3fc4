# models/team.py

from extensions import db
from sqlalchemy import CheckConstraint

AWARD_TYPES = ('technical', 'business', 'both')


class Team(db.Model):
    __tablename__ = 'teams'
    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(db.Integer, db.ForeignKey('events.id', ondelete='CASCADE'), nullable=False)
    name = db.Column(db.String, nullable=False)
    description = db.Column(db.Text, nullable=True)
    demo_url = db.Column(db.String, nullable=True)
    repo_url = db.Column(db.String, nullable=True)
    presentation_order = db.Column(db.Integer, nullable=False)
    award_type = db.Column(db.String(20), nullable=False, default='both')
    created_at = db.Column(db.DateTime, server_default=db.func.current_timestamp())
    updated_at = db.Column(db.DateTime, server_default=db.func.current_timestamp(),
                           onupdate=db.func.current_timestamp())

    scores = db.relationship('Score', backref='team', lazy=True, cascade="all, delete-orphan")
    members = db.relationship('TeamMember', backref='team', lazy=True, cascade="all, delete-orphan")

    __table_args__ = (
        db.UniqueConstraint('event_id', 'name', name='uq_teams_event_name'),
        db.UniqueConstraint('event_id', 'presentation_order', name='uq_teams_event_order'),
        CheckConstraint("award_type IN ('technical', 'business', 'both')", name="check_team_award_type"),
    )

    def to_dict(self, with_members=False):
        data = {
            'id': self.id,
            'event_id': self.event_id,
            'name': self.name,
            'description': self.description,
            'demo_url': self.demo_url,
            'repo_url': self.repo_url,
            'presentation_order': self.presentation_order,
            'award_type': self.award_type,
        }
        if with_members:
            data['members'] = [m.to_dict() for m in self.members]
        return data
