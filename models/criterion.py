# models/criterion.py

from extensions import db
from sqlalchemy import CheckConstraint

CATEGORIES = ('technical', 'business')


class Criterion(db.Model):
    __tablename__ = 'criteria'
    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(db.Integer, db.ForeignKey('events.id', ondelete='CASCADE'), nullable=False)
    name = db.Column(db.String, nullable=False)
    description = db.Column(db.Text, nullable=True)
    min_score = db.Column(db.Integer, nullable=False, default=1)
    max_score = db.Column(db.Integer, nullable=False, default=10)
    display_order = db.Column(db.Integer, nullable=False)
    weight = db.Column(db.Integer, nullable=False, default=20)
    category = db.Column(db.String(20), nullable=False)  # 'technical' или 'business'
    created_at = db.Column(db.DateTime, server_default=db.func.current_timestamp())
    updated_at = db.Column(db.DateTime, server_default=db.func.current_timestamp(),
                           onupdate=db.func.current_timestamp())

    scores = db.relationship('Score', backref='criterion', lazy=True, cascade="all, delete-orphan")

    __table_args__ = (
        db.UniqueConstraint('event_id', 'name', name='uq_criteria_event_name'),
        db.UniqueConstraint('event_id', 'display_order', name='uq_criteria_event_order'),
        CheckConstraint("min_score < max_score", name="check_score_range"),
        CheckConstraint("weight >= 0 AND weight <= 100", name="check_weight_range"),
        CheckConstraint("category IN ('technical', 'business')", name="check_criterion_category"),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'event_id': self.event_id,
            'name': self.name,
            'description': self.description,
            'min_score': self.min_score,
            'max_score': self.max_score,
            'display_order': self.display_order,
            'weight': self.weight,
            'category': self.category,
        }
