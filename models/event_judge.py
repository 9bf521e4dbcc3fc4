from extensions import db


class EventJudge(db.Model):
    __tablename__ = 'event_judges'
    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(db.Integer, db.ForeignKey('events.id', ondelete='CASCADE'), nullable=False)
    judge_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    assigned_at = db.Column(db.DateTime, server_default=db.func.current_timestamp())

    judge = db.relationship('User', back_populates='event_assignments')

    __table_args__ = (
        db.UniqueConstraint('event_id', 'judge_id', name='uq_event_judges_event_judge'),
    )
