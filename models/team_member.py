# models/team_member.py

from extensions import db


class TeamMember(db.Model):
    __tablename__ = 'team_members'
    id = db.Column(db.Integer, primary_key=True)
    team_id = db.Column(db.Integer, db.ForeignKey('teams.id', ondelete='CASCADE'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    # Денормализовано, чтобы участник состоял максимум в одной команде на событие
    event_id = db.Column(db.Integer, db.ForeignKey('events.id', ondelete='CASCADE'), nullable=False)
    joined_at = db.Column(db.DateTime, server_default=db.func.current_timestamp())

    user = db.relationship('User', back_populates='memberships')

    __table_args__ = (
        db.UniqueConstraint('user_id', 'event_id', name='uq_team_members_user_event'),
    )

    def to_dict(self):
        return {
            'user_id': self.user_id,
            'email': self.user.email if self.user else None,
        }
