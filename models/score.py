from extensions import db


class Score(db.Model):
    __tablename__ = 'scores'
    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(db.Integer, db.ForeignKey('events.id', ondelete='CASCADE'), nullable=False)
    judge_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    team_id = db.Column(db.Integer, db.ForeignKey('teams.id', ondelete='CASCADE'), nullable=False)
    criterion_id = db.Column(db.Integer, db.ForeignKey('criteria.id', ondelete='CASCADE'), nullable=False)
    # NULL - допустимое значение: комментарий без оценки или сброшенная оценка
    score = db.Column(db.Integer, nullable=True)
    comment = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, server_default=db.func.current_timestamp())
    updated_at = db.Column(db.DateTime, server_default=db.func.current_timestamp(),
                           onupdate=db.func.current_timestamp())

    judge = db.relationship('User', back_populates='scores')

    __table_args__ = (
        db.UniqueConstraint('judge_id', 'team_id', 'criterion_id', name='uq_scores_judge_team_criterion'),
        db.Index('idx_scores_event_judge_team', 'event_id', 'judge_id', 'team_id'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'event_id': self.event_id,
            'judge_id': self.judge_id,
            'team_id': self.team_id,
            'criterion_id': self.criterion_id,
            'score': self.score,
            'comment': self.comment,
        }
