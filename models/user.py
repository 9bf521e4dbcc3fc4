from extensions import db
from sqlalchemy import CheckConstraint

ROLES = ('admin', 'judge', 'participant')


class User(db.Model):
    __tablename__ = 'users'
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String, unique=True, nullable=False)
    code = db.Column(db.String(6), unique=True, nullable=False)  # код для входа
    role = db.Column(db.String, nullable=False, default='judge')
    created_at = db.Column(db.DateTime, server_default=db.func.current_timestamp())
    updated_at = db.Column(db.DateTime, server_default=db.func.current_timestamp(),
                           onupdate=db.func.current_timestamp())

    scores = db.relationship('Score', back_populates='judge', cascade="all, delete-orphan")
    event_assignments = db.relationship('EventJudge', back_populates='judge', cascade="all, delete-orphan")
    memberships = db.relationship('TeamMember', back_populates='user', cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("role IN ('participant', 'judge', 'admin')", name="check_role"),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'role': self.role,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
