# models/invitation.py

from extensions import db
from sqlalchemy import CheckConstraint


class Invitation(db.Model):
    __tablename__ = 'invitations'
    id = db.Column(db.Integer, primary_key=True)
    token = db.Column(db.String, unique=True, nullable=False, index=True)
    email = db.Column(db.String, nullable=False, index=True)
    role = db.Column(db.String(20), nullable=False)  # 'judge' или 'participant'
    status = db.Column(db.String(20), nullable=False, default='pending', index=True)
    custom_message = db.Column(db.Text, nullable=True)
    expires_at = db.Column(db.DateTime, nullable=False)
    accepted_at = db.Column(db.DateTime, nullable=True)
    created_by = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    created_at = db.Column(db.DateTime, server_default=db.func.current_timestamp())
    updated_at = db.Column(db.DateTime, server_default=db.func.current_timestamp(),
                           onupdate=db.func.current_timestamp())

    __table_args__ = (
        CheckConstraint("role IN ('judge', 'participant')", name="check_invitation_role"),
        CheckConstraint("status IN ('pending', 'accepted', 'revoked', 'expired')", name="check_invitation_status"),
    )

    def to_dict(self, with_token=True):
        data = {
            'id': self.id,
            'email': self.email,
            'role': self.role,
            'status': self.status,
            'custom_message': self.custom_message,
            'expires_at': self.expires_at.isoformat(),
            'accepted_at': self.accepted_at.isoformat() if self.accepted_at else None,
        }
        if with_token:
            data['token'] = self.token
        return data
