import logging
import secrets
import uuid
from datetime import timedelta

from flask import current_app

from errors import ConflictError, NotFoundError, ValidationError
from extensions import db, utcnow
from models import Invitation, User

logger = logging.getLogger(__name__)

INVITATION_ROLES = ('judge', 'participant')


def generate_invitation_token():
    return str(uuid.uuid4())


def generate_login_code():
    """Шестизначный код входа, которого еще нет в базе."""
    while True:
        code = f'{secrets.randbelow(10**6):06d}'
        if not User.query.filter_by(code=code).first():
            return code


def check_invitation(invitation, now=None):
    """
    Проверяет, можно ли воспользоваться приглашением.
    Возвращает пару (valid, reason).
    """
    if invitation.status == 'revoked':
        return False, 'This invitation has been revoked'
    if invitation.status == 'accepted':
        return False, 'This invitation has already been used'
    now = now or utcnow()
    if invitation.status == 'expired' or now > invitation.expires_at:
        return False, 'This invitation has expired'
    return True, None


def _mark_expired(invitation):
    if invitation.status == 'pending':
        invitation.status = 'expired'
        db.session.commit()
        logger.info('Invitation %s for %s marked as expired', invitation.id, invitation.email)


def create_invitations(emails, role, created_by, custom_message=None, expires_in_days=None):
    """Создает приглашения пачкой; у каждого адреса свой токен, срок действия общий."""
    if role not in INVITATION_ROLES:
        raise ValidationError(f'Role must be one of: {", ".join(INVITATION_ROLES)}')

    cleaned = []
    for email in emails:
        email = (email or '').strip().lower()
        if '@' not in email:
            raise ValidationError(f'Invalid email address: {email or "(empty)"}')
        if email not in cleaned:
            cleaned.append(email)
    if not cleaned:
        raise ValidationError('At least one email is required')

    pending = Invitation.query.filter(
        Invitation.email.in_(cleaned), Invitation.status == 'pending'
    ).all()
    if pending:
        taken = ', '.join(sorted(i.email for i in pending))
        raise ConflictError(f'A pending invitation already exists for: {taken}')

    days = expires_in_days or current_app.config['INVITATION_EXPIRY_DAYS']
    expires_at = utcnow() + timedelta(days=days)

    invitations = [
        Invitation(
            token=generate_invitation_token(),
            email=email,
            role=role,
            custom_message=(custom_message or '').strip() or None,
            expires_at=expires_at,
            created_by=created_by,
        )
        for email in cleaned
    ]
    db.session.add_all(invitations)
    db.session.commit()
    logger.info('Created %s %s invitation(s)', len(invitations), role)
    return invitations


def get_valid_invitation(token):
    if not token:
        raise ValidationError('Token is required')
    invitation = Invitation.query.filter_by(token=token).first()
    if invitation is None:
        raise NotFoundError('Invalid invitation')

    valid, reason = check_invitation(invitation)
    if not valid:
        if reason == 'This invitation has expired':
            _mark_expired(invitation)
        raise ValidationError(reason)
    return invitation


def accept_invitation(token):
    """
    Принимает приглашение: создает пользователя (или меняет роль существующему)
    и помечает приглашение использованным. Возвращает пользователя.
    """
    invitation = get_valid_invitation(token)

    user = User.query.filter_by(email=invitation.email).first()
    if user is None:
        user = User(email=invitation.email, code=generate_login_code(), role=invitation.role)
        db.session.add(user)
    elif user.role != 'admin':
        user.role = invitation.role

    invitation.status = 'accepted'
    invitation.accepted_at = utcnow()
    db.session.commit()
    logger.info('Invitation %s accepted by %s', invitation.id, user.email)
    return user


def revoke_invitation(invitation_id):
    invitation = db.session.get(Invitation, invitation_id)
    if invitation is None:
        raise NotFoundError('Invitation not found')
    if invitation.status == 'accepted':
        raise ConflictError('An accepted invitation cannot be revoked')
    invitation.status = 'revoked'
    db.session.commit()
    return invitation
