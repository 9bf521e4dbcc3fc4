# routes/invite.py
# Публичные маршруты приглашений: проверка токена и принятие

from flask import Blueprint, request, jsonify

from invitations import accept_invitation, get_valid_invitation
from routes.auth import log_in

invite_bp = Blueprint('invite', __name__, url_prefix='/api/invite')


@invite_bp.route('/validate', methods=['POST'])
def validate():
    data = request.get_json(silent=True) or {}
    invitation = get_valid_invitation(data.get('token'))
    # Токен и служебные поля наружу не отдаем
    return jsonify({
        'success': True,
        'invitation': {
            'email': invitation.email,
            'role': invitation.role,
            'custom_message': invitation.custom_message,
        },
    })


@invite_bp.route('/accept', methods=['POST'])
def accept():
    data = request.get_json(silent=True) or {}
    user = accept_invitation(data.get('token'))
    log_in(user)
    return jsonify({'success': True, 'user': user.to_dict(), 'code': user.code})
