"""
Sign-in routes.

The identity itself comes from the outside auth provider; these routes
only record it in the session. Admin rights need proof at sign-in: the
shared admin password, or the admin token that `flask promote-admin`
issued to that user.
"""

import secrets
from flask import Blueprint, jsonify, current_app

from squadup.errors import InvalidCredential, ValidationError
from squadup.routes import json_object
from squadup.services.auth import (
    ADMIN_VIA_PASSWORD,
    ADMIN_VIA_TOKEN,
    check_admin_token,
    get_current_caller,
    sign_in,
    sign_out,
)

# Column sizes on profiles
USER_ID_MAX_LENGTH = 64
DISPLAY_NAME_MAX_LENGTH = 120

auth_bp = Blueprint('auth', __name__, url_prefix='/auth')


def _caller_dict(caller):
    return {
        'authenticated': caller.is_authenticated,
        'is_admin': caller.is_admin,
        'user_id': getattr(caller, 'id', None),
        'display_name': getattr(caller, 'display_name', None),
    }


@auth_bp.route('/login', methods=['POST'])
def login():
    """Record the signed-in user. Body: user_id, display_name, admin_password or admin_token (optional)."""
    data = json_object()

    user_id = data.get('user_id')
    if not isinstance(user_id, str) or not user_id.strip():
        raise ValidationError('user_id', 'Required')
    user_id = user_id.strip()
    if len(user_id) > USER_ID_MAX_LENGTH:
        raise ValidationError('user_id', f'At most {USER_ID_MAX_LENGTH} characters')

    display_name = data.get('display_name')
    if display_name is not None and not isinstance(display_name, str):
        raise ValidationError('display_name', 'Must be text')
    display_name = (display_name or '').strip() or None
    if display_name and len(display_name) > DISPLAY_NAME_MAX_LENGTH:
        raise ValidationError('display_name', f'At most {DISPLAY_NAME_MAX_LENGTH} characters')

    admin_via = None
    admin_password = data.get('admin_password')
    admin_token = data.get('admin_token')
    if admin_password:
        if not secrets.compare_digest(str(admin_password).encode('utf-8'),
                                      current_app.config['ADMIN_PASSWORD'].encode('utf-8')):
            current_app.logger.warning(f"Wrong admin password for {user_id}")
            raise InvalidCredential('Invalid password')
        admin_via = ADMIN_VIA_PASSWORD
    elif admin_token:
        if not check_admin_token(user_id, admin_token):
            current_app.logger.warning(f"Rejected admin token for {user_id}")
            raise InvalidCredential('Invalid admin token')
        admin_via = ADMIN_VIA_TOKEN

    caller = sign_in(user_id, display_name=display_name, admin_via=admin_via)
    return jsonify({'success': True, 'user': _caller_dict(caller)})


@auth_bp.route('/logout', methods=['POST'])
def logout():
    sign_out()
    return jsonify({'success': True})


@auth_bp.route('/me')
def me():
    return jsonify({'success': True, 'user': _caller_dict(get_current_caller())})
