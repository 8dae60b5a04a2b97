"""Authentication blueprint - local email/password sessions."""
from flask import Blueprint, request, session, g, jsonify, current_app
from flask_wtf.csrf import generate_csrf

from fashionhub.database import get_session
from fashionhub.decorators.permissions import capabilities_for
from fashionhub.middleware import require_login
from fashionhub.models import ActivityModule
from fashionhub.services.audit_service import log_activity
from fashionhub.services.user_service import authenticate

auth_bp = Blueprint('auth', __name__, url_prefix='/auth')


def _user_payload(user) -> dict:
    data = user.to_dict()
    data['capabilities'] = capabilities_for(user.role)
    return data


@auth_bp.route('/csrf-token', methods=['GET'])
def csrf_token():
    """Token for the X-CSRFToken header on state-changing requests."""
    return jsonify({'csrf_token': generate_csrf()})


@auth_bp.route('/login', methods=['POST'])
def login():
    """Authenticate and start a session."""
    data = request.get_json(silent=True) or {}
    db_session = get_session()

    user = authenticate(db_session, data.get('email'), data.get('password'))

    session.clear()
    session['user_id'] = user.id
    session.permanent = True

    current_app.logger.info(f"User {user.email} logged in")
    return jsonify({'status': 'ok', 'user': _user_payload(user)})


@auth_bp.route('/logout', methods=['POST'])
@require_login
def logout():
    """End the current session."""
    user = g.user
    log_activity(get_session(), user, 'Logged out', ActivityModule.AUTH, user.id, user.email)
    session.clear()
    return jsonify({'status': 'ok'})


@auth_bp.route('/me', methods=['GET'])
@require_login
def me():
    """Current user with the capabilities granted by their role."""
    return jsonify({'user': _user_payload(g.user)})
