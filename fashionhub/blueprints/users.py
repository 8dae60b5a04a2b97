"""User management blueprint (Admin only)."""
from flask import Blueprint, request, g, jsonify

from fashionhub.database import get_session
from fashionhub.decorators.permissions import admin_only
from fashionhub.exceptions import InvalidArgumentError
from fashionhub.middleware import require_login
from fashionhub.services import user_service

users_bp = Blueprint('users', __name__, url_prefix='/api/users')


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidArgumentError('Request body must be a JSON object')
    return data


@users_bp.route('', methods=['GET'])
@require_login
@admin_only
def list_users():
    users = user_service.list_users(get_session())
    return jsonify({'users': [user.to_dict() for user in users]})


@users_bp.route('/<int:user_id>/role', methods=['PUT'])
@require_login
def update_role(user_id):
    """{"role": "Manager"}"""
    data = _json_body()
    user = user_service.update_role(user_id, data.get('role'), get_session(), g.user)
    return jsonify({'user': user.to_dict()})


@users_bp.route('/<int:user_id>/status', methods=['PUT'])
@require_login
def update_status(user_id):
    """{"active": false}"""
    data = _json_body()
    user = user_service.update_status(user_id, data.get('active'), get_session(), g.user)
    return jsonify({'user': user.to_dict()})
