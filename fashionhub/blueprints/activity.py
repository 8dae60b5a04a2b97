"""Activity log blueprint."""
from flask import Blueprint, request, jsonify

from fashionhub.database import get_session
from fashionhub.decorators.permissions import require_permission, VIEW_ACTIVITY
from fashionhub.middleware import require_login
from fashionhub.services.audit_service import get_activity_logs
from fashionhub.utils.formatters import parse_date_filter
from fashionhub.utils.pagination import page_args, page_meta

activity_bp = Blueprint('activity', __name__, url_prefix='/api/activity-logs')


@activity_bp.route('', methods=['GET'])
@require_login
@require_permission(VIEW_ACTIVITY)
def list_activity():
    """Activity entries, newest first. Filters: user_id, module, start_date, end_date."""
    page, limit, offset = page_args()

    logs, total = get_activity_logs(
        get_session(),
        limit=limit,
        offset=offset,
        actor_id=request.args.get('user_id', type=int),
        module=request.args.get('module', '').strip() or None,
        start_date=parse_date_filter(request.args.get('start_date'), 'start_date'),
        end_date=parse_date_filter(request.args.get('end_date'), 'end_date', end_of_day=True)
    )

    return jsonify({
        'logs': [log.to_dict() for log in logs],
        'pagination': page_meta(page, limit, total),
    })
