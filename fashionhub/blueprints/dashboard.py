"""Dashboard blueprint."""
from flask import Blueprint, jsonify, current_app

from fashionhub.database import get_session
from fashionhub.decorators.permissions import require_permission, VIEW_DASHBOARD
from fashionhub.middleware import require_login
from fashionhub.services.dashboard_service import get_dashboard_metrics

dashboard_bp = Blueprint('dashboard', __name__, url_prefix='/api/dashboard')


@dashboard_bp.route('/metrics', methods=['GET'])
@require_login
@require_permission(VIEW_DASHBOARD)
def metrics():
    """Catalog and invoicing numbers for the dashboard cards."""
    data = get_dashboard_metrics(
        get_session(),
        low_stock_threshold=current_app.config.get('LOW_STOCK_THRESHOLD', 5)
    )
    return jsonify(data)
