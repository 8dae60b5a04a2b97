"""
Activity logging service for tracking staff actions.
"""
from fashionhub.models.activity_log import ActivityLog
from flask import request, has_request_context
from sqlalchemy.exc import SQLAlchemyError
import json
import logging

logger = logging.getLogger(__name__)


def log_activity(
    session,
    actor,
    action: str,
    module: str,
    target_id=None,
    target_name: str = None,
    details: dict = None
) -> bool:
    """
    Write an activity entry in its own short transaction.

    Must be called AFTER the business transaction has committed: a failure
    here is logged and rolled back, never propagated.

    Args:
        session: Database session
        actor: AppUser performing the action (None for system actions)
        action: Human readable description ("Created invoice INV-0001")
        module: ActivityModule value ("Invoices", "Products", ...)
        target_id: ID of the affected resource
        target_name: Display name of the affected resource
        details: Dict with additional details (will be JSON encoded)

    Returns:
        True if the entry was written
    """
    try:
        details_json = None
        if details:
            try:
                details_json = json.dumps(details, default=str)
            except (TypeError, ValueError) as e:
                logger.warning(f"Failed to serialize activity details: {e}")
                details_json = str(details)

        ip_address = None
        user_agent = None
        if has_request_context():
            ip_address = request.remote_addr
            user_agent = (request.headers.get('User-Agent') or '')[:255] or None

        entry = ActivityLog(
            actor_id=actor.id if actor is not None else None,
            action=action[:255],
            module=module,
            target_id=str(target_id) if target_id is not None else None,
            target_name=target_name,
            details=details_json,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        session.add(entry)
        session.commit()

        logger.info(f"Activity: {action} [{module}] by user {entry.actor_id} on {target_id}")
        return True

    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Failed to write activity log '{action}': {e}")
        return False


def get_activity_logs(
    session,
    limit: int = 50,
    offset: int = 0,
    actor_id: int = None,
    module: str = None,
    start_date=None,
    end_date=None
):
    """
    Retrieve activity entries, newest first, with optional filters.

    Returns:
        (list of ActivityLog, total count)
    """
    query = session.query(ActivityLog)

    if actor_id:
        query = query.filter(ActivityLog.actor_id == actor_id)

    if module:
        query = query.filter(ActivityLog.module == module)

    if start_date:
        query = query.filter(ActivityLog.created_at >= start_date)

    if end_date:
        query = query.filter(ActivityLog.created_at <= end_date)

    total = query.count()
    logs = (
        query.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )
    return logs, total
