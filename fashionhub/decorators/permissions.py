"""
Role-based capabilities.

Services call ensure_capability() once at the entry of each operation;
blueprints use require_permission() to reject requests before any work.
"""

from functools import wraps
from flask import g

from fashionhub.exceptions import PermissionDeniedError, UnauthorizedError
from fashionhub.models import UserRole


VIEW_CATALOG = 'view_catalog'
EDIT_PRODUCTS = 'edit_products'
DELETE_PRODUCTS = 'delete_products'
IMPORT_PRODUCTS = 'import_products'
VIEW_INVOICES = 'view_invoices'
CREATE_INVOICES = 'create_invoices'
EDIT_INVOICES = 'edit_invoices'
PROCESS_INVOICES = 'process_invoices'
DELETE_INVOICES = 'delete_invoices'
SEND_INVOICES = 'send_invoices'
VIEW_DASHBOARD = 'view_dashboard'
VIEW_ACTIVITY = 'view_activity'
MANAGE_USERS = 'manage_users'

ALL_CAPABILITIES = (
    VIEW_CATALOG, EDIT_PRODUCTS, DELETE_PRODUCTS, IMPORT_PRODUCTS,
    VIEW_INVOICES, CREATE_INVOICES, EDIT_INVOICES, PROCESS_INVOICES, DELETE_INVOICES, SEND_INVOICES,
    VIEW_DASHBOARD, VIEW_ACTIVITY, MANAGE_USERS,
)


# Permission map by role:
# - ADMIN: everything, and the only role that deletes invoices or manages users
# - MANAGER: catalog management and invoice processing
# - STAFF: builds invoices
# - VIEWER: read only
PERMISSION_MAP = {
    UserRole.ADMIN: 'all',
    UserRole.MANAGER: {
        VIEW_CATALOG, EDIT_PRODUCTS, DELETE_PRODUCTS, IMPORT_PRODUCTS,
        VIEW_INVOICES, CREATE_INVOICES, EDIT_INVOICES, PROCESS_INVOICES, SEND_INVOICES,
        VIEW_DASHBOARD, VIEW_ACTIVITY,
    },
    UserRole.STAFF: {
        VIEW_CATALOG,
        VIEW_INVOICES, CREATE_INVOICES, EDIT_INVOICES, SEND_INVOICES,
        VIEW_DASHBOARD,
    },
    UserRole.VIEWER: {
        VIEW_CATALOG, VIEW_INVOICES, VIEW_DASHBOARD,
    },
}


def has_capability(role, capability: str) -> bool:
    """Check whether a role (UserRole or its string value) grants a capability."""
    try:
        role = UserRole.parse(role)
    except ValueError:
        return False

    granted = PERMISSION_MAP.get(role, set())
    if granted == 'all':
        return True
    return capability in granted


def capabilities_for(role) -> list:
    """Capabilities granted to a role, in declaration order."""
    return [cap for cap in ALL_CAPABILITIES if has_capability(role, cap)]


def ensure_capability(actor, capability: str) -> None:
    """
    Raise unless the actor may perform `capability`.

    Args:
        actor: AppUser (or None for anonymous callers)
        capability: one of the capability constants above

    Raises:
        UnauthorizedError: no actor
        PermissionDeniedError: actor inactive or role lacks the capability
    """
    if actor is None:
        raise UnauthorizedError()

    if not actor.active or not has_capability(actor.role, capability):
        raise PermissionDeniedError(
            f'Role {actor.role} is not allowed to {capability.replace("_", " ")}',
            capability=capability
        )


def require_permission(capability):
    """
    Decorator to check for a capability on the current request user.

    Usage:
        @require_permission(PROCESS_INVOICES)
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            ensure_capability(g.get('user'), capability)
            return f(*args, **kwargs)

        return decorated_function
    return decorator


def admin_only(f):
    """
    Shortcut decorator for Admin-only routes.

    Usage:
        @admin_only
        def manage_users():
            ...
    """
    return require_permission(MANAGE_USERS)(f)
