"""
User service: local authentication and Admin-only user management.
"""
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from fashionhub.decorators.permissions import ensure_capability, MANAGE_USERS
from fashionhub.exceptions import (
    FashionHubError, ConflictError, InvalidArgumentError, NotFoundError, UnauthorizedError
)
from fashionhub.models import AppUser, UserRole, ActivityModule
from fashionhub.services.audit_service import log_activity
from fashionhub.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


def _parse_role(role) -> UserRole:
    try:
        return UserRole.parse(role)
    except ValueError:
        raise InvalidArgumentError(f'Unknown role: {role}', field='role')


def get_user(user_id: int, session) -> AppUser:
    user = session.get(AppUser, user_id)
    if not user:
        raise NotFoundError(f'User {user_id} not found')
    return user


def authenticate(session, email: str, password: str) -> AppUser:
    """
    Check credentials and stamp last_login_at.

    Raises:
        UnauthorizedError: unknown email, wrong password or inactive account
    """
    email = (email or '').strip().lower()
    user = session.query(AppUser).filter_by(email=email).first()

    if not user or not user.check_password(password or ''):
        logger.warning(f"Failed login attempt for {email}")
        raise UnauthorizedError('Invalid email or password')

    if not user.active:
        logger.warning(f"Login attempt on inactive account {email}")
        raise UnauthorizedError('Account is disabled')

    try:
        user.last_login_at = utcnow()
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        raise

    log_activity(session, user, 'Logged in', ActivityModule.AUTH, user.id, user.email)
    return user


def create_user(session, email: str, password: str, role=UserRole.VIEWER, full_name: str = None) -> AppUser:
    """
    Create a local user (used by the CLI and tests).

    Raises:
        InvalidArgumentError: bad email, short password or unknown role
        ConflictError: email already registered
    """
    email = (email or '').strip().lower()
    if not email or '@' not in email:
        raise InvalidArgumentError('A valid email is required', field='email')
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise InvalidArgumentError(
            f'Password must be at least {MIN_PASSWORD_LENGTH} characters', field='password'
        )
    role = _parse_role(role)

    try:
        if session.query(AppUser).filter_by(email=email).first():
            raise ConflictError(f'User {email} already exists', payload={'email': email})

        user = AppUser(email=email, full_name=full_name, role=role.value, active=True)
        user.set_password(password)
        session.add(user)
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError(f'User {email} already exists', payload={'email': email})
    except (FashionHubError, SQLAlchemyError):
        session.rollback()
        raise

    logger.info(f"Created user {email} with role {role.value}")
    return user


def list_users(session):
    return session.query(AppUser).order_by(AppUser.created_at.asc(), AppUser.id.asc()).all()


def update_role(user_id: int, role, session, actor) -> AppUser:
    """Change a user's role (Admin only). Admins cannot demote themselves."""
    ensure_capability(actor, MANAGE_USERS)
    new_role = _parse_role(role)

    try:
        user = get_user(user_id, session)
        if user.id == actor.id and new_role != UserRole.ADMIN:
            raise ConflictError('You cannot remove your own Admin role')

        previous = user.role
        user.role = new_role.value
        user.updated_at = utcnow()
        session.commit()
    except (FashionHubError, SQLAlchemyError):
        session.rollback()
        raise

    log_activity(session, actor, f'Changed role of {user.email} to {new_role.value}', ActivityModule.USERS,
                 user.id, user.email, details={'from': previous, 'to': new_role.value})
    return user


def update_status(user_id: int, active: bool, session, actor) -> AppUser:
    """Activate or deactivate a user (Admin only). Admins cannot deactivate themselves."""
    ensure_capability(actor, MANAGE_USERS)
    if not isinstance(active, bool):
        raise InvalidArgumentError('active must be true or false', field='active')

    try:
        user = get_user(user_id, session)
        if user.id == actor.id and not active:
            raise ConflictError('You cannot deactivate your own account')

        user.active = active
        user.updated_at = utcnow()
        session.commit()
    except (FashionHubError, SQLAlchemyError):
        session.rollback()
        raise

    state = 'Activated' if active else 'Deactivated'
    log_activity(session, actor, f'{state} user {user.email}', ActivityModule.USERS, user.id, user.email)
    return user
