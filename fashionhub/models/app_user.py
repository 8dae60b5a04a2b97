"""AppUser model - back-office staff with a role."""
import enum
from sqlalchemy import Column, String, Boolean, DateTime
from werkzeug.security import generate_password_hash, check_password_hash
from fashionhub.database import Base, BigIntegerPK
from fashionhub.utils.time_utils import utcnow


class UserRole(enum.Enum):
    """Staff roles, highest privilege first."""
    ADMIN = 'Admin'
    MANAGER = 'Manager'
    STAFF = 'Staff'
    VIEWER = 'Viewer'

    @classmethod
    def parse(cls, value):
        """Accept 'Admin', 'ADMIN' or 'admin'."""
        if isinstance(value, cls):
            return value
        for role in cls:
            if str(value).strip().lower() == role.value.lower():
                return role
        raise ValueError(f'Unknown role: {value}')


class AppUser(Base):
    """AppUser model - local email/password authentication."""

    __tablename__ = 'app_user'

    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=True)
    full_name = Column(String(200), nullable=True)
    role = Column(String(20), nullable=False, default=UserRole.VIEWER.value)
    active = Column(Boolean, nullable=False, default=True)
    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def set_password(self, password):
        """Set password hash."""
        self.password_hash = generate_password_hash(password, method='scrypt')

    def check_password(self, password):
        """Check password against hash."""
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'email': self.email,
            'full_name': self.full_name,
            'role': self.role,
            'active': self.active,
            'last_login_at': self.last_login_at.isoformat() if self.last_login_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<AppUser(id={self.id}, email='{self.email}', role='{self.role}')>"
