"""
Activity log model for tracking staff actions.
"""
from sqlalchemy import Column, BigInteger, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from fashionhub.database import Base, BigIntegerPK
from fashionhub.utils.time_utils import utcnow


class ActivityModule:
    """Module names used to group activity entries."""
    INVOICES = 'Invoices'
    PRODUCTS = 'Products'
    USERS = 'Users'
    AUTH = 'Auth'


class ActivityLog(Base):
    """
    Audit entry: who did what, in which module, to which target.
    Written best-effort after the business transaction commits.
    """
    __tablename__ = 'activity_log'

    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)
    actor_id = Column(BigInteger, ForeignKey('app_user.id'), nullable=True, index=True)
    action = Column(String(255), nullable=False)
    module = Column(String(50), nullable=False, index=True)
    target_id = Column(String(64), nullable=True)
    target_name = Column(String(255), nullable=True)
    details = Column(Text)  # JSON encoded
    ip_address = Column(String(45))  # IPv4 or IPv6
    user_agent = Column(String(255))
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    # Relationships
    actor = relationship('AppUser')

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'actor_id': self.actor_id,
            'actor': {'id': self.actor.id, 'email': self.actor.email, 'full_name': self.actor.full_name} if self.actor else None,
            'action': self.action,
            'module': self.module,
            'target_id': self.target_id,
            'target_name': self.target_name,
            'details': self.details,
            'ip_address': self.ip_address,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<ActivityLog '{self.action}' module={self.module} by user {self.actor_id} at {self.created_at}>"
