"""Product model."""
import enum
from sqlalchemy import Column, BigInteger, String, Text, Integer, Numeric, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship
from fashionhub.database import Base, BigIntegerPK
from fashionhub.utils.money import format_money
from fashionhub.utils.time_utils import utcnow


class ProductStatus(enum.Enum):
    """Catalog lifecycle. Products are never physically removed."""
    ACTIVE = "ACTIVE"
    DELETED = "DELETED"


class Product(Base):
    """
    Catalog product.

    `product_code` is the staff-assigned business key; `id` is the internal
    key referenced by invoice items. Deleted products stay in the table so
    historical invoice items keep a valid reference.
    """

    __tablename__ = 'product'

    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)
    product_code = Column(String(64), nullable=False, unique=True)
    name = Column(String(200), nullable=False)
    color = Column(String(50), nullable=True)
    size = Column(String(50), nullable=True)
    category = Column(String(100), nullable=True, index=True)
    description = Column(Text, nullable=True)
    image_url = Column(String(255), nullable=True)
    qr_code_url = Column(String(255), nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    # Settlement may drive this below zero, see inventory_service
    quantity = Column(Integer, nullable=False, default=0)
    status = Column(Enum(ProductStatus, name='product_status'), nullable=False, default=ProductStatus.ACTIVE)
    created_by = Column(BigInteger, ForeignKey('app_user.id'), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    creator = relationship('AppUser', foreign_keys=[created_by])

    @classmethod
    def active(cls, session):
        """Query over non-deleted products. All catalog listings start here."""
        return session.query(cls).filter(cls.status == ProductStatus.ACTIVE)

    @property
    def is_active(self):
        return self.status == ProductStatus.ACTIVE

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'product_code': self.product_code,
            'name': self.name,
            'color': self.color,
            'size': self.size,
            'category': self.category,
            'description': self.description,
            'image_url': self.image_url,
            'qr_code_url': self.qr_code_url,
            'price': format_money(self.price),
            'quantity': self.quantity,
            'is_active': self.is_active,
            'created_by': self.created_by,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    def to_summary(self) -> dict:
        """Compact form embedded in invoice items."""
        return {
            'id': self.id,
            'product_code': self.product_code,
            'name': self.name,
            'color': self.color,
            'size': self.size,
            'is_active': self.is_active,
        }

    def __repr__(self):
        return f"<Product(id={self.id}, code='{self.product_code}', name='{self.name}', qty={self.quantity})>"
