"""Invoice model."""
import enum
from sqlalchemy import Column, BigInteger, String, Text, Numeric, DateTime, Enum, ForeignKey
from sqlalchemy.orm import relationship
from fashionhub.database import Base, BigIntegerPK
from fashionhub.utils.money import format_money, format_rate
from fashionhub.utils.time_utils import utcnow


class InvoiceStatus(enum.Enum):
    """Invoice lifecycle: PENDING -> PROCESSED, PENDING|PROCESSED -> DELETED."""
    PENDING = "Pending"
    PROCESSED = "Processed"
    DELETED = "Deleted"

    @classmethod
    def parse(cls, value):
        """Accept 'Processed', 'PROCESSED' or 'processed'."""
        if isinstance(value, cls):
            return value
        for status in cls:
            if str(value).strip().lower() == status.value.lower():
                return status
        raise ValueError(f'Unknown invoice status: {value}')


class Invoice(Base):
    """
    Sales invoice.

    Monetary fields are written only by the totals recalculation in
    invoice_service, which keeps total == subtotal - discount_amount and
    subtotal == sum(items.total_price).
    """

    __tablename__ = 'invoice'

    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)
    invoice_number = Column(String(32), nullable=False, unique=True)
    customer_name = Column(String(200), nullable=False)
    customer_email = Column(String(255), nullable=False)
    customer_phone = Column(String(50), nullable=True)
    customer_address = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    status = Column(Enum(InvoiceStatus, name='invoice_status'), nullable=False, default=InvoiceStatus.PENDING, index=True)
    subtotal = Column(Numeric(10, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(10, 2), nullable=False, default=0)
    discount_percentage = Column(Numeric(16, 4), nullable=False, default=0)  # Unbounded: discount may exceed subtotal
    tax_amount = Column(Numeric(10, 2), nullable=False, default=0)  # Always zero
    total = Column(Numeric(10, 2), nullable=False, default=0)
    created_by = Column(BigInteger, ForeignKey('app_user.id'), nullable=True)
    processed_by = Column(BigInteger, ForeignKey('app_user.id'), nullable=True)
    processed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    items = relationship(
        'InvoiceItem',
        back_populates='invoice',
        cascade='all, delete-orphan',
        order_by='InvoiceItem.id'
    )
    creator = relationship('AppUser', foreign_keys=[created_by])
    processor = relationship('AppUser', foreign_keys=[processed_by])

    @classmethod
    def visible(cls, session):
        """Query over invoices that are not soft-deleted."""
        return session.query(cls).filter(cls.status != InvoiceStatus.DELETED)

    def to_dict(self, include_items=False) -> dict:
        data = {
            'id': self.id,
            'invoice_number': self.invoice_number,
            'customer_name': self.customer_name,
            'customer_email': self.customer_email,
            'customer_phone': self.customer_phone,
            'customer_address': self.customer_address,
            'notes': self.notes,
            'status': self.status.value,
            'subtotal': format_money(self.subtotal),
            'discount_amount': format_money(self.discount_amount),
            'discount_percentage': format_rate(self.discount_percentage),
            'tax_amount': format_money(self.tax_amount),
            'total': format_money(self.total),
            'created_by': self.created_by,
            'processed_by': self.processed_by,
            'processed_at': self.processed_at.isoformat() if self.processed_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_items:
            data['items'] = [item.to_dict(include_product=True) for item in self.items]
        return data

    def __repr__(self):
        return f"<Invoice(id={self.id}, number='{self.invoice_number}', status={self.status.value}, total={self.total})>"
