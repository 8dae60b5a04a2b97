"""Invoice Item model."""
from sqlalchemy import Column, BigInteger, Integer, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from fashionhub.database import Base, BigIntegerPK
from fashionhub.utils.money import format_money
from fashionhub.utils.time_utils import utcnow


class InvoiceItem(Base):
    """
    Invoice line item.

    unit_price is a snapshot of the product price when the item was added,
    not a live link; total_price = unit_price * quantity.
    """

    __tablename__ = 'invoice_item'

    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)
    invoice_id = Column(BigInteger, ForeignKey('invoice.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = Column(BigInteger, ForeignKey('product.id'), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    # Relationships
    invoice = relationship('Invoice', back_populates='items')
    product = relationship('Product')

    def to_dict(self, include_product=False) -> dict:
        data = {
            'id': self.id,
            'invoice_id': self.invoice_id,
            'product_id': self.product_id,
            'quantity': self.quantity,
            'unit_price': format_money(self.unit_price),
            'total_price': format_money(self.total_price),
        }
        if include_product:
            data['product'] = self.product.to_summary() if self.product else None
        return data

    def __repr__(self):
        return f"<InvoiceItem(id={self.id}, invoice_id={self.invoice_id}, product_id={self.product_id}, qty={self.quantity})>"
