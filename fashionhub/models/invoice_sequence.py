"""Invoice number sequence model."""
from sqlalchemy import Column, BigInteger, String
from fashionhub.database import Base, BigIntegerPK


class InvoiceSequence(Base):
    """
    Monotonic counter backing invoice numbers.

    One row per scope; next_number is the number the next invoice receives.
    """

    __tablename__ = 'invoice_sequence'

    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)
    scope = Column(String(50), nullable=False, unique=True, default='invoice')
    next_number = Column(BigInteger, nullable=False, default=1)

    def __repr__(self):
        return f"<InvoiceSequence(scope='{self.scope}', next_number={self.next_number})>"
