"""Models package - exports all SQLAlchemy models."""
from fashionhub.models.app_user import AppUser, UserRole
from fashionhub.models.product import Product, ProductStatus
from fashionhub.models.invoice import Invoice, InvoiceStatus
from fashionhub.models.invoice_item import InvoiceItem
from fashionhub.models.invoice_sequence import InvoiceSequence
from fashionhub.models.activity_log import ActivityLog, ActivityModule

__all__ = [
    'AppUser', 'UserRole',
    'Product', 'ProductStatus',
    'Invoice', 'InvoiceStatus', 'InvoiceItem', 'InvoiceSequence',
    'ActivityLog', 'ActivityModule',
]
