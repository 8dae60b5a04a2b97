"""
Dashboard service.
Provides aggregated catalog and invoicing metrics for the dashboard view.
"""
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func

from fashionhub.models import Product, ProductStatus, Invoice, InvoiceStatus
from fashionhub.utils.money import format_money, to_money
from fashionhub.utils.time_utils import start_of_month, utcnow


def get_dashboard_metrics(session, low_stock_threshold: int = 5, now: datetime = None) -> dict:
    """
    Get the dashboard numbers.

    Args:
        session: SQLAlchemy session
        low_stock_threshold: products at or below this quantity count as low stock
        now: reference time for "this month" (defaults to utcnow)

    Returns:
        dict with keys:
            - total_products: active products
            - low_stock_count / out_of_stock_count
            - pending_invoices
            - processed_this_month
            - revenue_this_month: sum of Processed totals since the 1st, "0.00" format
            - recent_invoices: last 5 visible invoices (dicts)
    """
    now = now or utcnow()
    month_start = start_of_month(now)

    # 1. Catalog
    active = Product.status == ProductStatus.ACTIVE
    total_products = session.query(func.count(Product.id)).filter(active).scalar() or 0
    low_stock_count = session.query(func.count(Product.id)).filter(
        active,
        Product.quantity <= low_stock_threshold
    ).scalar() or 0
    out_of_stock_count = session.query(func.count(Product.id)).filter(
        active,
        Product.quantity <= 0
    ).scalar() or 0

    # 2. Invoices
    pending_invoices = session.query(func.count(Invoice.id)).filter(
        Invoice.status == InvoiceStatus.PENDING
    ).scalar() or 0

    revenue = session.query(
        func.count(Invoice.id).label('processed'),
        func.coalesce(func.sum(Invoice.total), 0).label('revenue')
    ).filter(
        Invoice.status == InvoiceStatus.PROCESSED,
        Invoice.processed_at >= month_start,
        Invoice.processed_at <= now
    ).first()

    revenue_this_month = to_money(Decimal(str(revenue.revenue))) if revenue and revenue.revenue else to_money(0)

    recent = (
        Invoice.visible(session)
        .order_by(Invoice.created_at.desc(), Invoice.id.desc())
        .limit(5)
        .all()
    )

    return {
        'total_products': total_products,
        'low_stock_count': low_stock_count,
        'out_of_stock_count': out_of_stock_count,
        'pending_invoices': pending_invoices,
        'processed_this_month': revenue.processed if revenue else 0,
        'revenue_this_month': format_money(revenue_this_month),
        'recent_invoices': [invoice.to_dict() for invoice in recent],
    }
