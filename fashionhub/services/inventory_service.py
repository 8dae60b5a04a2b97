"""
Stock settlement for processed invoices.

Runs inside the processing transaction; it never commits on its own.
"""
import logging
from collections import OrderedDict
from typing import Dict, List

from sqlalchemy.orm import Session

from fashionhub.metrics import stock_units_settled_total
from fashionhub.models import InvoiceItem
from fashionhub.services.catalog_service import decrement_stock

logger = logging.getLogger(__name__)


def settle_invoice(session: Session, invoice_id: int) -> List[Dict]:
    """
    Deduct the stock consumed by every item of an invoice.

    Quantities are summed per product and applied in ascending product id
    order, one atomic decrement each, so two invoices sharing products
    always lock rows in the same order. Stock may go negative; this is
    logged, not refused, because the sale already happened.

    Returns:
        [{'product_id', 'quantity', 'remaining'}, ...] in application order
    """
    items = (
        session.query(InvoiceItem.product_id, InvoiceItem.quantity)
        .filter(InvoiceItem.invoice_id == invoice_id)
        .all()
    )

    totals = OrderedDict()
    for product_id, quantity in sorted(items, key=lambda row: row[0]):
        totals[product_id] = totals.get(product_id, 0) + quantity

    deductions = []
    for product_id, quantity in totals.items():
        remaining = decrement_stock(session, product_id, quantity)
        if remaining < 0:
            logger.warning(
                f"Product {product_id} stock went negative ({remaining}) settling invoice {invoice_id}"
            )
        deductions.append({'product_id': product_id, 'quantity': quantity, 'remaining': remaining})

    stock_units_settled_total.inc(sum(totals.values()))
    logger.info(f"Settled invoice {invoice_id}: {len(deductions)} products, {sum(totals.values())} units")
    return deductions
