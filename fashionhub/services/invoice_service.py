"""
Invoice service: lifecycle, line items, totals and discount.

Every write runs as one session transaction: the invoice row is locked,
the change is applied, totals are recalculated and the whole thing commits
or rolls back together. Activity entries are written after the commit.
"""
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import or_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fashionhub.metrics import invoice_transitions_total
from fashionhub.decorators.permissions import (
    ensure_capability, CREATE_INVOICES, EDIT_INVOICES, PROCESS_INVOICES, DELETE_INVOICES
)
from fashionhub.exceptions import (
    FashionHubError, ConflictError, InvalidArgumentError, InvalidStateError,
    InvalidTransitionError, NotFoundError
)
from fashionhub.models import Invoice, InvoiceItem, InvoiceStatus, ActivityModule
from fashionhub.services.audit_service import log_activity
from fashionhub.services.catalog_service import get_product
from fashionhub.services.inventory_service import settle_invoice
from fashionhub.services.sequence_service import next_invoice_number
from fashionhub.utils.money import (
    ZERO, to_money, discount_ratio, parse_money, parse_quantity
)
from fashionhub.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

CUSTOMER_FIELDS = ('customer_phone', 'customer_address', 'notes')


# =====================================================
# READS
# =====================================================

def get_invoice(invoice_id: int, session: Session) -> Invoice:
    """Fetch an invoice by id, soft-deleted ones included."""
    invoice = session.get(Invoice, invoice_id)
    if not invoice:
        raise NotFoundError(f'Invoice {invoice_id} not found')
    return invoice


def list_invoices(
    session: Session,
    status: str = None,
    start_date=None,
    end_date=None,
    customer: str = None,
    limit: int = 20,
    offset: int = 0
) -> Tuple[List[Invoice], int]:
    """
    List invoices newest first.

    Deleted invoices only show up when explicitly asked for with
    status='Deleted'.
    """
    if status:
        try:
            wanted = InvoiceStatus.parse(status)
        except ValueError:
            raise InvalidArgumentError(f'Unknown invoice status: {status}', field='status')
        query = session.query(Invoice).filter(Invoice.status == wanted)
    else:
        query = Invoice.visible(session)

    if start_date:
        query = query.filter(Invoice.created_at >= start_date)
    if end_date:
        query = query.filter(Invoice.created_at <= end_date)
    if customer:
        pattern = f'%{customer.strip()}%'
        query = query.filter(or_(
            Invoice.customer_name.ilike(pattern),
            Invoice.customer_email.ilike(pattern),
        ))

    total = query.count()
    invoices = (
        query.order_by(Invoice.created_at.desc(), Invoice.id.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )
    return invoices, total


# =====================================================
# INTERNAL HELPERS
# =====================================================

def _lock_invoice(session: Session, invoice_id: int) -> Invoice:
    """SELECT ... FOR UPDATE on the invoice row (a plain select on SQLite)."""
    invoice = (
        session.query(Invoice)
        .filter(Invoice.id == invoice_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if not invoice:
        raise NotFoundError(f'Invoice {invoice_id} not found')
    return invoice


def _require_pending(invoice: Invoice) -> None:
    if invoice.status != InvoiceStatus.PENDING:
        raise InvalidStateError(status=invoice.status.value)


def _get_item(session: Session, item_id: int) -> InvoiceItem:
    item = session.get(InvoiceItem, item_id)
    if not item:
        raise NotFoundError(f'Invoice item {item_id} not found')
    return item


def _lock_item(session: Session, item_id: int) -> Tuple[InvoiceItem, Invoice]:
    """
    Lock the invoice owning an item, then re-read the item under that lock.

    The item may have been removed between the first read and the lock.
    """
    invoice = _lock_invoice(session, _get_item(session, item_id).invoice_id)
    item = (
        session.query(InvoiceItem)
        .filter(InvoiceItem.id == item_id, InvoiceItem.invoice_id == invoice.id)
        .populate_existing()
        .first()
    )
    if not item:
        raise NotFoundError(f'Invoice item {item_id} not found')
    return item, invoice


def _apply_totals(session: Session, invoice: Invoice) -> Invoice:
    """
    Recompute subtotal, discount_percentage and total from the stored items.

    The only place that writes the invoice monetary fields. Pending items
    are flushed first so the sum sees them.
    """
    session.flush()

    prices = (
        session.query(InvoiceItem.total_price)
        .filter(InvoiceItem.invoice_id == invoice.id)
        .all()
    )
    subtotal = to_money(sum((to_money(price) for (price,) in prices), Decimal('0')))
    discount = to_money(invoice.discount_amount)

    invoice.subtotal = subtotal
    invoice.discount_amount = discount
    invoice.discount_percentage = discount_ratio(discount, subtotal)
    invoice.tax_amount = ZERO
    invoice.total = to_money(subtotal - discount)
    invoice.updated_at = utcnow()
    return invoice


def _audit(session: Session, actor, action: str, invoice_id: int, invoice_number: str, details=None):
    log_activity(session, actor, action, ActivityModule.INVOICES, invoice_id, invoice_number, details)


def _parse_customer(payload: Dict[str, Any]) -> Dict[str, Any]:
    name = (payload.get('customer_name') or '').strip()
    if not name:
        raise InvalidArgumentError('customer_name is required', field='customer_name')

    email = (payload.get('customer_email') or '').strip()
    if not email or '@' not in email:
        raise InvalidArgumentError('customer_email must be a valid email address', field='customer_email')

    data = {'customer_name': name, 'customer_email': email}
    for field in CUSTOMER_FIELDS:
        value = payload.get(field)
        data[field] = value.strip() if isinstance(value, str) and value.strip() else None
    return data


def _parse_items(raw_items) -> List[Dict[str, Any]]:
    if raw_items is None:
        return []
    if not isinstance(raw_items, list):
        raise InvalidArgumentError('items must be a list', field='items')

    items = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise InvalidArgumentError(f'Item {index + 1} is not an object', field='items')
        product_id = raw.get('product_id')
        if product_id is None or isinstance(product_id, bool):
            raise InvalidArgumentError(f'Item {index + 1}: product_id is required', field='product_id')
        items.append({
            'product_id': parse_quantity(product_id, 'product_id'),
            'quantity': parse_quantity(raw.get('quantity'), 'quantity'),
            'unit_price': parse_money(raw.get('unit_price'), 'unit_price', allow_none=True),
        })
    return items


def _new_item(session: Session, product_id: int, quantity: int, unit_price: Optional[Decimal]) -> InvoiceItem:
    """Build an item priced from the product unless a price is supplied."""
    product = get_product(product_id, session)
    price = to_money(product.price if unit_price is None else unit_price)

    if quantity > product.quantity:
        logger.warning(
            f"Invoicing {quantity} x product {product.product_code} with only {product.quantity} in stock"
        )

    return InvoiceItem(
        product_id=product.id,
        quantity=quantity,
        unit_price=price,
        total_price=to_money(price * quantity),
    )


# =====================================================
# LIFECYCLE
# =====================================================

def create_invoice(payload: Dict[str, Any], session: Session, actor) -> Invoice:
    """
    Create a Pending invoice with its initial items.

    Args:
        payload: customer fields, optional 'discount_amount' and
                 'items' ([{'product_id', 'quantity', 'unit_price'?}, ...])
        session: Database session
        actor: AppUser creating the invoice

    Returns:
        The committed invoice (number assigned, totals computed)
    """
    ensure_capability(actor, CREATE_INVOICES)

    if not isinstance(payload, dict):
        raise InvalidArgumentError('invoice payload must be an object', field='invoice')

    customer = _parse_customer(payload)
    items_data = _parse_items(payload.get('items'))
    discount = parse_money(payload.get('discount_amount'), 'discount_amount', allow_none=True) or ZERO

    try:
        invoice = Invoice(
            invoice_number=next_invoice_number(session),
            status=InvoiceStatus.PENDING,
            discount_amount=discount,
            created_by=actor.id,
            **customer
        )
        for data in items_data:
            invoice.items.append(_new_item(session, data['product_id'], data['quantity'], data['unit_price']))

        session.add(invoice)
        session.flush()
        _apply_totals(session, invoice)
        session.commit()
    except (FashionHubError, SQLAlchemyError):
        session.rollback()
        raise

    invoice_transitions_total.labels(to_status=InvoiceStatus.PENDING.value).inc()
    logger.info(f"Invoice {invoice.invoice_number} created by user {actor.id} with {len(items_data)} items")
    _audit(session, actor, f'Created invoice {invoice.invoice_number}', invoice.id, invoice.invoice_number,
           details={'items': len(items_data), 'total': str(invoice.total)})
    return invoice


def transition_status(invoice_id: int, new_status: str, session: Session, actor) -> Invoice:
    """
    Single entry point for status changes requested by clients.

    Only 'Processed' and 'Deleted' are valid targets.

    Raises:
        InvalidArgumentError: unknown status name
        InvalidTransitionError: any other target, e.g. back to Pending
    """
    try:
        target = InvoiceStatus.parse(new_status)
    except ValueError:
        raise InvalidArgumentError(f'Unknown invoice status: {new_status}', field='status')

    if target == InvoiceStatus.PROCESSED:
        return process_invoice(invoice_id, session, actor)
    if target == InvoiceStatus.DELETED:
        return delete_invoice(invoice_id, session, actor)

    ensure_capability(actor, EDIT_INVOICES)
    invoice = get_invoice(invoice_id, session)
    raise InvalidTransitionError(invoice.status.value, target.value)


def process_invoice(invoice_id: int, session: Session, actor) -> Invoice:
    """
    Pending -> Processed, deducting the invoiced stock.

    The invoice is claimed with a conditional UPDATE on its status under
    the row lock, so settlement runs at most once per invoice even when two
    requests race. Status change and stock deduction commit together.
    """
    ensure_capability(actor, PROCESS_INVOICES)

    try:
        invoice = _lock_invoice(session, invoice_id)
        if invoice.status != InvoiceStatus.PENDING:
            raise InvalidTransitionError(invoice.status.value, InvoiceStatus.PROCESSED.value)

        now = utcnow()
        claimed = session.execute(
            update(Invoice)
            .where(Invoice.id == invoice_id, Invoice.status == InvoiceStatus.PENDING)
            .values(status=InvoiceStatus.PROCESSED, processed_by=actor.id, processed_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount != 1:
            raise InvalidTransitionError(InvoiceStatus.PROCESSED.value, InvoiceStatus.PROCESSED.value)

        deductions = settle_invoice(session, invoice_id)
        session.commit()
    except (FashionHubError, SQLAlchemyError):
        session.rollback()
        raise

    invoice_transitions_total.labels(to_status=InvoiceStatus.PROCESSED.value).inc()
    logger.info(f"Invoice {invoice.invoice_number} processed by user {actor.id}")
    _audit(session, actor, f'Processed invoice {invoice.invoice_number}', invoice.id, invoice.invoice_number,
           details={'deductions': deductions})
    return invoice


def delete_invoice(invoice_id: int, session: Session, actor) -> Invoice:
    """
    Soft delete (Pending|Processed -> Deleted). Stock is never restored.

    Raises:
        ConflictError: already deleted
    """
    ensure_capability(actor, DELETE_INVOICES)

    try:
        invoice = _lock_invoice(session, invoice_id)
        if invoice.status == InvoiceStatus.DELETED:
            raise ConflictError(f'Invoice {invoice.invoice_number} is already deleted')

        previous = invoice.status.value
        invoice.status = InvoiceStatus.DELETED
        invoice.updated_at = utcnow()
        session.commit()
    except (FashionHubError, SQLAlchemyError):
        session.rollback()
        raise

    invoice_transitions_total.labels(to_status=InvoiceStatus.DELETED.value).inc()
    logger.info(f"Invoice {invoice.invoice_number} deleted by user {actor.id} (was {previous})")
    _audit(session, actor, f'Deleted invoice {invoice.invoice_number}', invoice.id, invoice.invoice_number,
           details={'previous_status': previous})
    return invoice


# =====================================================
# LINE ITEMS, TOTALS AND DISCOUNT (Pending only)
# =====================================================

def add_item(
    invoice_id: int,
    product_id: int,
    quantity,
    session: Session,
    actor,
    unit_price=None
) -> InvoiceItem:
    """Add a line item; the price defaults to a snapshot of the product price."""
    ensure_capability(actor, EDIT_INVOICES)
    if product_id is None or isinstance(product_id, bool):
        raise InvalidArgumentError('product_id is required', field='product_id')
    product_id = parse_quantity(product_id, 'product_id')
    quantity = parse_quantity(quantity)
    unit_price = parse_money(unit_price, 'unit_price', allow_none=True)

    try:
        invoice = _lock_invoice(session, invoice_id)
        _require_pending(invoice)

        item = _new_item(session, product_id, quantity, unit_price)
        item.invoice_id = invoice.id
        session.add(item)

        _apply_totals(session, invoice)
        session.commit()
    except (FashionHubError, SQLAlchemyError):
        session.rollback()
        raise

    _audit(session, actor, f'Added item to invoice {invoice.invoice_number}', invoice.id, invoice.invoice_number,
           details={'product_id': item.product_id, 'quantity': quantity})
    return item


def update_item_quantity(item_id: int, quantity, session: Session, actor) -> InvoiceItem:
    """Change an item's quantity (>= 1) and recompute its total and the invoice totals."""
    ensure_capability(actor, EDIT_INVOICES)
    quantity = parse_quantity(quantity)

    try:
        item, invoice = _lock_item(session, item_id)
        _require_pending(invoice)

        previous = item.quantity
        item.quantity = quantity
        item.total_price = to_money(to_money(item.unit_price) * quantity)

        _apply_totals(session, invoice)
        session.commit()
    except (FashionHubError, SQLAlchemyError):
        session.rollback()
        raise

    _audit(session, actor, f'Updated item quantity on invoice {invoice.invoice_number}', invoice.id,
           invoice.invoice_number, details={'item_id': item_id, 'from': previous, 'to': quantity})
    return item


def delete_item(item_id: int, session: Session, actor) -> Invoice:
    """Remove a line item and return the recalculated invoice."""
    ensure_capability(actor, EDIT_INVOICES)

    try:
        item, invoice = _lock_item(session, item_id)
        _require_pending(invoice)

        product_id = item.product_id
        invoice.items.remove(item)

        _apply_totals(session, invoice)
        session.commit()
    except (FashionHubError, SQLAlchemyError):
        session.rollback()
        raise

    _audit(session, actor, f'Removed item from invoice {invoice.invoice_number}', invoice.id,
           invoice.invoice_number, details={'item_id': item_id, 'product_id': product_id})
    return invoice


def recalculate_totals(invoice_id: int, session: Session, actor=None) -> Invoice:
    """
    Recompute the invoice totals from its items. Idempotent.

    The capability check applies when an actor is given (explicit requests);
    the totals themselves are fully derived, so repeated calls change nothing.
    """
    if actor is not None:
        ensure_capability(actor, EDIT_INVOICES)

    try:
        invoice = _lock_invoice(session, invoice_id)
        _require_pending(invoice)
        _apply_totals(session, invoice)
        session.commit()
    except (FashionHubError, SQLAlchemyError):
        session.rollback()
        raise

    return invoice


def apply_discount(invoice_id: int, discount_amount, session: Session, actor) -> Invoice:
    """
    Set a flat discount. A discount above the subtotal is allowed and
    produces a negative total.

    Raises:
        InvalidArgumentError: negative or malformed amount
        InvalidStateError: invoice not Pending
    """
    ensure_capability(actor, EDIT_INVOICES)
    amount = parse_money(discount_amount, 'discount_amount')

    try:
        invoice = _lock_invoice(session, invoice_id)
        _require_pending(invoice)

        previous = to_money(invoice.discount_amount)
        invoice.discount_amount = amount
        _apply_totals(session, invoice)
        session.commit()
    except (FashionHubError, SQLAlchemyError):
        session.rollback()
        raise

    if amount > invoice.subtotal:
        logger.warning(f"Invoice {invoice.invoice_number} discount {amount} exceeds subtotal {invoice.subtotal}")

    _audit(session, actor, f'Applied discount to invoice {invoice.invoice_number}', invoice.id,
           invoice.invoice_number, details={'from': str(previous), 'to': str(amount)})
    return invoice
