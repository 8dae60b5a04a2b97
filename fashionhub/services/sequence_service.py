"""Invoice number allocation."""
import logging

from flask import current_app, has_app_context
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from fashionhub.exceptions import ConflictError
from fashionhub.models import InvoiceSequence

logger = logging.getLogger(__name__)

DEFAULT_SCOPE = 'invoice'


def ensure_sequence(session, scope: str = DEFAULT_SCOPE) -> InvoiceSequence:
    """Create the sequence row for `scope` if it does not exist yet (caller commits)."""
    seq = session.query(InvoiceSequence).filter_by(scope=scope).first()
    if seq is None:
        seq = InvoiceSequence(scope=scope, next_number=1)
        session.add(seq)
        session.flush()
    return seq


def next_invoice_number(session, scope: str = DEFAULT_SCOPE) -> str:
    """
    Atomically allocate the next invoice number (INV-0001, INV-0002, ...).

    Runs inside the caller's transaction: the UPDATE holds the sequence row
    lock until the invoice insert commits, and a rollback gives the number
    back. Two concurrent creations can never receive the same number.
    """
    prefix, pad = _number_format()

    stmt = (
        update(InvoiceSequence)
        .where(InvoiceSequence.scope == scope)
        .values(next_number=InvoiceSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )
    result = session.execute(stmt)

    if result.rowcount:
        current = (
            session.query(InvoiceSequence.next_number)
            .filter(InvoiceSequence.scope == scope)
            .scalar()
        )
        number = current - 1
    else:
        # First invoice ever for this scope
        try:
            session.add(InvoiceSequence(scope=scope, next_number=2))
            session.flush()
        except IntegrityError:
            logger.warning(f"Invoice sequence '{scope}' was created concurrently")
            raise ConflictError('Invoice number allocation conflicted, please retry')
        number = 1

    return f"{prefix}-{str(number).zfill(pad)}"


def _number_format():
    if has_app_context():
        return (
            current_app.config.get('INVOICE_NUMBER_PREFIX', 'INV'),
            current_app.config.get('INVOICE_NUMBER_PADDING', 4),
        )
    return 'INV', 4
