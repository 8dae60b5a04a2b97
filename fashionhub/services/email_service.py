"""
Invoice delivery by email.
Uses Flask-Mail for SMTP integration.
"""
import logging
from flask import current_app
from flask_mail import Mail, Message

from fashionhub.exceptions import InvalidStateError
from fashionhub.models import InvoiceStatus
from fashionhub.utils.formatters import money_display, date_display

logger = logging.getLogger(__name__)

mail = Mail()


def init_mail(app):
    """Initialize Flask-Mail with app."""
    mail.init_app(app)


def _mail_enabled() -> bool:
    """Mail is only sent when SMTP is configured and not suppressed."""
    cfg = current_app.config
    return bool(
        not cfg.get("MAIL_SUPPRESS_SEND", False)
        and cfg.get("MAIL_SERVER")
        and cfg.get("MAIL_USERNAME")
    )


def send_invoice_email(invoice, pdf_bytes: bytes) -> bool:
    """
    Email a processed invoice to its customer with the PDF attached.

    Delivery problems are logged and reported as False; they never touch
    the invoice.

    Raises:
        InvalidStateError: invoice is not Processed
    """
    if invoice.status != InvoiceStatus.PROCESSED:
        raise InvalidStateError('Only processed invoices can be sent', status=invoice.status.value)

    to_email = invoice.customer_email
    try:
        if not _mail_enabled():
            logger.warning(f"[MAIL DISABLED] Invoice {invoice.invoice_number} email skipped for {to_email}")
            return True

        business = current_app.config.get('BUSINESS_NAME', 'FashionHub')
        subject = f"Invoice {invoice.invoice_number} from {business}"

        text_body = f"""Hello {invoice.customer_name},

Please find attached invoice {invoice.invoice_number} issued on {date_display(invoice.created_at)}.

Total: {money_display(invoice.total)}

Thank you for shopping with {business}.
"""

        html_body = f"""
        <h2>Invoice {invoice.invoice_number}</h2>
        <p>Hello {invoice.customer_name},</p>
        <p>Please find attached your invoice issued on {date_display(invoice.created_at)}.</p>
        <p><strong>Total: {money_display(invoice.total)}</strong></p>
        <p>Thank you for shopping with {business}.</p>
        """

        msg = Message(
            subject=subject,
            recipients=[to_email],
            body=text_body,
            html=html_body,
        )
        msg.attach(f"{invoice.invoice_number}.pdf", "application/pdf", pdf_bytes)

        mail.send(msg)
        logger.info(f"[EMAIL] Invoice {invoice.invoice_number} sent to {to_email}")
        return True

    except Exception as e:
        logger.exception(f"[EMAIL] Failed to send invoice {invoice.invoice_number} to {to_email}: {e}")
        return False
