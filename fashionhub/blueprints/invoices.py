"""Invoices blueprint - invoice JSON API."""
from flask import Blueprint, request, g, jsonify, current_app, make_response

from fashionhub.database import get_session
from fashionhub.decorators.permissions import (
    require_permission, ensure_capability, VIEW_INVOICES, SEND_INVOICES
)
from fashionhub.exceptions import InvalidArgumentError
from fashionhub.middleware import require_login
from fashionhub.models import ActivityModule
from fashionhub.services import invoice_service
from fashionhub.services.audit_service import log_activity
from fashionhub.services.email_service import send_invoice_email
from fashionhub.services.invoice_pdf_service import render_invoice_pdf
from fashionhub.utils.formatters import parse_date_filter
from fashionhub.utils.pagination import page_args, page_meta

invoices_bp = Blueprint('invoices', __name__, url_prefix='/api/invoices')


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidArgumentError('Request body must be a JSON object')
    return data


def _business_info() -> dict:
    cfg = current_app.config
    return {
        'name': cfg.get('BUSINESS_NAME', 'FashionHub'),
        'address': cfg.get('BUSINESS_ADDRESS', ''),
        'phone': cfg.get('BUSINESS_PHONE', ''),
        'email': cfg.get('BUSINESS_EMAIL', ''),
    }


@invoices_bp.route('', methods=['GET'])
@require_login
@require_permission(VIEW_INVOICES)
def list_invoices():
    """List invoices. Deleted ones only with ?status=Deleted."""
    page, limit, offset = page_args()

    invoices, total = invoice_service.list_invoices(
        get_session(),
        status=request.args.get('status', '').strip() or None,
        start_date=parse_date_filter(request.args.get('start_date'), 'start_date'),
        end_date=parse_date_filter(request.args.get('end_date'), 'end_date', end_of_day=True),
        customer=request.args.get('customer', '').strip() or None,
        limit=limit,
        offset=offset
    )

    return jsonify({
        'invoices': [invoice.to_dict() for invoice in invoices],
        'pagination': page_meta(page, limit, total),
    })


@invoices_bp.route('/<int:invoice_id>', methods=['GET'])
@require_login
@require_permission(VIEW_INVOICES)
def get_invoice(invoice_id):
    invoice = invoice_service.get_invoice(invoice_id, get_session())
    return jsonify({'invoice': invoice.to_dict(include_items=True)})


@invoices_bp.route('', methods=['POST'])
@require_login
def create_invoice():
    """Create a Pending invoice: {"invoice": {...customer...}, "items": [...]}."""
    data = _json_body()
    payload = dict(data.get('invoice') or {})
    payload['items'] = data.get('items', [])

    invoice = invoice_service.create_invoice(payload, get_session(), g.user)
    return jsonify({'invoice': invoice.to_dict(include_items=True)}), 201


@invoices_bp.route('/<int:invoice_id>/discount', methods=['PUT'])
@require_login
def apply_discount(invoice_id):
    data = _json_body()
    invoice = invoice_service.apply_discount(invoice_id, data.get('discount_amount'), get_session(), g.user)
    return jsonify({'invoice': invoice.to_dict(include_items=True)})


@invoices_bp.route('/<int:invoice_id>/items', methods=['POST'])
@require_login
def add_item(invoice_id):
    data = _json_body()
    item = invoice_service.add_item(
        invoice_id,
        data.get('product_id'),
        data.get('quantity'),
        get_session(),
        g.user,
        unit_price=data.get('unit_price')
    )
    invoice = invoice_service.get_invoice(invoice_id, get_session())
    return jsonify({'item': item.to_dict(include_product=True), 'invoice': invoice.to_dict()}), 201


@invoices_bp.route('/items/<int:item_id>', methods=['PUT'])
@require_login
def update_item(item_id):
    data = _json_body()
    item = invoice_service.update_item_quantity(item_id, data.get('quantity'), get_session(), g.user)
    invoice = invoice_service.get_invoice(item.invoice_id, get_session())
    return jsonify({'item': item.to_dict(include_product=True), 'invoice': invoice.to_dict()})


@invoices_bp.route('/items/<int:item_id>', methods=['DELETE'])
@require_login
def delete_item(item_id):
    invoice = invoice_service.delete_item(item_id, get_session(), g.user)
    return jsonify({'status': 'ok', 'invoice': invoice.to_dict(include_items=True)})


@invoices_bp.route('/<int:invoice_id>/recalculate', methods=['POST'])
@require_login
def recalculate(invoice_id):
    invoice = invoice_service.recalculate_totals(invoice_id, get_session(), actor=g.user)
    return jsonify({'invoice': invoice.to_dict(include_items=True)})


@invoices_bp.route('/<int:invoice_id>/status', methods=['PUT'])
@require_login
def update_status(invoice_id):
    """{"status": "Processed"} or {"status": "Deleted"}."""
    data = _json_body()
    if not data.get('status'):
        raise InvalidArgumentError('status is required', field='status')

    invoice = invoice_service.transition_status(invoice_id, data['status'], get_session(), g.user)
    return jsonify({'invoice': invoice.to_dict(include_items=True)})


@invoices_bp.route('/<int:invoice_id>/pdf', methods=['GET'])
@require_login
@require_permission(VIEW_INVOICES)
def download_pdf(invoice_id):
    """PDF of a processed invoice."""
    invoice = invoice_service.get_invoice(invoice_id, get_session())
    pdf_buffer = render_invoice_pdf(invoice, _business_info())

    response = make_response(pdf_buffer.getvalue())
    response.headers['Content-Type'] = 'application/pdf'
    response.headers['Content-Disposition'] = f'inline; filename={invoice.invoice_number}.pdf'
    return response


@invoices_bp.route('/<int:invoice_id>/email', methods=['POST'])
@require_login
def email_invoice(invoice_id):
    """Send the PDF of a processed invoice to the customer."""
    ensure_capability(g.user, SEND_INVOICES)
    db_session = get_session()

    invoice = invoice_service.get_invoice(invoice_id, db_session)
    pdf_buffer = render_invoice_pdf(invoice, _business_info())
    sent = send_invoice_email(invoice, pdf_buffer.getvalue())

    if not sent:
        return jsonify({'status': 'error', 'message': 'Email delivery failed', 'sent': False}), 502

    log_activity(db_session, g.user, f'Emailed invoice {invoice.invoice_number}', ActivityModule.INVOICES,
                 invoice.id, invoice.invoice_number, details={'to': invoice.customer_email})
    return jsonify({'status': 'ok', 'sent': True, 'to': invoice.customer_email})
