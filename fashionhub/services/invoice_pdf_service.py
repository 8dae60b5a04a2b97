"""Invoice PDF rendering (reportlab)."""
from io import BytesIO
from typing import Any, Dict

from reportlab.lib.pagesizes import A4
from reportlab.lib import colors
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.enums import TA_CENTER

from fashionhub.exceptions import InvalidStateError
from fashionhub.models import Invoice, InvoiceStatus
from fashionhub.utils.formatters import money_display, date_display
from fashionhub.utils.money import to_money


def _require_processed(invoice: Invoice) -> None:
    if invoice.status != InvoiceStatus.PROCESSED:
        raise InvalidStateError('Only processed invoices can be exported', status=invoice.status.value)


def render_invoice_pdf(invoice: Invoice, business_info: Dict[str, Any] = None) -> BytesIO:
    """
    Render a processed invoice to PDF.

    Read only: the invoice and its items are never modified.

    Args:
        invoice: Processed invoice with items loaded (or loadable)
        business_info: name/address/phone/email for the header

    Returns:
        BytesIO positioned at 0
    """
    _require_processed(invoice)
    business_info = business_info or {}

    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=0.75*inch,
        leftMargin=0.75*inch,
        topMargin=0.75*inch,
        bottomMargin=0.75*inch,
        title=invoice.invoice_number
    )

    elements = []
    styles = getSampleStyleSheet()

    title_style = ParagraphStyle(
        'InvoiceTitle',
        parent=styles['Heading1'],
        fontSize=24,
        textColor=colors.HexColor('#2C3E50'),
        spaceAfter=12,
        alignment=TA_CENTER,
        fontName='Helvetica-Bold'
    )

    header_style = ParagraphStyle(
        'InvoiceHeader',
        parent=styles['Normal'],
        fontSize=10,
        textColor=colors.HexColor('#7F8C8D'),
        alignment=TA_CENTER,
        spaceAfter=6
    )

    # 1. Title and business header
    elements.append(Paragraph("INVOICE", title_style))

    if business_info.get('name'):
        elements.append(Paragraph(f"<b>{business_info['name']}</b>", header_style))
    if business_info.get('address'):
        elements.append(Paragraph(business_info['address'], header_style))

    contact_parts = []
    if business_info.get('phone'):
        contact_parts.append(f"Tel: {business_info['phone']}")
    if business_info.get('email'):
        contact_parts.append(f"Email: {business_info['email']}")
    if contact_parts:
        elements.append(Paragraph(" | ".join(contact_parts), header_style))

    elements.append(Spacer(1, 0.3*inch))

    # 2. Invoice and customer metadata
    info_data = [
        ['Invoice No.:', invoice.invoice_number],
        ['Issued:', date_display(invoice.created_at)],
        ['Processed:', date_display(invoice.processed_at)],
        ['Customer:', invoice.customer_name],
        ['Email:', invoice.customer_email],
    ]
    if invoice.customer_phone:
        info_data.append(['Phone:', invoice.customer_phone])
    if invoice.customer_address:
        info_data.append(['Address:', invoice.customer_address])

    info_table = Table(info_data, colWidths=[2*inch, 4*inch])
    info_table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (0, -1), 'RIGHT'),
        ('ALIGN', (1, 0), (1, -1), 'LEFT'),
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 10),
        ('TEXTCOLOR', (0, 0), (-1, -1), colors.HexColor('#34495E')),
    ]))
    elements.append(info_table)
    elements.append(Spacer(1, 0.3*inch))

    # 3. Items
    table_data = [['Product', 'Color / Size', 'Qty', 'Unit Price', 'Total']]
    for item in invoice.items:
        product = item.product
        variant = " / ".join(part for part in (product.color, product.size) if part) if product else ''
        table_data.append([
            product.name if product else f'Product {item.product_id}',
            variant or '-',
            str(item.quantity),
            money_display(item.unit_price),
            money_display(item.total_price),
        ])

    items_table = Table(table_data, colWidths=[2.7*inch, 1.3*inch, 0.6*inch, 1*inch, 1.1*inch])
    items_table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#3498DB')),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('ALIGN', (0, 0), (-1, 0), 'CENTER'),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('BOTTOMPADDING', (0, 0), (-1, 0), 12),
        ('ALIGN', (2, 1), (2, -1), 'CENTER'),
        ('ALIGN', (3, 1), (4, -1), 'RIGHT'),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor('#BDC3C7')),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#ECF0F1')]),
    ]))
    elements.append(items_table)
    elements.append(Spacer(1, 0.2*inch))

    # 4. Totals
    totals_data = [['Subtotal:', money_display(invoice.subtotal)]]
    if to_money(invoice.discount_amount):
        totals_data.append(['Discount:', money_display(-to_money(invoice.discount_amount))])
    totals_data.append(['TOTAL:', money_display(invoice.total)])

    totals_table = Table(totals_data, colWidths=[5.6*inch, 1.1*inch])
    totals_table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (-1, -1), 'RIGHT'),
        ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, -1), (-1, -1), 14),
        ('TEXTCOLOR', (0, -1), (-1, -1), colors.HexColor('#27AE60')),
        ('BACKGROUND', (0, -1), (-1, -1), colors.HexColor('#E8F8F5')),
        ('BOX', (0, -1), (-1, -1), 2, colors.HexColor('#27AE60')),
    ]))
    elements.append(totals_table)
    elements.append(Spacer(1, 0.4*inch))

    if invoice.notes:
        footer_style = ParagraphStyle('Footer', parent=styles['Normal'], fontSize=9,
                                      textColor=colors.HexColor('#95A5A6'), alignment=TA_CENTER)
        elements.append(Paragraph(f"<b>Notes:</b> {invoice.notes}", footer_style))

    doc.build(elements)
    buffer.seek(0)
    return buffer
