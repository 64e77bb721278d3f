"""Printable line-item table for document PDFs.

Builds the rows and totals block a PDF renderer prints. Values come from the
pricing calculator, never from stored columns, so a printout always matches
what the document preview shows.
"""
from decimal import Decimal
from typing import Any, Dict, List

from erp.services.pricing_service import compute_line, sum_line_results
from erp.utils.number_format import ZERO, money_str

PDF_COLUMNS = (
    'S/I', 'Item Description', 'Qty', 'Unit Cost',
    'Disc %', 'Disc Amt', 'VAT %', 'VAT Amt', 'Total Amount',
)

TOTALS_LABELS = ('Gross', 'Discount', 'Net Amount', 'VAT', 'Total')


def _qty_str(qty) -> str:
    qty = Decimal(qty or 0)
    return str(int(qty)) if qty % 1 == 0 else f"{qty.normalize():f}"


def _percent_str(value) -> str:
    value = Decimal(value or 0)
    if value <= ZERO:
        return '-'
    return f"{value.normalize():f}%"


def build_pdf_table(document) -> Dict[str, Any]:
    """
    Build the item table of a document.

    Returns:
        {
            'columns': PDF_COLUMNS,
            'rows': [[...9 cells...], ...],
            'totals': [('Gross', 'AED 100.00'), ...],
        }

    Raises:
        InvalidQuantity / InvalidPrice if a stored line is invalid.
    """
    currency = document.currency or ''
    rows: List[List[str]] = []
    results = []

    for serial, item in enumerate(document.items, start=1):
        line_item = item.to_line_item()
        result = compute_line(line_item)
        results.append(result)

        discount_percent = line_item.discount_percent or ZERO
        vat_percent = line_item.vat_percent or ZERO
        rows.append([
            str(serial),
            item.description or '',
            _qty_str(line_item.quantity),
            money_str(result.effective_unit_price),
            _percent_str(discount_percent),
            money_str(result.applied_discount),
            _percent_str(vat_percent),
            money_str(result.applied_vat),
            money_str(result.line_total),
        ])

    totals = sum_line_results(results)
    amounts = (
        totals.subtotal, totals.total_discount, totals.net_amount,
        totals.total_vat, totals.grand_total,
    )
    totals_block = [
        (label, f"{currency} {money_str(amount)}".strip())
        for label, amount in zip(TOTALS_LABELS, amounts)
    ]

    return {
        'columns': list(PDF_COLUMNS),
        'rows': rows,
        'totals': totals_block,
    }
