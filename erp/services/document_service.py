"""
Document service: quotations, sales orders, supplier LPOs and purchase invoices.

Stored totals are always derived. Every item edit recomputes the edited line
through the pricing calculator, writes the result back to the item columns
and refreshes the document header in the same transaction. A document's
`version` is bumped on each change; callers may pass `expected_version`
to detect concurrent edits.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from erp.exceptions import (
    BusinessLogicError, NotFoundError, ConcurrencyError, PricingError,
    InvalidDocument, InvalidPrice, InvalidPercentage, InvalidQuantity
)
from erp.models import (
    Quotation, QuotationItem, SalesOrder, SalesOrderItem,
    SupplierLpo, SupplierLpoItem, PurchaseInvoice, PurchaseInvoiceItem,
    Customer, Supplier
)
from erp.services.markup_service import resolve_markup, normalize_customer_type
from erp.services.pricing_service import (
    FIELD_ALIASES, compute_line, sum_line_results, DocumentTotals, LineResult
)
from erp.utils.number_format import ZERO, to_decimal, money_float

logger = logging.getLogger(__name__)

# URL slug -> header model
DOCUMENT_TYPES = {
    'quotations': Quotation,
    'sales-orders': SalesOrder,
    'supplier-lpos': SupplierLpo,
    'purchase-invoices': PurchaseInvoice,
}

NUMBER_PREFIXES = {
    Quotation: 'QT',
    SalesOrder: 'SO',
    SupplierLpo: 'LPO',
    PurchaseInvoice: 'PI',
}

ITEM_MODELS = {
    Quotation: QuotationItem,
    SalesOrder: SalesOrderItem,
    SupplierLpo: SupplierLpoItem,
    PurchaseInvoice: PurchaseInvoiceItem,
}

_PERCENT_TO_AMOUNT = {
    'discount_percent': 'discount_amount',
    'vat_percent': 'vat_amount',
}


def get_document_model(doc_type: str):
    model = DOCUMENT_TYPES.get(doc_type)
    if model is None:
        raise NotFoundError(f"Unknown document type '{doc_type}'")
    return model


def get_document(session: Session, doc_type: str, doc_id: int, for_update: bool = False):
    """Load a document by id, optionally locking its row."""
    model = get_document_model(doc_type)
    query = session.query(model).filter(model.id == doc_id)
    if for_update:
        query = query.with_for_update()
    document = query.first()
    if not document:
        raise NotFoundError(f"{model.LABEL} {doc_id} not found")
    return document


def generate_document_number(session: Session, model) -> str:
    """Generate a unique document number, e.g. QT-20250127-143000-0001."""
    timestamp = datetime.now().strftime('%Y%m%d-%H%M%S')
    count = session.query(model).count()
    return f"{NUMBER_PREFIXES[model]}-{timestamp}-{str(count + 1).zfill(4)}"


def _check_version(document, expected_version) -> None:
    if expected_version is None:
        return
    try:
        expected = int(expected_version)
    except (TypeError, ValueError):
        raise BusinessLogicError(f"expected_version must be an integer, got {expected_version!r}")
    if expected != document.version:
        raise ConcurrencyError(f"{document.LABEL} {document.document_number}", expected, document.version)


def _parse_field(field_name: str, raw):
    try:
        return to_decimal(raw)
    except ValueError:
        if field_name == 'quantity':
            raise InvalidQuantity(raw)
        if field_name.endswith('_percent'):
            raise InvalidPercentage(field_name, raw)
        raise InvalidPrice(field_name, raw)


def _find_raw(data: Dict[str, Any], field_name: str):
    """Return (present, value) for the first alias of field_name found in data."""
    for key in FIELD_ALIASES[field_name]:
        if key in data:
            return True, data[key]
    return False, None


def _assign_item_fields(session: Session, document, item, data: Dict[str, Any], partial: bool,
                        markup_defaults: Optional[dict] = None) -> None:
    """
    Copy pricing inputs and descriptive fields from a payload onto an item.

    On create (partial=False) missing numeric columns default to zero. On update
    only the supplied fields change; when a percentage is switched off without
    a new fixed amount, the amount column (which held the derived value) is
    reset so it does not silently turn into a fixed discount or VAT.
    """
    supplied = set()
    for field_name in item.PRICING_COLUMNS:
        present, raw = _find_raw(data, field_name)
        if not present:
            continue
        value = _parse_field(field_name, raw)
        if value is None and field_name == 'quantity':
            raise InvalidQuantity(raw)
        if value is None and field_name != 'unit_price':
            value = ZERO
        item.set_input(field_name, value)
        supplied.add(field_name)

    if partial:
        for percent_field, amount_field in _PERCENT_TO_AMOUNT.items():
            if (percent_field in supplied and amount_field not in supplied
                    and amount_field in item.PRICING_COLUMNS
                    and (item._column_value(percent_field) or ZERO) <= ZERO):
                item.set_input(amount_field, ZERO)
    else:
        if 'quantity' not in supplied:
            raise InvalidQuantity(None)
        for field_name in item.PRICING_COLUMNS:
            if field_name not in supplied:
                item.set_input(field_name, None if field_name == 'unit_price' else ZERO)

    for attr, keys in (
        ('description', ('description', 'itemDescription', 'item_description')),
        ('notes', ('notes',)),
        ('item_id', ('item_id', 'itemId')),
        ('category_id', ('category_id', 'categoryId')),
    ):
        if not hasattr(item, attr):
            continue
        for key in keys:
            if key in data:
                setattr(item, attr, data[key])
                break

    if not partial and not (item.description or '').strip():
        raise BusinessLogicError('Item description is required')

    # Quotation lines without an explicit markup take the configured one
    if (isinstance(item, QuotationItem) and 'markup_percent' not in supplied
            and not partial):
        item.set_input('markup_percent', resolve_markup(
            session,
            customer_type=document.customer_type,
            item_id=item.item_id,
            category_id=item.category_id,
            defaults=markup_defaults,
        ))


def _price_item(item) -> LineResult:
    result = compute_line(item.to_line_item())
    item.apply_line_result(result)
    return result


def refresh_document_totals(document) -> DocumentTotals:
    """
    Recompute every line of a document and write line and header totals back.

    Does not commit. Any invalid line aborts with InvalidDocument.
    """
    results = []
    errors = []
    for index, item in enumerate(document.items):
        try:
            results.append(_price_item(item))
        except PricingError as e:
            errors.append(e.to_line_error(index))
    if errors:
        raise InvalidDocument(errors)

    totals = sum_line_results(results)
    document.apply_totals(totals)
    return totals


def _touch(document) -> None:
    document.version = (document.version or 0) + 1


def _header_kwargs(session: Session, model, payload: Dict[str, Any]) -> Dict[str, Any]:
    kwargs = {}
    number = payload.get('number') or payload.get(model.NUMBER_COLUMN) or ''
    if isinstance(number, bool) or not isinstance(number, (str, int)):
        raise BusinessLogicError(f"Document number must be a string, got {number!r}")
    number = str(number).strip()
    kwargs[model.NUMBER_COLUMN] = number or generate_document_number(session, model)

    for attr in ('currency', 'notes'):
        if payload.get(attr) is not None:
            kwargs[attr] = payload[attr]

    if model in (Quotation, SalesOrder):
        customer_id = payload.get('customer_id') or payload.get('customerId')
        if customer_id is not None:
            customer = session.query(Customer).filter(Customer.id == customer_id).first()
            if not customer:
                raise NotFoundError(f"Customer {customer_id} not found")
            kwargs['customer_id'] = customer.id
            if model is Quotation:
                kwargs['customer_type'] = customer.customer_type
        if model is Quotation and 'customer_type' not in kwargs:
            kwargs['customer_type'] = normalize_customer_type(
                payload.get('customer_type') or payload.get('customerType')
            )
        if model is SalesOrder and payload.get('quotation_id') is not None:
            kwargs['quotation_id'] = payload['quotation_id']
    else:
        supplier_id = payload.get('supplier_id') or payload.get('supplierId')
        if supplier_id is not None:
            supplier = session.query(Supplier).filter(Supplier.id == supplier_id).first()
            if not supplier:
                raise NotFoundError(f"Supplier {supplier_id} not found")
            kwargs['supplier_id'] = supplier.id
        if model is PurchaseInvoice:
            if payload.get('lpo_id') is not None:
                kwargs['lpo_id'] = payload['lpo_id']
            for attr in ('invoice_date', 'due_date'):
                if payload.get(attr):
                    value = payload[attr]
                    try:
                        kwargs[attr] = value if isinstance(value, date) else date.fromisoformat(str(value))
                    except ValueError:
                        raise BusinessLogicError(f"{attr} must be an ISO date (YYYY-MM-DD), got {value!r}")
    return kwargs


def create_document(session: Session, doc_type: str, payload: Dict[str, Any],
                    markup_defaults: Optional[dict] = None, default_currency: str = 'AED'):
    """
    Create a document with its items and stored totals.

    Args:
        session: SQLAlchemy session
        doc_type: one of DOCUMENT_TYPES
        payload: header fields plus `items`, a list of line payloads

    Returns:
        The created document.

    Raises:
        InvalidDocument: one or more items are invalid (nothing is stored)
        NotFoundError: referenced customer or supplier does not exist
    """
    model = get_document_model(doc_type)
    item_model = ITEM_MODELS[model]
    try:
        document = model(**_header_kwargs(session, model, payload))
        if not document.currency:
            document.currency = default_currency
        document.version = 1
        session.add(document)

        errors = []
        for index, item_data in enumerate(payload.get('items') or []):
            item = item_model()
            try:
                _assign_item_fields(session, document, item, item_data, partial=False,
                                    markup_defaults=markup_defaults)
                _price_item(item)
            except PricingError as e:
                errors.append(e.to_line_error(index))
                continue
            document.items.append(item)
        if errors:
            raise InvalidDocument(errors)

        totals = refresh_document_totals(document)
        session.commit()
        logger.info(
            f"{model.LABEL} {document.document_number} created with {len(document.items)} item(s), "
            f"total={totals.grand_total}"
        )
        return document
    except Exception:
        session.rollback()
        raise


def add_item(session: Session, doc_type: str, doc_id: int, payload: Dict[str, Any], expected_version=None,
             markup_defaults: Optional[dict] = None):
    """Add a line to a document and refresh its totals. Returns the new item."""
    try:
        document = get_document(session, doc_type, doc_id, for_update=True)
        _check_version(document, expected_version)

        item = ITEM_MODELS[type(document)]()
        try:
            _assign_item_fields(session, document, item, payload, partial=False,
                                markup_defaults=markup_defaults)
        except PricingError as e:
            raise InvalidDocument([e.to_line_error(len(document.items))])
        document.items.append(item)

        refresh_document_totals(document)
        _touch(document)
        session.commit()
        logger.info(f"Item added to {document.LABEL} {document.document_number}, total={document.total_amount}")
        return item
    except Exception:
        session.rollback()
        raise


def _get_item(document, item_id: int):
    for item in document.items:
        if item.id == item_id:
            return item
    raise NotFoundError(f"Item {item_id} not found on {document.LABEL} {document.document_number}")


def update_item(session: Session, doc_type: str, doc_id: int, item_id: int, payload: Dict[str, Any],
                expected_version=None):
    """Update some fields of a line and refresh the document totals. Returns the item."""
    try:
        document = get_document(session, doc_type, doc_id, for_update=True)
        _check_version(document, expected_version)
        item = _get_item(document, item_id)

        index = document.items.index(item)
        try:
            _assign_item_fields(session, document, item, payload, partial=True)
        except PricingError as e:
            raise InvalidDocument([e.to_line_error(index)])

        refresh_document_totals(document)
        _touch(document)
        session.commit()
        logger.info(f"Item {item_id} updated on {document.LABEL} {document.document_number}, total={document.total_amount}")
        return item
    except Exception:
        session.rollback()
        raise


def remove_item(session: Session, doc_type: str, doc_id: int, item_id: int, expected_version=None):
    """Remove a line and refresh the document totals. Returns the document."""
    try:
        document = get_document(session, doc_type, doc_id, for_update=True)
        _check_version(document, expected_version)
        item = _get_item(document, item_id)

        document.items.remove(item)
        refresh_document_totals(document)
        _touch(document)
        session.commit()
        logger.info(f"Item {item_id} removed from {document.LABEL} {document.document_number}")
        return document
    except Exception:
        session.rollback()
        raise


@dataclass(frozen=True)
class DriftEntry:
    """A stored value that no longer matches its recomputation."""
    scope: str  # 'line' or 'document'
    field: str
    stored: Optional[Decimal]
    computed: Optional[Decimal]
    item_id: Optional[int] = None
    message: Optional[str] = None

    def to_dict(self):
        return {
            'scope': self.scope,
            'itemId': self.item_id,
            'field': self.field,
            'stored': money_float(self.stored) if self.stored is not None else None,
            'computed': money_float(self.computed) if self.computed is not None else None,
            'message': self.message,
        }


def detect_drift(document) -> List[DriftEntry]:
    """
    Compare stored line and header totals against a fresh recomputation.

    Read-only: nothing on the document is modified.
    """
    drift = []
    results = []
    for item in document.items:
        try:
            result = compute_line(item.to_line_item())
        except PricingError as e:
            drift.append(DriftEntry('line', e.field or 'line', None, None, item.id, e.message))
            continue
        results.append(result)

        if item.stored_line_total != result.line_total:
            drift.append(DriftEntry('line', item.LINE_TOTAL_COLUMN, item.stored_line_total, result.line_total, item.id))
        for percent_field, amount_field, computed in (
            ('discount_percent', 'discount_amount', result.applied_discount),
            ('vat_percent', 'vat_amount', result.applied_vat),
        ):
            if (item._column_value(percent_field) or ZERO) <= ZERO:
                continue
            stored = item._column_value(amount_field)
            stored = Decimal(stored) if stored is not None else ZERO
            if stored != computed:
                drift.append(DriftEntry('line', item.PRICING_COLUMNS[amount_field], stored, computed, item.id))

    computed_totals = sum_line_results(results)
    stored_totals = document.stored_totals()
    for field_name, stored in stored_totals.items():
        computed = getattr(computed_totals, field_name)
        if stored != computed:
            drift.append(DriftEntry('document', field_name, stored, computed))

    if drift:
        logger.warning(f"{document.LABEL} {document.document_number}: {len(drift)} stored value(s) drifted")
    return drift


def reconcile_documents(session: Session, doc_types=None, dry_run: bool = False) -> Dict[str, Dict[str, int]]:
    """
    Scan documents for drift and optionally repair them.

    Documents with invalid lines are reported as `invalid` and left untouched.

    Returns:
        {doc_type: {'checked': n, 'drifted': n, 'repaired': n, 'invalid': n}}
    """
    summary = {}
    for doc_type in (doc_types or DOCUMENT_TYPES.keys()):
        model = get_document_model(doc_type)
        stats = {'checked': 0, 'drifted': 0, 'repaired': 0, 'invalid': 0}
        for document in session.query(model).order_by(model.id).all():
            stats['checked'] += 1
            drift = detect_drift(document)
            if not drift:
                continue
            stats['drifted'] += 1
            if any(entry.message for entry in drift):
                stats['invalid'] += 1
                continue
            if dry_run:
                continue
            try:
                refresh_document_totals(document)
                _touch(document)
                session.commit()
                stats['repaired'] += 1
            except Exception:
                session.rollback()
                logger.error(f"Failed to repair {model.LABEL} {document.document_number}", exc_info=True)
                raise
        summary[doc_type] = stats
        logger.info(f"Reconciled {doc_type}: {stats}")
    return summary


def refresh_document(session: Session, doc_type: str, doc_id: int, expected_version=None):
    """Recompute and store a single document's totals. Returns (document, totals)."""
    try:
        document = get_document(session, doc_type, doc_id, for_update=True)
        _check_version(document, expected_version)
        totals = refresh_document_totals(document)
        _touch(document)
        session.commit()
        return document, totals
    except Exception:
        session.rollback()
        raise


def serialize_item(item) -> Dict[str, Any]:
    rv = {
        'id': item.id,
        'description': item.description,
        'notes': item.notes,
    }
    for field_name, column in item.PRICING_COLUMNS.items():
        value = getattr(item, column)
        rv[column] = float(value) if value is not None else None
    rv[item.LINE_TOTAL_COLUMN] = money_float(getattr(item, item.LINE_TOTAL_COLUMN))
    try:
        rv['computed'] = compute_line(item.to_line_item()).to_dict()
    except PricingError as e:
        rv['computed'] = None
        rv['error'] = e.to_line_error(None)
    return rv


def serialize_document(document) -> Dict[str, Any]:
    stored = document.stored_totals()
    rv = {
        'id': document.id,
        'type': next(slug for slug, model in DOCUMENT_TYPES.items() if isinstance(document, model)),
        'number': document.document_number,
        'status': document.status.value if document.status else None,
        'currency': document.currency,
        'version': document.version,
        'notes': document.notes,
        'items': [serialize_item(item) for item in document.items],
        'totals': {
            'subtotal': money_float(stored['subtotal']),
            'totalDiscount': money_float(stored['total_discount']),
            'netAmount': money_float(stored['net_amount']),
            'totalVat': money_float(stored['total_vat']),
            'grandTotal': money_float(stored['grand_total']),
            'basis': 'persisted',
        },
    }
    if isinstance(document, Quotation):
        rv['customerId'] = document.customer_id
        rv['customerType'] = document.customer_type.value if document.customer_type else None
    elif isinstance(document, SalesOrder):
        rv['customerId'] = document.customer_id
    else:
        rv['supplierId'] = document.supplier_id
    return rv
