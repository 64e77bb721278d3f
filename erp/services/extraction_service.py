"""
Validation of AI-extracted documents.

The extraction itself (PDF upload, LLM call) happens outside this
application. It hands back a structured payload such as:

    {
        "documentType": "receipt",
        "documentNumber": "INV-1001",
        "items": [
            {"serialNo": 1, "itemDescription": "Cable 2.5mm", "quantity": 2,
             "unitCost": 50, "discountPercent": 5, "discountAmount": 5,
             "netTotal": 95, "vatPercent": 10, "vatAmount": 9.5, "totalAmount": 104.5}
        ],
        "netAmount": 95, "vatAmount": 9.5, "totalAmount": 104.5
    }

Each item is run through the pricing calculator and the values the model
read off the document are compared with the recomputed ones. Mismatches are
reported, never corrected, so a human can review the line.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Dict, List, Mapping, Optional

from erp.exceptions import BusinessLogicError, ExtractionFailed, PricingError
from erp.services.pricing_service import LineItem, compute_line, compute_document_totals, AggregationPolicy
from erp.utils.number_format import to_decimal, money_float

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = Decimal('0.05')

# extracted key(s) -> computed LineResult attribute
LINE_CHECKS = (
    (('netTotal', 'net_total', 'netAmount'), 'net_amount'),
    (('vatAmount', 'vat_amount'), 'applied_vat'),
    (('totalAmount', 'total_amount', 'totalPrice', 'lineTotal'), 'line_total'),
)

TOTAL_CHECKS = (
    (('netAmount', 'net_amount'), 'net_amount'),
    (('vatAmount', 'vat_amount'), 'total_vat'),
    (('totalAmount', 'total_amount'), 'grand_total'),
)


@dataclass
class Mismatch:
    field: str
    extracted: Decimal
    computed: Decimal

    def to_dict(self):
        return {
            'field': self.field,
            'extracted': money_float(self.extracted),
            'computed': money_float(self.computed),
            'difference': money_float(self.extracted - self.computed),
        }


@dataclass
class LineCheck:
    index: int
    serial_no: Any = None
    description: Optional[str] = None
    computed: Optional[Dict[str, Any]] = None
    mismatches: List[Mismatch] = field(default_factory=list)
    error: Optional[Dict[str, Any]] = None

    @property
    def ok(self) -> bool:
        return self.error is None and not self.mismatches

    def to_dict(self):
        return {
            'index': self.index,
            'serialNo': self.serial_no,
            'description': self.description,
            'ok': self.ok,
            'computed': self.computed,
            'mismatches': [m.to_dict() for m in self.mismatches],
            'error': self.error,
        }


@dataclass
class ExtractionReport:
    document_type: Optional[str]
    document_number: Optional[str]
    lines: List[LineCheck]
    totals: Optional[Dict[str, Any]]
    total_mismatches: List[Mismatch]

    @property
    def valid(self) -> bool:
        return all(line.ok for line in self.lines) and not self.total_mismatches

    @property
    def needs_review(self) -> bool:
        return not self.valid or any(
            line.computed and line.computed.get('needsReview') for line in self.lines
        )

    def to_dict(self):
        return {
            'documentType': self.document_type,
            'documentNumber': self.document_number,
            'valid': self.valid,
            'needsReview': self.needs_review,
            'lines': [line.to_dict() for line in self.lines],
            'totals': self.totals,
            'totalMismatches': [m.to_dict() for m in self.total_mismatches],
        }


def _extracted_value(data: Mapping[str, Any], keys):
    """First parsable extracted value among keys; unreadable values are treated as absent."""
    for key in keys:
        if data.get(key) is None:
            continue
        try:
            return to_decimal(data[key])
        except ValueError:
            logger.debug(f"Ignoring unreadable extracted value {key}={data[key]!r}")
            continue
    return None


def _compare(data, checks, computed_obj, tolerance) -> List[Mismatch]:
    mismatches = []
    for keys, attr in checks:
        extracted = _extracted_value(data, keys)
        if extracted is None:
            continue
        computed = getattr(computed_obj, attr)
        if abs(extracted - computed) > tolerance:
            mismatches.append(Mismatch(keys[0], extracted, computed))
    return mismatches


def validate_extracted_document(payload: Mapping[str, Any], tolerance=DEFAULT_TOLERANCE) -> ExtractionReport:
    """
    Recompute an extracted document and compare it with the extracted figures.

    Args:
        payload: structured document returned by the extraction service
        tolerance: absolute tolerance in currency units

    Returns:
        ExtractionReport

    Raises:
        BusinessLogicError: payload is not a document (no item list)
    """
    if not isinstance(payload, Mapping):
        raise BusinessLogicError('Extracted document must be a JSON object')
    items = payload.get('items')
    if not isinstance(items, list):
        raise BusinessLogicError('Extracted document has no item list')

    try:
        tolerance = to_decimal(tolerance, DEFAULT_TOLERANCE)
    except ValueError:
        raise BusinessLogicError(f'Tolerance must be a number, got {tolerance!r}')
    checks = []
    valid_items = []
    for index, raw in enumerate(items):
        check = LineCheck(index=index)
        if not isinstance(raw, Mapping):
            check.error = {'line': index, 'field': None, 'code': 'InvalidLine', 'message': 'Line is not an object'}
            checks.append(check)
            continue
        check.serial_no = raw.get('serialNo')
        check.description = raw.get('itemDescription') or raw.get('description') or raw.get('itemName')
        try:
            item = LineItem.from_payload(raw)
            result = compute_line(item)
        except PricingError as e:
            check.error = e.to_line_error(index)
            checks.append(check)
            continue
        check.computed = result.to_dict()
        check.mismatches = _compare(raw, LINE_CHECKS, result, tolerance)
        valid_items.append(item)
        checks.append(check)

    totals = compute_document_totals(valid_items, policy=AggregationPolicy.SKIP)
    total_mismatches = _compare(payload, TOTAL_CHECKS, totals, tolerance)

    report = ExtractionReport(
        document_type=payload.get('documentType'),
        document_number=payload.get('documentNumber'),
        lines=checks,
        totals=totals.to_dict(include_lines=False),
        total_mismatches=total_mismatches,
    )
    bad_lines = sum(1 for line in checks if not line.ok)
    if report.valid:
        logger.info(f"Extracted document {report.document_number!r} validated: {len(checks)} line(s) consistent")
    else:
        logger.warning(
            f"Extracted document {report.document_number!r}: {bad_lines} inconsistent line(s), "
            f"{len(total_mismatches)} total mismatch(es)"
        )
    return report


def extract_and_validate(extractor: Callable[..., Mapping[str, Any]], *args, tolerance=DEFAULT_TOLERANCE, **kwargs) -> ExtractionReport:
    """
    Call an external extractor and validate what it returns.

    Any failure of the extractor is wrapped into ExtractionFailed (HTTP 502).
    """
    try:
        payload = extractor(*args, **kwargs)
    except Exception as e:
        logger.error(f"Document extraction failed: {e}", exc_info=True)
        raise ExtractionFailed(f"Document extraction failed: {e}")
    if payload is None:
        raise ExtractionFailed('Document extraction returned no data')
    try:
        return validate_extracted_document(payload, tolerance=tolerance)
    except BusinessLogicError as e:
        raise ExtractionFailed(f"Extraction returned an unusable document: {e.message}")
