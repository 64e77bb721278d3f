"""
Line-item pricing and tax calculator.

Single source of truth for how quantity, cost, markup, discount and VAT
combine into a line total, and how line totals combine into document totals.
Every call site (live preview, document write-back, drift reconciliation,
PDF rows, AI extraction validation) goes through this module.

Order of operations for one line:
1. effective unit price = explicit unit price when > 0, else cost * (1 + markup%)
2. subtotal = quantity * effective unit price
3. discount = subtotal * discount% when discount% > 0, else fixed amount capped at subtotal
4. net = subtotal - discount (never negative)
5. VAT = net * VAT% when VAT% > 0, else fixed VAT amount
6. line total = round2(net + VAT)

All arithmetic is done with Decimal. Rounding to cents happens at the
boundary only: per field when a single line is returned, and once per field
after summation for preview document totals.
"""
import enum
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Optional, Tuple, Union

from erp.exceptions import (
    BusinessLogicError, PricingError, InvalidQuantity, InvalidPrice,
    InvalidPercentage, InvalidDocument
)
from erp.utils.number_format import ZERO, HUNDRED, to_decimal, round2, clamp, money_float

logger = logging.getLogger(__name__)


class AggregationPolicy(enum.Enum):
    """What the aggregator does with a line that fails validation."""
    ABORT = "abort"
    SKIP = "skip"

    @classmethod
    def from_value(cls, value) -> 'AggregationPolicy':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise BusinessLogicError(
                f"Unknown aggregation policy {value!r} (expected 'abort' or 'skip')"
            )


class TotalsBasis(enum.Enum):
    """How document totals were summed."""
    PREVIEW = "preview"      # raw per-line values, rounded once after summation
    PERSISTED = "persisted"  # sum of per-line values already rounded to cents


# Accepted payload keys per field. The first alias is the canonical name.
FIELD_ALIASES = {
    'quantity': ('quantity', 'qty'),
    'unit_cost': ('unit_cost', 'unitCost', 'cost_price', 'costPrice'),
    'unit_price': ('unit_price', 'unitPrice'),
    'markup_percent': ('markup_percent', 'markupPercent', 'markup'),
    'discount_percent': (
        'discount_percent', 'discountPercent',
        'discount_percentage', 'discountPercentage',
        'discount_rate', 'discountRate',
    ),
    'discount_amount': ('discount_amount', 'discountAmount'),
    'vat_percent': (
        'vat_percent', 'vatPercent', 'vat_percentage', 'vatPercentage',
        'tax_rate', 'taxRate',
    ),
    'vat_amount': ('vat_amount', 'vatAmount', 'tax_amount', 'taxAmount'),
}

_PRICE_FIELDS = ('unit_cost', 'unit_price', 'discount_amount', 'vat_amount')
_PERCENT_FIELDS = ('markup_percent', 'discount_percent', 'vat_percent')

# Exclusive upper bounds on input magnitude; match the widest storage columns
MAX_QUANTITY = Decimal('1e9')
MAX_AMOUNT = Decimal('1e10')
MAX_PERCENT = Decimal('1e5')


def _pick(data: Mapping[str, Any], aliases: Tuple[str, ...]):
    for key in aliases:
        if key in data and data[key] is not None:
            return data[key]
    return None


@dataclass(frozen=True)
class LineItem:
    """Raw inputs of one document line."""
    quantity: Optional[Decimal]
    unit_cost: Optional[Decimal] = None
    unit_price: Optional[Decimal] = None
    markup_percent: Optional[Decimal] = None
    discount_percent: Optional[Decimal] = None
    discount_amount: Optional[Decimal] = None
    vat_percent: Optional[Decimal] = None
    vat_amount: Optional[Decimal] = None
    description: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> 'LineItem':
        """
        Build a LineItem from a JSON payload or a storage row dict.

        Accepts both camelCase and snake_case keys plus the column names used
        by the different document tables (taxRate, discountPercentage, ...).

        Raises:
            InvalidQuantity / InvalidPrice / InvalidPercentage: value is not a number.
        """
        values = {}

        raw_qty = _pick(data, FIELD_ALIASES['quantity'])
        try:
            values['quantity'] = to_decimal(raw_qty)
        except ValueError:
            raise InvalidQuantity(raw_qty)

        for name in _PRICE_FIELDS:
            raw = _pick(data, FIELD_ALIASES[name])
            try:
                values[name] = to_decimal(raw)
            except ValueError:
                raise InvalidPrice(name, raw)

        for name in _PERCENT_FIELDS:
            raw = _pick(data, FIELD_ALIASES[name])
            try:
                values[name] = to_decimal(raw)
            except ValueError:
                raise InvalidPercentage(name, raw)

        description = data.get('description') or data.get('item_description') or data.get('itemDescription')
        return cls(description=description, notes=data.get('notes'), **values)


@dataclass(frozen=True)
class LineResult:
    """Computed values of one line, each rounded to cents."""
    effective_unit_price: Decimal
    subtotal: Decimal
    applied_discount: Decimal
    net_amount: Decimal
    applied_vat: Decimal
    line_total: Decimal

    @property
    def needs_review(self) -> bool:
        """A zero-priced line is valid but usually a data-entry omission."""
        return self.effective_unit_price == ZERO

    def to_dict(self) -> Dict[str, Any]:
        return {
            'effectiveUnitPrice': money_float(self.effective_unit_price),
            'subtotal': money_float(self.subtotal),
            'appliedDiscount': money_float(self.applied_discount),
            'netAmount': money_float(self.net_amount),
            'appliedVat': money_float(self.applied_vat),
            'lineTotal': money_float(self.line_total),
            'needsReview': self.needs_review,
        }


@dataclass(frozen=True)
class DocumentTotals:
    """Aggregate of a document's lines."""
    subtotal: Decimal
    total_discount: Decimal
    net_amount: Decimal
    total_vat: Decimal
    grand_total: Decimal
    basis: TotalsBasis
    lines: Tuple[LineResult, ...] = ()
    skipped: Tuple[Dict[str, Any], ...] = field(default_factory=tuple)

    def to_dict(self, include_lines=True) -> Dict[str, Any]:
        rv = {
            'subtotal': money_float(self.subtotal),
            'totalDiscount': money_float(self.total_discount),
            'netAmount': money_float(self.net_amount),
            'totalVat': money_float(self.total_vat),
            'grandTotal': money_float(self.grand_total),
            'basis': self.basis.value,
            'lineCount': len(self.lines),
            'skipped': list(self.skipped),
        }
        if include_lines:
            rv['lines'] = [line.to_dict() for line in self.lines]
        return rv


class _ExactLine(NamedTuple):
    effective_unit_price: Decimal
    subtotal: Decimal
    applied_discount: Decimal
    net_amount: Decimal
    applied_vat: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.net_amount + self.applied_vat

    def rounded(self) -> LineResult:
        return LineResult(
            effective_unit_price=round2(self.effective_unit_price),
            subtotal=round2(self.subtotal),
            applied_discount=round2(self.applied_discount),
            net_amount=round2(self.net_amount),
            applied_vat=round2(self.applied_vat),
            line_total=round2(self.line_total),
        )


LineInput = Union[LineItem, Mapping[str, Any]]


def as_line_item(item: LineInput) -> LineItem:
    if isinstance(item, LineItem):
        return item
    if isinstance(item, Mapping):
        return LineItem.from_payload(item)
    raise BusinessLogicError(f"Unsupported line item type: {type(item).__name__}")


def _effective_unit_price(item: LineItem) -> Decimal:
    unit_price = item.unit_price or ZERO
    if unit_price > ZERO:
        return unit_price
    unit_cost = item.unit_cost or ZERO
    markup = max(ZERO, item.markup_percent or ZERO)
    return unit_cost * (1 + markup / HUNDRED)


def _check_range(item: LineItem) -> None:
    if abs(item.quantity) >= MAX_QUANTITY:
        raise InvalidQuantity(item.quantity, f"Quantity must be below {MAX_QUANTITY:,f}, got {item.quantity}")
    for name in _PRICE_FIELDS:
        value = getattr(item, name)
        if value is not None and abs(value) >= MAX_AMOUNT:
            raise InvalidPrice(name, value, f"{name} must be below {MAX_AMOUNT:,f}, got {value}")
    for name in _PERCENT_FIELDS:
        value = getattr(item, name)
        if value is not None and abs(value) >= MAX_PERCENT:
            raise InvalidPercentage(name, value, f"{name} must be below {MAX_PERCENT:,f}, got {value}")


def _compute_exact(item: LineItem) -> _ExactLine:
    if item.quantity is None or item.quantity < ZERO:
        raise InvalidQuantity(item.quantity)
    if item.unit_cost is not None and item.unit_cost < ZERO:
        raise InvalidPrice('unit_cost', item.unit_cost)
    if item.unit_price is not None and item.unit_price < ZERO:
        raise InvalidPrice('unit_price', item.unit_price)
    _check_range(item)

    unit_price = _effective_unit_price(item)
    subtotal = item.quantity * unit_price

    discount_percent = item.discount_percent or ZERO
    if discount_percent > ZERO:
        discount = subtotal * clamp(discount_percent, ZERO, HUNDRED) / HUNDRED
    else:
        discount = min(subtotal, max(ZERO, item.discount_amount or ZERO))

    net = max(ZERO, subtotal - discount)

    vat_percent = item.vat_percent or ZERO
    if vat_percent > ZERO:
        if vat_percent > HUNDRED:
            logger.debug(f"VAT percentage above 100% accepted as-is: {vat_percent}")
        vat = net * vat_percent / HUNDRED
    else:
        vat = max(ZERO, item.vat_amount or ZERO)

    return _ExactLine(unit_price, subtotal, discount, net, vat)


def compute_line(item: LineInput) -> LineResult:
    """
    Compute one line.

    Args:
        item: LineItem or a payload mapping accepted by LineItem.from_payload.

    Returns:
        LineResult with every field rounded to cents.

    Raises:
        InvalidQuantity: quantity missing, negative or not a number.
        InvalidPrice: unit cost or unit price negative or not a number.
    """
    line_item = as_line_item(item)
    result = _compute_exact(line_item).rounded()
    if result.needs_review:
        logger.warning(
            f"Zero-priced line flagged for review: "
            f"description={line_item.description!r}, quantity={line_item.quantity}"
        )
    return result


def _run_lines(items: Iterable[LineInput], policy: AggregationPolicy) -> Tuple[List[_ExactLine], List[Dict[str, Any]]]:
    computed = []
    errors = []
    for index, item in enumerate(items or []):
        try:
            computed.append(_compute_exact(as_line_item(item)))
        except PricingError as e:
            errors.append(e.to_line_error(index))

    if errors:
        if policy is AggregationPolicy.ABORT:
            logger.info(f"Aggregation aborted: {len(errors)} invalid line(s)")
            raise InvalidDocument(errors)
        logger.warning(f"Skipping {len(errors)} invalid line(s) in document totals: {errors}")
    return computed, errors


def compute_document_totals(items: Iterable[LineInput], policy=AggregationPolicy.ABORT) -> DocumentTotals:
    """
    Preview totals: sum the raw per-line components, then round each sum once.

    This is what a live form shows. It can differ by a cent or two from
    `compute_persisted_totals`, which sums already-rounded line values.

    Raises:
        InvalidDocument: any line is invalid and policy is ABORT.
    """
    policy = AggregationPolicy.from_value(policy)
    exact_lines, skipped = _run_lines(items, policy)

    subtotal = sum((line.subtotal for line in exact_lines), ZERO)
    discount = sum((line.applied_discount for line in exact_lines), ZERO)
    net = sum((line.net_amount for line in exact_lines), ZERO)
    vat = sum((line.applied_vat for line in exact_lines), ZERO)
    grand = sum((line.line_total for line in exact_lines), ZERO)

    return DocumentTotals(
        subtotal=round2(subtotal),
        total_discount=round2(discount),
        net_amount=round2(net),
        total_vat=round2(vat),
        grand_total=round2(grand),
        basis=TotalsBasis.PREVIEW,
        lines=tuple(line.rounded() for line in exact_lines),
        skipped=tuple(skipped),
    )


def compute_persisted_totals(items: Iterable[LineInput], policy=AggregationPolicy.ABORT) -> DocumentTotals:
    """
    Stored totals: sum the per-line values as they are persisted (rounded to cents).

    Used when writing document header columns so that the header always equals
    the sum of its stored item columns.

    Raises:
        InvalidDocument: any line is invalid and policy is ABORT.
    """
    policy = AggregationPolicy.from_value(policy)
    exact_lines, skipped = _run_lines(items, policy)
    lines = tuple(line.rounded() for line in exact_lines)
    return sum_line_results(lines, skipped=skipped)


def sum_line_results(lines: Iterable[LineResult], skipped=()) -> DocumentTotals:
    """Sum already-rounded line results into persisted-basis totals."""
    lines = tuple(lines)
    return DocumentTotals(
        subtotal=sum((line.subtotal for line in lines), ZERO),
        total_discount=sum((line.applied_discount for line in lines), ZERO),
        net_amount=sum((line.net_amount for line in lines), ZERO),
        total_vat=sum((line.applied_vat for line in lines), ZERO),
        grand_total=sum((line.line_total for line in lines), ZERO),
        basis=TotalsBasis.PERSISTED,
        lines=lines,
        skipped=tuple(skipped),
    )
