"""Shared pricing behaviour for document headers and their line items."""
from decimal import Decimal, ROUND_HALF_UP

from erp.exceptions import InvalidQuantity, InvalidPrice, InvalidPercentage
from erp.services.pricing_service import LineItem, LineResult, DocumentTotals
from erp.utils.number_format import ZERO, HUNDRED, round2


def _numeric_limits(column_type):
    """(quantum, exclusive magnitude limit) of a Numeric column, or (None, None)."""
    precision = getattr(column_type, 'precision', None)
    scale = getattr(column_type, 'scale', None)
    if precision is None or scale is None:
        return None, None
    return Decimal(1).scaleb(-scale), Decimal(10) ** (precision - scale)


def _fit_column(model, column, value, error):
    """Round value to the column scale; raise `error(message)` if it does not fit."""
    if value is None:
        return None
    quantum, limit = _numeric_limits(model.__table__.columns[column].type)
    if quantum is None:
        return value
    value = Decimal(value)
    # checked before quantize too, which fails on values wider than the context
    if abs(value) >= limit:
        raise error(f"{column} must be below {limit:,f}, got {value}")
    value = value.quantize(quantum, rounding=ROUND_HALF_UP)
    if abs(value) >= limit:
        raise error(f"{column} must be below {limit:,f}, got {value}")
    return value


class PricedItemMixin:
    """
    Maps a line-item table onto the calculator.

    Subclasses declare PRICING_COLUMNS: canonical calculator field -> column
    attribute. Only the fields a table actually has are listed, e.g. a supplier
    LPO line has no markup and prices from unit_cost.

    Inputs are rounded to their column scale when set, so a line priced
    before a flush prices the same after it is read back.

    Write-back rules:
    - the line total column always receives the computed line total
    - the discount / VAT amount columns receive the applied value only when the
      percentage governs; otherwise they hold the user's fixed amount
    """

    PRICING_COLUMNS = {}
    LINE_TOTAL_COLUMN = 'line_total'

    def _column_value(self, field_name):
        column = self.PRICING_COLUMNS.get(field_name)
        return getattr(self, column) if column else None

    def to_line_item(self) -> LineItem:
        return LineItem(
            quantity=self._column_value('quantity'),
            unit_cost=self._column_value('unit_cost'),
            unit_price=self._column_value('unit_price'),
            markup_percent=self._column_value('markup_percent'),
            discount_percent=self._column_value('discount_percent'),
            discount_amount=self._column_value('discount_amount'),
            vat_percent=self._column_value('vat_percent'),
            vat_amount=self._column_value('vat_amount'),
            description=getattr(self, 'description', None),
            notes=getattr(self, 'notes', None),
        )

    def _store_output(self, column, value) -> None:
        def error(message):
            return InvalidPrice(column, value, message)
        setattr(self, column, _fit_column(type(self), column, value, error))

    def apply_line_result(self, result: LineResult) -> None:
        if (self._column_value('discount_percent') or ZERO) > ZERO:
            self._store_output(self.PRICING_COLUMNS['discount_amount'], result.applied_discount)
        if (self._column_value('vat_percent') or ZERO) > ZERO:
            self._store_output(self.PRICING_COLUMNS['vat_amount'], result.applied_vat)
        self._store_output(self.LINE_TOTAL_COLUMN, result.line_total)

    @property
    def stored_line_total(self) -> Decimal:
        value = getattr(self, self.LINE_TOTAL_COLUMN)
        return round2(value) if value is not None else ZERO

    def set_input(self, field_name, value) -> None:
        """
        Store a pricing input in its column.

        Values are rounded half-up to the column scale. NOT NULL columns get
        zero instead of None. A discount percentage above 100 is stored as
        100, which prices identically.

        Raises:
            KeyError: the table has no column for field_name
            InvalidQuantity / InvalidPrice / InvalidPercentage: value does not fit the column
        """
        column = self.PRICING_COLUMNS.get(field_name)
        if column is None:
            raise KeyError(field_name)
        if value is None and not self.__table__.columns[column].nullable:
            value = ZERO
        if field_name == 'discount_percent' and value is not None and value > HUNDRED:
            value = HUNDRED

        def error(message):
            if field_name == 'quantity':
                return InvalidQuantity(value, message)
            if field_name.endswith('_percent'):
                return InvalidPercentage(field_name, value, message)
            return InvalidPrice(field_name, value, message)

        setattr(self, column, _fit_column(type(self), column, value, error))


class PricedDocumentMixin:
    """Header columns holding persisted document totals."""

    LABEL = 'Document'
    NUMBER_COLUMN = 'document_number'

    def apply_totals(self, totals: DocumentTotals) -> None:
        for column, value in (
            ('subtotal', totals.subtotal),
            ('discount_amount', totals.total_discount),
            ('net_amount', totals.net_amount),
            ('tax_amount', totals.total_vat),
            ('total_amount', totals.grand_total),
        ):
            def error(message, column=column, value=value):
                return InvalidPrice(column, value, message)
            setattr(self, column, _fit_column(type(self), column, value, error))

    @property
    def document_number(self):
        return getattr(self, self.NUMBER_COLUMN)

    def stored_totals(self) -> dict:
        return {
            'subtotal': round2(self.subtotal or ZERO),
            'total_discount': round2(self.discount_amount or ZERO),
            'net_amount': round2(self.net_amount or ZERO),
            'total_vat': round2(self.tax_amount or ZERO),
            'grand_total': round2(self.total_amount or ZERO),
        }
