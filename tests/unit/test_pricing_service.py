"""
Unit tests for the line-item pricing and tax calculator.
"""

import pytest
from decimal import Decimal

from erp.exceptions import (
    BusinessLogicError, InvalidQuantity, InvalidPrice, InvalidPercentage, InvalidDocument
)
from erp.services.pricing_service import (
    LineItem, AggregationPolicy, TotalsBasis,
    compute_line, compute_document_totals, compute_persisted_totals, sum_line_results
)


def line(**kwargs):
    kwargs.setdefault('quantity', Decimal('1'))
    return LineItem(**{k: (Decimal(str(v)) if isinstance(v, (int, float, str)) else v) for k, v in kwargs.items()})


class TestComputeLine:
    """Tests for a single line."""

    def test_standard_line(self):
        """2 x 50 with 5% discount and 10% VAT."""
        result = compute_line(line(quantity=2, unit_price=50, discount_percent=5, vat_percent=10))

        assert result.effective_unit_price == Decimal('50.00')
        assert result.subtotal == Decimal('100.00')
        assert result.applied_discount == Decimal('5.00')
        assert result.net_amount == Decimal('95.00')
        assert result.applied_vat == Decimal('9.50')
        assert result.line_total == Decimal('104.50')

    def test_cost_based_line_with_zero_markup(self):
        result = compute_line(line(quantity=2, unit_cost=50, markup_percent=0, discount_percent=5, vat_percent=10))
        assert result.effective_unit_price == Decimal('50.00')
        assert result.line_total == Decimal('104.50')

    @pytest.mark.parametrize('quantity,price', [('1', '0.01'), ('3', '19.99'), ('0.25', '1234.567'), ('7', '0')])
    def test_no_discount_no_vat(self, quantity, price):
        result = compute_line(line(quantity=quantity, unit_price=price, discount_percent=0,
                                   discount_amount=0, vat_percent=0, vat_amount=0))
        assert result.net_amount == result.subtotal
        assert result.line_total == result.net_amount

    def test_large_fixed_discount_ignored_when_percent_set(self):
        result = compute_line(line(quantity=2, unit_price=100, discount_percent=10, discount_amount=999999))
        assert result.applied_discount == Decimal('20.00')

    def test_markup_applied_when_no_unit_price(self):
        result = compute_line(line(unit_cost=100, markup_percent=70))
        assert result.effective_unit_price == Decimal('170.00')
        assert result.line_total == Decimal('170.00')

    def test_explicit_unit_price_overrides_markup(self):
        result = compute_line(line(unit_cost=100, markup_percent=70, unit_price=150))
        assert result.effective_unit_price == Decimal('150.00')

    def test_zero_unit_price_falls_back_to_cost(self):
        result = compute_line(line(unit_cost=80, markup_percent=25, unit_price=0))
        assert result.effective_unit_price == Decimal('100.00')

    def test_negative_markup_treated_as_zero(self):
        result = compute_line(line(unit_cost=100, markup_percent=-20))
        assert result.effective_unit_price == Decimal('100.00')

    def test_discount_percent_takes_precedence_over_amount(self):
        result = compute_line(line(quantity=2, unit_price=100, discount_percent=10, discount_amount=50))
        assert result.applied_discount == Decimal('20.00')
        assert result.net_amount == Decimal('180.00')

    def test_fixed_discount_capped_at_subtotal(self):
        result = compute_line(line(quantity=2, unit_price=100, discount_amount=500))
        assert result.applied_discount == Decimal('200.00')
        assert result.net_amount == Decimal('0.00')
        assert result.line_total == Decimal('0.00')

    def test_discount_percent_clamped_to_100(self):
        result = compute_line(line(unit_price=100, discount_percent=150, vat_percent=5))
        assert result.applied_discount == Decimal('100.00')
        assert result.net_amount == Decimal('0.00')
        assert result.applied_vat == Decimal('0.00')

    def test_negative_fixed_discount_ignored(self):
        result = compute_line(line(unit_price=100, discount_amount=-10))
        assert result.applied_discount == Decimal('0.00')

    def test_fixed_vat_used_when_no_vat_percent(self):
        result = compute_line(line(unit_price=100, vat_amount=7))
        assert result.applied_vat == Decimal('7.00')
        assert result.line_total == Decimal('107.00')

    def test_vat_percent_takes_precedence_over_vat_amount(self):
        result = compute_line(line(unit_price=100, vat_percent=5, vat_amount=99))
        assert result.applied_vat == Decimal('5.00')

    def test_vat_above_hundred_percent_accepted(self):
        result = compute_line(line(unit_price=10, vat_percent=150))
        assert result.applied_vat == Decimal('15.00')
        assert result.line_total == Decimal('25.00')

    def test_fractional_quantity(self):
        result = compute_line(line(quantity='1.5', unit_price=10))
        assert result.line_total == Decimal('15.00')

    def test_zero_quantity_is_valid(self):
        result = compute_line(line(quantity=0, unit_price=10, vat_amount=3))
        assert result.subtotal == Decimal('0.00')
        assert result.line_total == Decimal('3.00')

    def test_rounding_half_up(self):
        result = compute_line(line(unit_price='0.125'))
        assert result.line_total == Decimal('0.13')

    def test_zero_priced_line_needs_review(self):
        result = compute_line(line(quantity=3))
        assert result.line_total == Decimal('0.00')
        assert result.needs_review is True

    def test_priced_line_does_not_need_review(self):
        assert compute_line(line(unit_price=1)).needs_review is False

    def test_idempotent(self):
        item = line(quantity=3, unit_cost='12.34', markup_percent=33, discount_percent=7, vat_percent=5)
        assert compute_line(item) == compute_line(item)

    def test_to_dict(self):
        data = compute_line(line(quantity=2, unit_price=50, discount_percent=5, vat_percent=10)).to_dict()
        assert data == {
            'effectiveUnitPrice': 50.0,
            'subtotal': 100.0,
            'appliedDiscount': 5.0,
            'netAmount': 95.0,
            'appliedVat': 9.5,
            'lineTotal': 104.5,
            'needsReview': False,
        }


class TestLineValidation:
    """Tests for rejected lines."""

    def test_negative_quantity(self):
        with pytest.raises(InvalidQuantity):
            compute_line(line(quantity=-1, unit_price=10))

    def test_missing_quantity(self):
        with pytest.raises(InvalidQuantity):
            compute_line({'unit_price': 10})

    def test_negative_unit_cost(self):
        with pytest.raises(InvalidPrice) as exc_info:
            compute_line(line(unit_cost=-5))
        assert exc_info.value.field == 'unit_cost'

    def test_negative_unit_price(self):
        with pytest.raises(InvalidPrice) as exc_info:
            compute_line(line(unit_price=-5))
        assert exc_info.value.field == 'unit_price'

    def test_non_numeric_quantity(self):
        with pytest.raises(InvalidQuantity):
            compute_line({'quantity': 'two', 'unit_price': 10})

    def test_non_numeric_price(self):
        with pytest.raises(InvalidPrice):
            compute_line({'quantity': 1, 'unit_price': '12abc'})

    def test_non_numeric_percentage(self):
        with pytest.raises(InvalidPercentage) as exc_info:
            compute_line({'quantity': 1, 'unit_price': 10, 'vat_percent': 'ten'})
        assert exc_info.value.field == 'vat_percent'

    def test_quantity_out_of_range(self):
        with pytest.raises(InvalidQuantity) as exc_info:
            compute_line({'quantity': 1e30, 'unit_price': 1})
        assert 'below' in exc_info.value.message

    def test_price_out_of_range(self):
        with pytest.raises(InvalidPrice) as exc_info:
            compute_line(line(unit_cost='1e12'))
        assert exc_info.value.field == 'unit_cost'

    def test_percentage_out_of_range(self):
        with pytest.raises(InvalidPercentage) as exc_info:
            compute_line(line(unit_price=10, vat_percent='1e20'))
        assert exc_info.value.field == 'vat_percent'

    def test_largest_accepted_values(self):
        result = compute_line(line(quantity='999999999', unit_price='9999999999.9999', vat_percent='99999'))
        assert result.line_total > Decimal('1e21')

    def test_line_error_shape(self):
        with pytest.raises(InvalidQuantity) as exc_info:
            compute_line(line(quantity=-2))
        error = exc_info.value.to_line_error(3)
        assert error['line'] == 3
        assert error['field'] == 'quantity'
        assert error['code'] == 'InvalidQuantity'
        assert error['message']


class TestLineItemFromPayload:
    """Tests for payload parsing."""

    def test_camel_case_and_column_aliases(self):
        item = LineItem.from_payload({
            'qty': '2', 'unitPrice': '50', 'discountPercentage': 5, 'taxRate': 10,
            'itemDescription': 'Cable'
        })
        assert item.quantity == Decimal('2')
        assert item.unit_price == Decimal('50')
        assert item.discount_percent == Decimal('5')
        assert item.vat_percent == Decimal('10')
        assert item.description == 'Cable'
        assert compute_line(item).line_total == Decimal('104.50')

    def test_thousands_separator(self):
        result = compute_line({'quantity': 1, 'unit_price': '1,250.50'})
        assert result.line_total == Decimal('1250.50')

    def test_empty_strings_are_absent(self):
        item = LineItem.from_payload({'quantity': 1, 'unit_price': 10, 'discount_percent': '', 'vat_amount': ''})
        assert item.discount_percent is None
        assert item.vat_amount is None

    def test_floats_parsed_exactly(self):
        item = LineItem.from_payload({'quantity': 3, 'unit_price': 0.1})
        assert item.unit_price == Decimal('0.1')
        assert compute_line(item).line_total == Decimal('0.30')


class TestDocumentTotals:
    """Tests for document aggregation."""

    def test_two_identical_lines(self, standard_line):
        totals = compute_document_totals([standard_line, standard_line])

        assert totals.subtotal == Decimal('200.00')
        assert totals.total_discount == Decimal('10.00')
        assert totals.net_amount == Decimal('190.00')
        assert totals.total_vat == Decimal('19.00')
        assert totals.grand_total == Decimal('209.00')
        assert totals.basis is TotalsBasis.PREVIEW
        assert len(totals.lines) == 2

    def test_empty_document(self):
        totals = compute_document_totals([])
        assert totals.subtotal == Decimal('0.00')
        assert totals.total_discount == Decimal('0.00')
        assert totals.net_amount == Decimal('0.00')
        assert totals.total_vat == Decimal('0.00')
        assert totals.grand_total == Decimal('0.00')
        assert totals.lines == ()

    def test_grand_total_is_net_plus_vat(self):
        totals = compute_document_totals([
            {'quantity': 3, 'unit_cost': '12.34', 'markup': 33, 'discount_percent': 7, 'vat_percent': 5},
            {'quantity': 1, 'unit_price': '99.99', 'discount_amount': '9.99', 'vat_amount': '4.50'},
        ])
        assert totals.grand_total == totals.net_amount + totals.total_vat
        assert totals.net_amount == totals.subtotal - totals.total_discount

    def test_preview_rounds_once_after_summation(self):
        items = [{'quantity': 1, 'unit_price': '0.335'}] * 3

        preview = compute_document_totals(items)
        persisted = compute_persisted_totals(items)

        assert preview.grand_total == Decimal('1.01')
        assert persisted.grand_total == Decimal('1.02')
        assert persisted.basis is TotalsBasis.PERSISTED

    def test_persisted_totals_equal_sum_of_lines(self, standard_line):
        totals = compute_persisted_totals([standard_line, {'quantity': 1, 'unit_price': '0.335'}])
        assert totals.grand_total == sum(line.line_total for line in totals.lines)

    def test_abort_policy_reports_every_invalid_line(self, standard_line):
        items = [standard_line, {'quantity': -1, 'unit_price': 10}, {'quantity': 1, 'unit_cost': -3}]

        with pytest.raises(InvalidDocument) as exc_info:
            compute_document_totals(items)

        errors = exc_info.value.line_errors
        assert [e['line'] for e in errors] == [1, 2]
        assert errors[0]['code'] == 'InvalidQuantity'
        assert errors[1]['code'] == 'InvalidPrice'
        assert exc_info.value.to_dict()['errors'] == errors

    def test_skip_policy_excludes_invalid_lines(self, standard_line):
        items = [standard_line, {'quantity': -1, 'unit_price': 10}]

        totals = compute_document_totals(items, policy=AggregationPolicy.SKIP)

        assert totals.grand_total == Decimal('104.50')
        assert len(totals.lines) == 1
        assert totals.skipped[0]['line'] == 1

    def test_policy_accepts_strings(self, standard_line):
        totals = compute_document_totals([standard_line, {'quantity': 'x'}], policy='skip')
        assert totals.grand_total == Decimal('104.50')

    def test_unknown_policy(self):
        with pytest.raises(BusinessLogicError):
            compute_document_totals([], policy='ignore')

    def test_sum_line_results(self, standard_line):
        lines = [compute_line(standard_line), compute_line(standard_line)]
        totals = sum_line_results(lines)
        assert totals.grand_total == Decimal('209.00')
        assert totals.basis is TotalsBasis.PERSISTED

    def test_to_dict(self, standard_line):
        data = compute_document_totals([standard_line]).to_dict()
        assert data['grandTotal'] == 104.5
        assert data['basis'] == 'preview'
        assert data['lineCount'] == 1
        assert data['skipped'] == []
        assert data['lines'][0]['lineTotal'] == 104.5
        assert 'lines' not in compute_document_totals([standard_line]).to_dict(include_lines=False)
