"""
Unit tests for markup resolution.
"""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from erp.exceptions import BusinessLogicError
from erp.models import MarkupConfiguration, MarkupLevel, CustomerType
from erp.services.markup_service import (
    resolve_markup, normalize_customer_type, ensure_system_markup
)


def add_rule(session, level, entity_id, retail, wholesale, **kwargs):
    rule = MarkupConfiguration(
        level=level,
        entity_id=entity_id,
        retail_markup_percentage=Decimal(retail),
        wholesale_markup_percentage=Decimal(wholesale),
        is_active=kwargs.pop('is_active', True),
        **kwargs
    )
    session.add(rule)
    session.commit()
    return rule


class TestNormalizeCustomerType:
    """Tests for customer type parsing."""

    @pytest.mark.parametrize('value,expected', [
        (None, CustomerType.RETAIL),
        ('', CustomerType.RETAIL),
        ('Retail', CustomerType.RETAIL),
        ('wholesale', CustomerType.WHOLESALE),
        ('WHOLESALE', CustomerType.WHOLESALE),
        (CustomerType.WHOLESALE, CustomerType.WHOLESALE),
    ])
    def test_accepted_values(self, value, expected):
        assert normalize_customer_type(value) is expected

    def test_unknown_value(self):
        with pytest.raises(BusinessLogicError):
            normalize_customer_type('distributor')


class TestResolveMarkup:
    """Tests for markup precedence."""

    def test_defaults_without_rules(self, session):
        assert resolve_markup(session, 'Retail') == Decimal('70')
        assert resolve_markup(session, 'Wholesale') == Decimal('40')

    def test_configured_defaults(self, session):
        defaults = {'retail': '60', 'wholesale': '30'}
        assert resolve_markup(session, 'Retail', defaults=defaults) == Decimal('60')
        assert resolve_markup(session, 'Wholesale', defaults=defaults) == Decimal('30')

    def test_system_rule(self, session):
        add_rule(session, MarkupLevel.SYSTEM, None, '50', '25')
        assert resolve_markup(session, 'Retail') == Decimal('50')
        assert resolve_markup(session, 'Wholesale') == Decimal('25')

    def test_category_rule_beats_system_rule(self, session, system_markup):
        add_rule(session, MarkupLevel.CATEGORY, 7, '55', '35')
        assert resolve_markup(session, 'Retail', category_id=7) == Decimal('55')
        assert resolve_markup(session, 'Retail', category_id=8) == Decimal('70')

    def test_item_rule_beats_category_rule(self, session, system_markup):
        add_rule(session, MarkupLevel.CATEGORY, 7, '55', '35')
        add_rule(session, MarkupLevel.ITEM, 42, '90', '45')
        assert resolve_markup(session, 'Wholesale', item_id=42, category_id=7) == Decimal('45')

    def test_inactive_rule_ignored(self, session):
        add_rule(session, MarkupLevel.SYSTEM, None, '50', '25', is_active=False)
        assert resolve_markup(session, 'Retail') == Decimal('70')

    def test_expired_rule_ignored(self, session):
        past = datetime.now(timezone.utc) - timedelta(days=30)
        add_rule(session, MarkupLevel.SYSTEM, None, '50', '25',
                 effective_from=past - timedelta(days=30), effective_to=past)
        assert resolve_markup(session, 'Retail') == Decimal('70')


class TestEnsureSystemMarkup:
    """Tests for seeding the system rule."""

    def test_creates_rule_once(self, session):
        first = ensure_system_markup(session, retail='65', wholesale='35')
        second = ensure_system_markup(session, retail='10', wholesale='10')

        assert first.id == second.id
        assert first.retail_markup_percentage == Decimal('65')
        assert session.query(MarkupConfiguration).count() == 1
