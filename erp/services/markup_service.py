"""Markup resolution for selling prices."""
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from erp.exceptions import BusinessLogicError
from erp.models import MarkupConfiguration, MarkupLevel, CustomerType
from erp.utils.number_format import to_decimal

logger = logging.getLogger(__name__)

DEFAULT_RETAIL_MARKUP = Decimal('70')
DEFAULT_WHOLESALE_MARKUP = Decimal('40')


def normalize_customer_type(value) -> CustomerType:
    """Accept 'Retail', 'retail', 'RETAIL' or a CustomerType."""
    if isinstance(value, CustomerType):
        return value
    if value is None or not str(value).strip():
        return CustomerType.RETAIL
    cleaned = str(value).strip().lower()
    for customer_type in CustomerType:
        if customer_type.value.lower() == cleaned or customer_type.name.lower() == cleaned:
            return customer_type
    raise BusinessLogicError(f"Unknown customer type {value!r} (expected Retail or Wholesale)")


def _active_rule(session: Session, level: MarkupLevel, entity_id: Optional[int], at: datetime):
    query = session.query(MarkupConfiguration).filter(
        MarkupConfiguration.level == level,
        MarkupConfiguration.is_active.is_(True),
        or_(MarkupConfiguration.effective_from.is_(None), MarkupConfiguration.effective_from <= at),
        or_(MarkupConfiguration.effective_to.is_(None), MarkupConfiguration.effective_to > at),
    )
    if entity_id is None:
        query = query.filter(MarkupConfiguration.entity_id.is_(None))
    else:
        query = query.filter(MarkupConfiguration.entity_id == entity_id)
    # Latest rule wins when windows overlap
    return query.order_by(MarkupConfiguration.id.desc()).first()


def resolve_markup(session: Session, customer_type=None, item_id=None, category_id=None,
                   at: Optional[datetime] = None, defaults: Optional[dict] = None) -> Decimal:
    """
    Resolve the markup percentage for a line.

    Precedence: item rule > category rule > system rule > configured defaults
    (70% retail, 40% wholesale unless overridden).

    Args:
        session: SQLAlchemy session
        customer_type: 'Retail' / 'Wholesale' or CustomerType
        item_id: inventory item id, optional
        category_id: item category id, optional
        at: point in time for effective windows (defaults to now)
        defaults: {'retail': ..., 'wholesale': ...} fallback percentages

    Returns:
        Markup percentage as Decimal.
    """
    customer_type = normalize_customer_type(customer_type)
    at = at or datetime.now(timezone.utc)

    candidates = []
    if item_id is not None:
        candidates.append((MarkupLevel.ITEM, item_id))
    if category_id is not None:
        candidates.append((MarkupLevel.CATEGORY, category_id))
    candidates.append((MarkupLevel.SYSTEM, None))

    for level, entity_id in candidates:
        rule = _active_rule(session, level, entity_id, at)
        if rule is not None:
            markup = (
                rule.wholesale_markup_percentage
                if customer_type is CustomerType.WHOLESALE
                else rule.retail_markup_percentage
            )
            logger.debug(f"Markup {markup}% from {level.value} rule {rule.id} for {customer_type.value}")
            return Decimal(markup)

    defaults = defaults or {}
    if customer_type is CustomerType.WHOLESALE:
        fallback = to_decimal(defaults.get('wholesale'), DEFAULT_WHOLESALE_MARKUP)
    else:
        fallback = to_decimal(defaults.get('retail'), DEFAULT_RETAIL_MARKUP)
    logger.debug(f"No markup rule found, using default {fallback}% for {customer_type.value}")
    return fallback


def ensure_system_markup(session: Session, retail=DEFAULT_RETAIL_MARKUP, wholesale=DEFAULT_WHOLESALE_MARKUP) -> MarkupConfiguration:
    """Create the system-wide markup rule if none is active."""
    rule = session.query(MarkupConfiguration).filter(
        MarkupConfiguration.level == MarkupLevel.SYSTEM,
        MarkupConfiguration.is_active.is_(True),
    ).first()
    if rule:
        return rule

    rule = MarkupConfiguration(
        level=MarkupLevel.SYSTEM,
        entity_id=None,
        retail_markup_percentage=to_decimal(retail),
        wholesale_markup_percentage=to_decimal(wholesale),
        is_active=True,
    )
    session.add(rule)
    session.commit()
    logger.info(f"System markup rule created: retail={rule.retail_markup_percentage}%, wholesale={rule.wholesale_markup_percentage}%")
    return rule
