"""Markup configuration model for pricing management."""
import enum
from sqlalchemy import Column, BigInteger, Numeric, DateTime, Boolean, Enum as SQLEnum, Index
from sqlalchemy.sql import func
from erp.database import Base, PrimaryKey


class MarkupLevel(enum.Enum):
    """Scope of a markup rule. More specific levels win."""
    SYSTEM = "system"
    CATEGORY = "category"
    ITEM = "item"


class MarkupConfiguration(Base):
    """
    Markup rule.

    entity_id is NULL for the system-wide rule, the category id for a
    category rule and the inventory item id for an item rule.
    """

    __tablename__ = 'markup_configuration'
    __table_args__ = (
        Index('idx_markup_configuration_level_entity', 'level', 'entity_id'),
    )

    id = Column(PrimaryKey, primary_key=True, autoincrement=True)
    level = Column(SQLEnum(MarkupLevel, name='pricing_markup_level'), nullable=False)
    entity_id = Column(BigInteger, nullable=True)
    retail_markup_percentage = Column(Numeric(5, 2), nullable=False)
    wholesale_markup_percentage = Column(Numeric(5, 2), nullable=False)
    effective_from = Column(DateTime(timezone=True), nullable=True)
    effective_to = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return (
            f"<MarkupConfiguration(id={self.id}, level={self.level.value}, entity_id={self.entity_id}, "
            f"retail={self.retail_markup_percentage}, wholesale={self.wholesale_markup_percentage})>"
        )
