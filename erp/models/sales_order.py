"""Sales order model."""
import enum
from sqlalchemy import Column, BigInteger, Integer, String, Numeric, DateTime, Text, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from erp.database import Base, PrimaryKey
from erp.models.pricing_mixin import PricedDocumentMixin


class SalesOrderStatus(enum.Enum):
    """Sales order status enum."""
    DRAFT = "DRAFT"
    CONFIRMED = "CONFIRMED"
    DELIVERED = "DELIVERED"
    INVOICED = "INVOICED"
    CANCELLED = "CANCELLED"


class SalesOrder(PricedDocumentMixin, Base):
    """Sales order confirmed from a quotation or entered directly."""

    __tablename__ = 'sales_order'

    LABEL = 'Sales order'
    NUMBER_COLUMN = 'order_number'

    id = Column(PrimaryKey, primary_key=True, autoincrement=True)
    order_number = Column(String(64), nullable=False, unique=True)
    customer_id = Column(BigInteger, ForeignKey('customer.id'), nullable=True)
    quotation_id = Column(BigInteger, ForeignKey('quotation.id'), nullable=True)
    status = Column(SQLEnum(SalesOrderStatus, name='sales_order_status'), nullable=False, default=SalesOrderStatus.DRAFT)
    currency = Column(String(3), nullable=False, default='AED')
    subtotal = Column(Numeric(14, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(14, 2), nullable=False, default=0)
    net_amount = Column(Numeric(14, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(14, 2), nullable=False, default=0)
    total_amount = Column(Numeric(14, 2), nullable=False, default=0)
    version = Column(Integer, nullable=False, default=1)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    customer = relationship('Customer', back_populates='sales_orders')
    quotation = relationship('Quotation')
    items = relationship('SalesOrderItem', back_populates='sales_order', cascade='all, delete-orphan',
                         order_by='SalesOrderItem.id')

    def __repr__(self):
        return f"<SalesOrder(id={self.id}, number='{self.order_number}', total={self.total_amount})>"
