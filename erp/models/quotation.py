"""Quotation model for customer quotations."""
import enum
from sqlalchemy import Column, BigInteger, Integer, String, Numeric, DateTime, Date, Text, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from erp.database import Base, PrimaryKey
from erp.models.customer import CustomerType
from erp.models.pricing_mixin import PricedDocumentMixin


class QuotationStatus(enum.Enum):
    """Quotation status enum."""
    DRAFT = "DRAFT"
    SENT = "SENT"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class Quotation(PricedDocumentMixin, Base):
    """
    Quotation sent to a customer.

    customer_type is snapshotted from the customer at creation so that the
    default markup of existing quotations does not move if the customer is
    reclassified later.
    """

    __tablename__ = 'quotation'

    LABEL = 'Quotation'
    NUMBER_COLUMN = 'quote_number'

    id = Column(PrimaryKey, primary_key=True, autoincrement=True)
    quote_number = Column(String(64), nullable=False, unique=True)
    customer_id = Column(BigInteger, ForeignKey('customer.id'), nullable=True)
    customer_type = Column(SQLEnum(CustomerType, name='customer_type'), nullable=False, default=CustomerType.RETAIL)
    status = Column(SQLEnum(QuotationStatus, name='quotation_status'), nullable=False, default=QuotationStatus.DRAFT)
    valid_until = Column(Date, nullable=True)
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
    customer = relationship('Customer', back_populates='quotations')
    items = relationship('QuotationItem', back_populates='quotation', cascade='all, delete-orphan',
                         order_by='QuotationItem.id')

    def __repr__(self):
        return f"<Quotation(id={self.id}, number='{self.quote_number}', total={self.total_amount})>"
