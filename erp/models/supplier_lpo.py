"""Supplier LPO (Local Purchase Order) model."""
import enum
from sqlalchemy import Column, BigInteger, Integer, String, Numeric, DateTime, Text, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from erp.database import Base, PrimaryKey
from erp.models.pricing_mixin import PricedDocumentMixin


class LpoStatus(enum.Enum):
    """LPO status enum."""
    DRAFT = "DRAFT"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    SENT = "SENT"
    CLOSED = "CLOSED"


class SupplierLpo(PricedDocumentMixin, Base):
    """Purchase order issued to a supplier."""

    __tablename__ = 'supplier_lpo'

    LABEL = 'Supplier LPO'
    NUMBER_COLUMN = 'lpo_number'

    id = Column(PrimaryKey, primary_key=True, autoincrement=True)
    lpo_number = Column(String(64), nullable=False, unique=True)
    supplier_id = Column(BigInteger, ForeignKey('supplier.id'), nullable=True)
    status = Column(SQLEnum(LpoStatus, name='lpo_status'), nullable=False, default=LpoStatus.DRAFT)
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
    supplier = relationship('Supplier', back_populates='lpos')
    items = relationship('SupplierLpoItem', back_populates='lpo', cascade='all, delete-orphan',
                         order_by='SupplierLpoItem.id')

    def __repr__(self):
        return f"<SupplierLpo(id={self.id}, number='{self.lpo_number}', total={self.total_amount})>"
