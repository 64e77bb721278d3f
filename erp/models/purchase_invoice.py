"""Purchase Invoice model."""
import enum
from sqlalchemy import Column, BigInteger, Integer, String, Date, Numeric, DateTime, Text, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from erp.database import Base, PrimaryKey
from erp.models.pricing_mixin import PricedDocumentMixin


class InvoiceStatus(enum.Enum):
    """Invoice status enum."""
    PENDING = "PENDING"
    PAID = "PAID"


class PurchaseInvoice(PricedDocumentMixin, Base):
    """Supplier invoice, optionally matched to an LPO."""

    __tablename__ = 'purchase_invoice'

    LABEL = 'Purchase invoice'
    NUMBER_COLUMN = 'invoice_number'

    id = Column(PrimaryKey, primary_key=True, autoincrement=True)
    invoice_number = Column(String(64), nullable=False, unique=True)
    supplier_id = Column(BigInteger, ForeignKey('supplier.id'), nullable=True)
    lpo_id = Column(BigInteger, ForeignKey('supplier_lpo.id'), nullable=True)
    invoice_date = Column(Date, nullable=True)
    due_date = Column(Date, nullable=True)
    status = Column(SQLEnum(InvoiceStatus, name='invoice_status'), nullable=False, default=InvoiceStatus.PENDING)
    currency = Column(String(3), nullable=False, default='AED')
    subtotal = Column(Numeric(14, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(14, 2), nullable=False, default=0)
    net_amount = Column(Numeric(14, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(14, 2), nullable=False, default=0)
    total_amount = Column(Numeric(14, 2), nullable=False, default=0)
    version = Column(Integer, nullable=False, default=1)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    supplier = relationship('Supplier', back_populates='invoices')
    lpo = relationship('SupplierLpo')
    items = relationship('PurchaseInvoiceItem', back_populates='invoice', cascade='all, delete-orphan',
                         order_by='PurchaseInvoiceItem.id')

    def __repr__(self):
        return f"<PurchaseInvoice(id={self.id}, invoice_number='{self.invoice_number}', status={self.status.value if self.status else None})>"
