"""Purchase Invoice Item model."""
from sqlalchemy import Column, BigInteger, String, Numeric, Text, ForeignKey
from sqlalchemy.orm import relationship
from erp.database import Base, PrimaryKey
from erp.models.pricing_mixin import PricedItemMixin


class PurchaseInvoiceItem(PricedItemMixin, Base):
    """Purchase invoice line. Uses the tax_rate / tax_amount naming of supplier invoices."""

    __tablename__ = 'purchase_invoice_item'

    PRICING_COLUMNS = {
        'quantity': 'quantity',
        'unit_price': 'unit_price',
        'discount_percent': 'discount_rate',
        'discount_amount': 'discount_amount',
        'vat_percent': 'tax_rate',
        'vat_amount': 'tax_amount',
    }
    LINE_TOTAL_COLUMN = 'total_amount'

    id = Column(PrimaryKey, primary_key=True, autoincrement=True)
    invoice_id = Column(BigInteger, ForeignKey('purchase_invoice.id'), nullable=False)
    item_id = Column(BigInteger, nullable=True)
    variant_id = Column(BigInteger, nullable=True)
    description = Column(String(500), nullable=False)
    quantity = Column(Numeric(12, 3), nullable=False)
    unit_price = Column(Numeric(14, 4), nullable=False, default=0)
    discount_rate = Column(Numeric(5, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(12, 2), nullable=False, default=0)
    tax_rate = Column(Numeric(7, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(12, 2), nullable=False, default=0)
    total_amount = Column(Numeric(14, 2), nullable=False, default=0)
    notes = Column(Text, nullable=True)

    # Relationships
    invoice = relationship('PurchaseInvoice', back_populates='items')

    @property
    def document(self):
        return self.invoice

    def __repr__(self):
        return f"<PurchaseInvoiceItem(id={self.id}, invoice_id={self.invoice_id}, qty={self.quantity}, total={self.total_amount})>"
