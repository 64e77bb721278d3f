"""SupplierLpoItem model."""
from sqlalchemy import Column, BigInteger, String, Numeric, Text, ForeignKey
from sqlalchemy.orm import relationship
from erp.database import Base, PrimaryKey
from erp.models.pricing_mixin import PricedItemMixin


class SupplierLpoItem(PricedItemMixin, Base):
    """LPO line priced at supplier cost (no markup)."""

    __tablename__ = 'supplier_lpo_item'

    PRICING_COLUMNS = {
        'quantity': 'quantity',
        'unit_cost': 'unit_cost',
        'discount_percent': 'discount_percent',
        'discount_amount': 'discount_amount',
        'vat_percent': 'vat_percent',
        'vat_amount': 'vat_amount',
    }
    LINE_TOTAL_COLUMN = 'total_cost'

    id = Column(PrimaryKey, primary_key=True, autoincrement=True)
    lpo_id = Column(BigInteger, ForeignKey('supplier_lpo.id'), nullable=False)
    item_id = Column(BigInteger, nullable=True)
    supplier_code = Column(String(64), nullable=True)
    description = Column(String(500), nullable=False)
    unit_of_measure = Column(String(16), nullable=True)
    quantity = Column(Numeric(12, 3), nullable=False)
    unit_cost = Column(Numeric(14, 4), nullable=False, default=0)
    discount_percent = Column(Numeric(5, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(12, 2), nullable=False, default=0)
    vat_percent = Column(Numeric(7, 2), nullable=False, default=0)
    vat_amount = Column(Numeric(12, 2), nullable=False, default=0)
    total_cost = Column(Numeric(14, 2), nullable=False, default=0)
    notes = Column(Text, nullable=True)

    # Relationships
    lpo = relationship('SupplierLpo', back_populates='items')

    @property
    def document(self):
        return self.lpo

    def __repr__(self):
        return f"<SupplierLpoItem(id={self.id}, lpo_id={self.lpo_id}, qty={self.quantity}, total={self.total_cost})>"
