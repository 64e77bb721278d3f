"""SalesOrderItem model."""
from sqlalchemy import Column, BigInteger, String, Numeric, Text, ForeignKey
from sqlalchemy.orm import relationship
from erp.database import Base, PrimaryKey
from erp.models.pricing_mixin import PricedItemMixin


class SalesOrderItem(PricedItemMixin, Base):
    """Sales order line priced directly from unit_price."""

    __tablename__ = 'sales_order_item'

    PRICING_COLUMNS = {
        'quantity': 'quantity',
        'unit_price': 'unit_price',
        'discount_percent': 'discount_percentage',
        'discount_amount': 'discount_amount',
        'vat_percent': 'vat_percent',
        'vat_amount': 'vat_amount',
    }
    LINE_TOTAL_COLUMN = 'total_price'

    id = Column(PrimaryKey, primary_key=True, autoincrement=True)
    sales_order_id = Column(BigInteger, ForeignKey('sales_order.id'), nullable=False)
    item_id = Column(BigInteger, nullable=True)
    description = Column(String(500), nullable=False)
    quantity = Column(Numeric(12, 3), nullable=False)
    unit_price = Column(Numeric(14, 4), nullable=False, default=0)
    discount_percentage = Column(Numeric(5, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(12, 2), nullable=False, default=0)
    vat_percent = Column(Numeric(7, 2), nullable=False, default=0)
    vat_amount = Column(Numeric(12, 2), nullable=False, default=0)
    total_price = Column(Numeric(14, 2), nullable=False, default=0)
    notes = Column(Text, nullable=True)

    # Relationships
    sales_order = relationship('SalesOrder', back_populates='items')

    @property
    def document(self):
        return self.sales_order

    def __repr__(self):
        return f"<SalesOrderItem(id={self.id}, sales_order_id={self.sales_order_id}, qty={self.quantity}, total={self.total_price})>"
