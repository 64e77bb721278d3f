"""QuotationItem model for quotation line items."""
from sqlalchemy import Column, BigInteger, String, Numeric, Text, ForeignKey
from sqlalchemy.orm import relationship
from erp.database import Base, PrimaryKey
from erp.models.pricing_mixin import PricedItemMixin


class QuotationItem(PricedItemMixin, Base):
    """
    Quotation line.

    Selling price is cost_price marked up by `markup` percent unless
    unit_price holds an explicit positive override.
    """

    __tablename__ = 'quotation_item'

    PRICING_COLUMNS = {
        'quantity': 'quantity',
        'unit_cost': 'cost_price',
        'markup_percent': 'markup',
        'unit_price': 'unit_price',
        'discount_percent': 'discount_percentage',
        'discount_amount': 'discount_amount',
        'vat_percent': 'vat_percent',
        'vat_amount': 'vat_amount',
    }
    LINE_TOTAL_COLUMN = 'line_total'

    id = Column(PrimaryKey, primary_key=True, autoincrement=True)
    quotation_id = Column(BigInteger, ForeignKey('quotation.id'), nullable=False)
    item_id = Column(BigInteger, nullable=True)
    category_id = Column(BigInteger, nullable=True)
    description = Column(String(500), nullable=False)
    quantity = Column(Numeric(12, 3), nullable=False)
    cost_price = Column(Numeric(14, 4), nullable=False, default=0)
    markup = Column(Numeric(7, 2), nullable=False, default=0)
    unit_price = Column(Numeric(14, 4), nullable=True)
    discount_percentage = Column(Numeric(5, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(12, 2), nullable=False, default=0)
    vat_percent = Column(Numeric(7, 2), nullable=False, default=0)
    vat_amount = Column(Numeric(12, 2), nullable=False, default=0)
    line_total = Column(Numeric(14, 2), nullable=False, default=0)
    notes = Column(Text, nullable=True)

    # Relationships
    quotation = relationship('Quotation', back_populates='items')

    @property
    def document(self):
        return self.quotation

    def __repr__(self):
        return f"<QuotationItem(id={self.id}, quotation_id={self.quotation_id}, qty={self.quantity}, total={self.line_total})>"
