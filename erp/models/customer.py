"""Customer model."""
import enum
from sqlalchemy import Column, String, Text, DateTime, Boolean, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from erp.database import Base, PrimaryKey


class CustomerType(enum.Enum):
    """Customer type drives the default markup applied to quotations."""
    RETAIL = "Retail"
    WHOLESALE = "Wholesale"


class Customer(Base):
    """Customer master data."""

    __tablename__ = 'customer'

    id = Column(PrimaryKey, primary_key=True, autoincrement=True)
    customer_code = Column(String(32), nullable=True, unique=True)
    name = Column(String(200), nullable=False)
    customer_type = Column(SQLEnum(CustomerType, name='customer_type'), nullable=False, default=CustomerType.RETAIL)
    tax_id = Column(String(50), nullable=True)
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    address = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    quotations = relationship('Quotation', back_populates='customer')
    sales_orders = relationship('SalesOrder', back_populates='customer')

    def __repr__(self):
        return f"<Customer(id={self.id}, name='{self.name}', type={self.customer_type.value if self.customer_type else None})>"
