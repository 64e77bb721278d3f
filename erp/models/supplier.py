"""Supplier model."""
from sqlalchemy import Column, String, Text, DateTime, Boolean
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from erp.database import Base, PrimaryKey


class Supplier(Base):
    """Supplier master data."""

    __tablename__ = 'supplier'

    id = Column(PrimaryKey, primary_key=True, autoincrement=True)
    supplier_code = Column(String(32), nullable=True, unique=True)
    name = Column(String, nullable=False)
    tax_id = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    email = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    lpos = relationship('SupplierLpo', back_populates='supplier')
    invoices = relationship('PurchaseInvoice', back_populates='supplier')

    def __repr__(self):
        return f"<Supplier(id={self.id}, name='{self.name}')>"
