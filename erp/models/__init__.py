"""Models package - exports all SQLAlchemy models."""
# Master data
from erp.models.customer import Customer, CustomerType
from erp.models.supplier import Supplier
from erp.models.markup_configuration import MarkupConfiguration, MarkupLevel

# Sales documents
from erp.models.quotation import Quotation, QuotationStatus
from erp.models.quotation_item import QuotationItem
from erp.models.sales_order import SalesOrder, SalesOrderStatus
from erp.models.sales_order_item import SalesOrderItem

# Procurement documents
from erp.models.supplier_lpo import SupplierLpo, LpoStatus
from erp.models.supplier_lpo_item import SupplierLpoItem
from erp.models.purchase_invoice import PurchaseInvoice, InvoiceStatus
from erp.models.purchase_invoice_item import PurchaseInvoiceItem

__all__ = [
    # Master data
    'Customer', 'CustomerType', 'Supplier', 'MarkupConfiguration', 'MarkupLevel',
    # Sales
    'Quotation', 'QuotationStatus', 'QuotationItem',
    'SalesOrder', 'SalesOrderStatus', 'SalesOrderItem',
    # Procurement
    'SupplierLpo', 'LpoStatus', 'SupplierLpoItem',
    'PurchaseInvoice', 'InvoiceStatus', 'PurchaseInvoiceItem',
]
