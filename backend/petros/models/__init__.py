from .tenancy import Tenant, User, USER_ROLES
from .inventory import Item, StockAdjustment, STOCK_ADJUSTMENT_TYPES
from .counterparties import Customer, Supplier
from .sales import Sale, SaleItem, Quotation, QuotationItem, PAYMENT_TYPES, QUOTATION_STATUSES
from .purchases import Purchase, PurchaseItem, PurchaseOrder, PurchaseOrderItem, PURCHASE_ORDER_STATUSES
from .payments import CustomerPayment, SupplierPayment, PAYMENT_METHODS
from .returns import CustomerReturn, SupplierReturn, RETURN_TYPES
from .registers import CashRegister, Expense, EXPENSE_CATEGORIES
from .audit import AuditLog

__all__ = [
    'Tenant', 'User', 'USER_ROLES',
    'Item', 'StockAdjustment', 'STOCK_ADJUSTMENT_TYPES',
    'Customer', 'Supplier',
    'Sale', 'SaleItem', 'Quotation', 'QuotationItem', 'PAYMENT_TYPES', 'QUOTATION_STATUSES',
    'Purchase', 'PurchaseItem', 'PurchaseOrder', 'PurchaseOrderItem', 'PURCHASE_ORDER_STATUSES',
    'CustomerPayment', 'SupplierPayment', 'PAYMENT_METHODS',
    'CustomerReturn', 'SupplierReturn', 'RETURN_TYPES',
    'CashRegister', 'Expense', 'EXPENSE_CATEGORIES',
    'AuditLog',
]
