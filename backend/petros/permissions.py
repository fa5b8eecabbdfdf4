"""
Permission codes and the static role -> permission map.

Roles are fixed (see models.USER_ROLES); there is no per-user override.
OWNER holds every permission.
"""

# =============================================================================
# PERMISSION CATEGORIES
# =============================================================================

class PermissionCategory:
    SALES = "SALES"
    PURCHASES = "PURCHASES"
    INVENTORY = "INVENTORY"
    FINANCE = "FINANCE"
    TILL = "TILL"
    REPORTS = "REPORTS"


# =============================================================================
# PERMISSION DEFINITIONS
# =============================================================================

# (code, name, description, category)
PERMISSION_DEFINITIONS = [
    # SALES
    ("CREATE_SALE", "Create Sale", "Record sales and edit them", PermissionCategory.SALES),
    ("VOID_SALES", "Void Sales", "Void sales and reverse their effects", PermissionCategory.SALES),
    ("PROCESS_RETURNS", "Process Returns", "Accept customer returns and send supplier returns", PermissionCategory.SALES),
    ("CREATE_QUOTATION", "Create Quotation", "Create, update and convert quotations", PermissionCategory.SALES),
    ("VIEW_QUOTATIONS", "View Quotations", "View quotations", PermissionCategory.SALES),
    ("MANAGE_CUSTOMERS", "Manage Customers", "Create and edit customers", PermissionCategory.SALES),

    # PURCHASES
    ("CREATE_PURCHASE", "Create Purchase", "Record purchases and edit them", PermissionCategory.PURCHASES),
    ("VOID_PURCHASES", "Void Purchases", "Void purchases and reverse their effects", PermissionCategory.PURCHASES),
    ("CREATE_PURCHASE_ORDER", "Create Purchase Order", "Create and update purchase orders", PermissionCategory.PURCHASES),
    ("VIEW_PURCHASE_ORDERS", "View Purchase Orders", "View purchase orders", PermissionCategory.PURCHASES),
    ("DELETE_PURCHASE_ORDER", "Delete Purchase Order", "Delete DRAFT purchase orders", PermissionCategory.PURCHASES),
    ("MANAGE_SUPPLIERS", "Manage Suppliers", "Create and edit suppliers", PermissionCategory.PURCHASES),

    # INVENTORY
    ("ADJUST_STOCK", "Adjust Stock", "Manual stock corrections", PermissionCategory.INVENTORY),
    ("VIEW_ITEMS", "View Items", "View items and stock levels", PermissionCategory.INVENTORY),
    ("MANAGE_ITEMS", "Manage Items", "Create items and edit names and prices", PermissionCategory.INVENTORY),

    # FINANCE
    ("RECORD_PAYMENTS", "Record Payments", "Record customer and supplier payments", PermissionCategory.FINANCE),
    ("ADJUST_BALANCES", "Adjust Balances", "Override customer and supplier balances", PermissionCategory.FINANCE),
    ("CREATE_EXPENSES", "Create Expenses", "Record expenses", PermissionCategory.FINANCE),
    ("VIEW_EXPENSES", "View Expenses", "View expenses", PermissionCategory.FINANCE),
    ("VIEW_AUDIT_LOGS", "View Audit Logs", "View the audit trail", PermissionCategory.FINANCE),

    # TILL
    ("MANAGE_TILL", "Manage Till", "Open and close till shifts", PermissionCategory.TILL),

    # REPORTS
    ("VIEW_BASIC_REPORTS", "View Basic Reports", "Dashboard and stock reports", PermissionCategory.REPORTS),
    ("VIEW_ALL_REPORTS", "View All Reports", "Financial reports", PermissionCategory.REPORTS),
    ("VIEW_PROFIT_MARGINS", "View Profit Margins", "See cost, profit and margin figures", PermissionCategory.REPORTS),
]


# =============================================================================
# ROLE MAPPINGS
# =============================================================================

_VIEW = ["VIEW_BASIC_REPORTS", "VIEW_ITEMS"]

DEFAULT_ROLE_PERMISSIONS = {
    "OWNER": [code for code, _, _, _ in PERMISSION_DEFINITIONS],
    "STORE_MANAGER": [
        "CREATE_SALE", "VOID_SALES", "PROCESS_RETURNS", "CREATE_QUOTATION", "VIEW_QUOTATIONS", "MANAGE_CUSTOMERS",
        "CREATE_PURCHASE", "VOID_PURCHASES",
        "CREATE_PURCHASE_ORDER", "VIEW_PURCHASE_ORDERS", "DELETE_PURCHASE_ORDER", "MANAGE_SUPPLIERS",
        "MANAGE_ITEMS", "ADJUST_STOCK", "RECORD_PAYMENTS", "ADJUST_BALANCES",
        "CREATE_EXPENSES", "VIEW_EXPENSES", "VIEW_AUDIT_LOGS",
        "MANAGE_TILL", "VIEW_ALL_REPORTS", "VIEW_PROFIT_MARGINS",
    ] + _VIEW,
    "CASHIER": [
        "CREATE_SALE", "RECORD_PAYMENTS", "MANAGE_TILL", "CREATE_QUOTATION", "VIEW_QUOTATIONS", "MANAGE_CUSTOMERS",
    ] + _VIEW,
    "INVENTORY_MANAGER": [
        "ADJUST_STOCK", "CREATE_PURCHASE", "CREATE_PURCHASE_ORDER", "VIEW_PURCHASE_ORDERS",
        "MANAGE_ITEMS", "MANAGE_SUPPLIERS",
    ] + _VIEW,
    "ACCOUNTANT": [
        "VIEW_AUDIT_LOGS", "VIEW_ALL_REPORTS", "VIEW_PROFIT_MARGINS",
        "RECORD_PAYMENTS", "ADJUST_BALANCES", "VIEW_EXPENSES",
    ] + _VIEW,
    "STAFF": [
        "CREATE_SALE", "CREATE_PURCHASE", "RECORD_PAYMENTS",
    ] + _VIEW,
}


def get_all_permission_codes():
    return [code for code, _, _, _ in PERMISSION_DEFINITIONS]


def get_permissions_for_role(role: str) -> list[str]:
    return list(DEFAULT_ROLE_PERMISSIONS.get(role, []))


def has_permission(role: str, permission_code: str) -> bool:
    return permission_code in DEFAULT_ROLE_PERMISSIONS.get(role, ())
