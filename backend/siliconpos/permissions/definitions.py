"""
Operation definitions.

WHY: Centralized operation codes keep route decorators and the role table in
sync. Each operation is one gated action.

Each operation is defined as: (code, name, description, category)
"""

from .categories import PermissionCategory


# =============================================================================
# CATALOG
# =============================================================================

CATALOG_PERMISSIONS = [
    (
        "VIEW_CATALOG",
        "View Catalog",
        "List and view products, services and low-stock items",
        PermissionCategory.CATALOG
    ),
    (
        "MANAGE_PRODUCTS",
        "Manage Products",
        "Create, edit and delete products (including stock levels)",
        PermissionCategory.CATALOG
    ),
    (
        "MANAGE_SERVICES",
        "Manage Services",
        "Create, edit and delete services",
        PermissionCategory.CATALOG
    ),
]

# =============================================================================
# SALES
# =============================================================================

SALES_PERMISSIONS = [
    (
        "VIEW_SALES",
        "View Sales",
        "List sales and view sale details",
        PermissionCategory.SALES
    ),
    (
        "CREATE_SALE",
        "Create Sale",
        "Check out a cart (POS access)",
        PermissionCategory.SALES
    ),
    (
        "UPDATE_SALE",
        "Update Sale",
        "Change a sale's status or notes",
        PermissionCategory.SALES
    ),
]

# =============================================================================
# REPORTS
# =============================================================================

REPORT_PERMISSIONS = [
    (
        "VIEW_DASHBOARD",
        "View Dashboard",
        "Today's figures, weekly chart and recent sales",
        PermissionCategory.REPORTS
    ),
    (
        "VIEW_REPORTS",
        "View Reports",
        "Period sales reports: revenue, categories, top products",
        PermissionCategory.REPORTS
    ),
]

# =============================================================================
# USERS
# =============================================================================

USER_PERMISSIONS = [
    (
        "MANAGE_STAFF",
        "Manage Staff",
        "Create, edit, deactivate and delete staff accounts",
        PermissionCategory.USERS
    ),
]

PERMISSION_DEFINITIONS = (
    CATALOG_PERMISSIONS
    + SALES_PERMISSIONS
    + REPORT_PERMISSIONS
    + USER_PERMISSIONS
)
