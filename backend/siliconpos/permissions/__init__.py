# Overview: Permission system package.
# Re-exports all public APIs.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    CATALOG_PERMISSIONS,
    SALES_PERMISSIONS,
    REPORT_PERMISSIONS,
    USER_PERMISSIONS,
)
from .roles import DEFAULT_ROLE_PERMISSIONS, Role
from .helpers import (
    get_all_permission_codes,
    get_permissions_by_category,
    get_permission_definition,
    validate_permission_code,
    get_role_permissions,
    role_allows,
)

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "CATALOG_PERMISSIONS",
    "SALES_PERMISSIONS",
    "REPORT_PERMISSIONS",
    "USER_PERMISSIONS",
    "DEFAULT_ROLE_PERMISSIONS",
    "Role",
    "get_all_permission_codes",
    "get_permissions_by_category",
    "get_permission_definition",
    "validate_permission_code",
    "get_role_permissions",
    "role_allows",
]
