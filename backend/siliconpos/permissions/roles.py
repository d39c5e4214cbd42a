"""
Roles and the role x operation table.

The role set is closed: adding a role is a code change here, and every role
must appear in DEFAULT_ROLE_PERMISSIONS. Anything not listed is denied.
"""

import enum


class Role(str, enum.Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    SALES = "sales"

    @classmethod
    def values(cls) -> list[str]:
        return [r.value for r in cls]

    @classmethod
    def parse(cls, value) -> "Role":
        """Raise ValueError for anything outside the closed set."""
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())


_SALES_FLOOR = {
    "VIEW_CATALOG",
    "VIEW_SALES",
    "CREATE_SALE",
    "VIEW_DASHBOARD",
}

_BACK_OFFICE = _SALES_FLOOR | {
    "MANAGE_PRODUCTS",
    "MANAGE_SERVICES",
    "UPDATE_SALE",
    "VIEW_REPORTS",
}

DEFAULT_ROLE_PERMISSIONS = {
    Role.ADMIN: frozenset(_BACK_OFFICE | {"MANAGE_STAFF"}),
    Role.MANAGER: frozenset(_BACK_OFFICE),
    Role.SALES: frozenset(_SALES_FLOOR),
}
