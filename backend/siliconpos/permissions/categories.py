# Overview: Permission category constants used to group operations for display.


class PermissionCategory:
    """Permission categories for organization."""
    CATALOG = "CATALOG"
    SALES = "SALES"
    REPORTS = "REPORTS"
    USERS = "USERS"
