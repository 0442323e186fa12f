# Overview: Permission category constants for grouping related permissions.


class PermissionCategory:
    """Permission categories for organization and UI display."""
    MOBILE_SERVICES = "MOBILE_SERVICES"
    CLOSING = "CLOSING"
    SALES = "SALES"
    PURCHASES = "PURCHASES"
    LOANS = "LOANS"
    REPORTS = "REPORTS"
    SETTINGS = "SETTINGS"
    SYSTEM = "SYSTEM"
