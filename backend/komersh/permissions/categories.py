# Overview: Capability category constants for grouping related capabilities.


class CapabilityCategory:
    """Capability categories for organization and UI display."""
    PRODUCTS = "PRODUCTS"
    INVENTORY = "INVENTORY"
    SALES = "SALES"
    FINANCE = "FINANCE"
    TASKS = "TASKS"
    FILES = "FILES"
    USERS = "USERS"
    SYSTEM = "SYSTEM"
