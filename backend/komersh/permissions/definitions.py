# Overview: All capability definitions organized by category.
# Each capability is defined as: (code, name, description, category)

from .categories import CapabilityCategory


# -- PRODUCTS --

PRODUCT_CAPABILITIES = [
    (
        "VIEW_PRODUCTS",
        "View Products",
        "View the potential product research list",
        CapabilityCategory.PRODUCTS,
    ),
    (
        "MANAGE_PRODUCTS",
        "Manage Products",
        "Create, edit and delete potential products",
        CapabilityCategory.PRODUCTS,
    ),
    (
        "BUY_PRODUCTS",
        "Buy Products",
        "Turn a potential product into an inventory lot",
        CapabilityCategory.PRODUCTS,
    ),
]


# -- INVENTORY --

INVENTORY_CAPABILITIES = [
    (
        "VIEW_INVENTORY",
        "View Inventory",
        "View inventory lots and stock levels",
        CapabilityCategory.INVENTORY,
    ),
    (
        "MANAGE_INVENTORY",
        "Manage Inventory",
        "Edit and delete inventory lots, upload lot images",
        CapabilityCategory.INVENTORY,
    ),
    (
        "SELL_INVENTORY",
        "Sell Inventory",
        "Record a sale against an inventory lot",
        CapabilityCategory.INVENTORY,
    ),
]


# -- SALES --

SALES_CAPABILITIES = [
    (
        "VIEW_SALES",
        "View Sales",
        "View sales orders",
        CapabilityCategory.SALES,
    ),
    (
        "MANAGE_SALES",
        "Manage Sales",
        "Update payout status and notes on sales orders",
        CapabilityCategory.SALES,
    ),
]


# -- FINANCE --

FINANCE_CAPABILITIES = [
    (
        "VIEW_FINANCIALS",
        "View Financials",
        "View bank accounts, expenses and dashboard totals",
        CapabilityCategory.FINANCE,
    ),
    (
        "MANAGE_FINANCIALS",
        "Manage Financials",
        "Manage bank accounts and expenses, adjust balances",
        CapabilityCategory.FINANCE,
    ),
]


# -- TASKS --

TASK_CAPABILITIES = [
    (
        "VIEW_TASKS",
        "View Tasks",
        "View the task board",
        CapabilityCategory.TASKS,
    ),
    (
        "MANAGE_TASKS",
        "Manage Tasks",
        "Create, move, assign and delete tasks",
        CapabilityCategory.TASKS,
    ),
]


# -- FILES --

FILE_CAPABILITIES = [
    (
        "VIEW_FILES",
        "View Files",
        "List attachments",
        CapabilityCategory.FILES,
    ),
    (
        "MANAGE_FILES",
        "Manage Files",
        "Upload and delete attachments",
        CapabilityCategory.FILES,
    ),
]


# -- USERS --

USER_CAPABILITIES = [
    (
        "MANAGE_USERS",
        "Manage Users",
        "Invite users, change roles, deactivate and reactivate accounts",
        CapabilityCategory.USERS,
    ),
]


# -- SYSTEM --

SYSTEM_CAPABILITIES = [
    (
        "VIEW_ACTIVITY",
        "View Activity",
        "View the activity log",
        CapabilityCategory.SYSTEM,
    ),
]


CAPABILITY_DEFINITIONS = (
    PRODUCT_CAPABILITIES
    + INVENTORY_CAPABILITIES
    + SALES_CAPABILITIES
    + FINANCE_CAPABILITIES
    + TASK_CAPABILITIES
    + FILE_CAPABILITIES
    + USER_CAPABILITIES
    + SYSTEM_CAPABILITIES
)
