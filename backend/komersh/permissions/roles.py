# Overview: Role enum and the fixed role -> capability table.

from enum import Enum

from .definitions import CAPABILITY_DEFINITIONS


class Role(str, Enum):
    ADMIN = "admin"
    FOUNDER = "founder"
    MARKETING = "marketing"
    WAREHOUSE = "warehouse"
    VIEWER = "viewer"


ROLE_VALUES = tuple(role.value for role in Role)

DEFAULT_ROLE = Role.VIEWER

_ALL = frozenset(code for code, *_ in CAPABILITY_DEFINITIONS)
_VIEW = frozenset(code for code in _ALL if code.startswith("VIEW_"))


# The table is static; roles are not editable at runtime.
ROLE_CAPABILITIES = {
    Role.ADMIN: _ALL,
    Role.FOUNDER: _ALL - {"MANAGE_USERS"},
    Role.MARKETING: frozenset({
        "VIEW_PRODUCTS",
        "MANAGE_PRODUCTS",
        "VIEW_INVENTORY",
        "VIEW_SALES",
        "VIEW_TASKS",
        "MANAGE_TASKS",
        "VIEW_FILES",
        "MANAGE_FILES",
        "VIEW_ACTIVITY",
    }),
    Role.WAREHOUSE: frozenset({
        "VIEW_PRODUCTS",
        "VIEW_INVENTORY",
        "MANAGE_INVENTORY",
        "SELL_INVENTORY",
        "VIEW_SALES",
        "MANAGE_SALES",
        "VIEW_TASKS",
        "MANAGE_TASKS",
        "VIEW_FILES",
        "MANAGE_FILES",
        "VIEW_ACTIVITY",
    }),
    Role.VIEWER: _VIEW,
}
