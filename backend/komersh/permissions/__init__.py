# Overview: Capability system package.
# Re-exports all public APIs.

from .categories import CapabilityCategory
from .definitions import (
    CAPABILITY_DEFINITIONS,
    PRODUCT_CAPABILITIES,
    INVENTORY_CAPABILITIES,
    SALES_CAPABILITIES,
    FINANCE_CAPABILITIES,
    TASK_CAPABILITIES,
    FILE_CAPABILITIES,
    USER_CAPABILITIES,
    SYSTEM_CAPABILITIES,
)
from .roles import Role, ROLE_VALUES, DEFAULT_ROLE, ROLE_CAPABILITIES
from .helpers import (
    get_all_capability_codes,
    get_capabilities_by_category,
    get_capability_definition,
    validate_capability_code,
    capabilities_for_role,
    has_capability,
)

__all__ = [
    "CapabilityCategory",
    "CAPABILITY_DEFINITIONS",
    "PRODUCT_CAPABILITIES",
    "INVENTORY_CAPABILITIES",
    "SALES_CAPABILITIES",
    "FINANCE_CAPABILITIES",
    "TASK_CAPABILITIES",
    "FILE_CAPABILITIES",
    "USER_CAPABILITIES",
    "SYSTEM_CAPABILITIES",
    "Role",
    "ROLE_VALUES",
    "DEFAULT_ROLE",
    "ROLE_CAPABILITIES",
    "get_all_capability_codes",
    "get_capabilities_by_category",
    "get_capability_definition",
    "validate_capability_code",
    "capabilities_for_role",
    "has_capability",
]
