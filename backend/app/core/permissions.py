"""
Role-based permissions.

Roles are a closed set; every protected route names the Permission it needs,
and ROLE_PERMISSIONS decides which roles hold it.
"""
from enum import Enum
from typing import FrozenSet, Dict


class UserRole(str, Enum):
    ADMIN = "admin"
    PHARMACIST = "pharmacist"
    STAFF = "staff"


class Permission(str, Enum):
    MANAGE_INVENTORY = "manage_inventory"      # create / update medicines
    DELETE_INVENTORY = "delete_inventory"      # soft-delete medicines
    VALIDATE_PRESCRIPTION = "validate_prescription"
    DISPENSE_PRESCRIPTION = "dispense_prescription"
    MANAGE_REORDERS = "manage_reorders"        # approve / order / receive / cancel / sweep
    VIEW_ANALYTICS = "view_analytics"


ROLE_PERMISSIONS: Dict[UserRole, FrozenSet[Permission]] = {
    UserRole.ADMIN: frozenset(Permission),
    UserRole.PHARMACIST: frozenset({
        Permission.MANAGE_INVENTORY,
        Permission.VALIDATE_PRESCRIPTION,
        Permission.DISPENSE_PRESCRIPTION,
        Permission.MANAGE_REORDERS,
        Permission.VIEW_ANALYTICS,
    }),
    UserRole.STAFF: frozenset({
        Permission.MANAGE_INVENTORY,
    }),
}


def role_has_permission(role: UserRole, permission: Permission) -> bool:
    """Check a role's capability set. Unknown roles hold nothing."""
    return permission in ROLE_PERMISSIONS.get(role, frozenset())
