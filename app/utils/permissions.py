"""
TDMS Analytics - Permissions System

RBAC permissions for tourism-office staff and establishment users. Geographic
reach is decided separately by the scope resolver; this module only answers
"may this role perform this kind of operation at all".

Permission Matrix:
==================

| Permission                    | r_admin | p_admin | admin | user |
|-------------------------------|---------|---------|-------|------|
| view_own_metrics              | X       | X       | X     | X    |
| view_area_metrics             | X       | X       | X     |      |
| view_submissions              | X       | X       | X     |      |
| record_penalty_payment        | X       | X       | X     |      |
| manage_establishments         | X       | X       | X     |      |
| manage_settings               | X       | X       | X     |      |
"""

from enum import Enum
from typing import Set

from app.models.user import UserRole


# ===========================================
# PERMISSION ENUMS
# ===========================================

class Permission(str, Enum):
    """Operation-level permissions."""

    VIEW_OWN_METRICS = "view_own_metrics"
    VIEW_AREA_METRICS = "view_area_metrics"
    VIEW_SUBMISSIONS = "view_submissions"
    RECORD_PENALTY_PAYMENT = "record_penalty_payment"
    MANAGE_ESTABLISHMENTS = "manage_establishments"
    MANAGE_SETTINGS = "manage_settings"


# ===========================================
# PERMISSION MAPPINGS
# ===========================================

_OFFICE_PERMISSIONS = {
    Permission.VIEW_OWN_METRICS,
    Permission.VIEW_AREA_METRICS,
    Permission.VIEW_SUBMISSIONS,
    Permission.RECORD_PENALTY_PAYMENT,
    Permission.MANAGE_ESTABLISHMENTS,
    Permission.MANAGE_SETTINGS,
}

ROLE_PERMISSIONS: dict[UserRole, Set[Permission]] = {
    UserRole.R_ADMIN: set(_OFFICE_PERMISSIONS),
    UserRole.P_ADMIN: set(_OFFICE_PERMISSIONS),
    UserRole.ADMIN: set(_OFFICE_PERMISSIONS),
    UserRole.USER: {
        Permission.VIEW_OWN_METRICS,
    },
}


def get_permissions(role: UserRole) -> Set[Permission]:
    """Get all permissions for a role."""
    return ROLE_PERMISSIONS.get(role, set())


def has_permission(role: UserRole, permission: Permission) -> bool:
    """Check if a role has a specific permission."""
    return permission in get_permissions(role)

