"""
Role Hierarchy
--------------
Canonical ordering of user roles, lowest to highest privilege:

    regular < cashier < manager < superuser

Every authorization decision in the service compares roles through this
module. The frontend keeps a copy of ROLE_ORDER; both must list the roles in
exactly this order.
"""

from enum import Enum
from typing import Any, Optional


class Role(str, Enum):
    """User roles, declared in ascending privilege order."""

    REGULAR = "regular"
    CASHIER = "cashier"
    MANAGER = "manager"
    SUPERUSER = "superuser"


ROLE_ORDER = tuple(role.value for role in Role)

_ROLE_INDEX = {role: index for index, role in enumerate(ROLE_ORDER)}


def role_index(role: Any) -> Optional[int]:
    """Position of ``role`` in the hierarchy, or None for unknown values."""
    if isinstance(role, Role):
        role = role.value
    if not isinstance(role, str):
        return None
    return _ROLE_INDEX.get(role)


def is_valid_role(role: Any) -> bool:
    return role_index(role) is not None


def is_at_least(candidate: Any, minimum: Any) -> bool:
    """
    Check whether ``candidate`` meets or exceeds ``minimum`` in privilege.

    Returns False when either value is not one of the enumerated roles.
    """
    candidate_index = role_index(candidate)
    minimum_index = role_index(minimum)
    if candidate_index is None or minimum_index is None:
        return False
    return candidate_index >= minimum_index
