"""
Role Assignment Policy
----------------------
Rules governing who may change another user's email, verification,
suspicion flag and role (PATCH /users/{user_id}).

check_user_update() either raises RoleAssignmentError or returns the column
updates to apply.
"""

from typing import Any, Dict, Mapping

from loyalty_api.auth.models import AuthTokenPayload
from loyalty_api.auth.roles import Role, is_valid_role, role_index


class RoleAssignmentError(Exception):
    """Rejected user update; ``status_code`` maps to HTTP."""

    def __init__(self, status_code: int, detail: str):
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail


def _forbidden(detail: str) -> RoleAssignmentError:
    return RoleAssignmentError(403, detail)


def _bad_request(detail: str) -> RoleAssignmentError:
    return RoleAssignmentError(400, detail)


def check_user_update(
    actor: AuthTokenPayload,
    target: Mapping[str, Any],
    changes: Mapping[str, Any],
) -> Dict[str, Any]:
    """
    Decide whether ``actor`` may apply ``changes`` to ``target``.

    Args:
        actor: Identity performing the update (manager or superuser)
        target: Stored user record (user_id, role, is_verified, suspicious)
        changes: Validated request body (email, verified, suspicious, role)

    Returns:
        Column updates for UsersService.update_user

    Raises:
        RoleAssignmentError: 403 for privilege violations, 400 for invalid
            state transitions
    """
    changes = {key: value for key, value in changes.items() if value is not None}
    if not changes:
        raise _bad_request("No fields to update")

    actor_role = actor.role
    target_role = target["role"]
    new_role = changes.get("role")
    is_self = actor.user_id == target["user_id"]

    if actor_role == Role.MANAGER.value and role_index(target_role) >= role_index(Role.MANAGER):
        raise _forbidden("Managers cannot edit users with manager or superuser roles")

    if new_role is not None and actor_role == Role.SUPERUSER.value:
        if is_self:
            raise _forbidden("Superusers cannot modify their own role")
        if target_role == Role.SUPERUSER.value:
            raise _forbidden("Superusers cannot modify other superusers' roles")

    updates: Dict[str, Any] = {}

    if "email" in changes:
        updates["email"] = changes["email"]

    if "verified" in changes:
        if changes["verified"] is not True:
            raise _bad_request("Verified can only be set to true")
        updates["is_verified"] = True

    if "suspicious" in changes:
        updates["suspicious"] = changes["suspicious"]

    if new_role is not None:
        if not is_valid_role(new_role):
            raise _bad_request("Invalid role")

        if new_role == Role.SUPERUSER.value and actor_role != Role.SUPERUSER.value:
            raise _forbidden("Only superuser can promote to superuser")

        if actor_role == Role.MANAGER.value and new_role not in (
            Role.REGULAR.value,
            Role.CASHIER.value,
        ):
            raise _forbidden("Managers can only set role to regular or cashier")

        if role_index(new_role) > role_index(target_role):
            will_be_verified = updates.get("is_verified", target["is_verified"])
            if not will_be_verified:
                raise _bad_request("User must be verified before role promotion")

        if new_role == Role.CASHIER.value:
            if updates.get("suspicious", target["suspicious"]):
                raise _bad_request("Suspicious users cannot be promoted to cashier")
            updates["suspicious"] = False

        updates["role"] = new_role

    return updates
