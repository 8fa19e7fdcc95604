"""Authorization checks shared by every service.

Checks are evaluated per call against the caller's current user record.
Three axes are covered:

* role gate: the caller must be a ``USER`` or an ``ADMIN``;
* tenant gate: an admin may only touch resources of their own shelter;
* ownership gate: only the shelter owner manages membership and the
  shelter profile.

Cross-tenant access is reported as ``ForbiddenError`` after the resource
was found, so existence is not hidden from other shelters' admins.
"""

from .errors import ForbiddenError, InvalidInputError
from .models import Role, User


def require_role(user: User, role: Role, message: str = "Not authorized.") -> None:
    """Raise ``ForbiddenError`` unless the user holds ``role``."""
    if user is None or user.role != role.value:
        raise ForbiddenError(message)


def require_shelter(user: User, message: str = "The administrator has no associated shelter.") -> int:
    """Return the user's shelter id, or fail when the user has none."""
    if not user.shelter_id:
        raise InvalidInputError(message)
    return user.shelter_id


def require_admin_of(user: User, shelter_id: int, message: str) -> None:
    """Tenant gate: an ``ADMIN`` of ``shelter_id`` is required."""
    require_role(user, Role.ADMIN)
    if user.shelter_id is None or user.shelter_id != shelter_id:
        raise ForbiddenError(message)


def require_owner(user: User, message: str = "Only the shelter owner can do this.") -> None:
    """Ownership gate: the founding admin of a shelter is required."""
    require_role(user, Role.ADMIN)
    if not user.is_admin_owner:
        raise ForbiddenError(message)


def is_owner_of(user: User, shelter_id: int) -> bool:
    return (
        user.role == Role.ADMIN.value
        and bool(user.is_admin_owner)
        and user.shelter_id == shelter_id
    )
