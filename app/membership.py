"""Shelter membership: founding, administrators and account removal.

Every shelter has exactly one owner, the ``ADMIN`` who founded it
(``is_admin_owner``). Only the owner invites or removes other admins,
edits the shelter profile or deletes the shelter. Non-owner admins manage
animals and requests exactly like the owner.
"""

import logging

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import crud
from .auth import verify_password
from .errors import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    UnauthorizedError,
)
from .guard import is_owner_of, require_owner, require_role, require_shelter
from .media import CloudinaryStorage, purge_animals
from .models import ACTIVE_STATUSES, AdoptionRequest, Role, Shelter, User

logger = logging.getLogger(__name__)

UNIQUE_SHELTER_FIELDS = {
    "name": "A shelter with that name already exists.",
    "address": "That address is already registered by another shelter.",
    "phone": "That phone number is already registered by another shelter.",
}


def _check_shelter_email(db: Session, email: str, shelter_id: int | None = None) -> None:
    existing = crud.get_shelter_by_email(db, email)
    if existing and existing.id != shelter_id:
        raise ConflictError("That email is already assigned to a shelter.")
    if crud.get_user_by_email(db, email):
        raise ConflictError("That email is already used by a user.")


def _check_unique_fields(db: Session, data: dict, shelter_id: int | None = None) -> None:
    for field, message in UNIQUE_SHELTER_FIELDS.items():
        value = data.get(field)
        if not value:
            continue
        existing = crud.find_shelter_by(db, field, value)
        if existing and existing.id != shelter_id:
            raise ConflictError(message)


def _commit_unique(db: Session, message: str) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(message)


def create_shelter(db: Session, caller: User, data: dict) -> tuple[Shelter, User]:
    """
    Found a shelter and make the caller its owner.

    The shelter row and the caller's promotion to owner admin are written
    in one transaction.

    Args:
        db (Session): Database session.
        caller (User): A ``USER`` with no shelter.
        data (dict): ``name``, ``email``, ``address`` and optional
            ``phone`` and ``description``.

    Raises:
        ForbiddenError: If the caller is not a ``USER``.
        InvalidInputError: If the caller already belongs to a shelter.
        ConflictError: If a unique field is already taken.

    Returns:
        tuple[Shelter, User]: The new shelter and the promoted caller.
    """
    require_role(caller, Role.USER, "Only users can create a shelter.")
    if caller.shelter_id:
        raise InvalidInputError("You already belong to a shelter.")
    _check_unique_fields(db, {"name": data.get("name")})
    _check_shelter_email(db, data["email"])
    data = {**data, "phone": data.get("phone") or None}
    _check_unique_fields(db, {k: data.get(k) for k in ("address", "phone")})

    shelter = Shelter(**data)
    db.add(shelter)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise ConflictError("A shelter with those details already exists.")
    caller.shelter_id = shelter.id
    caller.role = Role.ADMIN.value
    caller.is_admin_owner = True
    caller.first_login_completed = True
    _commit_unique(db, "A shelter with those details already exists.")
    db.refresh(shelter)
    db.refresh(caller)
    logger.info("User %s founded shelter %s", caller.id, shelter.id)
    return shelter, caller


def get_shelter_or_404(db: Session, shelter_id: int) -> Shelter:
    shelter = crud.get_shelter(db, shelter_id)
    if shelter is None:
        raise NotFoundError("Shelter not found.")
    return shelter


def admin_view(db: Session, caller: User, shelter_id: int) -> dict:
    """Summarize a shelter for an admin, with the caller as current admin."""
    require_role(caller, Role.ADMIN)
    shelter = get_shelter_or_404(db, shelter_id)
    return {
        "name": shelter.name,
        "email": shelter.email,
        "address": shelter.address,
        "phone": shelter.phone,
        "description": shelter.description,
        "animals_count": len(shelter.animals),
        "admins_count": len(crud.list_shelter_admins(db, shelter.id)),
        "current_admin": {
            "id": caller.id,
            "full_name": caller.full_name,
            "email": caller.email,
            "is_admin_owner": bool(caller.is_admin_owner),
        },
    }


def list_admins(db: Session, caller: User, shelter_id: int) -> list[User]:
    """Return the admins of the owner's shelter, oldest first."""
    require_owner(caller, "Only the shelter owner can list the administrators.")
    own_shelter_id = require_shelter(caller, "You do not belong to any shelter.")
    if shelter_id != own_shelter_id:
        raise ForbiddenError("You cannot list the administrators of other shelters.")
    return crud.list_shelter_admins(db, shelter_id)


def update_shelter(
    db: Session,
    caller: User,
    shelter_id: int,
    changes: dict,
    current_password: str | None,
) -> Shelter:
    """
    Update the profile of the owner's shelter.

    Empty values are ignored. The owner confirms with their password.

    Raises:
        NotFoundError: If the shelter does not exist.
        ForbiddenError: If the caller does not own the shelter or the
            password is wrong.
        InvalidInputError: If the password is missing.
        ConflictError: If a unique field is already taken.
    """
    shelter = get_shelter_or_404(db, shelter_id)
    if not is_owner_of(caller, shelter.id):
        raise ForbiddenError("Not authorized.")
    if not current_password:
        raise InvalidInputError("Enter your current password to update the shelter.")
    if not verify_password(current_password, caller.hashed_password):
        raise ForbiddenError("The current password is incorrect.")

    changes = {k: v for k, v in changes.items() if v}
    _check_unique_fields(db, changes, shelter.id)
    if changes.get("email") and changes["email"] != shelter.email:
        _check_shelter_email(db, changes["email"], shelter.id)

    for key, value in changes.items():
        setattr(shelter, key, value)
    _commit_unique(db, "A shelter with those details already exists.")
    db.refresh(shelter)
    logger.info("Shelter %s updated by owner %s", shelter.id, caller.id)
    return shelter


def delete_shelter(
    db: Session, caller: User, shelter_id: int, storage: CloudinaryStorage
) -> None:
    """
    Delete a shelter with its animals, photos and requests.

    Every admin of the shelter, the owner included, goes back to being a
    plain ``USER``. Database changes are committed together after the
    stored photos were removed.
    """
    shelter = get_shelter_or_404(db, shelter_id)
    if not is_owner_of(caller, shelter.id):
        raise ForbiddenError("Not authorized.")

    purge_animals(db, storage, list(shelter.animals))
    db.expire(shelter, ["animals"])
    for admin in list(shelter.admins):
        admin.role = Role.USER.value
        admin.shelter_id = None
        admin.is_admin_owner = False
    db.delete(shelter)
    db.commit()
    logger.info("Shelter %s deleted by owner %s", shelter_id, caller.id)


def add_admin(db: Session, caller: User, email: str) -> tuple[User, Shelter]:
    """
    Make an existing user an admin of the owner's shelter.

    Raises:
        ForbiddenError: If the caller is not a shelter owner.
        InvalidInputError: If the caller has no shelter or the target
            already belongs to one.
        NotFoundError: If no user has that email.
        ConflictError: If the target has a pending or approved request.

    Returns:
        tuple[User, Shelter]: The new admin and the shelter.
    """
    require_owner(caller, "Only the shelter owner can add administrators.")
    shelter_id = require_shelter(caller, "You must belong to a shelter to add administrators.")

    target = crud.get_user_by_email(db, email)
    if target is None:
        raise NotFoundError("User not found.")
    if target.shelter_id:
        raise InvalidInputError("The user already belongs to a shelter.")
    if crud.has_requests(db, target.id, ACTIVE_STATUSES):
        raise ConflictError("The user has pending adoption requests.")

    target.role = Role.ADMIN.value
    target.shelter_id = shelter_id
    target.is_admin_owner = False
    target.first_login_completed = True
    db.commit()
    db.refresh(target)
    logger.info("User %s added as admin of shelter %s", target.id, shelter_id)
    return target, target.shelter


def remove_admin(
    db: Session, caller: User, admin_id: int, new_admin_id: int | None = None
) -> None:
    """
    Return an admin of the owner's shelter to being a plain ``USER``.

    Active requests assigned to the removed admin must be handed to
    ``new_admin_id``, another admin of the same shelter.

    Raises:
        ForbiddenError: If the caller is not the owner, or the target is
            in another shelter or is an owner.
        InvalidInputError: If the target is not an admin, is the caller,
            or ``new_admin_id`` is not a valid replacement.
        NotFoundError: If the target does not exist.
        ConflictError: If the target has active requests and no
            replacement was given.
    """
    require_owner(caller, "Only the shelter owner can remove administrators.")
    shelter_id = require_shelter(caller, "You do not belong to any shelter.")

    target = crud.get_user_by_id(db, admin_id)
    if target is None:
        raise NotFoundError("Administrator not found.")
    if target.shelter_id != shelter_id:
        raise ForbiddenError("This user does not belong to your shelter.")
    if target.role != Role.ADMIN.value:
        raise InvalidInputError("The user is not an administrator.")
    if target.id == caller.id:
        raise InvalidInputError("You cannot remove yourself as owner.")
    if target.is_admin_owner:
        raise ForbiddenError("The shelter owner cannot be removed.")

    if new_admin_id is not None:
        replacement = crud.get_user_by_id(db, new_admin_id)
        if (
            replacement is None
            or replacement.id == target.id
            or replacement.role != Role.ADMIN.value
            or replacement.shelter_id != shelter_id
        ):
            raise InvalidInputError("newAdminId must be another administrator of your shelter.")

    assigned = db.execute(
        select(AdoptionRequest.id).where(
            AdoptionRequest.admin_id == target.id,
            AdoptionRequest.status.in_(ACTIVE_STATUSES),
        )
    ).first()
    if assigned and new_admin_id is None:
        raise ConflictError(
            "This administrator has active requests. Reassign them before removing the administrator."
        )
    if new_admin_id is not None:
        db.execute(
            update(AdoptionRequest)
            .where(
                AdoptionRequest.admin_id == target.id,
                AdoptionRequest.status.in_(ACTIVE_STATUSES),
            )
            .values(admin_id=new_admin_id)
        )

    target.role = Role.USER.value
    target.shelter_id = None
    target.is_admin_owner = False
    db.commit()
    logger.info("Admin %s removed from shelter %s", target.id, shelter_id)


def delete_own_account(db: Session, user: User, current_password: str | None) -> None:
    """
    Delete the caller's account.

    Shelter admins cannot delete themselves, and neither can users with
    adoption requests of any status on record.

    Raises:
        InvalidInputError: If the password is missing.
        ForbiddenError: If the caller is an admin attached to a shelter.
        UnauthorizedError: If the password is wrong.
        ConflictError: If the caller has adoption requests.
    """
    if not current_password:
        raise InvalidInputError("Provide your password to delete the account.")
    if user.role == Role.ADMIN.value and user.is_admin_owner:
        raise ForbiddenError(
            "The owner of a shelter cannot delete their account. Delete the shelter first."
        )
    if user.role == Role.ADMIN.value and user.shelter_id:
        raise ForbiddenError("Only the shelter owner can delete your account.")
    if not verify_password(current_password, user.hashed_password):
        raise UnauthorizedError("The password is incorrect.")
    if crud.has_requests(db, user.id):
        raise ConflictError(
            "You cannot delete your account while you have adoption requests. "
            "Ask the shelter to delete them."
        )
    user_id = user.id
    crud.delete_user(db, user)
    logger.info("User %s deleted their account", user_id)


def delete_user_by_owner(db: Session, caller: User, target_id: int) -> None:
    """
    Delete an admin of the owner's shelter.

    Raises:
        ForbiddenError: If the caller is not an owner, or the target is in
            another shelter or is an owner.
        NotFoundError: If the target does not exist.
        ConflictError: If the target has pending or approved requests.
    """
    require_owner(caller, "Only the owner can delete administrators.")
    target = crud.get_user_by_id(db, target_id)
    if target is None:
        raise NotFoundError("User not found.")
    if caller.shelter_id is None or target.shelter_id != caller.shelter_id:
        raise ForbiddenError("The user does not belong to your shelter.")
    if target.is_admin_owner:
        raise ForbiddenError("You cannot delete an owner.")
    if crud.has_requests(db, target.id, ACTIVE_STATUSES):
        raise ConflictError("The user has active requests and cannot be deleted.")
    crud.delete_user(db, target)
    logger.info("User %s deleted by owner %s", target_id, caller.id)
