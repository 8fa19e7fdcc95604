"""User profile routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from . import crud, membership, schemas
from .auth import get_current_user, get_password_hash, verify_password
from .database import get_db
from .errors import ConflictError, ForbiddenError, InvalidInputError
from .models import User

router = APIRouter(prefix="/api/users", tags=["users"])


@router.put("/first-login", response_model=schemas.UserEnvelope)
def update_first_login(
    payload: schemas.FirstLoginUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Set the onboarding flag of the authenticated user.

    Args:
        payload (FirstLoginUpdate): Strict boolean flag.
        current_user (User): Authenticated user.
        db (Session): Database session.

    Returns:
        UserEnvelope: Updated user profile.
    """
    user = crud.update_user(
        db, current_user, {"first_login_completed": payload.first_login_completed}
    )
    return {"message": "First login status updated successfully.", "user": user}


@router.put("/me", response_model=schemas.UserEnvelope)
def update_me(
    payload: schemas.ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Update the profile of the authenticated user.

    Changes are confirmed with ``currentPassword``.

    Raises:
        InvalidInputError: If the password is missing or nothing changes.
        ForbiddenError: If the password is wrong.
        ConflictError: If the new email is taken by another user or a shelter.
    """
    if not payload.current_password:
        raise InvalidInputError("Enter your current password to update your data.")
    if not verify_password(payload.current_password, current_user.hashed_password):
        raise ForbiddenError("The current password is incorrect.")

    changes: dict = {}
    if payload.full_name:
        changes["full_name"] = payload.full_name
    if payload.email:
        existing = crud.get_user_by_email(db, payload.email)
        if existing and existing.id != current_user.id:
            raise ConflictError("The email is already used by another user.")
        if crud.get_shelter_by_email(db, payload.email):
            raise ConflictError("The email is already assigned to a shelter.")
        changes["email"] = payload.email
    if payload.new_password:
        changes["hashed_password"] = get_password_hash(payload.new_password)
    if not changes:
        raise InvalidInputError("No data was provided to update.")

    user = crud.update_user(db, current_user, changes)
    return {"message": "Profile updated successfully.", "user": user}


@router.delete("/me", response_model=schemas.MessageResponse)
def delete_me(
    payload: schemas.PasswordConfirm,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    membership.delete_own_account(db, current_user, payload.current_password)
    return {"message": "Account deleted successfully."}


@router.delete("/{user_id}", response_model=schemas.MessageResponse)
def delete_user(
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Delete an admin of the owner's shelter."""

    membership.delete_user_by_owner(db, current_user, user_id)
    return {"message": "User deleted successfully."}
