"""Shelter routes."""

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session

from . import crud, mailer, membership, schemas
from .auth import get_current_user
from .database import get_db
from .media import CloudinaryStorage, get_storage
from .models import User

router = APIRouter(prefix="/api/shelters", tags=["shelters"])


@router.get("", response_model=schemas.ShelterList)
def list_shelters(db: Session = Depends(get_db)):
    """Return every shelter with its admins and animals."""

    shelters = crud.list_shelters(db)
    return {"message": "Shelters retrieved.", "shelters": shelters}


@router.post(
    "/create-shelter",
    response_model=schemas.ShelterCreated,
    status_code=status.HTTP_201_CREATED,
)
def create_shelter(
    payload: schemas.ShelterCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Found a shelter and become its owner.

    Args:
        payload (ShelterCreate): Shelter profile.
        current_user (User): Authenticated ``USER`` without a shelter.
        db (Session): Database session.

    Returns:
        ShelterCreated: The shelter and the caller, now its owner admin.
    """
    shelter, user = membership.create_shelter(db, current_user, payload.model_dump())
    return {"message": "Shelter created successfully.", "shelter": shelter, "user": user}


@router.post("/add-admin", response_model=schemas.UserEnvelope)
def add_admin(
    payload: schemas.AddAdminRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Make a registered user an admin of the owner's shelter."""

    user, shelter = membership.add_admin(db, current_user, payload.email)
    mailer.notify_admin_added(background_tasks, user, shelter)
    return {
        "message": f"User {user.email} added as administrator of the shelter.",
        "user": user,
    }


@router.post("/remove-admin", response_model=schemas.MessageResponse)
def remove_admin(
    payload: schemas.RemoveAdminRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    membership.remove_admin(db, current_user, payload.admin_id, payload.new_admin_id)
    return {"message": "Administrator removed successfully."}


@router.get("/{shelter_id}", response_model=schemas.ShelterEnvelope)
def get_shelter(shelter_id: int, db: Session = Depends(get_db)):
    shelter = membership.get_shelter_or_404(db, shelter_id)
    return {"message": "Shelter retrieved.", "shelter": shelter}


@router.get("/{shelter_id}/admin", response_model=schemas.ShelterAdminEnvelope)
def get_shelter_for_admin(
    shelter_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Shelter dashboard with animal and admin counts."""

    view = membership.admin_view(db, current_user, shelter_id)
    return {"message": "Shelter retrieved.", "shelter": view}


@router.get("/{shelter_id}/my-shelter-admins", response_model=schemas.AdminList)
def my_shelter_admins(
    shelter_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    admins = membership.list_admins(db, current_user, shelter_id)
    return {"message": "Administrators retrieved.", "admins": admins}


@router.put("/{shelter_id}", response_model=schemas.ShelterEnvelope)
def update_shelter(
    shelter_id: int,
    payload: schemas.ShelterUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Update the owner's shelter.

    Args:
        shelter_id (int): Shelter identifier.
        payload (ShelterUpdate): Fields to change and ``currentPassword``.
        current_user (User): Owner of the shelter.
        db (Session): Database session.

    Returns:
        ShelterEnvelope: Updated shelter.
    """
    changes = payload.model_dump(exclude={"current_password"}, exclude_none=True)
    shelter = membership.update_shelter(
        db, current_user, shelter_id, changes, payload.current_password
    )
    return {"message": "Shelter updated successfully.", "shelter": shelter}


@router.delete("/{shelter_id}", response_model=schemas.MessageResponse)
def delete_shelter(
    shelter_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: CloudinaryStorage = Depends(get_storage),
):
    """Delete the owner's shelter with all of its animals."""

    membership.delete_shelter(db, current_user, shelter_id, storage)
    return {"message": "Shelter deleted successfully."}
