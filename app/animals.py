"""Animal roster and photo routes."""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.orm import Session

from . import crud, media, schemas
from .auth import get_current_admin, get_current_user
from .core import Settings, get_settings
from .database import get_db
from .errors import NotFoundError
from .filters import AnimalQuery, total_pages
from .guard import require_role, require_shelter
from .models import Animal, Role, User

router = APIRouter(prefix="/api/animals", tags=["animals"])


def _page(message: str, animals, total: int, query: AnimalQuery) -> dict:
    return {
        "message": message,
        "animals": animals,
        "page": query.paging.page,
        "limit": query.paging.limit,
        "total": total,
        "total_pages": total_pages(total, query.paging.limit),
    }


@router.post(
    "/admin", response_model=schemas.AnimalEnvelope, status_code=status.HTTP_201_CREATED
)
def create_animal(
    payload: schemas.AnimalCreate,
    current_user: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    """
    Add an animal to the admin's shelter.

    Args:
        payload (AnimalCreate): Animal attributes.
        current_user (User): Authenticated admin.
        db (Session): Database session.

    Raises:
        InvalidInputError: If the admin has no shelter.

    Returns:
        AnimalEnvelope: The created animal.
    """
    shelter_id = require_shelter(current_user, "You are not associated with a shelter.")
    animal = crud.create_animal(db, payload.model_dump(), shelter_id)
    return {"message": "Animal created successfully.", "animal": animal}


@router.get("/admin", response_model=schemas.AnimalPage)
def list_admin_animals(
    name: Optional[str] = None,
    species: Optional[List[str]] = Query(None),
    breed: Optional[List[str]] = Query(None),
    gender: Optional[List[str]] = Query(None),
    age_min: Optional[int] = None,
    age_max: Optional[int] = None,
    adopted: Optional[bool] = None,
    order_by: Optional[str] = Query(None, alias="orderBy"),
    direction: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
    current_user: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    """List the animals of the admin's shelter, newest update first by default."""

    shelter_id = require_shelter(current_user, "You do not belong to any shelter.")
    query = AnimalQuery.parse(
        default_direction="desc",
        name=name,
        species=species,
        breed=breed,
        gender=gender,
        age_min=age_min,
        age_max=age_max,
        adopted=adopted,
        order_by=order_by,
        direction=direction,
        page=page,
        limit=limit,
    )
    animals, total = crud.list_animals(db, query, Animal.shelter_id == shelter_id)
    return _page("Animals retrieved.", animals, total, query)


@router.get("/admin/{animal_id}", response_model=schemas.AnimalEnvelope)
def get_admin_animal(
    animal_id: int,
    current_user: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    animal = crud.get_animal_for_admin(
        db, animal_id, current_user, "You cannot view animals of other shelters."
    )
    return {"message": "Animal retrieved.", "animal": animal}


@router.put("/admin/{animal_id}", response_model=schemas.AnimalEnvelope)
def update_animal(
    animal_id: int,
    payload: schemas.AnimalUpdate,
    current_user: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    """
    Update an animal of the admin's shelter.

    ``adopted`` is written as given, independently of adoption requests.
    """
    animal = crud.get_animal_for_admin(
        db, animal_id, current_user, "You cannot modify animals of other shelters."
    )
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    animal = crud.update_animal(db, animal, changes)
    return {"message": "Animal updated successfully.", "animal": animal}


@router.delete("/admin/{animal_id}", response_model=schemas.MessageResponse)
def delete_animal(
    animal_id: int,
    current_user: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
    storage: media.CloudinaryStorage = Depends(media.get_storage),
):
    media.delete_animal(db, current_user, animal_id, storage)
    return {"message": "Animal deleted successfully."}


@router.get("/admin/{animal_id}/photos", response_model=schemas.PhotoList)
def list_photos(
    animal_id: int,
    current_user: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    photos = media.list_photos(db, current_user, animal_id)
    return {"message": "Photos retrieved.", "photos": photos}


@router.post(
    "/admin/{animal_id}/photos",
    response_model=schemas.PhotoList,
    status_code=status.HTTP_201_CREATED,
)
def upload_photos(
    animal_id: int,
    photos: Optional[List[UploadFile]] = File(None),
    current_user: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
    storage: media.CloudinaryStorage = Depends(media.get_storage),
    settings: Settings = Depends(get_settings),
):
    """
    Upload photos for an animal (multipart field ``photos``).

    Args:
        animal_id (int): Animal identifier.
        photos (list[UploadFile]): Image files.
        current_user (User): Authenticated admin.
        db (Session): Database session.
        storage (CloudinaryStorage): Photo storage.
        settings (Settings): Photo limits.

    Returns:
        PhotoList: The stored photos.
    """
    incoming = [
        media.IncomingPhoto(filename=f.filename or "", content=f.file.read())
        for f in photos or []
    ]
    created = media.upload_photos(db, current_user, animal_id, incoming, storage, settings)
    return {"message": "Photos uploaded successfully.", "photos": created}


@router.delete("/admin/{animal_id}/photos/{photo_id}", response_model=schemas.MessageResponse)
def delete_photo(
    animal_id: int,
    photo_id: int,
    current_user: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
    storage: media.CloudinaryStorage = Depends(media.get_storage),
):
    media.delete_photo(db, current_user, animal_id, photo_id, storage)
    return {"message": "Photo deleted successfully."}


@router.delete("/admin/{animal_id}/photos", response_model=schemas.MessageResponse)
def delete_all_photos(
    animal_id: int,
    current_user: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
    storage: media.CloudinaryStorage = Depends(media.get_storage),
):
    count = media.delete_all_photos(db, current_user, animal_id, storage)
    return {"message": f"{count} photos deleted successfully."}


@router.get("", response_model=schemas.AnimalPublicPage)
def list_animals(
    name: Optional[str] = None,
    species: Optional[List[str]] = Query(None),
    breed: Optional[List[str]] = Query(None),
    gender: Optional[List[str]] = Query(None),
    age_min: Optional[int] = None,
    age_max: Optional[int] = None,
    shelter_id: Optional[int] = Query(None, alias="shelterId"),
    order_by: Optional[str] = Query(None, alias="orderBy"),
    direction: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """List adoptable animals; adopted ones are never shown."""

    require_role(current_user, Role.USER)
    query = AnimalQuery.parse(
        default_direction="asc",
        name=name,
        species=species,
        breed=breed,
        gender=gender,
        age_min=age_min,
        age_max=age_max,
        shelter_id=shelter_id,
        order_by=order_by,
        direction=direction,
        page=page,
        limit=limit,
    )
    animals, total = crud.list_animals(db, query, Animal.adopted.is_(False))
    return _page("Animals retrieved.", animals, total, query)


@router.get("/{animal_id}", response_model=schemas.AnimalPublicEnvelope)
def get_animal(
    animal_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    require_role(current_user, Role.USER)
    animal = crud.get_animal(db, animal_id)
    if animal is None:
        raise NotFoundError("Animal not found.")
    return {"message": "Animal retrieved.", "animal": animal}
