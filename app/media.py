"""Animal photos: external storage and photo records.

Photos are stored in Cloudinary under ``<root>/animals/<animalId>``. Every
animal holds at most ``MAX_PHOTOS_PER_ANIMAL`` photos.

Uploads are processed one file at a time and each stored photo is committed
on its own, so a failure partway keeps the photos uploaded before it.
Deletions remove the rows, push the storage deletion and only then commit;
a storage failure rolls the rows back. Removing the now empty folder is
best-effort.
"""

import logging
import os
from dataclasses import dataclass

import cloudinary
import cloudinary.api
import cloudinary.exceptions
import cloudinary.uploader
from fastapi import Depends
from sqlalchemy.orm import Session

from . import crud
from .core import Settings, get_settings
from .errors import ConflictError, InternalError, InvalidInputError, NotFoundError
from .guard import require_admin_of, require_role
from .models import Animal, Photo, Role, User

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp")
MAX_FILES_PER_UPLOAD = 5
OTHER_SHELTER_MESSAGE = "You cannot manage photos of animals of other shelters."


@dataclass
class IncomingPhoto:
    """An uploaded file read into memory."""

    filename: str
    content: bytes


class CloudinaryStorage:
    """
    Thin wrapper over the Cloudinary SDK.

    Credentials come from the settings passed in; nothing is configured at
    import time.
    """

    def __init__(self, settings: Settings):
        self.configured = bool(settings.CLOUDINARY_URL)
        self.root_folder = settings.CLOUDINARY_ROOT_FOLDER
        if self.configured:
            cloudinary.config(cloudinary_url=settings.CLOUDINARY_URL)

    def folder_for(self, animal_id: int) -> str:
        return f"{self.root_folder}/animals/{animal_id}"

    def _require_configured(self):
        if not self.configured:
            raise InternalError("Cloudinary is not configured")

    def upload(self, content: bytes, folder: str) -> dict:
        """
        Upload an image.

        Returns:
            dict: ``url`` and ``public_id`` of the stored resource.
        """
        self._require_configured()
        try:
            result = cloudinary.uploader.upload(content, folder=folder)
        except cloudinary.exceptions.Error as exc:
            raise InternalError("Could not upload the photo.", extra={"error": str(exc)})
        url = result.get("secure_url")
        if not url:
            raise InternalError("Could not upload the photo.")
        return {"url": url, "public_id": result.get("public_id")}

    def destroy(self, public_id: str) -> None:
        self._require_configured()
        try:
            cloudinary.uploader.destroy(public_id)
        except cloudinary.exceptions.Error as exc:
            raise InternalError("Could not delete the photo.", extra={"error": str(exc)})

    def delete_resources(self, public_ids: list[str]) -> None:
        self._require_configured()
        try:
            cloudinary.api.delete_resources(public_ids)
        except cloudinary.exceptions.Error as exc:
            raise InternalError("Could not delete the photos.", extra={"error": str(exc)})

    def delete_folder(self, folder: str) -> None:
        self._require_configured()
        try:
            cloudinary.api.delete_folder(folder)
        except cloudinary.exceptions.Error as exc:
            raise InternalError("Could not delete the folder.", extra={"error": str(exc)})


def get_storage(settings: Settings = Depends(get_settings)) -> CloudinaryStorage:
    """Dependency that provides the photo storage."""
    return CloudinaryStorage(settings)


def validate_files(files: list[IncomingPhoto], settings: Settings) -> None:
    """
    Check count, extension and size of uploaded files.

    Raises:
        InvalidInputError: If no file was sent, too many were sent, or a
            file has a forbidden extension or exceeds the size limit.
    """
    if not files:
        raise InvalidInputError("No photo was sent.")
    if len(files) > MAX_FILES_PER_UPLOAD:
        raise InvalidInputError(
            f"At most {MAX_FILES_PER_UPLOAD} photos can be uploaded at once."
        )
    max_bytes = settings.MAX_PHOTO_SIZE_MB * 1024 * 1024
    for f in files:
        ext = os.path.splitext(f.filename or "")[1].lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise InvalidInputError(
                "File type not allowed. Use JPG, JPEG, PNG or WEBP.",
                extra={"file": f.filename},
            )
        if len(f.content) > max_bytes:
            raise InvalidInputError(
                f"Each photo must be at most {settings.MAX_PHOTO_SIZE_MB} MB.",
                extra={"file": f.filename},
            )


def list_photos(db: Session, caller: User, animal_id: int) -> list[Photo]:
    animal = crud.get_animal_for_admin(db, animal_id, caller, OTHER_SHELTER_MESSAGE)
    return crud.list_photos(db, animal.id)


def upload_photos(
    db: Session,
    caller: User,
    animal_id: int,
    files: list[IncomingPhoto],
    storage: CloudinaryStorage,
    settings: Settings,
) -> list[Photo]:
    """
    Store new photos for an animal of the caller's shelter.

    Args:
        db (Session): Database session.
        caller (User): Admin uploading the photos.
        animal_id (int): Animal identifier.
        files (list[IncomingPhoto]): Files to store.
        storage (CloudinaryStorage): External storage.
        settings (Settings): Photo limits.

    Raises:
        ConflictError: If the animal would exceed the photo cap.

    Returns:
        list[Photo]: The stored photos.
    """
    animal = crud.get_animal_for_admin(db, animal_id, caller, OTHER_SHELTER_MESSAGE)
    validate_files(files, settings)

    existing = crud.count_photos(db, animal.id)
    if existing + len(files) > settings.MAX_PHOTOS_PER_ANIMAL:
        raise ConflictError(
            f"Only a maximum of {settings.MAX_PHOTOS_PER_ANIMAL} photos per animal is allowed.",
            extra={"currentCount": existing},
        )

    folder = storage.folder_for(animal.id)
    created = []
    for f in files:
        stored = storage.upload(f.content, folder)
        photo = Photo(url=stored["url"], public_id=stored["public_id"], animal_id=animal.id)
        db.add(photo)
        db.commit()
        db.refresh(photo)
        created.append(photo)
        logger.info("Stored photo %s for animal %s", photo.id, animal.id)
    return created


def _cleanup_folder(storage: CloudinaryStorage, animal_id: int) -> None:
    folder = storage.folder_for(animal_id)
    try:
        storage.delete_folder(folder)
    except InternalError as exc:
        logger.warning("Could not remove storage folder %s: %s", folder, exc.extra or exc.message)


def delete_photo(
    db: Session, caller: User, animal_id: int, photo_id: int, storage: CloudinaryStorage
) -> None:
    """
    Delete one photo of an animal.

    Raises:
        NotFoundError: If the photo does not exist.
        InvalidInputError: If the photo belongs to another animal.
        ForbiddenError: If the animal belongs to another shelter.
    """
    require_role(caller, Role.ADMIN)
    photo = crud.get_photo(db, photo_id)
    if photo is None:
        raise NotFoundError("Photo not found.")
    require_admin_of(caller, photo.animal.shelter_id, OTHER_SHELTER_MESSAGE)
    if photo.animal_id != animal_id:
        raise InvalidInputError("The photo does not belong to this animal.")

    public_id = photo.public_id
    db.delete(photo)
    db.flush()
    try:
        if public_id:
            storage.destroy(public_id)
    except Exception:
        db.rollback()
        raise
    db.commit()
    logger.info("Deleted photo %s of animal %s", photo_id, animal_id)


def delete_all_photos(
    db: Session, caller: User, animal_id: int, storage: CloudinaryStorage
) -> int:
    """Delete every photo of an animal and return how many were removed."""
    animal = crud.get_animal_for_admin(db, animal_id, caller, OTHER_SHELTER_MESSAGE)
    photos = list(animal.photos)
    public_ids = [p.public_id for p in photos if p.public_id]
    for photo in photos:
        db.delete(photo)
    db.flush()
    try:
        if public_ids:
            storage.delete_resources(public_ids)
    except Exception:
        db.rollback()
        raise
    if public_ids:
        _cleanup_folder(storage, animal.id)
    db.commit()
    logger.info("Deleted %s photos of animal %s", len(photos), animal.id)
    return len(photos)


def delete_animal(db: Session, caller: User, animal_id: int, storage: CloudinaryStorage) -> None:
    """Delete an animal with its photos and adoption requests."""
    animal = crud.get_animal_for_admin(
        db, animal_id, caller, "You cannot delete animals of other shelters."
    )
    purge_animals(db, storage, [animal])
    db.commit()
    logger.info("Deleted animal %s", animal_id)


def purge_animals(db: Session, storage: CloudinaryStorage, animals: list[Animal]) -> None:
    """
    Delete animals and their stored photos without committing.

    Rows are deleted and flushed first; the storage deletion follows and a
    failure rolls the session back.
    """
    targets = [(a.id, [p.public_id for p in a.photos if p.public_id]) for a in animals]
    for animal in animals:
        db.delete(animal)
    db.flush()
    for animal_id, public_ids in targets:
        if not public_ids:
            continue
        try:
            storage.delete_resources(public_ids)
        except Exception:
            db.rollback()
            raise
        _cleanup_folder(storage, animal_id)
