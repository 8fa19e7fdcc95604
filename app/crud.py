"""CRUD operations for users, shelters, animals and photos.

This module contains plain database interaction logic, isolated from
FastAPI route handlers. Business rules live in the service modules
(``adoption_engine``, ``membership``, ``media``).
"""

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from . import models
from .errors import ConflictError, NotFoundError
from .filters import AnimalQuery
from .guard import require_admin_of


def get_user_by_email(db: Session, email: str) -> models.User | None:
    """
    Retrieve a user by email address.

    Args:
        db (Session): Database session.
        email (str): User email.

    Returns:
        User | None: User if found, otherwise ``None``.
    """
    return db.execute(
        select(models.User).where(models.User.email == email)
    ).scalar_one_or_none()


def get_user_by_id(db: Session, user_id: int) -> models.User | None:
    """
    Retrieve a user by primary key.

    Args:
        db (Session): Database session.
        user_id (int): User identifier.

    Returns:
        User | None: User if found, otherwise ``None``.
    """
    return db.get(models.User, user_id)


def get_shelter_by_email(db: Session, email: str) -> models.Shelter | None:
    return db.execute(
        select(models.Shelter).where(models.Shelter.email == email)
    ).scalar_one_or_none()


def find_shelter_by(db: Session, field: str, value) -> models.Shelter | None:
    """
    Retrieve a shelter by one of its unique columns.

    Args:
        db (Session): Database session.
        field (str): ``name``, ``email``, ``address`` or ``phone``.
        value: Value to look up.

    Returns:
        Shelter | None: Shelter if found, otherwise ``None``.
    """
    column = getattr(models.Shelter, field)
    return db.execute(
        select(models.Shelter).where(column == value)
    ).scalar_one_or_none()


def create_user(
    db: Session, full_name: str, email: str, hashed_password: str
) -> models.User:
    """
    Create and persist a new ``USER``.

    Args:
        db (Session): SQLAlchemy database session.
        full_name (str): Display name.
        email (str): Login email.
        hashed_password (str): Securely hashed password.

    Raises:
        ConflictError: If the email belongs to a user or to a shelter.

    Returns:
        User: Newly created user instance.
    """
    if get_user_by_email(db, email):
        raise ConflictError("The email is already registered by another user.")
    if get_shelter_by_email(db, email):
        raise ConflictError("The email is already assigned to a shelter.")

    user = models.User(
        full_name=full_name,
        email=email,
        hashed_password=hashed_password,
        role=models.Role.USER.value,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def update_user(db: Session, user: models.User, changes: dict) -> models.User:
    """
    Update mutable fields of a user.

    Args:
        db (Session): Database session.
        user (User): Target user.
        changes (dict): Column values to set.

    Returns:
        User: Updated user instance.
    """
    for key, value in changes.items():
        setattr(user, key, value)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def delete_user(db: Session, user: models.User) -> None:
    db.delete(user)
    db.commit()


def has_requests(db: Session, user_id: int, statuses=None) -> bool:
    """
    Tell whether a user submitted adoption requests.

    Args:
        db (Session): Database session.
        user_id (int): Requester identifier.
        statuses: Optional statuses to restrict the lookup to.

    Returns:
        bool: ``True`` when at least one matching request exists.
    """
    stmt = select(models.AdoptionRequest.id).where(
        models.AdoptionRequest.user_id == user_id
    )
    if statuses:
        stmt = stmt.where(models.AdoptionRequest.status.in_(list(statuses)))
    return db.execute(stmt.limit(1)).first() is not None


def get_shelter(db: Session, shelter_id: int) -> models.Shelter | None:
    return db.get(models.Shelter, shelter_id)


def list_shelters(db: Session) -> list[models.Shelter]:
    return list(db.scalars(select(models.Shelter).order_by(models.Shelter.id)).all())


def list_shelter_admins(db: Session, shelter_id: int) -> list[models.User]:
    """
    Retrieve the admins of a shelter, oldest first.

    Args:
        db (Session): Database session.
        shelter_id (int): Shelter identifier.

    Returns:
        list[User]: Admin users.
    """
    return list(
        db.scalars(
            select(models.User)
            .where(
                models.User.shelter_id == shelter_id,
                models.User.role == models.Role.ADMIN.value,
            )
            .order_by(models.User.created_at.asc(), models.User.id.asc())
        ).all()
    )


def get_animal(db: Session, animal_id: int) -> models.Animal | None:
    return db.get(models.Animal, animal_id)


def get_animal_for_admin(
    db: Session, animal_id: int, user: models.User, message: str
) -> models.Animal:
    """
    Retrieve an animal that the admin's shelter owns.

    Args:
        db (Session): Database session.
        animal_id (int): Animal identifier.
        user (User): Admin performing the operation.
        message (str): Error message for animals of other shelters.

    Raises:
        NotFoundError: If the animal does not exist.
        ForbiddenError: If the animal belongs to another shelter.

    Returns:
        Animal: The animal.
    """
    animal = get_animal(db, animal_id)
    if animal is None:
        raise NotFoundError("Animal not found.")
    require_admin_of(user, animal.shelter_id, message)
    return animal


def create_animal(db: Session, data: dict, shelter_id: int) -> models.Animal:
    """
    Create a new animal in a shelter roster.

    Args:
        db (Session): Database session.
        data (dict): Animal attributes.
        shelter_id (int): Owning shelter.

    Returns:
        Animal: Newly created animal.
    """
    animal = models.Animal(**data, shelter_id=shelter_id)
    db.add(animal)
    db.commit()
    db.refresh(animal)
    return animal


def update_animal(db: Session, animal: models.Animal, changes: dict) -> models.Animal:
    """
    Update mutable fields of an animal, ``adopted`` included.

    Args:
        db (Session): Database session.
        animal (Animal): Animal instance.
        changes (dict): Fields to update.

    Returns:
        Animal: Updated animal.
    """
    for key, value in changes.items():
        setattr(animal, key, value)
    db.add(animal)
    db.commit()
    db.refresh(animal)
    return animal


def list_animals(
    db: Session, query: AnimalQuery, *extra_conditions
) -> tuple[list[models.Animal], int]:
    """
    Retrieve one page of animals and the total number of matches.

    Args:
        db (Session): Database session.
        query (AnimalQuery): Parsed filters, ordering and paging.
        *extra_conditions: Scope conditions added by the caller.

    Returns:
        tuple[list[Animal], int]: Page items and total count.
    """
    conditions = [*extra_conditions, *query.conditions()]
    stmt = select(models.Animal).where(*conditions)
    total = db.scalar(select(func.count()).select_from(stmt.subquery()))
    items = db.scalars(
        stmt.order_by(*query.ordering())
        .offset(query.paging.offset)
        .limit(query.paging.limit)
    ).all()
    return list(items), total or 0


def get_photo(db: Session, photo_id: int) -> models.Photo | None:
    return db.get(models.Photo, photo_id)


def count_photos(db: Session, animal_id: int) -> int:
    return db.scalar(
        select(func.count(models.Photo.id)).where(models.Photo.animal_id == animal_id)
    ) or 0


def list_photos(db: Session, animal_id: int) -> list[models.Photo]:
    return list(
        db.scalars(
            select(models.Photo)
            .where(models.Photo.animal_id == animal_id)
            .order_by(models.Photo.id)
        ).all()
    )
