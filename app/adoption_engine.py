"""Adoption request lifecycle.

A request is created ``PENDING`` by a ``USER`` and moved between
``PENDING``, ``APPROVED`` and ``REJECTED`` by an admin of the shelter that
owns the animal. The animal's ``adopted`` flag follows the request status:

* moving a request to ``APPROVED`` sets it, provided no other request for
  the same animal is already approved;
* moving a request to ``PENDING`` or ``REJECTED`` clears it, regardless of
  other requests for the animal. Other requests are never touched.

Status and flag are written in one transaction. The database backs
approved-request exclusivity with a partial unique index, so concurrent
approvals that slip past the check surface as a conflict.
"""

import logging

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import crud
from .errors import ConflictError, ForbiddenError, InvalidInputError, NotFoundError
from .filters import MyRequestsQuery, ShelterRequestsQuery, total_pages
from .guard import require_admin_of, require_role, require_shelter
from .models import AdoptionRequest, Animal, RequestStatus, Role, User

logger = logging.getLogger(__name__)


def _load(db: Session, request_id) -> AdoptionRequest:
    request = db.get(AdoptionRequest, request_id)
    if request is None:
        raise NotFoundError("Request not found.")
    return request


def _has_requested(db: Session, user_id: int, animal_id: int) -> bool:
    stmt = select(AdoptionRequest.id).where(
        AdoptionRequest.user_id == user_id,
        AdoptionRequest.animal_id == animal_id,
    )
    return db.execute(stmt).first() is not None


def _other_approved(db: Session, animal_id: int, request_id: int) -> bool:
    """Tell whether another request for the animal is already approved."""
    stmt = select(AdoptionRequest.id).where(
        AdoptionRequest.animal_id == animal_id,
        AdoptionRequest.status == RequestStatus.APPROVED.value,
        AdoptionRequest.id != request_id,
    )
    return db.execute(stmt).first() is not None


def create_request(
    db: Session, caller: User, animal_id: int | None, message: str | None
) -> AdoptionRequest:
    """
    Submit an adoption request for an animal.

    Args:
        db (Session): Database session.
        caller (User): Authenticated user.
        animal_id (int | None): Requested animal.
        message (str | None): Motivation written by the user.

    Raises:
        ForbiddenError: If the caller is not a ``USER``.
        InvalidInputError: If ``animal_id`` or ``message`` is missing.
        NotFoundError: If the animal does not exist.
        ConflictError: If the animal is adopted or the caller already
            requested it.

    Returns:
        AdoptionRequest: The new ``PENDING`` request.
    """
    require_role(caller, Role.USER, "Only users can submit adoption requests.")
    if not animal_id:
        raise InvalidInputError("animalId is required.")
    if not message or not message.strip():
        raise InvalidInputError("message is required.")

    animal = crud.get_animal(db, animal_id)
    if animal is None:
        raise NotFoundError("Animal not found.")
    if animal.adopted:
        raise ConflictError(
            "This animal has already been adopted.",
            extra={
                "animal": {
                    "name": animal.name,
                    "species": animal.species,
                    "breed": animal.breed,
                    "description": animal.description,
                }
            },
        )

    if _has_requested(db, caller.id, animal.id):
        raise ConflictError("You have already submitted a request for this animal.")

    request = AdoptionRequest(user_id=caller.id, animal_id=animal.id, message=message)
    db.add(request)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("You have already submitted a request for this animal.")
    db.refresh(request)
    logger.info(
        "User %s requested animal %s (request %s)", caller.id, animal.id, request.id
    )
    return request


def transition_status(
    db: Session, caller: User, request_id: int, new_status: str | None
) -> AdoptionRequest:
    """
    Move a request to a new status and update the animal's adoption flag.

    Args:
        db (Session): Database session.
        caller (User): Admin handling the request.
        request_id (int): Request identifier.
        new_status (str | None): ``PENDING``, ``APPROVED`` or ``REJECTED``.

    Raises:
        ForbiddenError: If the caller is not an admin of the animal's shelter.
        InvalidInputError: If the status is not a valid value.
        NotFoundError: If the request does not exist.
        ConflictError: If another request for the animal is already approved.

    Returns:
        AdoptionRequest: The updated request.
    """
    require_role(caller, Role.ADMIN)
    if new_status not in RequestStatus.values():
        raise InvalidInputError(
            f"Invalid status. Valid values: {', '.join(RequestStatus.values())}."
        )

    request = _load(db, request_id)
    animal = request.animal
    require_admin_of(
        caller, animal.shelter_id, "You cannot modify requests of other shelters."
    )

    if new_status == RequestStatus.APPROVED.value:
        if _other_approved(db, animal.id, request.id):
            raise ConflictError(
                "This animal already has an approved request. No more requests can be approved."
            )

    old_status = request.status
    request.status = new_status
    animal.adopted = new_status == RequestStatus.APPROVED.value
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(
            "This animal already has an approved request. No more requests can be approved."
        )
    db.refresh(request)
    logger.info(
        "Request %s moved %s -> %s by admin %s; animal %s adopted=%s",
        request.id,
        old_status,
        new_status,
        caller.id,
        animal.id,
        animal.adopted,
    )
    return request


def list_my_requests(
    db: Session, caller: User, query: MyRequestsQuery
) -> list[AdoptionRequest]:
    """Return the requests submitted by the caller."""
    stmt = (
        select(AdoptionRequest)
        .where(AdoptionRequest.user_id == caller.id, *query.conditions())
        .order_by(*query.ordering())
    )
    return list(db.scalars(stmt).all())


def list_shelter_requests(
    db: Session, caller: User, query: ShelterRequestsQuery
) -> dict:
    """
    Return one page of the requests received by the caller's shelter.

    Args:
        db (Session): Database session.
        caller (User): Admin of the shelter.
        query (ShelterRequestsQuery): Filters, ordering and paging.

    Raises:
        ForbiddenError: If the caller is not an admin.
        InvalidInputError: If the caller has no shelter.

    Returns:
        dict: ``requests`` plus ``page``, ``limit``, ``total`` and
        ``total_pages``.
    """
    require_role(caller, Role.ADMIN)
    shelter_id = require_shelter(caller)

    stmt = (
        select(AdoptionRequest)
        .join(AdoptionRequest.animal)
        .join(AdoptionRequest.user)
        .where(Animal.shelter_id == shelter_id, *query.conditions())
    )
    total = db.scalar(select(func.count()).select_from(stmt.subquery())) or 0
    requests = db.scalars(
        stmt.order_by(*query.ordering())
        .offset(query.paging.offset)
        .limit(query.paging.limit)
    ).all()
    return {
        "requests": list(requests),
        "page": query.paging.page,
        "limit": query.paging.limit,
        "total": total,
        "total_pages": total_pages(total, query.paging.limit),
    }


def get_request_for_admin(db: Session, caller: User, request_id: int) -> AdoptionRequest:
    """Return a single request of the caller's shelter."""
    require_role(caller, Role.ADMIN)
    shelter_id = require_shelter(caller)
    request = _load(db, request_id)
    if request.animal.shelter_id != shelter_id:
        raise ForbiddenError("You cannot view requests of other shelters.")
    return request


def delete_request(db: Session, caller: User, request_id: int) -> None:
    """
    Delete a request of the caller's shelter, whatever its status.

    The animal's ``adopted`` flag is left as it is.
    """
    require_role(caller, Role.ADMIN, "Only administrators can delete requests.")
    request = _load(db, request_id)
    if caller.shelter_id is None or request.animal.shelter_id != caller.shelter_id:
        raise ForbiddenError("You cannot delete requests of other shelters.")
    db.delete(request)
    db.commit()
    logger.info("Request %s deleted by admin %s", request_id, caller.id)
