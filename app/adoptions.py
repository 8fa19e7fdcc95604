"""Adoption request routes."""

from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from . import adoption_engine, mailer, schemas
from .auth import get_current_user
from .database import get_db
from .filters import MyRequestsQuery, ShelterRequestsQuery
from .models import User

router = APIRouter(prefix="/api/adoptions", tags=["adoptions"])


@router.post(
    "",
    response_model=schemas.AdoptionRequestEnvelope,
    status_code=status.HTTP_201_CREATED,
)
def create_request(
    payload: schemas.AdoptionRequestCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Submit an adoption request for an animal.

    Args:
        payload (AdoptionRequestCreate): Animal id and message.
        background_tasks (BackgroundTasks): Used to notify the shelter.
        current_user (User): Authenticated ``USER``.
        db (Session): Database session.

    Returns:
        AdoptionRequestEnvelope: The created ``PENDING`` request.
    """
    request = adoption_engine.create_request(
        db, current_user, payload.animal_id, payload.message
    )
    mailer.notify_new_request(background_tasks, request)
    return {"message": "Request submitted successfully.", "request": request}


@router.get("/my-requests", response_model=schemas.AdoptionRequestList)
def my_requests(
    status_filter: Optional[List[str]] = Query(None, alias="status"),
    order_by: Optional[str] = Query(None, alias="orderBy"),
    direction: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """List the requests submitted by the authenticated user."""

    query = MyRequestsQuery.parse(status_filter, order_by, direction)
    requests = adoption_engine.list_my_requests(db, current_user, query)
    if not requests:
        return {"message": "You have not submitted any requests yet.", "requests": []}
    return {"message": "Requests retrieved.", "requests": requests}


@router.get("/shelter", response_model=schemas.AdoptionRequestPage)
def shelter_requests(
    status_filter: Optional[List[str]] = Query(None, alias="status"),
    order_by: Optional[str] = Query(None, alias="orderBy"),
    direction: Optional[str] = None,
    animal_name: Optional[str] = Query(None, alias="animalName"),
    user_name: Optional[str] = Query(None, alias="userName"),
    page: int = 1,
    limit: int = 10,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """List the requests received by the admin's shelter, one page at a time."""

    query = ShelterRequestsQuery.parse(
        status_filter, order_by, direction, animal_name, user_name, page, limit
    )
    result = adoption_engine.list_shelter_requests(db, current_user, query)
    return {"message": "Requests retrieved.", **result}


@router.get("/request/{request_id}", response_model=schemas.AdoptionRequestEnvelope)
def get_request(
    request_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    request = adoption_engine.get_request_for_admin(db, current_user, request_id)
    return {"message": "Request retrieved.", "request": request}


@router.put("/{request_id}/status", response_model=schemas.AdoptionRequestEnvelope)
def update_status(
    request_id: int,
    payload: schemas.StatusUpdate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Change the status of a request of the admin's shelter.

    Approving marks the animal as adopted; any other status clears the flag.
    """
    request = adoption_engine.transition_status(
        db, current_user, request_id, payload.status
    )
    mailer.notify_status_change(background_tasks, request)
    return {"message": "Request updated successfully.", "request": request}


@router.delete("/{request_id}", response_model=schemas.MessageResponse)
def delete_request(
    request_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    adoption_engine.delete_request(db, current_user, request_id)
    return {"message": "Request deleted successfully."}
