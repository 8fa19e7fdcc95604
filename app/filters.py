"""Typed filter and paging options for list endpoints.

Each option struct enumerates the filters it supports, validates raw query
parameters once, and turns itself into SQLAlchemy conditions and ordering.
"""

import math
from dataclasses import dataclass, field
from typing import Iterable

from sqlalchemy import asc, desc

from .errors import InvalidInputError
from .models import AdoptionRequest, Animal, RequestStatus, User

DIRECTIONS = ("asc", "desc")
DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10


def split_values(raw: Iterable[str] | str | None) -> list[str]:
    """Flatten ``["A,B", "C"]`` or ``"A,B"`` into ``["A", "B", "C"]``."""
    if raw is None:
        return []
    if isinstance(raw, str):
        raw = [raw]
    values = []
    for item in raw:
        values.extend(part.strip() for part in str(item).split(",") if part.strip())
    return values


def parse_statuses(raw: Iterable[str] | str | None) -> list[str]:
    statuses = split_values(raw)
    invalid = [s for s in statuses if s not in RequestStatus.values()]
    if invalid:
        raise InvalidInputError(
            f"Invalid status: {', '.join(invalid)}. Valid values: {', '.join(RequestStatus.values())}."
        )
    return statuses


def parse_direction(raw: str | None, default: str) -> str:
    if raw is None or raw == "":
        return default
    if raw not in DIRECTIONS:
        raise InvalidInputError("direction must be 'asc' or 'desc'.")
    return raw


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


def _ordered(column, direction: str):
    return asc(column) if direction == "asc" else desc(column)


@dataclass
class Paging:
    """Page number and size, both starting at 1."""

    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    def __post_init__(self):
        if self.page < 1 or self.limit < 1:
            raise InvalidInputError("page and limit must be positive integers.")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class MyRequestsQuery:
    """Filters for the requests submitted by the caller.

    * ``statuses``: exact match against any of the given statuses.
    * ``direction``: creation time ordering, newest first by default.
    """

    statuses: list[str] = field(default_factory=list)
    direction: str = "desc"

    @classmethod
    def parse(cls, status=None, order_by: str | None = None, direction: str | None = None):
        if order_by not in (None, "", "createdAt"):
            raise InvalidInputError("Requests can only be ordered by createdAt.")
        return cls(statuses=parse_statuses(status), direction=parse_direction(direction, "desc"))

    def conditions(self) -> list:
        if self.statuses:
            return [AdoptionRequest.status.in_(self.statuses)]
        return []

    def ordering(self) -> list:
        return [
            _ordered(AdoptionRequest.created_at, self.direction),
            _ordered(AdoptionRequest.id, self.direction),
        ]


@dataclass
class ShelterRequestsQuery(MyRequestsQuery):
    """Filters for the requests received by a shelter.

    Adds case-insensitive substring matches on the animal name and on the
    requester's full name, plus paging. Callers must join ``Animal`` and
    ``User`` for the name filters.
    """

    animal_name: str | None = None
    user_name: str | None = None
    paging: Paging = field(default_factory=Paging)

    @classmethod
    def parse(
        cls,
        status=None,
        order_by: str | None = None,
        direction: str | None = None,
        animal_name: str | None = None,
        user_name: str | None = None,
        page: int = DEFAULT_PAGE,
        limit: int = DEFAULT_LIMIT,
    ):
        base = MyRequestsQuery.parse(status, order_by, direction)
        return cls(
            statuses=base.statuses,
            direction=base.direction,
            animal_name=animal_name or None,
            user_name=user_name or None,
            paging=Paging(page, limit),
        )

    def conditions(self) -> list:
        conds = super().conditions()
        if self.animal_name:
            conds.append(Animal.name.ilike(f"%{self.animal_name}%"))
        if self.user_name:
            conds.append(User.full_name.ilike(f"%{self.user_name}%"))
        return conds


ANIMAL_SORT_COLUMNS = {
    "age": Animal.age,
    "createdAt": Animal.created_at,
    "updatedAt": Animal.updated_at,
}


@dataclass
class AnimalQuery:
    """Filters for animal listings.

    * ``name``: case-insensitive substring.
    * ``species``, ``breeds``, ``genders``: exact match against any value.
    * ``age_min``, ``age_max``: inclusive bounds.
    * ``adopted``: adoption flag, admin listings only.
    * ``shelter_id``: owning shelter, public listings only.
    * ``order_by``/``direction``: ``age``, ``createdAt`` or ``updatedAt``.
      Without ``order_by`` the listing is ordered by ``updatedAt`` in
      ``default_direction``.
    """

    name: str | None = None
    species: list[str] = field(default_factory=list)
    breeds: list[str] = field(default_factory=list)
    genders: list[str] = field(default_factory=list)
    age_min: int | None = None
    age_max: int | None = None
    adopted: bool | None = None
    shelter_id: int | None = None
    order_by: str = "updatedAt"
    direction: str = "asc"
    paging: Paging = field(default_factory=Paging)

    @classmethod
    def parse(
        cls,
        *,
        default_direction: str,
        name: str | None = None,
        species=None,
        breed=None,
        gender=None,
        age_min: int | None = None,
        age_max: int | None = None,
        adopted: bool | None = None,
        shelter_id: int | None = None,
        order_by: str | None = None,
        direction: str | None = None,
        page: int = DEFAULT_PAGE,
        limit: int = DEFAULT_LIMIT,
    ):
        if order_by in (None, ""):
            order_by, direction = "updatedAt", default_direction
        elif order_by not in ANIMAL_SORT_COLUMNS:
            raise InvalidInputError(
                f"orderBy must be one of: {', '.join(ANIMAL_SORT_COLUMNS)}."
            )
        else:
            direction = parse_direction(direction, "asc")
        if age_min is not None and age_max is not None and age_min > age_max:
            raise InvalidInputError("age_min cannot be greater than age_max.")
        return cls(
            name=name or None,
            species=split_values(species),
            breeds=split_values(breed),
            genders=split_values(gender),
            age_min=age_min,
            age_max=age_max,
            adopted=adopted,
            shelter_id=shelter_id,
            order_by=order_by,
            direction=direction,
            paging=Paging(page, limit),
        )

    def conditions(self) -> list:
        conds = []
        if self.name:
            conds.append(Animal.name.ilike(f"%{self.name}%"))
        if self.species:
            conds.append(Animal.species.in_(self.species))
        if self.breeds:
            conds.append(Animal.breed.in_(self.breeds))
        if self.genders:
            conds.append(Animal.gender.in_(self.genders))
        if self.age_min is not None:
            conds.append(Animal.age >= self.age_min)
        if self.age_max is not None:
            conds.append(Animal.age <= self.age_max)
        if self.adopted is not None:
            conds.append(Animal.adopted == self.adopted)
        if self.shelter_id is not None:
            conds.append(Animal.shelter_id == self.shelter_id)
        return conds

    def ordering(self) -> list:
        return [
            _ordered(ANIMAL_SORT_COLUMNS[self.order_by], self.direction),
            _ordered(Animal.id, self.direction),
        ]
