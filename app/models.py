"""Database models for the shelter adoption API.

This module defines SQLAlchemy ORM models used by the application.
"""

import enum

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.orm import relationship

from .database import Base


class Role(str, enum.Enum):
    """Platform-wide role of a user."""

    USER = "USER"
    ADMIN = "ADMIN"


class RequestStatus(str, enum.Enum):
    """Lifecycle states of an adoption request."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

    @classmethod
    def values(cls) -> list[str]:
        return [e.value for e in cls]


#: Statuses that still tie a user to an animal.
ACTIVE_STATUSES = (RequestStatus.PENDING.value, RequestStatus.APPROVED.value)


class User(Base):
    """
    SQLAlchemy model representing an application user.

    A user is either a prospective adopter (``USER``) or an administrator
    of exactly one shelter (``ADMIN``). The founding administrator of a
    shelter carries ``is_admin_owner``.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String(120), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = Column(String(20), default=Role.USER.value, nullable=False)
    is_admin_owner = Column(Boolean, default=False, nullable=False)
    first_login_completed = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    #: Shelter the user administers, if any
    shelter_id = Column(
        Integer,
        ForeignKey("shelters.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    shelter = relationship("Shelter", back_populates="admins")

    #: Adoption requests submitted by the user
    requests = relationship(
        "AdoptionRequest",
        back_populates="user",
        foreign_keys="AdoptionRequest.user_id",
        cascade="all, delete-orphan",
    )


class Shelter(Base):
    """
    SQLAlchemy model representing an animal shelter.

    Name, email, address and phone are each unique across shelters.
    """

    __tablename__ = "shelters"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(150), unique=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    address = Column(String(255), unique=True, nullable=False)
    phone = Column(String(50), unique=True, nullable=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    admins = relationship("User", back_populates="shelter")
    animals = relationship(
        "Animal",
        back_populates="shelter",
        cascade="all, delete-orphan",
    )


class Animal(Base):
    """
    SQLAlchemy model representing an animal in a shelter roster.

    ``adopted`` mirrors whether the animal has an approved request; it is
    maintained by the adoption engine and may be overridden by an admin edit.
    """

    __tablename__ = "animals"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, index=True)
    species = Column(String(50), nullable=False, index=True)
    breed = Column(String(100), nullable=False)
    gender = Column(String(20), nullable=False)
    age = Column(Integer, nullable=True)
    description = Column(Text, nullable=True)
    adopted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    shelter_id = Column(
        Integer,
        ForeignKey("shelters.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    shelter = relationship("Shelter", back_populates="animals")
    photos = relationship(
        "Photo",
        back_populates="animal",
        cascade="all, delete-orphan",
        order_by="Photo.id",
    )
    requests = relationship(
        "AdoptionRequest",
        back_populates="animal",
        cascade="all, delete-orphan",
    )


class Photo(Base):
    """SQLAlchemy model for a stored animal photo."""

    __tablename__ = "photos"

    id = Column(Integer, primary_key=True, index=True)
    url = Column(String(500), nullable=False)
    #: Identifier of the resource in external storage
    public_id = Column(String(255), nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    animal_id = Column(
        Integer,
        ForeignKey("animals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    animal = relationship("Animal", back_populates="photos")


class AdoptionRequest(Base):
    """
    SQLAlchemy model for a user's request to adopt an animal.

    A user may hold one request per animal, and at most one request per
    animal may be ``APPROVED``.
    """

    __tablename__ = "adoption_requests"
    __table_args__ = (
        UniqueConstraint("user_id", "animal_id", name="uq_adoption_requests_user_animal"),
        Index(
            "uq_adoption_requests_approved_animal",
            "animal_id",
            unique=True,
            sqlite_where=text("status = 'APPROVED'"),
            postgresql_where=text("status = 'APPROVED'"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    message = Column(Text, nullable=False)
    status = Column(String(20), default=RequestStatus.PENDING.value, nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    animal_id = Column(
        Integer,
        ForeignKey("animals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    #: Admin handling the request. Nothing assigns it yet; only admin
    #: removal reads and reassigns it.
    admin_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    user = relationship("User", back_populates="requests", foreign_keys=[user_id])
    animal = relationship("Animal", back_populates="requests")
    admin = relationship("User", foreign_keys=[admin_id])
