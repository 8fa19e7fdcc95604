from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StrictBool
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema: camelCase on the wire, snake_case accepted on input."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MessageResponse(CamelModel):
    """Plain ``{"message": ...}`` response."""

    message: str


class PageMeta(CamelModel):
    """Paging fields added to list responses."""

    page: int
    limit: int
    total: int
    total_pages: int


# Users and authentication


class RegisterRequest(CamelModel):
    """Payload for registering a new user."""

    full_name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=6)


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)


class UserSummary(CamelModel):
    id: int
    full_name: str
    email: EmailStr


class RequesterOut(UserSummary):
    """Requester data embedded in adoption requests."""

    created_at: datetime


class UserOut(CamelModel):
    """Response schema for user data."""

    id: int
    full_name: str
    email: EmailStr
    role: str
    shelter_id: Optional[int] = None
    is_admin_owner: bool = False
    first_login_completed: bool = False
    created_at: datetime
    updated_at: datetime


class UserEnvelope(MessageResponse):
    user: UserOut


class TokenResponse(MessageResponse):
    """Login response with a bearer token."""

    token: str
    token_type: str = "bearer"
    user: UserOut


class TokenData(BaseModel):
    """Payload stored inside JWT token."""

    sub: str | None = None
    exp: Optional[datetime] = None
    scope: Optional[str] = None


class FirstLoginUpdate(CamelModel):
    first_login_completed: StrictBool


class ProfileUpdate(CamelModel):
    """Profile changes; ``currentPassword`` confirms them."""

    current_password: Optional[str] = None
    full_name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[EmailStr] = None
    new_password: Optional[str] = Field(default=None, min_length=6)


class PasswordConfirm(CamelModel):
    current_password: Optional[str] = None


# Animals and photos


class PhotoOut(CamelModel):
    id: int
    url: str
    public_id: Optional[str] = None
    animal_id: int
    created_at: datetime


class AnimalCreate(CamelModel):
    """Payload for adding an animal to the caller's shelter."""

    name: str = Field(min_length=1)
    species: str = Field(min_length=1)
    breed: str = Field(min_length=1)
    gender: str = Field(min_length=1)
    age: Optional[int] = Field(default=None, ge=0)
    description: Optional[str] = None


class AnimalUpdate(CamelModel):
    """Partial animal update. ``adopted`` may be set directly."""

    name: Optional[str] = Field(default=None, min_length=1)
    species: Optional[str] = Field(default=None, min_length=1)
    breed: Optional[str] = Field(default=None, min_length=1)
    gender: Optional[str] = Field(default=None, min_length=1)
    age: Optional[int] = Field(default=None, ge=0)
    description: Optional[str] = None
    adopted: Optional[bool] = None


class AnimalOut(CamelModel):
    id: int
    name: str
    species: str
    breed: str
    gender: str
    age: Optional[int] = None
    description: Optional[str] = None
    adopted: bool
    shelter_id: int
    created_at: datetime
    updated_at: datetime
    photos: list[PhotoOut] = []


class ShelterContact(CamelModel):
    name: str
    email: EmailStr
    address: str


class AnimalPublicOut(AnimalOut):
    """Animal as shown to adopters, with the shelter contact."""

    shelter: ShelterContact


class AnimalEnvelope(MessageResponse):
    animal: AnimalOut


class AnimalPublicEnvelope(MessageResponse):
    animal: AnimalPublicOut


class AnimalPage(MessageResponse, PageMeta):
    animals: list[AnimalOut]


class AnimalPublicPage(MessageResponse, PageMeta):
    animals: list[AnimalPublicOut]


class PhotoList(MessageResponse):
    photos: list[PhotoOut]


# Shelters


class ShelterCreate(CamelModel):
    """Payload for founding a shelter."""

    name: str = Field(min_length=1)
    email: EmailStr
    address: str = Field(min_length=1)
    phone: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None


class ShelterUpdate(CamelModel):
    """Partial shelter update confirmed by the owner's password."""

    current_password: Optional[str] = None
    name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[EmailStr] = None
    address: Optional[str] = Field(default=None, min_length=1)
    phone: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None


class ShelterOut(CamelModel):
    id: int
    name: str
    email: EmailStr
    address: str
    phone: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ShelterDetail(ShelterOut):
    animals: list[AnimalOut] = []


class ShelterListItem(ShelterDetail):
    admins: list[UserSummary] = []


class CurrentAdmin(UserSummary):
    is_admin_owner: bool


class ShelterAdminView(CamelModel):
    """Shelter dashboard for its admins."""

    name: str
    email: EmailStr
    address: str
    phone: Optional[str] = None
    description: Optional[str] = None
    animals_count: int
    admins_count: int
    current_admin: CurrentAdmin


class AddAdminRequest(CamelModel):
    email: EmailStr


class RemoveAdminRequest(CamelModel):
    admin_id: int
    new_admin_id: Optional[int] = None


class ShelterEnvelope(MessageResponse):
    shelter: ShelterDetail


class ShelterCreated(MessageResponse):
    shelter: ShelterOut
    user: UserOut


class ShelterList(MessageResponse):
    shelters: list[ShelterListItem]


class ShelterAdminEnvelope(MessageResponse):
    shelter: ShelterAdminView


class AdminList(MessageResponse):
    admins: list[UserOut]


# Adoption requests


class AdoptionRequestCreate(CamelModel):
    """Payload for requesting an animal; presence is checked by the engine."""

    animal_id: Optional[int] = None
    message: Optional[str] = None


class StatusUpdate(CamelModel):
    status: Optional[str] = None


class AdoptionRequestOut(CamelModel):
    id: int
    message: str
    status: str
    user_id: int
    animal_id: int
    admin_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    animal: AnimalPublicOut
    user: RequesterOut


class AdoptionRequestEnvelope(MessageResponse):
    request: AdoptionRequestOut


class AdoptionRequestList(MessageResponse):
    requests: list[AdoptionRequestOut]


class AdoptionRequestPage(MessageResponse, PageMeta):
    requests: list[AdoptionRequestOut]
