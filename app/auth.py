"""Authentication routes and credential helpers."""

import logging
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from . import schemas, crud
from .core import Settings, get_settings
from .database import get_db
from .errors import UnauthorizedError
from .guard import require_role
from .limits import rate_limit
from .models import Role, User

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")
router = APIRouter(prefix="/api/auth", tags=["auth"])


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Compare a plain password with its hashed value."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Generate a password hash using the configured context."""
    return pwd_context.hash(password)


def create_access_token(
    user: User, settings: Settings, expires_delta: timedelta | None = None
) -> str:
    """
    Create a signed JWT access token for a user.

    The token carries the caller identity and affiliation so clients can
    render role-specific screens; the server itself reloads the user on
    every request.

    Args:
        user (User): Authenticated user.
        settings (Settings): Signing key, algorithm and token lifetime.
        expires_delta (timedelta | None): Custom lifetime.

    Returns:
        str: Encoded JWT.
    """
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    claims = {
        "sub": str(user.id),
        "id": user.id,
        "email": user.email,
        "role": user.role,
        "isAdminOwner": bool(user.is_admin_owner),
        "shelterId": user.shelter_id,
        "firstLoginCompleted": bool(user.first_login_completed),
        "scope": "access",
        "exp": expire,
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str, settings: Settings) -> schemas.TokenData:
    """
    Verify a bearer token and extract its subject.

    Raises:
        UnauthorizedError: If the token is malformed, expired or not an
            access token.
    """
    try:
        payload = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM]
        )
    except JWTError:
        raise UnauthorizedError("Invalid or expired token.")
    token_data = schemas.TokenData(sub=payload.get("sub"), scope=payload.get("scope"))
    if token_data.sub is None or token_data.scope != "access":
        raise UnauthorizedError("Invalid or expired token.")
    return token_data


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> User:
    """Dependency that returns the authenticated user, fresh from the database."""

    token_data = decode_access_token(token, settings)
    try:
        user_id = int(token_data.sub)
    except ValueError:
        raise UnauthorizedError("Invalid or expired token.")
    user = crud.get_user_by_id(db, user_id)
    if user is None:
        raise UnauthorizedError("User no longer exists.")
    return user


def get_current_admin(current_user: User = Depends(get_current_user)) -> User:
    """Dependency that only lets shelter administrators through."""

    require_role(current_user, Role.ADMIN)
    return current_user


@router.post(
    "/register",
    response_model=schemas.UserEnvelope,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit(times=5, seconds=60))],
)
def register(payload: schemas.RegisterRequest, db: Session = Depends(get_db)):
    """Register a new user with role ``USER``."""

    hashed_password = get_password_hash(payload.password)
    user = crud.create_user(db, payload.full_name, payload.email, hashed_password)
    logger.info("Registered user %s", user.id)
    return {"message": "User registered successfully.", "user": user}


@router.post(
    "/login",
    response_model=schemas.TokenResponse,
    dependencies=[Depends(rate_limit(times=10, seconds=60))],
)
def login(
    payload: schemas.LoginRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Authenticate a user and return a bearer token."""

    user = crud.get_user_by_email(db, payload.email)
    if not user or not verify_password(payload.password, user.hashed_password):
        raise UnauthorizedError("Invalid credentials.")
    token = create_access_token(user, settings)
    return {"message": "Login successful.", "token": token, "user": user}


@router.get("/me", response_model=schemas.UserEnvelope)
def read_me(current_user: User = Depends(get_current_user)):
    """Return the authenticated user."""
    return {"message": "User retrieved.", "user": current_user}


@router.patch("/first-login-completed", response_model=schemas.UserEnvelope)
def complete_first_login(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Mark the onboarding of the authenticated user as done."""

    user = crud.update_user(db, current_user, {"first_login_completed": True})
    return {"message": "First login completed.", "user": user}
