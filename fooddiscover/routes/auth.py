"""
Authentication routes for register, login and token management.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth import (
    DEACTIVATED_MESSAGE,
    PasswordComparisonError,
    create_access_token,
    get_current_user,
)
from ..config import Settings, get_settings
from ..database import get_db
from ..limiter import limiter, login_limit, refresh_limit, register_limit
from ..logging_config import auth_logger, db_logger
from ..models.user import User
from ..responses import AuthError, DuplicateKeyError, ServerError, ValidationError, success
from ..schemas.auth import UserCreate, UserLogin

router = APIRouter(prefix="/api/auth", tags=["auth"])

INVALID_CREDENTIALS_MESSAGE = "Invalid credentials. Please check your email/username and password."


def find_by_email_or_username(db: Session, identifier: str) -> Optional[User]:
    """Email match wins over a username match."""
    user = db.query(User).filter(User.email == identifier.lower()).first()
    if user is None:
        user = db.query(User).filter(User.username == identifier).first()
    return user


def _colliding_field(error: IntegrityError) -> str:
    return "Email" if "email" in str(error.orig).lower() else "Username"


def _record_login(db: Session, user: User) -> None:
    user.touch_last_login()
    try:
        db.commit()
        db.refresh(user)
    except SQLAlchemyError as e:
        db.rollback()
        db_logger.error("Failed to update last login", error=e, user_id=user.id)
        raise ServerError()


@router.post("/register", status_code=status.HTTP_201_CREATED)
@limiter.limit(register_limit)
def register(
    request: Request,
    user_data: UserCreate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Register a new user account and sign it in."""
    if user_data.missing_required():
        raise ValidationError("Please provide all required fields")

    # Email is checked first so its message wins when both collide
    if db.query(User).filter(User.email == user_data.email).first():
        raise DuplicateKeyError("Email is already registered")
    if db.query(User).filter(User.username == user_data.username).first():
        raise DuplicateKeyError("Username is already taken")

    user = User(
        first_name=user_data.first_name,
        last_name=user_data.last_name,
        email=user_data.email,
        username=user_data.username,
        location=user_data.location or "",
        bio=user_data.bio,
        food_interests=user_data.food_interests or [],
        dietary_restrictions=user_data.dietary_restrictions or "",
        newsletter=bool(user_data.newsletter),
    )
    user.set_password(user_data.password, settings)
    try:
        db.add(user)
        db.commit()
        db.refresh(user)
    except IntegrityError as e:
        # Two registrations raced past the explicit checks
        db.rollback()
        raise DuplicateKeyError(f"{_colliding_field(e)} already exists")
    except SQLAlchemyError as e:
        db.rollback()
        db_logger.error("Failed to create user", error=e)
        raise ServerError()

    token = create_access_token(user.id, settings)
    _record_login(db, user)
    auth_logger.info("User registered", user_id=user.id)

    return success(
        "User registered successfully! Welcome to FoodDiscover!",
        token=token,
        user=user.public_profile(),
    )


@router.post("/login")
@limiter.limit(login_limit)
def login(
    request: Request,
    credentials: UserLogin,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Login with email or username and password."""
    identifier = (credentials.email or "").strip()
    if not identifier or not credentials.password:
        raise ValidationError("Please provide both email/username and password")

    user = find_by_email_or_username(db, identifier)
    if user is None:
        auth_logger.warning("Login failed", reason="unknown_identifier")
        raise AuthError(INVALID_CREDENTIALS_MESSAGE)

    if not user.is_active:
        auth_logger.warning("Login failed", reason="deactivated", user_id=user.id)
        raise AuthError(DEACTIVATED_MESSAGE)

    try:
        matches = user.check_password(credentials.password)
    except PasswordComparisonError as e:
        auth_logger.error("Password comparison failed", error=e, user_id=user.id)
        raise ServerError()

    if not matches:
        auth_logger.warning("Login failed", reason="wrong_password", user_id=user.id)
        raise AuthError(INVALID_CREDENTIALS_MESSAGE)

    token = create_access_token(user.id, settings)
    _record_login(db, user)
    auth_logger.info("User logged in", user_id=user.id)

    return success("Login successful! Welcome back!", token=token, user=user.public_profile())


@router.get("/me")
def get_me(current_user: User = Depends(get_current_user)):
    """Get the current authenticated user."""
    return success(user=current_user.public_profile())


@router.post("/refresh")
@limiter.limit(refresh_limit)
def refresh_token(
    request: Request,
    current_user: User = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
):
    """Issue a fresh token for a still-valid one."""
    token = create_access_token(current_user.id, settings)
    return success("Token refreshed successfully", token=token, user=current_user.public_profile())


@router.post("/logout")
def logout():
    """
    Logout the current user.

    Tokens are stateless, so this is a client-side operation: the client
    drops its token. Outstanding tokens stay valid until they expire.
    """
    return success("Logged out successfully")
