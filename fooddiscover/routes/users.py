"""
Profile routes: read/update own profile, change password, deactivate,
search and public lookup.
"""
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth import PasswordComparisonError, get_current_user
from ..config import Settings, get_settings
from ..database import get_db
from ..logging_config import auth_logger, db_logger
from ..models.user import User
from ..responses import NotFoundError, ServerError, ValidationError, success
from ..schemas.auth import MIN_PASSWORD_LENGTH
from ..schemas.users import AccountDelete, PasswordChange, ProfileUpdate

router = APIRouter(prefix="/api/users", tags=["users"])

SEARCH_MIN_LENGTH = 2
SEARCH_LIMIT = 10


def _commit(db: Session, user: User, action: str) -> None:
    try:
        db.commit()
        db.refresh(user)
    except SQLAlchemyError as e:
        db.rollback()
        db_logger.error(f"Failed to {action}", error=e, user_id=user.id)
        raise ServerError()


def _password_matches(user: User, password: str) -> bool:
    try:
        return user.check_password(password)
    except PasswordComparisonError as e:
        auth_logger.error("Password comparison failed", error=e, user_id=user.id)
        raise ServerError()


@router.get("/profile")
def get_profile(current_user: User = Depends(get_current_user)):
    return success(user=current_user.public_profile())


@router.put("/profile")
def update_profile(
    update: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Update the whitelisted profile fields present in the body."""
    update_data = update.model_dump(exclude_unset=True)
    for key, value in update_data.items():
        if value is None and key in ("first_name", "last_name"):
            continue
        if key == "newsletter":
            value = bool(value)
        elif key in ("location", "dietary_restrictions") and value is None:
            value = ""
        elif key == "food_interests" and value is None:
            value = []
        setattr(current_user, key, value)

    _commit(db, current_user, "update profile")
    return success("Profile updated successfully!", user=current_user.public_profile())


@router.put("/password")
def change_password(
    body: PasswordChange,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
):
    if not body.current_password or not body.new_password:
        raise ValidationError("Please provide both current and new password")

    if len(body.new_password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"New password must be at least {MIN_PASSWORD_LENGTH} characters long")

    if not _password_matches(current_user, body.current_password):
        raise ValidationError("Current password is incorrect")

    current_user.set_password(body.new_password, settings)
    _commit(db, current_user, "change password")
    auth_logger.info("Password changed", user_id=current_user.id)
    return success("Password changed successfully!")


@router.delete("/profile")
def deactivate_account(
    body: Optional[AccountDelete] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Soft-delete the account; the row is kept with a deactivated status."""
    password = body.password if body else None
    if not password:
        raise ValidationError("Please provide your password to confirm account deletion")

    if not _password_matches(current_user, password):
        raise ValidationError("Password is incorrect")

    current_user.deactivate()
    _commit(db, current_user, "deactivate account")
    auth_logger.info("Account deactivated", user_id=current_user.id)
    return success("Account deactivated successfully.")


@router.get("/search")
def search_users(
    q: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Case-insensitive substring search over username and names."""
    query_text = (q or "").strip()
    if len(query_text) < SEARCH_MIN_LENGTH:
        raise ValidationError(f"Search query must be at least {SEARCH_MIN_LENGTH} characters long")

    # Escape LIKE wildcards so the query is matched literally
    escaped = query_text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    pattern = f"%{escaped}%"
    users = (
        db.query(User)
        .filter(
            User.is_active,
            User.id != current_user.id,
            or_(
                User.username.ilike(pattern, escape="\\"),
                User.first_name.ilike(pattern, escape="\\"),
                User.last_name.ilike(pattern, escape="\\"),
            ),
        )
        .order_by(User.username)
        .limit(SEARCH_LIMIT)
        .all()
    )
    return success(users=[u.search_result() for u in users])


@router.get("/{username}")
def get_user_by_username(username: str, db: Session = Depends(get_db)):
    """Public profile of an active user; email is not exposed."""
    user = db.query(User).filter(User.username == username, User.is_active).first()
    if not user:
        raise NotFoundError("User not found")
    return success(user=user.public_profile(include_email=False))
