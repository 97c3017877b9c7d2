"""
Authentication utilities: password hashing, JWT tokens and the
current-user dependency used by every protected route.
"""
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from .config import Settings, get_settings
from .database import get_db
from .logging_config import auth_logger
from .models.user import User
from .responses import AuthError, NotFoundError

# Verification reads the cost from the stored hash; hashing uses
# hashing_context() with the configured rounds
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)

NO_TOKEN_MESSAGE = "No token provided. Access denied."
INVALID_TOKEN_MESSAGE = "Invalid token. Please login again."
EXPIRED_TOKEN_MESSAGE = "Token expired. Please login again."
USER_NOT_FOUND_MESSAGE = "User not found"
DEACTIVATED_MESSAGE = "Account is deactivated. Please contact support."


# ============================================================
# PASSWORDS
# ============================================================

class PasswordComparisonError(Exception):
    """The hashing library failed; says nothing about the password."""

    def __init__(self):
        super().__init__("Password comparison failed")


@lru_cache()
def hashing_context(rounds: int) -> CryptContext:
    return pwd_context.copy(bcrypt__rounds=rounds)


def get_password_hash(password: str, settings: Settings) -> str:
    """Hash a password for storage (bcrypt, random salt)."""
    return hashing_context(settings.bcrypt_rounds).hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash.

    Raises PasswordComparisonError if the stored hash is unusable.
    """
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError) as e:
        raise PasswordComparisonError() from e


# ============================================================
# TOKENS
# ============================================================

class TokenError(Exception):
    """Base class for bearer token failures."""


class MissingTokenError(TokenError):
    pass


class InvalidTokenError(TokenError):
    pass


class ExpiredTokenError(TokenError):
    pass


def create_access_token(user_id: int, settings: Settings, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed JWT binding the token to one user id."""
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta if expires_delta is not None else timedelta(days=settings.access_token_expire_days))
    to_encode = {
        "sub": str(user_id),  # JWT sub claim must be a string
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: Optional[str], settings: Settings) -> int:
    """Verify a JWT and return the user id it was issued for."""
    if not token:
        raise MissingTokenError()

    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except ExpiredSignatureError as e:
        raise ExpiredTokenError() from e
    except JWTError as e:
        raise InvalidTokenError() from e

    try:
        return int(payload["sub"])
    except (KeyError, ValueError, TypeError) as e:
        raise InvalidTokenError() from e


# ============================================================
# DEPENDENCIES
# ============================================================

def _token_auth_error(error: TokenError) -> AuthError:
    if isinstance(error, MissingTokenError):
        message = NO_TOKEN_MESSAGE
    elif isinstance(error, ExpiredTokenError):
        message = EXPIRED_TOKEN_MESSAGE
    else:
        message = INVALID_TOKEN_MESSAGE
    return AuthError(message, headers={"WWW-Authenticate": "Bearer"})


def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> User:
    """Resolve the bearer token into an active user, or reject the request.

    Runs on every protected request; the token only carries identity, so
    the account status is read fresh from the store each time.
    """
    try:
        user_id = decode_access_token(token, settings)
    except TokenError as e:
        auth_logger.info("Rejected bearer token", reason=type(e).__name__)
        raise _token_auth_error(e)

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise NotFoundError(USER_NOT_FOUND_MESSAGE)

    if not user.is_active:
        auth_logger.info("Rejected deactivated account", user_id=user.id)
        raise AuthError(DEACTIVATED_MESSAGE)

    return user
