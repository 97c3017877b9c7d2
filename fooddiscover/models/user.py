"""
User model for authentication and listing ownership.
"""
import enum
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, Boolean, Text, JSON, Enum
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import relationship

from ..database import Base


FOOD_INTERESTS = ("italian", "asian", "mexican", "american", "mediterranean", "desserts")
DIETARY_RESTRICTIONS = ("", "vegetarian", "vegan", "gluten-free", "dairy-free", "keto", "paleo")
MAX_FOOD_INTERESTS = 6


class UserStatus(str, enum.Enum):
    ACTIVE = "active"
    DEACTIVATED = "deactivated"


def _utcnow():
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)  # stored lowercase
    username = Column(String(20), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    location = Column(String(100), default="")
    bio = Column(Text, nullable=True)
    food_interests = Column(JSON, default=list)
    dietary_restrictions = Column(String(20), default="")
    newsletter = Column(Boolean, default=False)
    profile_picture = Column(String(500), default="")
    status = Column(
        Enum(UserStatus, values_callable=lambda e: [m.value for m in e], native_enum=False),
        default=UserStatus.ACTIVE,
        nullable=False,
        index=True,
    )
    last_login = Column(DateTime, default=_utcnow)
    created_at = Column(DateTime, default=_utcnow, index=True)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    # Relationships
    foods = relationship("Food", back_populates="owner", cascade="all, delete-orphan")

    def __init__(self, **kwargs):
        kwargs.setdefault("status", UserStatus.ACTIVE)
        super().__init__(**kwargs)

    @hybrid_property
    def is_active(self):
        return self.status == UserStatus.ACTIVE

    def set_password(self, plaintext: str, settings) -> None:
        """Hash and store a new password with the configured bcrypt cost."""
        # Deferred import: auth depends on this module for the current-user lookup
        from ..auth import get_password_hash

        self.hashed_password = get_password_hash(plaintext, settings)

    def check_password(self, plaintext: str) -> bool:
        from ..auth import verify_password

        return verify_password(plaintext, self.hashed_password)

    def deactivate(self):
        """Soft delete: the row stays, every identity lookup sees it as gone."""
        self.status = UserStatus.DEACTIVATED

    def touch_last_login(self):
        self.last_login = _utcnow()

    def public_profile(self, include_email: bool = True) -> dict:
        """Allowlisted projection safe to return to any caller."""
        profile = {
            "id": self.id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "username": self.username,
            "email": self.email,
            "location": self.location or "",
            "foodInterests": list(self.food_interests or []),
            "dietaryRestrictions": self.dietary_restrictions or "",
            "profilePicture": self.profile_picture or "",
            "bio": self.bio,
            "createdAt": _isoformat(self.created_at),
            "lastLogin": _isoformat(self.last_login),
        }
        if not include_email:
            del profile["email"]
        return profile

    def search_result(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "profilePicture": self.profile_picture or "",
            "location": self.location or "",
            "foodInterests": list(self.food_interests or []),
        }


def _isoformat(value):
    return value.isoformat() if value else None
