import re
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator
from pydantic.alias_generators import to_camel

from ..models.user import DIETARY_RESTRICTIONS, FOOD_INTERESTS, MAX_FOOD_INTERESTS

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]+$")
MIN_PASSWORD_LENGTH = 8


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _check_length(value: Optional[str], limit: int, label: str) -> Optional[str]:
    if value is not None and len(value) > limit:
        raise ValueError(f"{label} cannot exceed {limit} characters")
    return value


def check_food_interests(value: Optional[List[str]]) -> Optional[List[str]]:
    if value is None:
        return value
    if len(value) > MAX_FOOD_INTERESTS:
        raise ValueError(f"Cannot select more than {MAX_FOOD_INTERESTS} food interests")
    for interest in value:
        if interest not in FOOD_INTERESTS:
            raise ValueError(f"'{interest}' is not a supported food interest")
    return value


def check_dietary_restrictions(value: Optional[str]) -> Optional[str]:
    if value is not None and value not in DIETARY_RESTRICTIONS:
        raise ValueError(f"'{value}' is not a supported dietary restriction")
    return value


class CamelModel(BaseModel):
    """Accepts camelCase (wire) or snake_case field names."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProfileFields(CamelModel):
    """Optional profile fields shared by registration and profile updates."""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    location: Optional[str] = None
    bio: Optional[str] = None
    food_interests: Optional[List[str]] = None
    dietary_restrictions: Optional[str] = None
    newsletter: Optional[bool] = None

    @field_validator("first_name", "last_name", "location", "bio", mode="before")
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("first_name")
    @classmethod
    def first_name_length(cls, value):
        return _check_length(value, 50, "First name")

    @field_validator("last_name")
    @classmethod
    def last_name_length(cls, value):
        return _check_length(value, 50, "Last name")

    @field_validator("location")
    @classmethod
    def location_length(cls, value):
        return _check_length(value, 100, "Location")

    @field_validator("bio")
    @classmethod
    def bio_length(cls, value):
        return _check_length(value, 500, "Bio")

    @field_validator("food_interests")
    @classmethod
    def food_interests_allowed(cls, value):
        return check_food_interests(value)

    @field_validator("dietary_restrictions")
    @classmethod
    def dietary_restrictions_allowed(cls, value):
        return check_dietary_restrictions(value)


class UserCreate(ProfileFields):
    """Registration payload.

    Required fields are optional here so a missing one can be reported
    with a single message by the route; format rules apply when present.
    """
    email: Optional[EmailStr] = None
    username: Optional[str] = None
    password: Optional[str] = None

    @field_validator("email", "username", mode="before")
    @classmethod
    def strip_identifier(cls, value):
        if isinstance(value, str):
            value = value.strip()
        return _blank_to_none(value)

    @field_validator("first_name", "last_name", mode="after")
    @classmethod
    def blank_name_is_missing(cls, value):
        return _blank_to_none(value)

    @field_validator("email", mode="after")
    @classmethod
    def lowercase_email(cls, value):
        return value.lower() if value else value

    @field_validator("username")
    @classmethod
    def username_format(cls, value):
        if value is None:
            return value
        if len(value) < 3:
            raise ValueError("Username must be at least 3 characters")
        if len(value) > 20:
            raise ValueError("Username cannot exceed 20 characters")
        if not USERNAME_PATTERN.match(value):
            raise ValueError("Username can only contain letters, numbers, and underscores")
        return value

    @field_validator("password")
    @classmethod
    def password_length(cls, value):
        if value is not None and value != "" and len(value) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        return value or None

    def missing_required(self) -> bool:
        return not all([self.first_name, self.last_name, self.email, self.username, self.password])


class UserLogin(BaseModel):
    """Login payload; ``email`` holds either the email or the username."""
    email: Optional[str] = None
    password: Optional[str] = None
