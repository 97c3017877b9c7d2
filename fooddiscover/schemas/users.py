from typing import Optional

from pydantic import field_validator

from .auth import CamelModel, ProfileFields


class ProfileUpdate(ProfileFields):
    """Partial profile update; only fields present in the body are applied."""

    @field_validator("first_name", "last_name")
    @classmethod
    def names_not_blank(cls, value):
        if value is not None and not value:
            raise ValueError("Name cannot be empty")
        return value


class PasswordChange(CamelModel):
    current_password: Optional[str] = None
    new_password: Optional[str] = None


class AccountDelete(CamelModel):
    password: Optional[str] = None
