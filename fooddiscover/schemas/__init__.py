from .auth import UserCreate, UserLogin
from .users import ProfileUpdate, PasswordChange, AccountDelete

__all__ = [
    "UserCreate", "UserLogin",
    "ProfileUpdate", "PasswordChange", "AccountDelete",
]
