from .user import User, UserStatus
from .food import Food

__all__ = [
    "User",
    "UserStatus",
    "Food",
]
