"""
Shared rate limiter, keyed by client address.

slowapi binds limits to the route functions when they are decorated, so
there is one limiter per process. ``configure_limiter`` points it at the
serving application's settings; the limit callables read from there on
every request.
"""
from typing import Dict

from slowapi import Limiter
from slowapi.util import get_remote_address

from .config import Settings


limiter = Limiter(key_func=get_remote_address)

_limits: Dict[str, str] = {}


def configure_limiter(settings: Settings) -> Limiter:
    limiter.enabled = settings.rate_limit_enabled
    _limits.update(
        register=settings.register_rate_limit,
        login=settings.login_rate_limit,
        refresh=settings.refresh_rate_limit,
    )
    return limiter


def register_limit() -> str:
    return _limits["register"]


def login_limit() -> str:
    return _limits["login"]


def refresh_limit() -> str:
    return _limits["refresh"]
