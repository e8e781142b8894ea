"""
Runtime side of the markers.

The build step strips @reusable and @reuse from generated code. These identity
decorators only exist so that untransformed source still imports; they check
their arguments and return the class untouched.
"""
from __future__ import annotations

from typing import Callable, TypeVar

from .kernel.registry import validate_key

T = TypeVar("T", bound=type)


def reusable(key: str) -> Callable[[T], T]:
    """Mark a class as a field group registered under ``key``."""
    validate_key(key)

    def decorator(cls: T) -> T:
        return cls

    return decorator


def reuse(*keys: str) -> Callable[[T], T]:
    """Mark a class to receive the fields registered under ``keys``."""
    if not keys:
        raise TypeError("reuse() needs at least one registration key")
    for key in keys:
        validate_key(key)

    def decorator(cls: T) -> T:
        return cls

    return decorator
