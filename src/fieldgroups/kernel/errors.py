"""
Error hierarchy for registration, composition and the durable store.

Every failure is fatal to the build invocation that hit it. Nothing in the
kernel catches these; the CLI reports them and exits non-zero.
"""
from __future__ import annotations

from typing import Optional


class FieldGroupsError(Exception):
    """Base class for all fieldgroups failures."""


class InvalidRegistrationKey(FieldGroupsError):
    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(
            f"invalid registration key {key!r}: expected identifiers joined by '.'"
        )


# =============================================================================
# Store
# =============================================================================


class StoreError(FieldGroupsError):
    """The durable store could not complete a read or write."""

    def __init__(self, key: Optional[str], message: str) -> None:
        self.key = key
        super().__init__(f"{message} (key {key!r})" if key is not None else message)


class StoreWriteFailure(StoreError):
    pass


class StoreReadFailure(StoreError):
    pass


class NotFound(StoreReadFailure):
    def __init__(self, key: str) -> None:
        super().__init__(key, "no stored value")


# =============================================================================
# Composition
# =============================================================================


class ComposeError(FieldGroupsError):
    def __init__(self, key: str, message: str) -> None:
        self.key = key
        super().__init__(message)


class MissingRegistration(ComposeError):
    def __init__(self, key: str) -> None:
        super().__init__(
            key,
            f"no field group registered under {key!r}; "
            f"make sure the @reusable({key!r}) class is built first",
        )


class CorruptRegistration(ComposeError):
    """Stored value for a key is not a valid serialised record definition."""

    def __init__(self, key: str, detail: str) -> None:
        self.detail = detail
        super().__init__(key, f"stored definition for {key!r} is corrupt: {detail}")


class FieldConflict(ComposeError):
    """Two reused groups supply the same field name (strict mode only)."""

    def __init__(self, key: str, field_name: str, first_key: str) -> None:
        self.field_name = field_name
        self.first_key = first_key
        super().__init__(
            key,
            f"field {field_name!r} from {key!r} is already supplied by {first_key!r}",
        )


# =============================================================================
# Source transformation
# =============================================================================


class TransformError(FieldGroupsError):
    """A marker decorator is used incorrectly in a source file."""

    def __init__(
        self, message: str, filename: Optional[str] = None, lineno: Optional[int] = None
    ) -> None:
        self.filename = filename
        self.lineno = lineno
        location = ""
        if filename:
            location = f"{filename}:{lineno}: " if lineno else f"{filename}: "
        super().__init__(f"{location}{message}")


# =============================================================================
# Configuration
# =============================================================================


class ConfigError(FieldGroupsError):
    """A configuration value or pyproject.toml table could not be used."""
