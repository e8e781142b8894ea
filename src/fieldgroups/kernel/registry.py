from __future__ import annotations

import logging
import re

from .errors import InvalidRegistrationKey
from .schema import RecordDefinition, encode_definition
from .store import StateStore

logger = logging.getLogger(__name__)

# One or more identifiers joined by dots, e.g. "billing.address".
KEY_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*")


def validate_key(key: str) -> str:
    if not isinstance(key, str) or not KEY_PATTERN.fullmatch(key):
        raise InvalidRegistrationKey(str(key))
    return key


class RegistryWriter:
    """Snapshots record definitions into the store under a registration key."""

    def __init__(self, store: StateStore) -> None:
        self._store = store

    @property
    def store(self) -> StateStore:
        return self._store

    def register(self, key: str, definition: RecordDefinition) -> RecordDefinition:
        """
        Store ``definition`` under ``key``, replacing any earlier registration.

        The definition itself is returned untouched. Store failures propagate
        as StoreWriteFailure.
        """
        validate_key(key)
        self._store.write(key, encode_definition(key, definition))
        logger.debug(
            "registered %s as %r (%d fields)", definition.name, key, len(definition.fields)
        )
        return definition
