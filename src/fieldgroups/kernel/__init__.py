"""
Kernel: registration, composition and the durable store behind them.

This module contains the machinery every build invocation relies on:
- schema: RecordField / RecordDefinition and their stored JSON envelope
- store: StateStore contract with SQLite and in-memory implementations
- registry: RegistryWriter (snapshot a definition under a key)
- composer: Composer (splice registered groups into a target)

The kernel knows nothing about Python source text; see fieldgroups.source.
"""
from .errors import (
    ComposeError,
    ConfigError,
    CorruptRegistration,
    FieldConflict,
    FieldGroupsError,
    InvalidRegistrationKey,
    MissingRegistration,
    NotFound,
    StoreError,
    StoreReadFailure,
    StoreWriteFailure,
    TransformError,
)
from .schema import (
    RecordDefinition,
    RecordField,
    RecordMember,
    decode_definition,
    encode_definition,
)
from .store import MemoryStateStore, SqliteStateStore, StateStore, open_store
from .registry import RegistryWriter, validate_key
from .composer import Composer

__all__ = [
    # Errors
    "ComposeError",
    "ConfigError",
    "CorruptRegistration",
    "FieldConflict",
    "FieldGroupsError",
    "InvalidRegistrationKey",
    "MissingRegistration",
    "NotFound",
    "StoreError",
    "StoreReadFailure",
    "StoreWriteFailure",
    "TransformError",
    # Schema
    "RecordDefinition",
    "RecordField",
    "RecordMember",
    "decode_definition",
    "encode_definition",
    # Store
    "MemoryStateStore",
    "SqliteStateStore",
    "StateStore",
    "open_store",
    # Registry
    "RegistryWriter",
    "validate_key",
    # Composer
    "Composer",
]
