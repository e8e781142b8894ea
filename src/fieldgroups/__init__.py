"""
fieldgroups: build-time reuse of class fields.

Mark a class with @reusable("key") to register its fields, and another with
@reuse("key", ...) to have those fields appended when `fieldgroups build` runs.

Public API re-exports from kernel/ (registration, composition, store) and
source/ (Python class statements in and out).
"""
from .kernel.composer import Composer
from .kernel.errors import (
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
from .kernel.registry import RegistryWriter
from .kernel.schema import RecordDefinition, RecordField
from .kernel.store import MemoryStateStore, SqliteStateStore, StateStore, open_store
from .markers import reusable, reuse
from .source.transformer import SourceTransformer, TransformResult

__all__ = [
    # Markers
    "reusable",
    "reuse",
    # Kernel
    "Composer",
    "RegistryWriter",
    "RecordDefinition",
    "RecordField",
    "MemoryStateStore",
    "SqliteStateStore",
    "StateStore",
    "open_store",
    # Source
    "SourceTransformer",
    "TransformResult",
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
]
