from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import CorruptRegistration


# Bumped whenever the stored envelope layout changes.
ENVELOPE_FORMAT = 1


class RecordField(BaseModel):
    """One annotated attribute of a record: ``name: annotation = default``."""

    model_config = ConfigDict(frozen=True)

    name: str
    annotation: str
    default: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class RecordMember(BaseModel):
    """A non-field body statement, kept as source text."""

    model_config = ConfigDict(frozen=True)

    source: str
    # Number of fields declared above this statement in the class body.
    position: int = 0


class RecordDefinition(BaseModel):
    """
    Structural form of a class statement.

    Fields keep their declaration order. Anything in the class body that is not
    an annotated field (methods, plain assignments, nested classes) is kept in
    ``members`` together with its position among the fields, so the body can be
    printed back in source order.
    """

    name: str
    bases: List[str] = Field(default_factory=list)
    keywords: Dict[str, str] = Field(default_factory=dict)
    decorators: List[str] = Field(default_factory=list)
    docstring: Optional[str] = None
    fields: List[RecordField] = Field(default_factory=list)
    members: List[RecordMember] = Field(default_factory=list)

    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]

    def with_fields(self, extra: Iterable[RecordField]) -> "RecordDefinition":
        """Return a copy with ``extra`` appended after the existing fields."""
        return self.model_copy(update={"fields": [*self.fields, *extra]})


class RegistrationEnvelope(BaseModel):
    """The value held in the store for one registration key."""

    format: int = ENVELOPE_FORMAT
    key: str
    definition: RecordDefinition


def encode_definition(key: str, definition: RecordDefinition) -> str:
    """Serialise a definition into the stable JSON text kept in the store."""
    return RegistrationEnvelope(key=key, definition=definition).model_dump_json()


def decode_definition(key: str, text: str) -> RecordDefinition:
    """
    Parse stored JSON back into a RecordDefinition.

    Raises CorruptRegistration if the text is not a valid envelope or was
    written by an incompatible format version.
    """
    try:
        envelope = RegistrationEnvelope.model_validate_json(text)
    except ValidationError as exc:
        raise CorruptRegistration(key, f"{exc.error_count()} validation error(s)") from exc

    if envelope.format != ENVELOPE_FORMAT:
        raise CorruptRegistration(
            key, f"unsupported format {envelope.format} (expected {ENVELOPE_FORMAT})"
        )
    return envelope.definition
