"""
Pytest configuration and shared fixtures for fieldgroups tests.
"""
import os
import tempfile
from pathlib import Path

import pytest

from fieldgroups.kernel.schema import RecordDefinition
from fieldgroups.source.parser import RecordParser

SAMPLES_DIR = Path(__file__).parent / "samples"


@pytest.fixture
def temp_db():
    """Create a temporary registry database file for testing."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name

    yield db_path

    # Cleanup, including WAL side files
    for suffix in ("", "-wal", "-shm"):
        if os.path.exists(db_path + suffix):
            os.unlink(db_path + suffix)


@pytest.fixture
def samples_dir() -> Path:
    return SAMPLES_DIR


def _make_record(name: str, fields_spec: str) -> RecordDefinition:
    """Build a record from "x: int; y: str = 'a'" style field lists."""
    lines = [f"class {name}:"]
    for part in fields_spec.split(";"):
        if part.strip():
            lines.append(f"    {part.strip()}")
    if len(lines) == 1:
        lines.append("    pass")
    return RecordParser().parse_source("\n".join(lines) + "\n")[0]


def _describe_fields(definition: RecordDefinition) -> str:
    """Inverse of make_record's field list format."""
    parts = []
    for f in definition.fields:
        text = f"{f.name}: {f.annotation}"
        if f.default is not None:
            text += f" = {f.default}"
        parts.append(text)
    return "; ".join(parts)


@pytest.fixture
def make_record():
    return _make_record


@pytest.fixture
def describe_fields():
    return _describe_fields
