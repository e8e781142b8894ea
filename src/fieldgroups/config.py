"""
Configuration resolution.

Each setting is resolved using the hierarchy:
1. Explicit argument (CLI flag)
2. Environment variable (FIELDGROUPS_STORE, FIELDGROUPS_STRICT, FIELDGROUPS_LOG_LEVEL)
3. [tool.fieldgroups] table in ./pyproject.toml
4. Built-in default

Example pyproject.toml section:

```toml
[tool.fieldgroups]
store = "build/fieldgroups.db"
strict = true
log_level = "INFO"
register_marker = "reusable"
compose_marker = "reuse"
```
"""
from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, ValidationError, field_validator

from .kernel.errors import ConfigError
from .source.parser import MarkerNames

DEFAULT_STORE = Path(".fieldgroups") / "registry.db"

_TRUE = {"1", "true", "yes", "on"}

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class FieldGroupsConfig(BaseModel):
    store_path: str
    strict_conflicts: bool = False
    log_level: str = "WARNING"
    register_marker: str = "reusable"
    compose_marker: str = "reuse"
    source: Dict[str, str] = {}

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(
                f"unknown log level {value!r}, expected one of {', '.join(LOG_LEVELS)}"
            )
        return level

    @property
    def markers(self) -> MarkerNames:
        return MarkerNames(register=self.register_marker, compose=self.compose_marker)


def load_pyproject_table(cwd: Path) -> Dict[str, Any]:
    """Return the [tool.fieldgroups] table of ``cwd/pyproject.toml``, or {}."""
    path = cwd / "pyproject.toml"
    if not path.exists():
        return {}
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"cannot read {path}: {exc}") from exc
    return data.get("tool", {}).get("fieldgroups", {})


def load_config(
    store_path: Optional[str] = None,
    strict: Optional[bool] = None,
    log_level: Optional[str] = None,
    cwd: Optional[Path] = None,
) -> FieldGroupsConfig:
    cwd = cwd or Path.cwd()
    table = load_pyproject_table(cwd)
    source: Dict[str, str] = {}

    if store_path:
        source["store_path"] = "argument"
    elif os.environ.get("FIELDGROUPS_STORE"):
        store_path = os.environ["FIELDGROUPS_STORE"]
        source["store_path"] = "env"
    elif table.get("store"):
        store_path = str(cwd / table["store"])
        source["store_path"] = "pyproject.toml"
    else:
        store_path = str(cwd / DEFAULT_STORE)
        source["store_path"] = "default"

    if strict is None:
        env_strict = os.environ.get("FIELDGROUPS_STRICT")
        if env_strict is not None:
            strict = env_strict.strip().lower() in _TRUE
            source["strict_conflicts"] = "env"
        else:
            strict = bool(table.get("strict", False))
            source["strict_conflicts"] = "pyproject.toml" if "strict" in table else "default"
    else:
        source["strict_conflicts"] = "argument"

    if not log_level:
        log_level = os.environ.get("FIELDGROUPS_LOG_LEVEL") or table.get("log_level") or "WARNING"

    try:
        return FieldGroupsConfig(
            store_path=store_path,
            strict_conflicts=strict,
            log_level=log_level,
            register_marker=table.get("register_marker", "reusable"),
            compose_marker=table.get("compose_marker", "reuse"),
            source=source,
        )
    except ValidationError as exc:
        problems = "; ".join(err["msg"] for err in exc.errors())
        raise ConfigError(f"invalid configuration: {problems}") from exc
