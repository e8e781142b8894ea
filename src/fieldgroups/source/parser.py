"""
Record parser: turn Python class statements into RecordDefinitions using ast.

Field rules:
- ``name: annotation`` and ``name: annotation = default`` at class level are fields
- a bare string literal directly after a field is its attribute docstring
- everything else in the body is kept verbatim as a member, at its place
  among the fields
"""

from __future__ import annotations

import ast
from dataclasses import dataclass
from typing import List, Optional

from ..kernel.schema import RecordDefinition, RecordField, RecordMember


@dataclass(frozen=True)
class MarkerNames:
    """Decorator names that trigger registration and composition."""

    register: str = "reusable"
    compose: str = "reuse"

    def kind_of(self, decorator: ast.expr) -> Optional[str]:
        """Return "register", "compose" or None for a decorator node."""
        name = decorator_name(decorator)
        if name == self.register:
            return "register"
        if name == self.compose:
            return "compose"
        return None


def decorator_name(node: ast.expr) -> Optional[str]:
    """Final name of a decorator: ``reuse`` for ``@reuse(...)`` and ``@fg.reuse(...)``."""
    if isinstance(node, ast.Call):
        node = node.func
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        return node.attr
    return None


def _is_string_literal(stmt: ast.stmt) -> bool:
    return (
        isinstance(stmt, ast.Expr)
        and isinstance(stmt.value, ast.Constant)
        and isinstance(stmt.value.value, str)
    )


class RecordParser:
    """Parse class statements into RecordDefinitions."""

    def __init__(self, markers: Optional[MarkerNames] = None) -> None:
        self.markers = markers or MarkerNames()

    def parse_source(self, content: str) -> List[RecordDefinition]:
        """Parse every class statement in ``content``, outermost first."""
        tree = ast.parse(content)
        return [
            self.parse_class(node) for node in ast.walk(tree) if isinstance(node, ast.ClassDef)
        ]

    def parse_class(self, node: ast.ClassDef) -> RecordDefinition:
        decorators = [
            ast.unparse(d) for d in node.decorator_list if self.markers.kind_of(d) is None
        ]
        keywords = {
            (kw.arg if kw.arg is not None else "**"): ast.unparse(kw.value)
            for kw in node.keywords
        }

        body = list(node.body)
        docstring = None
        if body and _is_string_literal(body[0]):
            docstring = body[0].value.value  # type: ignore[attr-defined]
            body = body[1:]

        fields: List[RecordField] = []
        members: List[RecordMember] = []
        i = 0
        while i < len(body):
            stmt = body[i]
            if isinstance(stmt, ast.AnnAssign) and isinstance(stmt.target, ast.Name):
                metadata = {}
                if i + 1 < len(body) and _is_string_literal(body[i + 1]):
                    metadata["doc"] = body[i + 1].value.value  # type: ignore[attr-defined]
                    i += 1
                fields.append(self._parse_field(stmt, metadata))
            elif not isinstance(stmt, ast.Pass):
                members.append(RecordMember(source=ast.unparse(stmt), position=len(fields)))
            i += 1

        return RecordDefinition(
            name=node.name,
            bases=[ast.unparse(b) for b in node.bases],
            keywords=keywords,
            decorators=decorators,
            docstring=docstring,
            fields=fields,
            members=members,
        )

    def _parse_field(self, stmt: ast.AnnAssign, metadata: dict) -> RecordField:
        return RecordField(
            name=stmt.target.id,  # type: ignore[attr-defined]
            annotation=ast.unparse(stmt.annotation),
            default=ast.unparse(stmt.value) if stmt.value is not None else None,
            metadata=metadata,
        )
