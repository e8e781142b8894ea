from __future__ import annotations

import ast
import sys
from typing import Any, Dict, List

from ..kernel.schema import RecordDefinition, RecordField


def _expr(text: str) -> ast.expr:
    return ast.parse(text, mode="eval").body


def _field_statements(f: RecordField) -> List[ast.stmt]:
    stmts: List[ast.stmt] = [
        ast.AnnAssign(
            target=ast.Name(id=f.name, ctx=ast.Store()),
            annotation=_expr(f.annotation),
            value=_expr(f.default) if f.default is not None else None,
            simple=1,
        )
    ]
    doc = f.metadata.get("doc")
    if isinstance(doc, str):
        stmts.append(ast.Expr(value=ast.Constant(value=doc)))
    return stmts


class RecordPrinter:
    """Emit a RecordDefinition back as a Python class statement."""

    def to_class_def(self, definition: RecordDefinition) -> ast.ClassDef:
        body: List[ast.stmt] = []
        if definition.docstring is not None:
            body.append(ast.Expr(value=ast.Constant(value=definition.docstring)))

        # Members go back in front of the field that followed them in the source.
        # Fields added by composition sit past every local position.
        members = sorted(definition.members, key=lambda m: m.position)
        pending = 0
        for index, f in enumerate(definition.fields):
            while pending < len(members) and members[pending].position <= index:
                body.extend(ast.parse(members[pending].source).body)
                pending += 1
            body.extend(_field_statements(f))
        for member in members[pending:]:
            body.extend(ast.parse(member.source).body)

        if not body:
            body.append(ast.Pass())

        keywords = [
            ast.keyword(arg=None if arg == "**" else arg, value=_expr(value))
            for arg, value in definition.keywords.items()
        ]
        kwargs: Dict[str, Any] = dict(
            name=definition.name,
            bases=[_expr(b) for b in definition.bases],
            keywords=keywords,
            body=body,
            decorator_list=[_expr(d) for d in definition.decorators],
        )
        if sys.version_info >= (3, 12):
            kwargs["type_params"] = []
        return ast.fix_missing_locations(ast.ClassDef(**kwargs))

    def to_source(self, definition: RecordDefinition) -> str:
        return ast.unparse(self.to_class_def(definition))
