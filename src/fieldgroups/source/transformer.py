"""
Source transformer: dispatch @reusable / @reuse markers found in a Python file.

Each call to transform_source() is one build invocation. It shares nothing with
other invocations except the store behind the RegistryWriter and Composer.

Markers are handled bottom-up, the order Python applies decorators in:

    @reusable("full_name")   # registers the composed class
    @reuse("name")           # runs first
    class FullName: ...

A @reuse must come after any class in the same file that registers its key.

Only top-level statements that contain a transformed class are re-emitted.
All other text, comments included, is copied through unchanged.
"""

from __future__ import annotations

import ast
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Set, Tuple

from ..kernel.composer import Composer
from ..kernel.errors import InvalidRegistrationKey, TransformError
from ..kernel.registry import RegistryWriter, validate_key
from .parser import MarkerNames, RecordParser
from .printer import RecordPrinter

logger = logging.getLogger(__name__)


@dataclass
class TransformResult:
    """Output of one transform_source() call."""

    source: str
    registered: List[str] = field(default_factory=list)
    composed: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def changed(self) -> bool:
        return bool(self.registered or self.composed)


@dataclass
class SourceScan:
    """Keys a file provides (@reusable) and requires (@reuse) from other files."""

    provides: List[str] = field(default_factory=list)
    requires: List[str] = field(default_factory=list)


def _parse(content: str, filename: str) -> ast.Module:
    try:
        return ast.parse(content, filename=filename)
    except SyntaxError as exc:
        raise TransformError(f"cannot parse source: {exc.msg}", filename, exc.lineno) from exc


def _key_of(arg: ast.expr) -> Optional[str]:
    if isinstance(arg, ast.Constant) and isinstance(arg.value, str):
        return arg.value
    if isinstance(arg, ast.Name):
        return arg.id
    if isinstance(arg, ast.Attribute):
        parent = _key_of(arg.value)
        return f"{parent}.{arg.attr}" if parent else None
    return None


def marker_keys(decorator: ast.expr, kind: str, filename: str) -> List[str]:
    """Extract and validate the registration keys passed to a marker decorator."""
    lineno = decorator.lineno
    if not isinstance(decorator, ast.Call):
        raise TransformError(f"@{ast.unparse(decorator)} needs arguments", filename, lineno)
    if decorator.keywords:
        raise TransformError("marker decorators take no keyword arguments", filename, lineno)

    keys = []
    for arg in decorator.args:
        key = _key_of(arg)
        if key is None:
            raise TransformError(
                f"unsupported marker argument {ast.unparse(arg)!r}", filename, lineno
            )
        try:
            keys.append(validate_key(key))
        except InvalidRegistrationKey as exc:
            raise TransformError(str(exc), filename, lineno) from exc

    if kind == "register" and len(keys) != 1:
        raise TransformError(
            f"@{ast.unparse(decorator.func)} takes exactly one key, got {len(keys)}",
            filename, lineno,
        )
    if kind == "compose" and not keys:
        raise TransformError(
            f"@{ast.unparse(decorator.func)} needs at least one key", filename, lineno
        )
    return keys


def scan_source(content: str, filename: str = "<source>", markers: Optional[MarkerNames] = None) -> SourceScan:
    """Collect provided and required keys without touching any store."""
    markers = markers or MarkerNames()
    scan = SourceScan()
    for node in ast.walk(_parse(content, filename)):
        if not isinstance(node, ast.ClassDef):
            continue
        for decorator in node.decorator_list:
            kind = markers.kind_of(decorator)
            if kind == "register":
                scan.provides.extend(marker_keys(decorator, kind, filename))
            elif kind == "compose":
                scan.requires.extend(marker_keys(decorator, kind, filename))
    return scan


def _classes_in_visit_order(node: ast.AST) -> Iterator[ast.ClassDef]:
    """Yield classes in the order the marker visitor handles them: inner first."""
    for child in ast.iter_child_nodes(node):
        yield from _classes_in_visit_order(child)
    if isinstance(node, ast.ClassDef):
        yield node


def check_reuse_order(tree: ast.Module, filename: str, markers: MarkerNames) -> None:
    """
    Reject a @reuse of a key that the same file only registers later on.

    Composing such a key would read whatever an earlier build left in the
    store instead of the class below it.
    """
    steps: List[Tuple[str, str, ast.ClassDef]] = []
    for node in _classes_in_visit_order(tree):
        for decorator in reversed(node.decorator_list):
            kind = markers.kind_of(decorator)
            if kind is not None:
                steps.extend((kind, key, node) for key in marker_keys(decorator, kind, filename))

    provided = {key for kind, key, _ in steps if kind == "register"}
    registered: Set[str] = set()
    for kind, key, node in steps:
        if kind == "register":
            registered.add(key)
        elif key in provided and key not in registered:
            raise TransformError(
                f"{node.name} reuses {key!r} before this file registers it; "
                f"move the @reusable({key!r}) class above it",
                filename, node.lineno,
            )


class _MarkerVisitor(ast.NodeTransformer):
    def __init__(self, transformer: "SourceTransformer", filename: str, result: TransformResult) -> None:
        self._transformer = transformer
        self._filename = filename
        self._result = result
        self.replaced: Set[int] = set()

    def visit_ClassDef(self, node: ast.ClassDef) -> ast.AST:
        # Nested classes are rewritten before their parent is parsed.
        self.generic_visit(node)

        markers = self._transformer.markers
        if not any(markers.kind_of(d) for d in node.decorator_list):
            return node
        if getattr(node, "type_params", None):
            raise TransformError(
                f"generic class {node.name} cannot register or reuse fields",
                self._filename, node.lineno,
            )

        definition = self._transformer.parser.parse_class(node)
        for decorator in reversed(node.decorator_list):
            kind = markers.kind_of(decorator)
            if kind is None:
                continue
            keys = marker_keys(decorator, kind, self._filename)
            if kind == "register":
                self._transformer.registry.register(keys[0], definition)
                self._result.registered.append(keys[0])
            else:
                definition = self._transformer.composer.compose(definition, keys)
                self._result.composed.setdefault(node.name, []).extend(keys)

        new_node = ast.copy_location(self._transformer.printer.to_class_def(definition), node)
        self.replaced.add(id(new_node))
        return new_node


class SourceTransformer:
    """Applies registration and composition to every marked class in a file."""

    def __init__(
        self,
        registry: RegistryWriter,
        composer: Composer,
        markers: Optional[MarkerNames] = None,
    ) -> None:
        self.registry = registry
        self.composer = composer
        self.markers = markers or MarkerNames()
        self.parser = RecordParser(self.markers)
        self.printer = RecordPrinter()

    def transform_source(self, content: str, filename: str = "<source>") -> TransformResult:
        tree = _parse(content, filename)
        check_reuse_order(tree, filename, self.markers)
        spans = [self._span(stmt) for stmt in tree.body]

        result = TransformResult(source=content)
        visitor = _MarkerVisitor(self, filename, result)
        visitor.visit(tree)
        if not visitor.replaced:
            return result

        lines = content.splitlines(keepends=True)
        out: List[str] = []
        cursor = 0
        for stmt, (start, end) in zip(tree.body, spans):
            if not any(id(n) in visitor.replaced for n in ast.walk(stmt)):
                continue
            out.extend(lines[cursor:start - 1])
            out.append(ast.unparse(stmt) + "\n")
            cursor = end
        out.extend(lines[cursor:])
        result.source = "".join(out)

        logger.info(
            "%s: registered %d, composed %d class(es)",
            filename, len(result.registered), len(result.composed),
        )
        return result

    @staticmethod
    def _span(stmt: ast.stmt) -> Tuple[int, int]:
        start = stmt.lineno
        for decorator in getattr(stmt, "decorator_list", []):
            start = min(start, decorator.lineno)
        return start, stmt.end_lineno or stmt.lineno
