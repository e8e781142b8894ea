"""
Build helper: order source files and run one transform invocation per file.

The kernel never waits for a registration to appear; a @reuse whose key has not
been registered yet fails immediately. plan_build() puts files that provide a
key ahead of files that require it so a single `fieldgroups build` call can be
given files in any order.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Set

from .kernel.composer import Composer
from .kernel.errors import TransformError
from .kernel.registry import RegistryWriter
from .kernel.store import StateStore
from .source.parser import MarkerNames
from .source.transformer import SourceTransformer, scan_source

logger = logging.getLogger(__name__)


@dataclass
class BuildReport:
    """What a build did, file by file, in execution order."""

    order: List[Path] = field(default_factory=list)
    outputs: Dict[Path, str] = field(default_factory=dict)
    written: List[Path] = field(default_factory=list)
    registered: List[str] = field(default_factory=list)
    composed: Dict[str, List[str]] = field(default_factory=dict)


def plan_build(paths: Sequence[Path], markers: Optional[MarkerNames] = None) -> List[Path]:
    """
    Return ``paths`` in an order where providers run before consumers.

    Ties keep the input order. Keys nobody in ``paths`` provides are assumed to
    be registered already and add no edge. A dependency cycle between files
    raises TransformError.
    """
    paths = [Path(p) for p in paths]
    order_map = {p: i for i, p in enumerate(paths)}

    providers: Dict[str, List[Path]] = {}
    requires: Dict[Path, List[str]] = {}
    for path in paths:
        scan = scan_source(path.read_text(), str(path), markers)
        for key in scan.provides:
            providers.setdefault(key, []).append(path)
        requires[path] = scan.requires

    parent_sets: Dict[Path, Set[Path]] = {p: set() for p in paths}
    for path in paths:
        for key in requires[path]:
            for provider in providers.get(key, []):
                if provider != path:
                    parent_sets[path].add(provider)

    ordered: List[Path] = []
    done: Set[Path] = set()
    pending = sorted(paths, key=lambda p: order_map[p])
    while pending:
        ready = [p for p in pending if parent_sets[p] <= done]
        if not ready:
            names = ", ".join(str(p) for p in pending)
            raise TransformError(f"circular field reuse between files: {names}")
        nxt = ready[0]
        ordered.append(nxt)
        done.add(nxt)
        pending.remove(nxt)
    return ordered


def _output_path(path: Path, root: Path, out_dir: Path) -> Path:
    return out_dir / path.resolve().relative_to(root)


def build_files(
    paths: Sequence[Path],
    store: StateStore,
    out_dir: Optional[Path] = None,
    strict: bool = False,
    markers: Optional[MarkerNames] = None,
) -> BuildReport:
    """
    Transform ``paths`` against ``store``, one independent invocation per file.

    With ``out_dir`` the results are written below it, mirroring the paths'
    common parent directory. The first failure aborts the build.
    """
    report = BuildReport(order=plan_build(paths, markers))
    if not report.order:
        return report

    root = Path(os.path.commonpath([p.resolve().parent for p in report.order]))
    for path in report.order:
        # Fresh components per file: nothing carries over except the store.
        transformer = SourceTransformer(
            RegistryWriter(store), Composer(store, strict=strict), markers
        )
        result = transformer.transform_source(path.read_text(), str(path))
        report.outputs[path] = result.source
        report.registered.extend(result.registered)
        for cls_name, keys in result.composed.items():
            report.composed[f"{path}:{cls_name}"] = keys

        if out_dir is not None:
            target = _output_path(path, root, Path(out_dir))
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(result.source)
            report.written.append(target)
            logger.info("wrote %s", target)
    return report

