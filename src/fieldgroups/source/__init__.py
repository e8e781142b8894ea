"""
Source layer: Python class statements in and out of RecordDefinitions.

- parser: ast.ClassDef -> RecordDefinition
- printer: RecordDefinition -> class statement
- transformer: dispatch @reusable / @reuse markers across a whole file
"""

from .parser import MarkerNames, RecordParser
from .printer import RecordPrinter
from .transformer import SourceScan, SourceTransformer, TransformResult, scan_source

__all__ = [
    "MarkerNames",
    "RecordParser",
    "RecordPrinter",
    "SourceScan",
    "SourceTransformer",
    "TransformResult",
    "scan_source",
]
