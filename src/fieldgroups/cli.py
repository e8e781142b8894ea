"""
Command line entry point for build-time field reuse.

Usage:
    fieldgroups build models/*.py --out-dir build/generated [--store path] [--strict]
    fieldgroups transform models/person.py            # one invocation, result on stdout
    fieldgroups show billing.address [--json]
    fieldgroups list
    fieldgroups context
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from .build import build_files
from .config import FieldGroupsConfig, load_config
from .kernel.composer import Composer
from .kernel.errors import FieldGroupsError
from .kernel.registry import RegistryWriter, validate_key
from .kernel.store import open_store
from .source.printer import RecordPrinter
from .source.transformer import SourceTransformer

logger = logging.getLogger("fieldgroups")


def resolve_config(args: argparse.Namespace) -> FieldGroupsConfig:
    return load_config(
        store_path=getattr(args, "store", None),
        strict=True if getattr(args, "strict", False) else None,
        log_level="DEBUG" if getattr(args, "verbose", False) else None,
    )


# =============================================================================
# Commands
# =============================================================================


def cmd_build(args: argparse.Namespace, config: FieldGroupsConfig) -> int:
    """Plan and transform a set of files."""
    paths = [Path(p) for p in args.files]
    out_dir = Path(args.out_dir) if args.out_dir else None

    with open_store(config.store_path) as store:
        report = build_files(
            paths,
            store,
            out_dir=out_dir,
            strict=config.strict_conflicts,
            markers=config.markers,
        )

    print(f"  Store:      {config.store_path}")
    print(f"  Files:      {len(report.order)}")
    print(f"  Registered: {', '.join(report.registered) or '(none)'}")
    for target, keys in report.composed.items():
        print(f"  Composed:   {target} <- {', '.join(keys)}")
    if out_dir is None:
        print("  (no --out-dir given, nothing written)")
    else:
        print(f"  Written:    {len(report.written)} file(s) under {out_dir}")
    return 0


def cmd_transform(args: argparse.Namespace, config: FieldGroupsConfig) -> int:
    """Transform a single file and print the result."""
    path = Path(args.file)
    with open_store(config.store_path) as store:
        transformer = SourceTransformer(
            RegistryWriter(store),
            Composer(store, strict=config.strict_conflicts),
            config.markers,
        )
        result = transformer.transform_source(path.read_text(), str(path))
    sys.stdout.write(result.source)
    return 0


def cmd_show(args: argparse.Namespace, config: FieldGroupsConfig) -> int:
    """Print the definition stored under a key."""
    key = validate_key(args.key)
    with open_store(config.store_path) as store:
        definition = Composer(store).resolve(key)

    if args.json:
        print(json.dumps(definition.model_dump(), indent=2))
    else:
        print(RecordPrinter().to_source(definition))
    return 0


def cmd_list(args: argparse.Namespace, config: FieldGroupsConfig) -> int:
    """List registered keys."""
    with open_store(config.store_path) as store:
        keys = store.keys()
    if not keys:
        print("  (no registrations)")
    for key in keys:
        print(f"  • {key}")
    return 0


def cmd_context(args: argparse.Namespace, config: FieldGroupsConfig) -> int:
    """Show the resolved configuration."""
    print()
    print("╭────────────────────────────────────────────────────────────╮")
    print("│  fieldgroups context                                       │")
    print("╰────────────────────────────────────────────────────────────╯")
    print()
    print(f"  Store:    {config.store_path}  ({config.source.get('store_path')})")
    print(f"  Strict:   {config.strict_conflicts}  ({config.source.get('strict_conflicts')})")
    print(f"  Markers:  @{config.register_marker} / @{config.compose_marker}")
    print(f"  Logging:  {config.log_level}")
    print()
    return 0


# =============================================================================
# Main Entry Point
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fieldgroups",
        description="Register class field groups and splice them into other classes",
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--store", help="Registry database path (':memory:' for none)")
    common.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    build_parser_ = subparsers.add_parser("build", parents=[common], help="Transform a set of source files")
    build_parser_.add_argument("files", nargs="+", help="Python source files")
    build_parser_.add_argument("--out-dir", "-o", help="Directory for generated files")
    build_parser_.add_argument(
        "--strict", action="store_true",
        help="Fail when two reused groups supply the same field",
    )

    transform_parser = subparsers.add_parser("transform", parents=[common], help="Transform one file to stdout")
    transform_parser.add_argument("file", help="Python source file")
    transform_parser.add_argument(
        "--strict", action="store_true",
        help="Fail when two reused groups supply the same field",
    )

    show_parser = subparsers.add_parser("show", parents=[common], help="Show a registered field group")
    show_parser.add_argument("key", help="Registration key")
    show_parser.add_argument("--json", action="store_true", help="Print the stored structure")

    subparsers.add_parser("list", parents=[common], help="List registration keys")
    subparsers.add_parser("context", parents=[common], help="Show resolved configuration")
    return parser


COMMANDS = {
    "build": cmd_build,
    "transform": cmd_transform,
    "show": cmd_show,
    "list": cmd_list,
    "context": cmd_context,
}


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = resolve_config(args)
        logging.basicConfig(
            level=config.log_level,
            format="%(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )
        return COMMANDS[args.command](args, config)
    except FieldGroupsError as exc:
        logger.debug("command %s failed", args.command, exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
