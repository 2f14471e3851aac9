#!/usr/bin/env python3
"""Transformer CLI - list, validate and apply text transformations.

Usage:
    # Names the engine can apply (bundled YAML + database + built-ins)
    python scripts/transformer.py list

    # Validate definition files (default: the static definitions directory)
    python scripts/transformer.py validate
    python scripts/transformer.py validate my_defs/redact.yml

    # Apply one transformation, or a chain, to stdin
    echo "Date: 2025-01-07" | python scripts/transformer.py apply date_reformatter
    cat secret.yaml | python scripts/transformer.py apply k8s_secret_decoder
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from textforge.catalog.static_source import DEFAULT_DEFINITIONS_DIR
from textforge.definitions.loader import definition_files, get_definition_loader
from textforge.engine import get_transformation_engine
from textforge.errors import TransformerError


def cmd_list(args) -> int:
    engine = get_transformation_engine()
    for name in engine.available_names():
        if args.verbose:
            print(f"{name:32} {engine.get(name).description}")
        else:
            print(name)
    return 0


def cmd_validate(args) -> int:
    paths: list[Path] = []
    for raw in args.paths or [str(DEFAULT_DEFINITIONS_DIR)]:
        path = Path(raw)
        paths.extend(definition_files(path) if path.is_dir() else [path])

    if not paths:
        print("No transformation files found.")
        return 0

    loader = get_definition_loader()
    failures = 0
    for path in paths:
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            print(f"{path}: {e}")
            failures += 1
            continue

        result = loader.validate_document(content)
        if result.invalid:
            failures += 1
            for error in result.errors:
                print(f"{path}: {error}")

    if failures:
        print(f"\n{failures} of {len(paths)} transformation files are invalid.")
        return 1
    print("All transformation files are valid.")
    return 0


def cmd_apply(args) -> int:
    engine = get_transformation_engine()
    text = sys.stdin.read()
    try:
        output = engine.apply_chain(args.names, text)
    except TransformerError as e:
        step = getattr(e, "step", None)
        print(f"Error{f' in {step}' if step else ''}: {e}", file=sys.stderr)
        return 1
    sys.stdout.write(output)
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Manage and apply textforge transformations",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log loading details and show descriptions",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list", help="List available transformations")
    list_parser.set_defaults(func=cmd_list)

    validate_parser = subparsers.add_parser(
        "validate", help="Validate transformation definition files"
    )
    validate_parser.add_argument(
        "paths",
        nargs="*",
        help="Files or directories (default: the static definitions directory)",
    )
    validate_parser.set_defaults(func=cmd_validate)

    apply_parser = subparsers.add_parser(
        "apply", help="Apply transformations (in order) to stdin"
    )
    apply_parser.add_argument("names", nargs="+", help="Transformation names")
    apply_parser.set_defaults(func=cmd_apply)

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
