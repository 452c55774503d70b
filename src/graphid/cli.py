"""CLI entrypoint for generating identifiers."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional, Sequence

from .config import get_settings
from .errors import IdentifierError
from .generator import IdentifierGenerator
from .lookup import InMemoryEntityResolver

logger = logging.getLogger(__name__)


def _configure_logging() -> None:
    logging.basicConfig(
        level=get_settings().log_level,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    )


def _parse_references(pairs: Sequence[str]) -> Dict[str, str]:
    references: Dict[str, str] = {}
    for pair in pairs:
        entity_id, sep, standard_id = pair.partition("=")
        if not sep or not entity_id or not standard_id:
            raise argparse.ArgumentTypeError(f"Expected ID=STANDARD_ID, got {pair!r}")
        references[entity_id] = standard_id
    return references


def _load_data(raw: str) -> Dict[str, Any]:
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise argparse.ArgumentTypeError("--data must be a JSON object")
    return data


def run_generate(type_tag: str, data: Dict[str, Any], references: Optional[Dict[str, str]] = None) -> str:
    """Generate one identifier synchronously."""

    generator = IdentifierGenerator(entity_resolver=InMemoryEntityResolver(references or {}))
    return generator.generate_sync(type_tag, data)


def run_types() -> List[str]:
    """Return one tab-separated line per registered type."""

    generator = IdentifierGenerator()
    lines = []
    for type_tag, definition in sorted(generator.registry.items()):
        descriptor = generator.describe(type_tag)
        lines.append(f"{type_tag}\t{descriptor.category.value}\t{definition.describe()}")
    return lines


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="graphid",
        description="Generate content-addressable identifiers for knowledge graph entities",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser("generate", help="Generate the identifier of one entity")
    generate.add_argument("type", help="Entity or relationship type, e.g. IPv4-Addr")
    generate.add_argument(
        "--data",
        default="{}",
        help="Raw attributes as a JSON object (default: {})",
    )
    generate.add_argument(
        "--resolve",
        action="append",
        default=[],
        metavar="ID=STANDARD_ID",
        help="Known standard id of a referenced entity; repeatable",
    )

    subparsers.add_parser("types", help="List registered types and their identity rules")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Console script entry point."""

    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging()

    if args.command == "types":
        for line in run_types():
            print(line)
        return 0

    try:
        data = _load_data(args.data)
        references = _parse_references(args.resolve)
    except (ValueError, argparse.ArgumentTypeError) as exc:
        parser.error(str(exc))

    try:
        identifier = run_generate(args.type, data, references)
    except IdentifierError as exc:
        logger.error("%s", exc)
        return 2
    print(identifier)
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
