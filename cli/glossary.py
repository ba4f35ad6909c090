"""CLI helpers for glossary operations."""

from __future__ import annotations

import argparse
import json
from pathlib import Path

from termlink.config import Config
from termlink.glossary.service import apply_aliases, check_alias_conflicts, parse_definition_lists


def register(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    """Register the ``glossary`` command."""
    parser = subparsers.add_parser("glossary", help="List the terms defined in a glossary page")
    parser.add_argument("file", type=Path, help="Markdown page holding the definition list")
    parser.add_argument("--config", type=Path, help="YAML file with termlink options")
    parser.set_defaults(func=_handle)


def _handle(args: argparse.Namespace) -> int:
    config = Config.from_yaml(args.config) if args.config else Config()
    terms = parse_definition_lists(args.file.read_text(encoding="utf-8"))
    check_alias_conflicts(terms, config.aliases)
    payload = [
        {
            "name": term.name,
            "anchor": term.anchor,
            "short_name": term.short_name,
            "definition": term.definition,
            "aliases": list(term.aliases),
        }
        for term in apply_aliases(terms, config.aliases)
    ]
    print(json.dumps(payload, ensure_ascii=False))
    return 0


__all__ = ["register"]
