"""Standalone linking over a directory of markdown files."""

from __future__ import annotations

import argparse
import json
from pathlib import Path

from termlink.book import Book
from termlink.config import Config
from termlink.errors import TermlinkError
from termlink.preprocessor import TermlinkPreprocessor


def register(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    """Register the ``link`` command."""
    parser = subparsers.add_parser("link", help="Link glossary terms in a directory of markdown files")
    parser.add_argument("src", type=Path, help="Directory holding the markdown sources")
    parser.add_argument("--config", type=Path, help="YAML file with termlink options")
    parser.add_argument("--out", type=Path, help="Write results here instead of in place")
    parser.set_defaults(func=_handle)


def _handle(args: argparse.Namespace) -> int:
    if not args.src.is_dir():
        raise TermlinkError(f"Source directory not found: {args.src}")
    config = Config.from_yaml(args.config) if args.config else Config()
    book = Book.from_directory(args.src)
    report = TermlinkPreprocessor(config).run(book)

    out_dir = args.out or args.src
    written = set(report.linked)
    for chapter in book.iter_chapters():
        if chapter.path is None:
            continue
        label = chapter.path.as_posix()
        if label not in written and out_dir == args.src:
            continue
        target = out_dir / label
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(chapter.content, encoding="utf-8")

    print(json.dumps(report.to_dict(), ensure_ascii=False))
    return 0


__all__ = ["register"]
