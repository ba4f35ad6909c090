"""mdBook preprocessor protocol: the ``supports`` handshake and the stdin run."""

from __future__ import annotations

import argparse
import logging
import sys

from termlink.book import parse_input, write_output
from termlink.preprocessor import TermlinkPreprocessor

logger = logging.getLogger(__name__)


def register(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    """Register the ``supports`` command."""
    parser = subparsers.add_parser(
        "supports", help="Exit 0 if the given mdBook renderer is supported"
    )
    parser.add_argument("renderer")
    parser.set_defaults(func=_handle_supports)


def _handle_supports(args: argparse.Namespace) -> int:
    return 0 if TermlinkPreprocessor.supports_renderer(args.renderer) else 1


def run_preprocessor(args: argparse.Namespace) -> int:
    """Read ``[context, book]`` from stdin and write the linked book to stdout."""

    ctx, book = parse_input(sys.stdin)
    preprocessor = TermlinkPreprocessor.from_context(ctx)
    report = preprocessor.run(book)
    for path, message in report.failed.items():
        logger.warning("Left %s unmodified: %s", path, message)
    write_output(book, sys.stdout)
    return 0


__all__ = ["register", "run_preprocessor"]
