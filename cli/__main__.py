from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Optional, Sequence

from termlink.errors import TermlinkError

from . import glossary, link, preprocess

logger = logging.getLogger("termlink")

LOG_LEVEL_ENV = "TERMLINK_LOG"


def _configure_logging(level: Optional[str]) -> None:
    """Send log records to stderr; stdout carries the book JSON."""

    name = (level or os.environ.get(LOG_LEVEL_ENV) or "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, name, logging.WARNING),
        stream=sys.stderr,
        format="%(asctime)s [%(levelname)s] (%(name)s): %(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="termlink",
        description="mdBook preprocessor that links glossary terms throughout a book",
    )
    parser.add_argument(
        "--log-level",
        help=f"Logging level (default: ${LOG_LEVEL_ENV} or WARNING)",
    )
    sub = parser.add_subparsers(dest="command")
    preprocess.register(sub)
    link.register(sub)
    glossary.register(sub)
    # mdBook runs the preprocessor without arguments.
    parser.set_defaults(func=preprocess.run_preprocessor)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.log_level)
    try:
        return args.func(args)
    except TermlinkError as exc:
        logger.error("%s", exc)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
