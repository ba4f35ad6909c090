"""Automatically link glossary terms throughout an mdBook book.

Glossary terms are read from a definition list::

    API (Application Programming Interface)
    : A set of protocols for building software.

and the first occurrence of each term on every other page becomes a link to
its entry. Code, existing links, images and headings are never rewritten.
"""

from termlink.config import Config
from termlink.errors import (
    AliasConflictError,
    BookFormatError,
    ConfigError,
    GlossaryNotFoundError,
    SerializationError,
    TermlinkError,
)
from termlink.glossary import Term, add_term_links
from termlink.preprocessor import LinkReport, TermlinkPreprocessor

__version__ = "0.1.0"

__all__ = [
    "Config",
    "Term",
    "add_term_links",
    "TermlinkPreprocessor",
    "LinkReport",
    "TermlinkError",
    "ConfigError",
    "GlossaryNotFoundError",
    "AliasConflictError",
    "SerializationError",
    "BookFormatError",
]
