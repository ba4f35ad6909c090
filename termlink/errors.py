"""Exception hierarchy for termlink."""

from __future__ import annotations


class TermlinkError(Exception):
    """Base class for all termlink failures."""


class ConfigError(TermlinkError, ValueError):
    """Raised when the preprocessor configuration is malformed."""


class GlossaryNotFoundError(TermlinkError):
    """Raised when the configured glossary page is not part of the book."""

    def __init__(self, glossary_path: str) -> None:
        super().__init__(f"Glossary file not found: {glossary_path}")
        self.glossary_path = glossary_path


class AliasConflictError(TermlinkError):
    """Raised when an alias collides with the name of a different term."""

    def __init__(self, alias: str, term: str, conflicting_term: str) -> None:
        super().__init__(
            f"Alias '{alias}' configured for term '{term}' conflicts with "
            f"glossary term '{conflicting_term}'"
        )
        self.alias = alias
        self.term = term
        self.conflicting_term = conflicting_term


class SerializationError(TermlinkError):
    """Raised when a rewritten token stream cannot be rendered back to markdown."""


class BookFormatError(TermlinkError):
    """Raised when preprocessor input is not a ``[context, book]`` JSON pair."""


__all__ = [
    "TermlinkError",
    "ConfigError",
    "GlossaryNotFoundError",
    "AliasConflictError",
    "SerializationError",
    "BookFormatError",
]
