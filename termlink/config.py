"""Configuration for the termlink preprocessor.

Settings come from the ``[preprocessor.termlink]`` table of ``book.toml``
(delivered by mdBook inside the preprocessor context) or, for the standalone
``link`` command, from a YAML file with the same keys.
"""

from __future__ import annotations

import fnmatch
import logging
import re
from dataclasses import dataclass, field
from itertools import chain, product
from pathlib import Path, PurePath, PurePosixPath
from typing import Any, Dict, Iterator, List, Mapping, Optional, Pattern, Tuple, Union

import yaml

from termlink.errors import ConfigError

logger = logging.getLogger(__name__)

PREPROCESSOR_NAME = "termlink"
DEFAULT_GLOSSARY_PATH = "reference/glossary.md"
DEFAULT_CSS_CLASS = "glossary-term"

# Keys mdBook itself reads from a preprocessor table.
_HOST_KEYS = frozenset({"command", "renderer", "renderers", "before", "after", "optional"})
_KNOWN_KEYS = frozenset(
    {
        "glossary-path",
        "link-first-only",
        "css-class",
        "case-sensitive",
        "exclude-pages",
        "aliases",
    }
)

PathLike = Union[str, PurePath]


def as_posix_path(path: PathLike) -> PurePosixPath:
    """Return ``path`` as a :class:`PurePosixPath`, accepting Windows separators."""

    if isinstance(path, PurePosixPath):
        return path
    return PurePosixPath(str(path).replace("\\", "/"))


def path_matches(path: PathLike, target: PathLike) -> bool:
    """Return ``True`` if ``path`` equals ``target`` or ends with it component-wise."""

    path_parts = as_posix_path(path).parts
    target_parts = as_posix_path(target).parts
    if not target_parts or len(target_parts) > len(path_parts):
        return False
    return path_parts[len(path_parts) - len(target_parts):] == target_parts


@dataclass(frozen=True)
class ExcludePattern:
    """A compiled ``exclude-pages`` glob."""

    pattern: str
    regex: Pattern[str]

    def matches(self, path: PathLike) -> bool:
        return self.regex.fullmatch(as_posix_path(path).as_posix()) is not None


def _check_glob(pattern: str) -> None:
    for found in re.finditer(r"\*{2,}", pattern):
        start, end = found.span()
        at_start = start == 0 or pattern[start - 1] == "/"
        at_end = end == len(pattern) or pattern[end] == "/"
        if end - start > 2 or not (at_start and at_end):
            raise ValueError(
                f"recursive wildcard '**' must form a whole path component in {pattern!r}"
            )
    i = 0
    length = len(pattern)
    while i < length:
        if pattern[i] == "[":
            j = i + 1
            if j < length and pattern[j] == "!":
                j += 1
            # A closing bracket right after the opening one is literal.
            if j < length and pattern[j] == "]":
                j += 1
            i = pattern.find("]", j)
            if i == -1:
                raise ValueError(f"unclosed character class in {pattern!r}")
        i += 1


def compile_glob(pattern: str) -> ExcludePattern:
    """Compile a glob into an :class:`ExcludePattern`.

    ``*`` and ``?`` also match ``/`` (as with :func:`fnmatch.fnmatch`) and
    ``**/`` matches zero or more leading directories. Raises
    :class:`ValueError` for malformed patterns.
    """

    _check_glob(pattern)
    # Each "**/" either spans some directories ("*/") or none at all.
    pieces = pattern.split("**/")
    variants = sorted(
        {
            "".join(chain.from_iterable(zip(pieces, gaps + ("",))))
            for gaps in product(("*/", ""), repeat=len(pieces) - 1)
        }
    )
    regex = re.compile("|".join(fnmatch.translate(variant) for variant in variants))
    return ExcludePattern(pattern=pattern, regex=regex)


def _normalise_key(key: str) -> str:
    return str(key).strip().replace("_", "-").lower()


def _coerce_bool(data: Mapping[str, Any], key: str, default: bool) -> bool:
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ConfigError(f"'{key}' must be a boolean, got {type(value).__name__}")
    return value


def _coerce_str(data: Mapping[str, Any], key: str, default: str) -> str:
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"'{key}' must be a non-empty string")
    return value.strip()


def _coerce_patterns(data: Mapping[str, Any]) -> Tuple[Tuple[ExcludePattern, ...], Tuple[str, ...]]:
    value = data.get("exclude-pages")
    if value is None:
        return (), ()
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise ConfigError("'exclude-pages' must be a list of glob patterns")
    compiled: List[ExcludePattern] = []
    dropped: List[str] = []
    for raw in value:
        if not isinstance(raw, str):
            raise ConfigError("'exclude-pages' entries must be strings")
        try:
            compiled.append(compile_glob(raw))
        except ValueError as exc:
            logger.warning("Invalid exclude-pages glob pattern '%s': %s", raw, exc)
            dropped.append(raw)
    return tuple(compiled), tuple(dropped)


def _coerce_aliases(data: Mapping[str, Any]) -> Dict[str, Tuple[str, ...]]:
    value = data.get("aliases")
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError("'aliases' must be a table of term name to alias list")
    aliases: Dict[str, Tuple[str, ...]] = {}
    for name, entries in value.items():
        if isinstance(entries, str) or not isinstance(entries, (list, tuple)):
            raise ConfigError(f"aliases for '{name}' must be a list of strings")
        kept: List[str] = []
        for entry in entries:
            if not isinstance(entry, str):
                raise ConfigError(f"aliases for '{name}' must be a list of strings")
            if not entry.strip():
                logger.warning("Ignoring empty alias configured for term '%s'", name)
                continue
            kept.append(entry)
        aliases[str(name)] = tuple(kept)
    return aliases


@dataclass(frozen=True)
class Config:
    """Validated termlink settings."""

    glossary_path: PurePosixPath = PurePosixPath(DEFAULT_GLOSSARY_PATH)
    link_first_only: bool = True
    css_class: str = DEFAULT_CSS_CLASS
    case_sensitive: bool = False
    exclude_pages: Tuple[ExcludePattern, ...] = ()
    aliases: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    # Exclusion globs that failed to compile and were ignored.
    dropped_patterns: Tuple[str, ...] = ()

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------
    @classmethod
    def from_mapping(cls, raw: Optional[Mapping[str, Any]]) -> "Config":
        """Build a config from a ``book.toml``-style mapping."""

        if raw is None:
            raw = {}
        if not isinstance(raw, Mapping):
            raise ConfigError("termlink configuration must be a table")
        data = {_normalise_key(key): value for key, value in raw.items()}
        for key in data:
            if key not in _KNOWN_KEYS and key not in _HOST_KEYS:
                logger.warning("Ignoring unknown termlink option '%s'", key)

        exclude_pages, dropped = _coerce_patterns(data)
        return cls(
            glossary_path=as_posix_path(
                _coerce_str(data, "glossary-path", DEFAULT_GLOSSARY_PATH)
            ),
            link_first_only=_coerce_bool(data, "link-first-only", True),
            css_class=_coerce_str(data, "css-class", DEFAULT_CSS_CLASS),
            case_sensitive=_coerce_bool(data, "case-sensitive", False),
            exclude_pages=exclude_pages,
            aliases=_coerce_aliases(data),
            dropped_patterns=dropped,
        )

    @classmethod
    def from_context(cls, ctx: Mapping[str, Any]) -> "Config":
        """Build a config from an mdBook preprocessor context."""

        book_config = ctx.get("config") or {}
        if not isinstance(book_config, Mapping):
            raise ConfigError("preprocessor context 'config' must be a table")
        preprocessors = book_config.get("preprocessor") or {}
        if not isinstance(preprocessors, Mapping):
            raise ConfigError("Failed to parse preprocessor configuration")
        return cls.from_mapping(preprocessors.get(PREPROCESSOR_NAME))

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "Config":
        """Load a config from a YAML file.

        Options may sit at the top level or under a ``termlink`` key.
        """

        try:
            with open(path, "r", encoding="utf-8") as fh:
                data = yaml.safe_load(fh)
        except OSError as exc:
            raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
        except yaml.YAMLError as exc:
            raise ConfigError(f"Malformed YAML in {path}: {exc}") from exc
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise ConfigError(f"Config file {path} must contain a mapping")
        nested = data.get(PREPROCESSOR_NAME)
        if isinstance(nested, Mapping):
            data = nested
        return cls.from_mapping(data)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @property
    def glossary_html_path(self) -> PurePosixPath:
        return self.glossary_path.with_suffix(".html")

    def is_glossary_path(self, path: PathLike) -> bool:
        """Check whether ``path`` is the glossary page."""

        return path_matches(path, self.glossary_path)

    def should_exclude(self, path: PathLike) -> bool:
        """Check whether ``path`` is excluded from term linking."""

        return any(pattern.matches(path) for pattern in self.exclude_pages)

    def aliases_for(self, term_name: str) -> Optional[Tuple[str, ...]]:
        return self.aliases.get(term_name)

    def all_aliases(self) -> Iterator[Tuple[str, Tuple[str, ...]]]:
        return iter(self.aliases.items())


__all__ = [
    "Config",
    "ExcludePattern",
    "compile_glob",
    "as_posix_path",
    "path_matches",
    "PREPROCESSOR_NAME",
    "DEFAULT_GLOSSARY_PATH",
    "DEFAULT_CSS_CLASS",
]
