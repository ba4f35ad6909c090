"""Glossary terms and their extraction from a definition-list page."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Iterable, List, Mapping, Optional, Protocol, Sequence, Tuple

from markdown_it.token import Token

from termlink.config import Config, PathLike, as_posix_path
from termlink.errors import AliasConflictError, GlossaryNotFoundError
from termlink.markdown import parse_markdown

logger = logging.getLogger(__name__)


def generate_anchor(name: str) -> str:
    """Generate the URL anchor for ``name``.

    Alphanumeric characters are kept (ASCII letters lowercased), every run of
    other characters becomes a single hyphen, and leading and trailing
    hyphens are dropped. Mirrors the anchors the book renderer gives
    headings, so ``generate_anchor(generate_anchor(x)) == generate_anchor(x)``.
    """

    result: List[str] = []
    last_was_hyphen = True
    for ch in name:
        if ch.isalnum():
            result.append(ch.lower() if ch.isascii() else ch)
            last_was_hyphen = False
        elif not last_was_hyphen:
            result.append("-")
            last_was_hyphen = True
    if result and result[-1] == "-":
        result.pop()
    return "".join(result)


def extract_short_name(name: str) -> Optional[str]:
    """Return ``SHORT`` for names shaped like ``"SHORT (Long Description)"``."""

    paren_idx = name.find("(")
    if paren_idx == -1:
        return None
    short = name[:paren_idx].strip()
    if short and len(short) < len(name) // 2:
        return short
    return None


@dataclass(frozen=True)
class Term:
    """A glossary term extracted from a definition list."""

    name: str
    definition: Optional[str] = None
    aliases: Tuple[str, ...] = ()
    anchor: str = field(init=False)
    short_name: Optional[str] = field(init=False)

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("Term name must be non-empty")
        object.__setattr__(self, "aliases", tuple(self.aliases))
        object.__setattr__(self, "anchor", generate_anchor(self.name))
        object.__setattr__(self, "short_name", extract_short_name(self.name))

    def with_aliases(self, aliases: Iterable[str]) -> "Term":
        """Return a copy of this term carrying ``aliases``."""

        return replace(self, aliases=tuple(aliases))

    def searchable_forms(self) -> List[str]:
        """Return the name, the short name if any, then the aliases."""

        forms = [self.name]
        if self.short_name is not None:
            forms.append(self.short_name)
        forms.extend(self.aliases)
        return forms


class DocumentLike(Protocol):
    """Subset of :class:`termlink.book.Chapter` needed to find the glossary."""

    @property
    def path(self) -> Optional[PathLike]:
        ...

    @property
    def content(self) -> str:
        ...


def extract_terms(documents: Iterable[DocumentLike], config: Config) -> List[Term]:
    """Extract glossary terms from the glossary page among ``documents``.

    Raises :class:`GlossaryNotFoundError` when no document matches the
    configured glossary path.
    """

    content = find_glossary_content(documents, config)
    return parse_definition_lists(content)


def find_glossary_content(documents: Iterable[DocumentLike], config: Config) -> str:
    for document in documents:
        if document.path is not None and config.is_glossary_path(document.path):
            return document.content
    raise GlossaryNotFoundError(str(config.glossary_path))


def _inline_text(children: Optional[Sequence[Token]]) -> str:
    pieces: List[str] = []
    for child in children or ():
        if child.type in ("text", "code_inline"):
            pieces.append(child.content)
        elif child.type in ("softbreak", "hardbreak"):
            pieces.append(" ")
        elif child.type == "image":
            pieces.append(_inline_text(child.children))
    return "".join(pieces)


def _make_term(title: str, definition_parts: Sequence[str]) -> Term:
    definition = " ".join(definition_parts).strip()
    return Term(title, definition=definition or None)


def parse_definition_lists(content: str) -> List[Term]:
    """Parse every definition list in ``content`` into terms, in document order."""

    terms: List[Term] = []
    in_definition_list = False
    in_title = False
    in_definition = False
    title_parts: List[str] = []
    definition_parts: List[str] = []
    pending_title: Optional[str] = None

    for token in parse_markdown(content).tokens:
        kind = token.type
        if kind == "dl_open":
            in_definition_list = True
        elif kind == "dl_close":
            in_definition_list = False
            # A title with no definition before the list ends.
            title, pending_title = pending_title, None
            if title:
                terms.append(Term(title))
        elif kind == "dt_open":
            if in_definition_list:
                title, pending_title = pending_title, None
                if title:
                    terms.append(_make_term(title, definition_parts))
                in_title = True
                title_parts.clear()
                definition_parts.clear()
        elif kind == "dt_close":
            if in_title:
                pending_title = "".join(title_parts).strip()
                in_title = False
        elif kind == "dd_open":
            if in_definition_list:
                in_definition = True
        elif kind == "dd_close":
            if in_definition:
                in_definition = False
                title, pending_title = pending_title, None
                if title:
                    terms.append(_make_term(title, definition_parts))
                    definition_parts.clear()
        elif kind == "inline":
            if in_title:
                title_parts.append(_inline_text(token.children))
            elif in_definition:
                definition_parts.append(_inline_text(token.children))

    return terms


def glossary_html_path(md_path: PathLike) -> str:
    """Convert a markdown page path to the path of its rendered HTML page."""

    return as_posix_path(md_path).with_suffix(".html").as_posix()


def check_alias_conflicts(terms: Sequence[Term], aliases: Mapping[str, Sequence[str]]) -> None:
    """Fail if an alias equals, case-folded, the name of a different term."""

    names = {term.name.casefold(): term.name for term in terms}
    for term_name, entries in aliases.items():
        for alias in entries:
            conflicting = names.get(alias.casefold())
            if conflicting is not None and conflicting != term_name:
                raise AliasConflictError(alias, term_name, conflicting)


def apply_aliases(terms: Sequence[Term], aliases: Mapping[str, Sequence[str]]) -> List[Term]:
    """Return ``terms`` with their configured aliases attached."""

    known = {term.name for term in terms}
    for term_name in aliases:
        if term_name not in known:
            logger.warning("Aliases configured for unknown glossary term '%s'", term_name)
    return [
        term.with_aliases(aliases[term.name]) if aliases.get(term.name) else term
        for term in terms
    ]


__all__ = [
    "Term",
    "generate_anchor",
    "extract_short_name",
    "extract_terms",
    "find_glossary_content",
    "parse_definition_lists",
    "glossary_html_path",
    "check_alias_conflicts",
    "apply_aliases",
]
