"""Link glossary terms in markdown prose.

The linker walks a document's token stream with an explicit stack of
contexts. Only text whose innermost context is :attr:`Context.NORMAL` is
rewritten; text inside headings, links and images, as well as code blocks and
inline code, is passed through untouched.
"""

from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Callable, Iterable, List, Optional, Pattern, Sequence, Set, Tuple, Union

from markdown_it.token import Token

from termlink.config import Config, PathLike, as_posix_path
from termlink.glossary.service import Term
from termlink.markdown import html_token, parse_markdown, render_markdown, text_token

logger = logging.getLogger(__name__)


class Context(Enum):
    """Structural context enclosing a point in the document."""

    NORMAL = "normal"
    CODE_BLOCK = "code_block"
    LINK = "link"
    IMAGE = "image"
    HEADING = "heading"


class TokenKind(Enum):
    """How the linker treats a token."""

    OPEN = "open"
    CLOSE = "close"
    TEXT = "text"
    VERBATIM = "verbatim"
    OTHER = "other"


_OPENERS = {
    "heading_open": Context.HEADING,
    "link_open": Context.LINK,
}
_CLOSERS = {
    "heading_close": Context.HEADING,
    "link_close": Context.LINK,
}
# Leaf tokens carrying their own content. Code blocks and inline code hold
# their text in ``content`` and images keep their alt text in ``children``,
# so none of it is ever seen as a text token.
_VERBATIM = {
    "fence": Context.CODE_BLOCK,
    "code_block": Context.CODE_BLOCK,
    "code_inline": None,
    "image": Context.IMAGE,
    "html_block": None,
}

_HTML_LINK_OPEN_RE = re.compile(r"<a(?:\s[^>]*)?>", re.IGNORECASE)
_HTML_LINK_CLOSE_RE = re.compile(r"</a\s*>", re.IGNORECASE)


def classify(token: Token) -> Tuple[TokenKind, Optional[Context]]:
    """Return the :class:`TokenKind` of ``token`` and the context it affects."""

    kind = token.type
    if kind in _OPENERS:
        return TokenKind.OPEN, _OPENERS[kind]
    if kind in _CLOSERS:
        return TokenKind.CLOSE, _CLOSERS[kind]
    if kind == "text":
        return TokenKind.TEXT, None
    if kind in _VERBATIM:
        return TokenKind.VERBATIM, _VERBATIM[kind]
    if kind == "html_inline":
        # Raw <a> tags wrap prose exactly like markdown links do.
        content = token.content.strip()
        if _HTML_LINK_OPEN_RE.fullmatch(content):
            return TokenKind.OPEN, Context.LINK
        if _HTML_LINK_CLOSE_RE.fullmatch(content):
            return TokenKind.CLOSE, Context.LINK
        return TokenKind.VERBATIM, None
    return TokenKind.OTHER, None


@dataclass
class LinkSession:
    """Linking state for a single document."""

    linked_anchors: Set[str] = field(default_factory=set)
    links_inserted: int = 0


@dataclass(frozen=True)
class LinkFragment:
    """An inserted link; opaque to any later term matching."""

    html: str


Segment = Union[str, LinkFragment]


def html_escape(text: str) -> str:
    """Escape ``&``, ``<``, ``>`` and ``"`` for use in HTML text and attributes."""

    return html.escape(text, quote=False).replace('"', "&quot;")


def sort_terms(terms: Iterable[Term]) -> List[Term]:
    """Order terms longest name first so longer literals win over their prefixes."""

    return sorted(terms, key=lambda term: len(term.name), reverse=True)


@lru_cache(maxsize=None)
def _compile_forms(forms: Tuple[str, ...], case_sensitive: bool) -> Optional[Pattern[str]]:
    alternation = "|".join(re.escape(form) for form in forms if form)
    if not alternation:
        return None
    flags = 0 if case_sensitive else re.IGNORECASE
    try:
        return re.compile(rf"\b(?:{alternation})\b", flags)
    except re.error as exc:
        logger.debug("Skipping unusable term pattern for %r: %s", forms, exc)
        return None


def build_term_regex(term: Term, case_sensitive: bool) -> Optional[Pattern[str]]:
    """Build the word-bounded matcher for all searchable forms of ``term``."""

    return _compile_forms(tuple(term.searchable_forms()), case_sensitive)


def render_link(matched: str, term: Term, glossary_path: str, css_class: str) -> str:
    title_attr = ""
    if term.definition is not None:
        title_attr = f' title="{html_escape(term.definition)}"'
    return (
        f'<a href="{glossary_path}#{term.anchor}"{title_attr} '
        f'class="{css_class}">{html_escape(matched)}</a>'
    )


def _link_first(
    segments: List[Segment], regex: Pattern[str], make_link: Callable[[str], str]
) -> Tuple[List[Segment], int]:
    for index, segment in enumerate(segments):
        if isinstance(segment, LinkFragment):
            continue
        found = regex.search(segment)
        if found is None:
            continue
        replacement = [
            segment[: found.start()],
            LinkFragment(make_link(found.group(0))),
            segment[found.end():],
        ]
        updated = segments[:index] + [piece for piece in replacement if piece] + segments[index + 1:]
        return updated, 1
    return segments, 0


def _link_all(
    segments: List[Segment], regex: Pattern[str], make_link: Callable[[str], str]
) -> Tuple[List[Segment], int]:
    updated: List[Segment] = []
    count = 0
    for segment in segments:
        if isinstance(segment, LinkFragment):
            updated.append(segment)
            continue
        position = 0
        for found in regex.finditer(segment):
            if found.start() > position:
                updated.append(segment[position:found.start()])
            updated.append(LinkFragment(make_link(found.group(0))))
            position = found.end()
            count += 1
        if position < len(segment):
            updated.append(segment[position:])
    return updated, count


def replace_terms_in_text(
    text: str,
    terms: Sequence[Term],
    glossary_path: str,
    config: Config,
    session: LinkSession,
) -> List[Segment]:
    """Split ``text`` into plain segments and inserted term links.

    ``terms`` are tried in order. Each term only searches the plain segments
    left by the terms before it, so the visible text of an inserted link is
    never matched again.
    """

    segments: List[Segment] = [text]
    for term in terms:
        if config.link_first_only and term.anchor in session.linked_anchors:
            continue
        regex = build_term_regex(term, config.case_sensitive)
        if regex is None:
            continue

        def make_link(matched: str, term: Term = term) -> str:
            return render_link(matched, term, glossary_path, config.css_class)

        if config.link_first_only:
            segments, count = _link_first(segments, regex, make_link)
        else:
            segments, count = _link_all(segments, regex, make_link)
        if count:
            session.linked_anchors.add(term.anchor)
            session.links_inserted += count
    return segments


def _segments_to_tokens(segments: Sequence[Segment], original: Token) -> List[Token]:
    if len(segments) == 1 and segments[0] == original.content:
        return [original]
    tokens: List[Token] = []
    for segment in segments:
        if isinstance(segment, LinkFragment):
            tokens.append(html_token(segment.html, level=original.level))
        else:
            tokens.append(text_token(segment, level=original.level))
    return tokens


def _unclosed_html_links(children: Sequence[Token]) -> Set[int]:
    """Return the ids of raw ``<a>`` openers with no ``</a>`` later in ``children``."""

    open_links: List[Token] = []
    for child in children:
        if child.type != "html_inline":
            continue
        kind, context = classify(child)
        if context is not Context.LINK:
            continue
        if kind is TokenKind.OPEN:
            open_links.append(child)
        elif open_links:
            open_links.pop()
    return {id(token) for token in open_links}


def process_tokens(
    tokens: Sequence[Token],
    terms: Sequence[Term],
    glossary_path: str,
    config: Config,
    session: LinkSession,
) -> List[Token]:
    """Rewrite eligible text tokens in ``tokens``; everything else is kept as is."""

    stack: List[Context] = [Context.NORMAL]
    result: List[Token] = []
    for token in tokens:
        if token.type == "inline" and token.children:
            depth = len(stack)
            # A bare anchor such as <a name="top"> never opens a link.
            unclosed = _unclosed_html_links(token.children)
            children: List[Token] = []
            for child in token.children:
                if id(child) in unclosed:
                    children.append(child)
                    continue
                children.extend(
                    _process_token(child, stack, terms, glossary_path, config, session)
                )
            token.children = children
            # Raw inline HTML cannot span blocks.
            del stack[depth:]
            result.append(token)
        else:
            result.extend(_process_token(token, stack, terms, glossary_path, config, session))
    return result


def _process_token(
    token: Token,
    stack: List[Context],
    terms: Sequence[Term],
    glossary_path: str,
    config: Config,
    session: LinkSession,
) -> List[Token]:
    kind, context = classify(token)
    if kind is TokenKind.OPEN:
        stack.append(context)
    elif kind is TokenKind.CLOSE:
        # Never pop the document-level frame, and only close raw HTML links
        # that were opened.
        if len(stack) > 1 and (token.type != "html_inline" or stack[-1] is Context.LINK):
            stack.pop()
    elif kind is TokenKind.TEXT and stack[-1] is Context.NORMAL:
        segments = replace_terms_in_text(token.content, terms, glossary_path, config, session)
        return _segments_to_tokens(segments, token)
    return [token]


def add_term_links(
    content: str,
    terms: Sequence[Term],
    glossary_relative_path: str,
    config: Config,
    session: Optional[LinkSession] = None,
) -> str:
    """Return ``content`` with glossary term links added.

    Content in which no term was linked is returned unchanged. Raises
    :class:`~termlink.errors.SerializationError` if the rewritten document
    cannot be rendered.
    """

    if session is None:
        session = LinkSession()
    inserted_before = session.links_inserted
    document = parse_markdown(content)
    document.tokens = process_tokens(
        document.tokens, sort_terms(terms), glossary_relative_path, config, session
    )
    if session.links_inserted == inserted_before:
        return content
    return render_markdown(document)


def calculate_relative_path(from_chapter: PathLike, to_glossary: PathLike) -> str:
    """Return the path from ``from_chapter``'s directory to ``to_glossary``.

    Purely lexical: one ``../`` per component of the chapter's parent.
    """

    depth = len(as_posix_path(from_chapter).parent.parts)
    return "../" * depth + as_posix_path(to_glossary).as_posix()


__all__ = [
    "Context",
    "TokenKind",
    "LinkSession",
    "LinkFragment",
    "classify",
    "html_escape",
    "sort_terms",
    "build_term_regex",
    "render_link",
    "replace_terms_in_text",
    "process_tokens",
    "add_term_links",
    "calculate_relative_path",
]
