"""Markdown parsing and serialization.

Documents are parsed into the markdown-it-py token stream and rendered back
with mdformat's markdown renderer, so a token that is not touched renders back
to equivalent markdown. The deflist, footnote and tables mdformat plugins are
enabled on both sides, matching the extensions mdBook renders.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Dict, List

import mdformat_deflist
import mdformat_footnote
import mdformat_tables
from markdown_it import MarkdownIt
from markdown_it.token import Token
from mdformat.renderer import MDRenderer

from termlink.errors import SerializationError

_PARSER_EXTENSIONS = (mdformat_deflist, mdformat_footnote, mdformat_tables)


@dataclass
class MarkdownDocument:
    """A parsed markdown document: token stream plus parser environment."""

    source: str
    tokens: List[Token]
    env: Dict[str, Any] = field(default_factory=dict)


@lru_cache(maxsize=1)
def get_parser() -> MarkdownIt:
    """Return a cached parser wired to mdformat's markdown renderer."""

    mdit = MarkdownIt(renderer_cls=MDRenderer)
    mdit.options["mdformat"] = {}
    # Keep reference labels on link and image tokens so they render back as
    # reference links instead of being inlined.
    mdit.options["store_labels"] = True
    mdit.options["parser_extension"] = []
    for plugin in _PARSER_EXTENSIONS:
        mdit.options["parser_extension"].append(plugin)
        plugin.update_mdit(mdit)
    return mdit


def parse_markdown(text: str) -> MarkdownDocument:
    """Parse ``text`` into a :class:`MarkdownDocument`."""

    env: Dict[str, Any] = {}
    tokens = get_parser().parse(text, env)
    return MarkdownDocument(source=text, tokens=tokens, env=env)


def render_markdown(document: MarkdownDocument) -> str:
    """Serialize ``document`` back to markdown text.

    Raises :class:`SerializationError` when the token stream cannot be
    rendered.
    """

    mdit = get_parser()
    try:
        return mdit.renderer.render(document.tokens, mdit.options, document.env)
    except Exception as exc:
        raise SerializationError(f"Failed to render markdown: {exc}") from exc


def text_token(content: str, *, level: int = 0) -> Token:
    """Build a plain text token."""

    return Token("text", "", 0, content=content, level=level)


def html_token(content: str, *, level: int = 0) -> Token:
    """Build an inline HTML token rendered verbatim by the serializer."""

    return Token("html_inline", "", 0, content=content, level=level)


__all__ = [
    "MarkdownDocument",
    "get_parser",
    "parse_markdown",
    "render_markdown",
    "text_token",
    "html_token",
]
