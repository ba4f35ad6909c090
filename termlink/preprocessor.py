"""Run glossary linking over a whole book."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping

from termlink.book import Book
from termlink.config import Config
from termlink.errors import SerializationError
from termlink.glossary.linker import add_term_links, calculate_relative_path, sort_terms
from termlink.glossary.service import (
    Term,
    apply_aliases,
    check_alias_conflicts,
    extract_terms,
    glossary_html_path,
)

logger = logging.getLogger(__name__)

SUPPORTED_RENDERERS = frozenset({"html"})


@dataclass
class LinkReport:
    """Outcome of one preprocessor run."""

    term_count: int = 0
    linked: List[str] = field(default_factory=list)
    unchanged: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "term_count": self.term_count,
            "linked": list(self.linked),
            "unchanged": list(self.unchanged),
            "skipped": list(self.skipped),
            "failed": dict(self.failed),
        }


class TermlinkPreprocessor:
    """mdBook preprocessor that links glossary terms throughout a book."""

    name = "termlink"

    def __init__(self, config: Config) -> None:
        self.config = config

    @classmethod
    def from_context(cls, ctx: Mapping[str, Any]) -> "TermlinkPreprocessor":
        return cls(Config.from_context(ctx))

    @staticmethod
    def supports_renderer(renderer: str) -> bool:
        return renderer in SUPPORTED_RENDERERS

    def prepare_terms(self, book: Book) -> List[Term]:
        """Extract, alias and order the glossary terms for ``book``.

        Raises :class:`~termlink.errors.GlossaryNotFoundError` or
        :class:`~termlink.errors.AliasConflictError`.
        """

        terms = extract_terms(book.iter_chapters(), self.config)
        check_alias_conflicts(terms, self.config.aliases)
        return sort_terms(apply_aliases(terms, self.config.aliases))

    def run(self, book: Book) -> LinkReport:
        """Link terms in every chapter of ``book`` in place."""

        report = LinkReport()
        terms = self.prepare_terms(book)
        report.term_count = len(terms)
        if not terms:
            logger.warning("No glossary terms found in %s", self.config.glossary_path)
            return report
        logger.info("Found %d glossary terms", len(terms))

        glossary_html = glossary_html_path(self.config.glossary_path)
        for chapter in book.iter_chapters():
            chapter_path = chapter.path
            if chapter_path is None:
                continue
            label = chapter_path.as_posix()
            if self.config.is_glossary_path(chapter_path):
                logger.debug("Skipping glossary file: %s", label)
                report.skipped.append(label)
                continue
            if self.config.should_exclude(chapter_path):
                logger.debug("Skipping excluded page: %s", label)
                report.skipped.append(label)
                continue

            relative_glossary = calculate_relative_path(chapter_path, glossary_html)
            try:
                new_content = add_term_links(
                    chapter.content, terms, relative_glossary, self.config
                )
            except SerializationError as exc:
                logger.error("Failed to process chapter %s: %s", label, exc)
                report.failed[label] = str(exc)
                continue
            if new_content == chapter.content:
                report.unchanged.append(label)
            else:
                chapter.content = new_content
                report.linked.append(label)
        return report


__all__ = ["TermlinkPreprocessor", "LinkReport", "SUPPORTED_RENDERERS"]
