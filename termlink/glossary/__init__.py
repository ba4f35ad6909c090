"""Glossary terms and the term linker."""

from .linker import LinkSession, add_term_links, calculate_relative_path
from .service import (
    Term,
    apply_aliases,
    check_alias_conflicts,
    extract_terms,
    generate_anchor,
    glossary_html_path,
    parse_definition_lists,
)

__all__ = [
    "LinkSession",
    "add_term_links",
    "calculate_relative_path",
    "Term",
    "apply_aliases",
    "check_alias_conflicts",
    "extract_terms",
    "generate_anchor",
    "glossary_html_path",
    "parse_definition_lists",
]
