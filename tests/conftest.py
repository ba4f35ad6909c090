from __future__ import annotations

import pytest
from hypothesis import HealthCheck, settings

from termlink.book import Book

settings.register_profile(
    "ci",
    suppress_health_check=[HealthCheck.function_scoped_fixture],
)
settings.load_profile("ci")


GLOSSARY_MD = """\
# Glossary

API (Application Programming Interface)
: A set of protocols and tools for building software applications.

REST
: Representational State Transfer.

XPT
: SAS Transport file format.
"""


@pytest.fixture
def glossary_md() -> str:
    return GLOSSARY_MD


@pytest.fixture
def sample_book() -> Book:
    return Book.from_chapters(
        [
            ("reference/glossary.md", GLOSSARY_MD),
            ("chapter1.md", "# REST basics\n\nThe API speaks REST. Call the API again.\n"),
            ("nested/chapter2.md", "Files are stored as XPT.\n"),
            ("excluded.md", "This page mentions the API and REST.\n"),
        ]
    )
