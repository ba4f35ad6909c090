"""mdBook book model.

mdBook hands preprocessors a ``[context, book]`` JSON pair on stdin and reads
the processed book back from stdout. :class:`Book` wraps the raw book mapping
so that every field this package does not understand is written back
unchanged.
"""

from __future__ import annotations

import json
from pathlib import Path, PurePosixPath
from typing import IO, Any, Dict, Iterator, List, MutableMapping, Optional, Tuple

from termlink.config import as_posix_path
from termlink.errors import BookFormatError

# mdBook 0.4 calls the top-level list "sections", 0.5 calls it "items".
_ITEM_KEYS = ("items", "sections")


class Chapter:
    """View over one chapter mapping inside a book."""

    def __init__(self, data: MutableMapping[str, Any]) -> None:
        self._data = data

    @property
    def name(self) -> str:
        return str(self._data.get("name", ""))

    @property
    def content(self) -> str:
        return str(self._data.get("content") or "")

    @content.setter
    def content(self, value: str) -> None:
        self._data["content"] = value

    @property
    def path(self) -> Optional[PurePosixPath]:
        """Chapter path relative to the book source; ``None`` for drafts."""

        raw = self._data.get("path")
        if not raw:
            return None
        return as_posix_path(raw)

    @property
    def sub_items(self) -> List[Any]:
        items = self._data.get("sub_items")
        return items if isinstance(items, list) else []

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"Chapter(name={self.name!r}, path={self.path!r})"


class Book:
    """An mdBook book: an ordered tree of chapters, separators and part titles."""

    def __init__(self, data: MutableMapping[str, Any]) -> None:
        if not isinstance(data, MutableMapping):
            raise BookFormatError("book must be a JSON object")
        self._items_key = next((key for key in _ITEM_KEYS if key in data), None)
        if self._items_key is None or not isinstance(data[self._items_key], list):
            raise BookFormatError("book has no 'sections' or 'items' list")
        self._data = data

    @classmethod
    def from_chapters(cls, chapters: List[Tuple[str, str]]) -> "Book":
        """Build a flat book from ``(path, content)`` pairs."""

        items = [
            {
                "Chapter": {
                    "name": PurePosixPath(path).stem,
                    "content": content,
                    "number": None,
                    "sub_items": [],
                    "path": path,
                    "source_path": path,
                    "parent_names": [],
                }
            }
            for path, content in chapters
        ]
        return cls({"sections": items, "__non_exhaustive": None})

    @classmethod
    def from_directory(cls, root: Path) -> "Book":
        """Build a book from every ``.md`` file below ``root``, sorted by path."""

        chapters = [
            (path.relative_to(root).as_posix(), path.read_text(encoding="utf-8"))
            for path in sorted(root.rglob("*.md"))
            if path.is_file()
        ]
        return cls.from_chapters(chapters)

    def iter_chapters(self) -> Iterator[Chapter]:
        """Yield every chapter in document order, depth first."""

        pending: List[Any] = list(reversed(self._data[self._items_key]))
        while pending:
            item = pending.pop()
            if not isinstance(item, MutableMapping) or "Chapter" not in item:
                continue
            chapter = Chapter(item["Chapter"])
            yield chapter
            pending.extend(reversed(chapter.sub_items))

    def to_dict(self) -> MutableMapping[str, Any]:
        return self._data


def parse_input(stream: IO[str]) -> Tuple[Dict[str, Any], Book]:
    """Read mdBook's ``[context, book]`` preprocessor input from ``stream``."""

    try:
        payload = json.load(stream)
    except json.JSONDecodeError as exc:
        raise BookFormatError(f"Unable to parse preprocessor input: {exc}") from exc
    if not isinstance(payload, list) or len(payload) != 2:
        raise BookFormatError("preprocessor input must be a [context, book] pair")
    ctx, book = payload
    if not isinstance(ctx, dict):
        raise BookFormatError("preprocessor context must be a JSON object")
    return ctx, Book(book)


def write_output(book: Book, stream: IO[str]) -> None:
    json.dump(book.to_dict(), stream, ensure_ascii=False)


__all__ = ["Book", "Chapter", "parse_input", "write_output"]
