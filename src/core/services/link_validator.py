import re
from typing import Any, Iterable, List, Optional, Protocol
from src.core.models.catalog import Book, Lesson, LESSON_TYPES, Unit, VOCABULARY_ONLY_MODES
from src.core.models.chat import NavigationLink
from src.utils.logging import logger

LESSON_PATH = re.compile(r"^/lessons/(\d+)/(vocabulary|reading|conversation|practice|test)$")
UNIT_PATH = re.compile(r"^/units/(\d+)$")
BOOK_PATH = re.compile(r"^/books/(\d+)$")

class CatalogLookup(Protocol):
    """The catalog operations link validation depends on."""

    async def get_book(self, book_id: int) -> Optional[Book]:
        ...

    async def get_unit(self, unit_id: int) -> Optional[Unit]:
        ...

    async def get_lesson(self, lesson_id: int) -> Optional[Lesson]:
        ...

    async def find_book_by_title(self, title: str) -> Optional[Book]:
        ...

    async def find_unit_by_title(self, title: str) -> Optional[Unit]:
        ...

    async def find_lesson_by_title(self, title: str) -> Optional[Lesson]:
        ...

def lesson_url(lesson: Lesson, mode: str) -> Optional[str]:
    """URL of ``lesson`` for a requested mode, or None if no valid page exists.

    Practice and test pages exist only for vocabulary lessons; every other
    mode is pinned to the lesson's own type.
    """
    if mode in VOCABULARY_ONLY_MODES:
        return f"/lessons/{lesson.id}/{mode}" if lesson.is_vocabulary else None
    if lesson.type not in LESSON_TYPES:
        return None
    return f"/lessons/{lesson.id}/{lesson.type}"

class LinkValidator:
    """Rewrites or drops model-suggested links so each one resolves.

    Candidates are checked one at a time, in order.  Invalid ones are
    dropped silently; a bad link never fails the reply.
    """

    def __init__(self, catalog: CatalogLookup):
        self.catalog = catalog

    async def validate(self, candidates: Iterable[Any]) -> List[NavigationLink]:
        validated = []
        for candidate in candidates:
            link = await self.validate_link(candidate)
            if link is not None:
                validated.append(link)
            else:
                logger.info(f"Dropped navigation link: {candidate!r}")
        return validated

    async def validate_link(self, candidate: Any) -> Optional[NavigationLink]:
        if not isinstance(candidate, dict):
            return None
        label = candidate.get("label")
        url = candidate.get("url")
        if not isinstance(label, str) or not isinstance(url, str):
            return None
        label, url = label.strip(), url.strip()
        if not label or not url or not url.startswith("/"):
            return None

        lesson_match = LESSON_PATH.match(url)
        unit_match = UNIT_PATH.match(url)
        book_match = BOOK_PATH.match(url)
        if lesson_match:
            resolved = await self._resolve_lesson(int(lesson_match.group(1)), lesson_match.group(2), label)
        elif unit_match:
            resolved = await self._resolve_unit(int(unit_match.group(1)), label)
        elif book_match:
            resolved = await self._resolve_book(int(book_match.group(1)), label)
        else:
            resolved = url

        if resolved is None:
            return None
        return NavigationLink(label=label, url=resolved)

    async def _resolve_lesson(self, lesson_id: int, mode: str, label: str) -> Optional[str]:
        lesson = await self.catalog.get_lesson(lesson_id)
        if lesson is None:
            lesson = await self.catalog.find_lesson_by_title(label)
            if lesson is None:
                return None
        return lesson_url(lesson, mode)

    async def _resolve_unit(self, unit_id: int, label: str) -> Optional[str]:
        unit = await self.catalog.get_unit(unit_id)
        if unit is None:
            unit = await self.catalog.find_unit_by_title(label)
        return f"/units/{unit.id}" if unit else None

    async def _resolve_book(self, book_id: int, label: str) -> Optional[str]:
        book = await self.catalog.get_book(book_id)
        if book is None:
            book = await self.catalog.find_book_by_title(label)
        return f"/books/{book.id}" if book else None
