import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from src.core.models.catalog import Book, Lesson, Unit, VocabularyWord


class FakeCatalog:
    """In-memory stand-in for CatalogService."""

    def __init__(self, books=(), units=(), lessons=(), words=()):
        self.books = {book.id: book for book in books}
        self.units = {unit.id: unit for unit in units}
        self.lessons = {lesson.id: lesson for lesson in lessons}
        self.words = list(words)
        self.calls = []

    async def get_book(self, book_id):
        self.calls.append(("book", book_id))
        return self.books.get(book_id)

    async def get_unit(self, unit_id):
        self.calls.append(("unit", unit_id))
        return self.units.get(unit_id)

    async def get_lesson(self, lesson_id):
        self.calls.append(("lesson", lesson_id))
        return self.lessons.get(lesson_id)

    @staticmethod
    def _by_title(entries, title):
        matches = sorted(
            (entry for entry in entries.values() if entry.title.lower() == title.lower()),
            key=lambda entry: entry.id,
        )
        return matches[0] if matches else None

    async def find_book_by_title(self, title):
        return self._by_title(self.books, title)

    async def find_unit_by_title(self, title):
        return self._by_title(self.units, title)

    async def find_lesson_by_title(self, title):
        return self._by_title(self.lessons, title)

    async def list_books(self, limit):
        return sorted(self.books.values(), key=lambda book: book.id)[:limit]

    async def list_units(self, book_id, limit):
        units = [unit for unit in self.units.values() if unit.book_id == book_id]
        return sorted(units, key=lambda unit: unit.id)[:limit]

    async def list_lessons(self, unit_id, limit):
        lessons = [lesson for lesson in self.lessons.values() if lesson.unit_id == unit_id]
        return sorted(lessons, key=lambda lesson: lesson.id)[:limit]

    async def list_vocabulary(self, lesson_id, limit):
        return [word for word in self.words if word.lesson_id == lesson_id][:limit]

    async def count_vocabulary(self, lesson_id):
        return len([word for word in self.words if word.lesson_id == lesson_id])


class FakePromptBuilder:
    async def build_system_prompt(self):
        return "You are a test tutor."


@pytest.fixture
def anyio_backend():
    """Force anyio to use asyncio backend for async tests."""
    return "asyncio"


@pytest.fixture
def catalog():
    return FakeCatalog(
        books=[Book(id=1, title="Arabic Basics")],
        units=[
            Unit(id=5, title="Unit 1", book_id=1),
            Unit(id=6, title="Greetings", book_id=1),
        ],
        lessons=[
            Lesson(id=10, title="Family Words", type="vocabulary", unit_id=5),
            Lesson(id=11, title="At the Market", type="reading", unit_id=5),
            Lesson(id=12, title="Daily Reading", type="reading", unit_id=6),
            Lesson(id=13, title="Meeting Friends", type="conversation", unit_id=6),
        ],
        words=[
            VocabularyWord(id=1, lesson_id=10, arabic="أب", english="father"),
            VocabularyWord(id=2, lesson_id=10, arabic="أم", english="mother"),
            VocabularyWord(id=3, lesson_id=10, arabic="أخ", english="brother"),
        ],
    )


@pytest.fixture
def prompt_builder():
    return FakePromptBuilder()
