from typing import List, Optional
from src.core.models.catalog import Book, Lesson, Unit, VocabularyWord
from src.core.services.db_service import DatabaseService

class CatalogService:
    """Read-only access to the book/unit/lesson catalog.

    Title lookups are case-insensitive exact matches; when several rows share
    a title the lowest id wins.
    """

    def __init__(self, db_service: DatabaseService):
        self.db_service = db_service

    async def get_book(self, book_id: int) -> Optional[Book]:
        row = await self.db_service.fetch_one(
            "SELECT id, title, description FROM books WHERE id = %s",
            (book_id,)
        )
        return Book(**row) if row else None

    async def get_unit(self, unit_id: int) -> Optional[Unit]:
        row = await self.db_service.fetch_one(
            "SELECT id, title, book_id FROM units WHERE id = %s",
            (unit_id,)
        )
        return Unit(**row) if row else None

    async def get_lesson(self, lesson_id: int) -> Optional[Lesson]:
        row = await self.db_service.fetch_one(
            "SELECT id, title, type, unit_id FROM lessons WHERE id = %s",
            (lesson_id,)
        )
        return Lesson(**row) if row else None

    async def find_book_by_title(self, title: str) -> Optional[Book]:
        row = await self.db_service.fetch_one(
            "SELECT id, title, description FROM books WHERE lower(title) = lower(%s) ORDER BY id LIMIT 1",
            (title,)
        )
        return Book(**row) if row else None

    async def find_unit_by_title(self, title: str) -> Optional[Unit]:
        row = await self.db_service.fetch_one(
            "SELECT id, title, book_id FROM units WHERE lower(title) = lower(%s) ORDER BY id LIMIT 1",
            (title,)
        )
        return Unit(**row) if row else None

    async def find_lesson_by_title(self, title: str) -> Optional[Lesson]:
        row = await self.db_service.fetch_one(
            "SELECT id, title, type, unit_id FROM lessons WHERE lower(title) = lower(%s) ORDER BY id LIMIT 1",
            (title,)
        )
        return Lesson(**row) if row else None

    async def list_books(self, limit: int) -> List[Book]:
        rows = await self.db_service.fetch_all(
            "SELECT id, title, description FROM books ORDER BY id LIMIT %s",
            (limit,)
        )
        return [Book(**row) for row in rows]

    async def list_units(self, book_id: int, limit: int) -> List[Unit]:
        rows = await self.db_service.fetch_all(
            'SELECT id, title, book_id FROM units WHERE book_id = %s ORDER BY "order", id LIMIT %s',
            (book_id, limit)
        )
        return [Unit(**row) for row in rows]

    async def list_lessons(self, unit_id: int, limit: int) -> List[Lesson]:
        rows = await self.db_service.fetch_all(
            'SELECT id, title, type, unit_id FROM lessons WHERE unit_id = %s ORDER BY "order", id LIMIT %s',
            (unit_id, limit)
        )
        return [Lesson(**row) for row in rows]

    async def list_vocabulary(self, lesson_id: int, limit: int) -> List[VocabularyWord]:
        rows = await self.db_service.fetch_all(
            "SELECT id, lesson_id, arabic, english FROM vocabulary_words WHERE lesson_id = %s ORDER BY id LIMIT %s",
            (lesson_id, limit)
        )
        return [VocabularyWord(**row) for row in rows]

    async def count_vocabulary(self, lesson_id: int) -> int:
        row = await self.db_service.fetch_one(
            "SELECT count(*) AS total FROM vocabulary_words WHERE lesson_id = %s",
            (lesson_id,)
        )
        return row["total"] if row else 0
