from typing import Optional
from pydantic import BaseModel

# Lesson page modes reachable under /lessons/{id}/{mode}
LESSON_TYPES = ("vocabulary", "reading", "conversation")
VOCABULARY_ONLY_MODES = ("practice", "test")
LESSON_MODES = LESSON_TYPES + VOCABULARY_ONLY_MODES

class Book(BaseModel):
    id: int
    title: str
    description: Optional[str] = None

class Unit(BaseModel):
    id: int
    title: str
    book_id: Optional[int] = None

class Lesson(BaseModel):
    id: int
    title: str
    type: str
    unit_id: Optional[int] = None

    @property
    def is_vocabulary(self) -> bool:
        return self.type == "vocabulary"

class VocabularyWord(BaseModel):
    id: int
    lesson_id: int
    arabic: str
    english: str
