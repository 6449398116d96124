from typing import List
from src.config.settings import settings
from src.core.services.catalog import CatalogService

SYSTEM_PROMPT_TEMPLATE = """You are a helpful AI assistant for an Arabic learning platform. Help users learn Arabic vocabulary, answer questions, and guide their learning journey.

{learning_context}

{vocabulary_context}

You can help users with:
- Answering questions about Arabic vocabulary, grammar, or concepts
- Explaining words and their meanings
- Suggesting what to study next
- Providing learning tips and practice suggestions
- Helping navigate the learning content

IMPORTANT: When suggesting lessons, practice, or helping users navigate, ALWAYS include navigation links in your response.

Respond in JSON format:
{{
  "message": "Your conversational response here (markdown supported)",
  "navigationLinks": [
    {{"label": "Display text", "url": "/lessons/123/vocabulary"}}
  ]
}}

For navigation links, use these URL patterns with the ACTUAL IDs from the content above:
- Books: /books/{{bookId}}
- Units: /units/{{unitId}}
- Lessons:
  - /lessons/{{lessonId}}/vocabulary (vocabulary lessons)
  - /lessons/{{lessonId}}/reading (reading lessons)
  - /lessons/{{lessonId}}/conversation (conversation lessons)
  - /lessons/{{lessonId}}/practice (practice mode, only for vocabulary lessons)
  - /lessons/{{lessonId}}/test (test mode, only for vocabulary lessons)

CRITICAL: Always use the exact IDs shown in the content structure above. Do NOT make up IDs. Use the lesson, unit or book title as the link label.

Respond naturally and conversationally in the message field. Be helpful, encouraging, and educational."""

class PromptBuilder:
    """Builds the system prompt describing the catalog the model may link to."""

    def __init__(self, catalog: CatalogService, cfg=settings):
        self.catalog = catalog
        self._settings = cfg

    async def build_system_prompt(self) -> str:
        learning_context, words = await self._learning_context()
        return SYSTEM_PROMPT_TEMPLATE.format(
            learning_context=learning_context,
            vocabulary_context=self._vocabulary_context(words),
        )

    async def _learning_context(self):
        cfg = self._settings
        lines = ["Available learning content:"]
        words: List[str] = []
        for book in await self.catalog.list_books(cfg.CONTEXT_MAX_BOOKS):
            description = f" - {book.description}" if book.description else ""
            lines.append(f'Book ID {book.id}: "{book.title}"{description}')
            for unit in await self.catalog.list_units(book.id, cfg.CONTEXT_MAX_UNITS):
                lines.append(f'  Unit ID {unit.id}: "{unit.title}"')
                for lesson in await self.catalog.list_lessons(unit.id, cfg.CONTEXT_MAX_LESSONS):
                    lines.append(f'    Lesson ID {lesson.id}: "{lesson.title}" (type: {lesson.type})')
                    if not lesson.is_vocabulary:
                        continue
                    total = await self.catalog.count_vocabulary(lesson.id)
                    lines.append(f"      {total} words")
                    for word in await self.catalog.list_vocabulary(lesson.id, cfg.CONTEXT_WORDS_PER_LESSON):
                        words.append(f'"{word.arabic}" = "{word.english}" (Lesson: {lesson.title})')
        return "\n".join(lines), words

    def _vocabulary_context(self, words: List[str]) -> str:
        if not words:
            return "No vocabulary words available yet."
        sample = words[:self._settings.CONTEXT_MAX_WORDS]
        return "Sample vocabulary words:\n" + "\n".join(
            f"{i}. {word}" for i, word in enumerate(sample, 1)
        )
