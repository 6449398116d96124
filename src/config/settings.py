from pathlib import Path
from typing import List
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # API Settings
    API_VERSION: str = "0.1.0"
    API_TITLE: str = "Lingua Chat Relay API"
    API_DESCRIPTION: str = "Streaming AI tutor chat with catalog-validated navigation links"

    # LLM provider (OpenAI-compatible, OpenRouter by default)
    LLM_API_KEY: str = ""
    LLM_BASE_URL: str = "https://openrouter.ai/api/v1"
    LLM_DEFAULT_MODEL: str = ""
    LLM_SUPPORTED_MODELS: str = ""
    LLM_TEMPERATURE: float = 0.7
    LLM_MAX_TOKENS: int = 3000
    APP_URL: str = "http://localhost:3000"
    APP_NAME: str = "Lingua"

    # PostgreSQL Settings
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "lingua"
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432

    # Security
    CORS_ORIGINS: str = "*"
    AI_GLOBAL_SETTING_KEY: str = "ai.global_enabled"

    # Chat Settings
    CHAT_HISTORY_LIMIT: int = 10
    CONTEXT_MAX_BOOKS: int = 3
    CONTEXT_MAX_UNITS: int = 5
    CONTEXT_MAX_LESSONS: int = 5
    CONTEXT_WORDS_PER_LESSON: int = 20
    CONTEXT_MAX_WORDS: int = 50

    # Client (Streamlit UI)
    RELAY_URL: str = "http://localhost:8000"
    RELAY_TOKEN: str = ""

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "relay.log"

    # Paths
    PROJECT_ROOT: Path = Path(__file__).parent.parent.parent
    LOGS_DIR: Path = PROJECT_ROOT / "logs"

    @property
    def supported_models_list(self) -> List[str]:
        if not self.LLM_SUPPORTED_MODELS:
            return []
        return [x.strip() for x in self.LLM_SUPPORTED_MODELS.split(',') if x.strip()]

    @property
    def cors_origins_list(self) -> List[str]:
        if self.CORS_ORIGINS == "*":
            return ["*"]
        return [x.strip() for x in self.CORS_ORIGINS.split(',') if x.strip()]

    @property
    def default_model(self) -> str:
        """Configured default model, falling back to the first supported one."""
        if self.LLM_DEFAULT_MODEL:
            return self.LLM_DEFAULT_MODEL
        models = self.supported_models_list
        return models[0] if models else ""

    class Config:
        env_file = ".env"

settings = Settings()
