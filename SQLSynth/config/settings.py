# config/settings.py
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Generation service (Ollama)
    OLLAMA_URL: str = "http://localhost:11434"
    OLLAMA_MODEL: str = "qwen3:1.7b"
    OLLAMA_TIMEOUT: float = 600.0  # local inference can be slow
    OLLAMA_NUM_PREDICT: int = 512
    GENERATION_MAX_ATTEMPTS: int = 3
    GENERATION_BACKOFF_BASE: float = 2.0

    # Qdrant
    QDRANT_URL: str = "http://localhost:6333"
    QDRANT_API_KEY: str | None = None
    QDRANT_COLLECTION: str = "my_sql_docs"
    QDRANT_SEARCH_TOP: int = 1
    QDRANT_TIMEOUT: float = 30.0
    EMBEDDING_DIM: int = 384

    # Request limits and parsing
    MAX_QUESTION_LENGTH: int = 10000
    SCHEMA_CACHE_SIZE: int = 100
    DEFAULT_TABLE_NAME: str = "dataset"
    FALLBACK_SCHEMA: str | None = None

    # SQL output policy
    SQL_DIALECT: str = "Spark SQL"
    SQL_POLICY: Literal["permissive", "select_only"] = "permissive"
    SQL_EXTRA_FORBIDDEN: str = ""  # comma separated, e.g. "UNION,MERGE"

    # Source database for pipelines/describe_schema.py
    TARGET_DB_URL: str = "sqlite:///./metadata.db"

    LOG_LEVEL: str = "INFO"

settings = Settings()
