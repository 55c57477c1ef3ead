from typing import Optional, Tuple
from pydantic import computed_field, ConfigDict
from pydantic_settings import BaseSettings


class ProjectSettings(BaseSettings):

    # === Parsing services ===
    PARSER_TYPE: str = "docling"
    PARSER_FALLBACK_TO_UNSTRUCTURED: bool = True
    DOCLING_API_URL: str = "http://localhost:8080"
    DOCLING_API_KEY: str = ""
    DOCLING_ENABLE_OCR: bool = True
    DOCLING_OCR_LANGUAGE: str = "auto"
    UNSTRUCTURED_API_URL: str = "http://localhost:8001"
    UNSTRUCTURED_API_KEY: str = ""
    PARSE_TIMEOUT_SECONDS: float = 30.0
    SUPPORTED_DOCUMENT_FORMATS: Tuple[str, ...] = ("pdf", "docx", "doc")

    # === Limits ===
    MAX_FILE_SIZE_BYTES: int = 10 * 1024 * 1024  # 10MB

    # === Embeddings ===
    EMBEDDING_PROVIDER: str = "openai"
    EMBEDDING_MODEL: str = "text-embedding-3-small"
    EMBEDDING_CHUNK_SIZE: int = 512
    EMBEDDING_CHUNK_OVERLAP: int = 50
    EMBEDDING_DIMENSIONS: int = 1536
    EMBEDDING_BATCH_SIZE: int = 64
    EMBEDDING_TIMEOUT_SECONDS: float = 30.0
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_BASE_URL: Optional[str] = None

    # === Vector store ===
    VECTOR_STORE_TYPE: str = "pgvector"
    VECTOR_STORE_TABLE_NAME: str = "document_embeddings"
    QDRANT_URL: str = "http://localhost:6333"
    QDRANT_API_KEY: Optional[str] = None
    QDRANT_COLLECTION: str = "document_embeddings"

    # === Database ===
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_USER: str = "postgres"
    DB_PASS: str = "postgres"
    DB_NAME: str = "docindex"

    # === Retry policy ===
    RETRY_MAX_RETRIES: int = 3
    RETRY_INITIAL_DELAY: float = 1.0
    RETRY_BACKOFF_MULTIPLIER: float = 2.0
    RETRY_MAX_DELAY: float = 30.0

    # === Language ===
    DEFAULT_LANGUAGE: str = 'en'
    SUPPORTED_LANGUAGES: Tuple[str, ...] = ('en',)

    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    LOG_TO_FILE: bool = False

    @computed_field
    @property
    def DATABASE_URL(self) -> str:
        return f"postgresql+asyncpg://{self.DB_USER}:{self.DB_PASS}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    model_config = ConfigDict(
            env_file=".env",
            env_file_encoding="utf-8",
            extra="ignore",  # ignore unknown fields instead of raising an error
            )


settings = ProjectSettings()
