from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from scribble.constants import (
    CANDIDATE_LIMIT,
    EMBEDDING_DIM,
    LEXICAL_WEIGHT,
    RETRIEVAL_TIMEOUT,
    RRF_K,
    VECTOR_WEIGHT,
)
from scribble.embedder import EmbeddingConfig

SCRIBBLE_DIR = Path.home() / ".scribble"

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


class Config(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SCRIBBLE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        validate_assignment=True,
        populate_by_name=True,
    )

    # API keys: standard env vars, picked up by litellm
    openai_api_key: str | None = Field(default=None, alias="OPENAI_API_KEY")
    gemini_api_key: str | None = Field(default=None, alias="GEMINI_API_KEY")

    # Unset means no embedding backend; search falls back to lexical ranking
    embedding_model: str | None = None
    embedding_dim: int = EMBEDDING_DIM

    # Unset disables conversational search
    chat_model: str | None = None

    db_path: Path | None = None

    # Ranking knobs
    rrf_k: int = RRF_K
    lexical_weight: float = LEXICAL_WEIGHT
    vector_weight: float = VECTOR_WEIGHT
    candidate_limit: int = CANDIDATE_LIMIT
    retrieval_timeout: float = RETRIEVAL_TIMEOUT

    log_level: str = "INFO"

    @field_validator("rrf_k", "candidate_limit", "embedding_dim")
    @classmethod
    def _validate_positive_int(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"must be >= 1, got {v}")
        return v

    @field_validator("lexical_weight", "vector_weight")
    @classmethod
    def _validate_weight(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"weight must be non-negative, got {v}")
        return v

    @field_validator("retrieval_timeout")
    @classmethod
    def _validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"retrieval_timeout must be positive, got {v}")
        return v

    @field_validator("embedding_model", "chat_model", mode="before")
    @classmethod
    def _normalize_model(cls, v: str | None) -> str | None:
        if v in ("", "none"):
            return None
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def _validate_log_level(cls, v: str) -> str:
        level = str(v).upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level: {v}. Must be one of: {', '.join(sorted(_LOG_LEVELS))}")
        return level

    @property
    def embedding(self) -> EmbeddingConfig:
        return EmbeddingConfig(model=self.embedding_model, dim=self.embedding_dim)

    @property
    def search_db_path(self) -> Path:
        return self.db_path or SCRIBBLE_DIR / "search.db"


def get_config() -> Config:
    return Config()
