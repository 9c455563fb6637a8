"""Application configuration using Pydantic Settings.

All configuration is loaded from environment variables.
No secrets are hardcoded.
"""

from enum import Enum
from functools import lru_cache

from pydantic import Field, SecretStr
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from alertsearch.exceptions import ConfigurationError


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class LLMSettings(BaseSettings):
    """Summarization LLM configuration.

    Any OpenAI-compatible chat completions endpoint works.
    """

    model_config = SettingsConfigDict(env_prefix="LLM_")

    base_url: str = Field(
        default="http://localhost:11434/v1",
        description="LLM API base URL (Ollama default)",
    )
    model: str = Field(
        default="llama3:8b",
        description="Model name to use for summaries",
    )
    api_key: SecretStr = Field(
        default=SecretStr("not-required"),
        description="API key (not required for Ollama)",
    )
    timeout: float = Field(
        default=60.0,
        description="Request timeout in seconds",
    )
    max_tokens: int = Field(
        default=300,
        description="Maximum tokens in a summary",
    )
    temperature: float = Field(
        default=0.1,
        description="Sampling temperature (lower = more deterministic)",
    )


class EmbeddingSettings(BaseSettings):
    """Embedding service configuration."""

    model_config = SettingsConfigDict(env_prefix="EMBEDDING_")

    base_url: str = Field(
        default="http://localhost:8080",
        description="Embedding service base URL",
    )
    model: str = Field(
        default="sentence-transformers/all-MiniLM-L6-v2",
        description="Embedding model name",
    )
    api_key: SecretStr | None = Field(
        default=None,
        description="API key (optional for local servers)",
    )
    batch_size: int = Field(
        default=32,
        description="Batch size for embedding requests",
    )
    timeout: float = Field(
        default=30.0,
        description="Request timeout in seconds",
    )


class GeocodingSettings(BaseSettings):
    """Geocoding service configuration."""

    model_config = SettingsConfigDict(env_prefix="GEOCODING_")

    base_url: str = Field(
        default="https://nominatim.openstreetmap.org",
        description="Nominatim-compatible geocoding base URL",
    )
    user_agent: str = Field(
        default="alert-search/0.1",
        description="User-Agent sent with every geocoding request",
    )
    timeout: float = Field(
        default=10.0,
        description="Request timeout in seconds",
    )


class QdrantSettings(BaseSettings):
    """Qdrant alert store configuration."""

    model_config = SettingsConfigDict(env_prefix="QDRANT_")

    url: str = Field(
        default="http://localhost:6333",
        description="Qdrant server URL",
    )
    api_key: SecretStr | None = Field(
        default=None,
        description="Qdrant API key (optional for local)",
    )
    collection_name: str = Field(
        default="alerts",
        description="Collection holding alert payloads",
    )


class RetrievalSettings(BaseSettings):
    """Ranking defaults for alert retrieval."""

    model_config = SettingsConfigDict(env_prefix="RETRIEVAL_")

    similarity_floor: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Minimum similarity for natural-language queries",
    )
    listing_similarity_floor: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Minimum similarity for generic listings",
    )
    max_results: int = Field(
        default=10,
        ge=1,
        description="Maximum ranked alerts returned",
    )
    relevance_weight: float = Field(
        default=0.7,
        ge=0.0,
        description="Weight of the similarity rank in the combined score",
    )
    distance_weight: float = Field(
        default=0.3,
        ge=0.0,
        description="Weight of the distance rank in the combined score",
    )
    search_radius_km: float = Field(
        default=10.0,
        gt=0.0,
        description="Default radius for nearby alert lookups",
    )
    embedding_concurrency: int = Field(
        default=8,
        ge=1,
        description="Concurrent alert embedding computations per request",
    )


class Settings(BaseSettings):
    """Main application settings.

    Aggregates all configuration sections.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application settings
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )

    # API settings
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host",
    )
    api_port: int = Field(
        default=8000,
        description="API server port",
    )

    # Nested settings
    llm: LLMSettings = Field(default_factory=LLMSettings)
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    geocoding: GeocodingSettings = Field(default_factory=GeocodingSettings)
    qdrant: QdrantSettings = Field(default_factory=QdrantSettings)
    retrieval: RetrievalSettings = Field(default_factory=RetrievalSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ConfigurationError: If the environment holds invalid values.
    """
    try:
        return Settings()
    except PydanticValidationError as e:
        raise ConfigurationError(
            f"Invalid configuration: {e.error_count()} error(s)",
            details={
                "errors": [
                    {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
                    for err in e.errors()
                ]
            },
        ) from e
