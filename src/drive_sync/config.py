"""Shared configuration loaded from environment / .env file."""

from __future__ import annotations

from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application-wide settings, populated from env vars or .env file."""

    # Google Cloud / Drive
    gcp_project_id: str = ""
    gcp_region: str = "us-central1"
    google_drive_folder_id: str = Field(default="", description="Root folder of the corpus")
    drive_service_account_key_path: str = Field(
        default="",
        description="Path to a service-account JSON key. Empty = application default credentials.",
    )
    drive_service_account_key: str = Field(
        default="",
        description="Service-account JSON key content (takes precedence over the path).",
    )
    drive_requests_per_second: float | None = None
    listing_page_size: int = Field(default=100, ge=1, le=1000)

    # Embedding
    embedding_provider: Literal["vertexai", "huggingface"] = "vertexai"
    embedding_model: str = "text-embedding-004"
    embedding_dimension: int | None = Field(
        default=None,
        description="Declared output dimension of the model; checked on every batch when set.",
    )
    embed_batch_size: int = Field(default=200, ge=1)
    embed_max_batch_bytes: int | None = Field(default=None, ge=1)
    embed_requests_per_second: float | None = None

    # Vector index
    index_backend: Literal["vertexai", "chroma", "memory"] = "vertexai"
    vertex_ai_index_id: str = ""
    chroma_host: str = "localhost"
    chroma_port: int = 8000
    chroma_collection: str = "drive_sync"
    upsert_batch_size: int = Field(default=100, ge=1)
    upsert_max_attempts: int = Field(default=3, ge=1)
    upsert_backoff_seconds: float = Field(default=1.0, ge=0)
    upsert_backoff_max_seconds: float = Field(default=30.0, ge=0)
    upsert_requests_per_second: float | None = None

    # Chunking (characters)
    chunk_size: int = Field(default=1000, ge=1)
    chunk_overlap: int = Field(default=150, ge=0)

    # Run behaviour
    extract_workers: int = Field(default=4, ge=1)
    batch_concurrency: int = Field(default=1, ge=1)
    record_unsupported: bool = Field(
        default=True,
        description=(
            "List every non-trashed file and report unsupported ones as skipped. "
            "When false the listing query is narrowed to supported types."
        ),
    )
    manifest_path: str = Field(default="", description="JSON chunk-count manifest for stale-id pruning")
    prune_stale_chunks: bool = False
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @model_validator(mode="after")
    def _check_chunking(self) -> Settings:
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError(
                f"chunk_overlap ({self.chunk_overlap}) must be < chunk_size ({self.chunk_size})"
            )
        return self

    def missing_for_sync(self) -> list[str]:
        """Return the names of required settings that are empty for the chosen backends."""
        required = ["google_drive_folder_id"]
        if self.embedding_provider == "vertexai" or self.index_backend == "vertexai":
            required += ["gcp_project_id", "gcp_region"]
        if self.index_backend == "vertexai":
            required.append("vertex_ai_index_id")
        return [name for name in required if not getattr(self, name)]


# Singleton, import `settings` wherever needed.
settings = Settings()
