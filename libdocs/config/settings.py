"""Application settings loaded from environment variables via pydantic-settings.

Two sources, in priority order:

  1. Environment variables (e.g. ``GITHUB_TOKEN=ghp_...``), always win.
  2. A ``.env`` file in the working directory, for local development.

Field ``github_token`` maps to env var ``GITHUB_TOKEN`` and so on.  Empty
strings mean "not configured"; the composition root in ``libdocs.main``
skips optional collaborators whose keys are empty.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """libdocs application settings."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # === Storage ===
    database_path: str = "data/libdocs.db"

    # === GitHub sources ===
    github_token: str = ""
    github_api_base_url: str = "https://api.github.com"
    github_raw_base_url: str = "https://raw.githubusercontent.com"
    github_archive_base_url: str = "https://github.com"
    http_timeout_seconds: float = 30.0
    # Bare version refs ("18.2.0") are requested as "<prefix><ref>" tarballs.
    archive_tag_prefix: str = "v"
    archive_max_file_bytes: int = 2_000_000

    # === Chunking ===
    chunk_max_chars: int = 1000
    chunk_overlap_chars: int = 200

    # === Embeddings ===
    # "openai" or "fastembed"
    embedding_provider: str = "openai"
    openai_api_key: str = ""
    openai_base_url: str = ""
    openai_embedding_model: str = ""
    fastembed_model: str = ""

    # === Vector index ===
    # "sqlite" (vectors in the main database) or "chromadb"
    vector_backend: str = "sqlite"
    chromadb_persist_dir: str = "./data/chromadb"
    chromadb_collection: str = "libdocs_chunks"

    # === Search defaults ===
    search_default_limit: int = 10
    search_default_threshold: float = 0.5

    # === Scheduler ===
    sync_scheduler_enabled: bool = False

    # === App Config ===
    app_env: str = "development"
    log_level: str = "INFO"

    def github_headers(self) -> dict[str, str]:
        """Return request headers for the GitHub REST API."""
        headers = {"Accept": "application/vnd.github+json"}
        if self.github_token:
            headers["Authorization"] = f"Bearer {self.github_token}"
        return headers
