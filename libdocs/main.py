"""libdocs composition root.

Wires together providers and services via constructor injection.  Loads
configuration from ``.env`` and ``config/config.yaml`` and configures
structured logging.

Running the module performs one scheduled sync sweep::

    python -m libdocs.main
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import structlog

from libdocs.config.loader import load_config
from libdocs.config.settings import Settings
from libdocs.interfaces.embedding_provider import IEmbeddingProvider
from libdocs.interfaces.fetch_strategy import IFetchStrategy
from libdocs.interfaces.vector_index import IVectorIndex
from libdocs.models.sync import SweepReport
from libdocs.providers.embedding.fastembed_embedding_provider import FastEmbedEmbeddingProvider
from libdocs.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from libdocs.providers.fetch.archive_strategy import ArchiveFetchStrategy
from libdocs.providers.fetch.contents_api_strategy import ContentsApiFetchStrategy
from libdocs.providers.fetch.git_tree_strategy import GitTreeFetchStrategy
from libdocs.providers.storage.sqlite_document_store import SqliteDocumentStore
from libdocs.providers.storage.sqlite_lexical_index import SqliteLexicalIndex
from libdocs.providers.vector_store.chromadb_vector_index import ChromaVectorIndex
from libdocs.providers.vector_store.sqlite_vector_index import SqliteVectorIndex
from libdocs.services.ingestion.chunk_embedder import ChunkEmbedder
from libdocs.services.ingestion.chunker import TextChunker
from libdocs.services.ingestion.content_fetcher import ContentFetcher
from libdocs.services.ingestion.content_parser import ContentParser
from libdocs.services.library_service import LibraryService
from libdocs.services.search_service import SearchService
from libdocs.services.sync_scheduler import SyncScheduler
from libdocs.services.sync_service import SyncService
from libdocs.utils.errors import ConfigurationError
from libdocs.utils.logging import configure_logging

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_STRATEGY_ORDER = ["github_archive", "github_git_tree", "github_contents_api"]


# ---------------------------------------------------------------------------
# Provider selection
# ---------------------------------------------------------------------------


def _build_embedding_provider(app_settings: Settings) -> IEmbeddingProvider:
    """Select the embedding provider named by ``EMBEDDING_PROVIDER``.

    ``openai`` also covers OpenAI-compatible endpoints via
    ``OPENAI_BASE_URL``; ``fastembed`` runs locally and needs no key.
    """
    name = app_settings.embedding_provider.lower()
    if name == "fastembed":
        return FastEmbedEmbeddingProvider(model_name=app_settings.fastembed_model or None)
    if name == "openai":
        if not app_settings.openai_api_key:
            raise ConfigurationError(
                message="EMBEDDING_PROVIDER=openai requires OPENAI_API_KEY",
                provider_name="openai",
            )
        return OpenAIEmbeddingProvider(settings=app_settings)
    raise ConfigurationError(
        message=f"Unknown embedding provider '{app_settings.embedding_provider}'"
    )


def _build_vector_index(app_settings: Settings, dimension: int) -> IVectorIndex:
    backend = app_settings.vector_backend.lower()
    if backend == "sqlite":
        return SqliteVectorIndex(db_path=app_settings.database_path, dimension=dimension)
    if backend == "chromadb":
        return ChromaVectorIndex(
            dimension=dimension,
            persist_directory=app_settings.chromadb_persist_dir,
            collection_name=app_settings.chromadb_collection,
        )
    raise ConfigurationError(message=f"Unknown vector backend '{app_settings.vector_backend}'")


def _build_strategies(
    app_settings: Settings, config: dict[str, Any], http_client: httpx.AsyncClient
) -> list[IFetchStrategy]:
    """Build the fetch chain in the order listed under ``fetch.strategies``."""
    order = config.get("fetch", {}).get("strategies") or _DEFAULT_STRATEGY_ORDER
    headers = app_settings.github_headers()
    factories = {
        "github_archive": lambda priority: ArchiveFetchStrategy(
            http_client=http_client,
            base_url=app_settings.github_archive_base_url,
            tag_prefix=app_settings.archive_tag_prefix,
            max_file_bytes=app_settings.archive_max_file_bytes,
            priority=priority,
        ),
        "github_git_tree": lambda priority: GitTreeFetchStrategy(
            http_client=http_client,
            api_base_url=app_settings.github_api_base_url,
            headers=headers,
            priority=priority,
        ),
        "github_contents_api": lambda priority: ContentsApiFetchStrategy(
            http_client=http_client,
            api_base_url=app_settings.github_api_base_url,
            headers=headers,
            priority=priority,
        ),
    }

    strategies: list[IFetchStrategy] = []
    for priority, name in enumerate(order, start=1):
        factory = factories.get(name)
        if factory is None:
            raise ConfigurationError(message=f"Unknown fetch strategy '{name}' in config")
        strategies.append(factory(priority))
    return strategies


# ---------------------------------------------------------------------------
# Full DI assembly
# ---------------------------------------------------------------------------


async def build_components(
    app_settings: Settings | None = None,
    config_path: str = "config/config.yaml",
) -> dict[str, Any]:
    """Construct and initialize every provider and service.

    Returns a flat dict of named components.  Callers own the shared
    ``http_client`` and should pass the dict to :func:`close_components`
    when done.
    """
    app_settings = app_settings or Settings()
    config = load_config(config_path, settings=app_settings)

    # -- Storage --
    store = SqliteDocumentStore(db_path=app_settings.database_path)
    await store.initialize()
    lexical_index = SqliteLexicalIndex(db_path=app_settings.database_path)

    # -- Embeddings & vectors --
    embedding_provider = _build_embedding_provider(app_settings)
    vector_index = _build_vector_index(app_settings, embedding_provider.get_dimension())
    await vector_index.initialize()

    # -- Ingestion --
    http_client = httpx.AsyncClient(
        timeout=app_settings.http_timeout_seconds, follow_redirects=True
    )
    try:
        strategies = _build_strategies(app_settings, config, http_client)
    except BaseException:
        await http_client.aclose()
        raise
    fetcher = ContentFetcher(
        strategies=strategies,
        http_client=http_client,
        raw_base_url=app_settings.github_raw_base_url,
        headers=app_settings.github_headers(),
    )
    chunker = TextChunker(
        max_chars=app_settings.chunk_max_chars,
        overlap_chars=app_settings.chunk_overlap_chars,
    )

    # -- Services --
    library_service = LibraryService(store=store)
    sync_service = SyncService(
        store=store,
        vector_index=vector_index,
        fetcher=fetcher,
        parser=ContentParser(),
        chunker=chunker,
        embedder=ChunkEmbedder(embedding_provider),
    )
    search_service = SearchService(
        library_service=library_service,
        lexical_index=lexical_index,
        vector_index=vector_index,
        store=store,
        embedding_provider=embedding_provider,
        default_limit=app_settings.search_default_limit,
        default_threshold=app_settings.search_default_threshold,
    )
    scheduler = SyncScheduler(
        store=store,
        sync_service=sync_service,
        enabled=app_settings.sync_scheduler_enabled,
    )

    logger.info(
        "components_built",
        embedding_provider=embedding_provider.get_provider_name(),
        vector_backend=app_settings.vector_backend,
        fetch_strategies=[s.get_strategy_name() for s in fetcher.strategies],
    )

    return {
        "settings": app_settings,
        "config": config,
        "http_client": http_client,
        "store": store,
        "lexical_index": lexical_index,
        "vector_index": vector_index,
        "embedding_provider": embedding_provider,
        "fetcher": fetcher,
        "library_service": library_service,
        "sync_service": sync_service,
        "search_service": search_service,
        "scheduler": scheduler,
    }


async def close_components(components: dict[str, Any]) -> None:
    http_client: httpx.AsyncClient | None = components.get("http_client")
    if http_client is not None:
        await http_client.aclose()


async def run_scheduled_sweep(app_settings: Settings | None = None) -> SweepReport:
    """Build the application, run one scheduler sweep, and tear down."""
    components = await build_components(app_settings)
    try:
        return await components["scheduler"].run_all()
    finally:
        await close_components(components)


if __name__ == "__main__":
    _settings = Settings()
    configure_logging(
        log_level=_settings.log_level,
        json_output=(_settings.app_env == "production"),
    )
    asyncio.run(run_scheduled_sweep(_settings))
