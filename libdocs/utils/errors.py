"""Custom exception hierarchy for libdocs.

All application exceptions inherit from :class:`LibDocsError`, which
carries an optional ``provider_name`` so error handlers can identify which
collaborator (e.g. "github_archive", "openai", "sqlite") caused the failure.

The hierarchy follows the sync/search pipeline:

    LibDocsError  (base -- catch-all for any libdocs error)
    +-- FetchError                   (every fetch strategy exhausted, or a file read failed)
    +-- EmbeddingError               (embedding call failed or returned bad vectors)
    +-- PersistenceError             (storage read/write failed)
    +-- NotFoundError                (unknown library / version / document)
    +-- ConcurrentRunConflictError   (a sync is already RUNNING for the version)
    +-- InvalidStateTransitionError  (illegal sync status change)
    +-- ConfigurationError           (startup / missing config)

Per-document failures (a lazy file read, an embedding batch) are caught
by the sync orchestrator and counted.  ``FetchError`` from the strategy
chain and ``PersistenceError`` abort the run and mark it FAILED.
``NotFoundError`` and ``ConcurrentRunConflictError`` always propagate to
the immediate caller.
"""


class LibDocsError(Exception):
    """Base exception for all libdocs errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which collaborator triggered the error.
    ``__str__`` prefixes the provider name in brackets for log output,
    e.g. ``[github_archive] Archive download failed``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Sync pipeline errors
# ---------------------------------------------------------------------------

class FetchError(LibDocsError):
    """Raised when documentation files cannot be acquired.

    The strategy chain raises this only after every supporting strategy
    returned no result.  Lazy file reads raise it for a single file.
    """

    def __init__(
        self,
        message: str = "Failed to fetch documentation files",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EmbeddingError(LibDocsError):
    """Raised when an embedding call fails or returns malformed vectors."""

    def __init__(
        self,
        message: str = "Embedding generation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class PersistenceError(LibDocsError):
    """Raised when a storage operation fails outright."""

    def __init__(
        self,
        message: str = "Storage operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Caller-facing errors
# ---------------------------------------------------------------------------

class NotFoundError(LibDocsError):
    """Raised when a library, version or document cannot be resolved."""

    def __init__(
        self,
        message: str = "Requested resource was not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConcurrentRunConflictError(LibDocsError):
    """Raised when a sync is started while another is RUNNING for the version.

    Start attempts are rejected, never queued.
    """

    def __init__(
        self,
        message: str = "A sync is already running for this version",
        provider_name: str | None = None,
        version_id: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._version_id = version_id

    @property
    def version_id(self) -> str | None:
        return self._version_id


class InvalidStateTransitionError(LibDocsError):
    """Raised when a sync run is moved between incompatible states."""

    def __init__(
        self,
        message: str = "Invalid sync state transition",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(LibDocsError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
