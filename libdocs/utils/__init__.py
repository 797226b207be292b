"""Utility modules for libdocs.

- **errors** -- Domain exception hierarchy rooted at LibDocsError.
- **logging** -- structlog setup with console/JSON dual rendering and a
  context manager for binding run-scoped context vars.
"""

from libdocs.utils.errors import (
    ConcurrentRunConflictError,
    ConfigurationError,
    EmbeddingError,
    FetchError,
    InvalidStateTransitionError,
    LibDocsError,
    NotFoundError,
    PersistenceError,
)
from libdocs.utils.logging import bound_context, configure_logging, get_logger

__all__ = [
    "ConcurrentRunConflictError",
    "ConfigurationError",
    "EmbeddingError",
    "FetchError",
    "InvalidStateTransitionError",
    "LibDocsError",
    "NotFoundError",
    "PersistenceError",
    "bound_context",
    "configure_logging",
    "get_logger",
]
