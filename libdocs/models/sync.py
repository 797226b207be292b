"""Sync run models and the run state machine.

Every sync of a library version is recorded as one :class:`SyncHistory`
row moving through::

    PENDING -> RUNNING -> SUCCESS
                       -> FAILED

SUCCESS and FAILED are terminal and immutable.  The storage layer inserts
new runs directly as RUNNING behind a partial unique index so at most one
RUNNING row can exist per version.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from libdocs.utils.errors import InvalidStateTransitionError


class SyncStatus(str, Enum):  # noqa: UP042 -- StrEnum requires Python 3.11+
    """States of a sync run."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (SyncStatus.SUCCESS, SyncStatus.FAILED)

    def can_transition_to(self, target: SyncStatus) -> bool:
        return target in _TRANSITIONS[self]

    def validate_transition(self, target: SyncStatus) -> None:
        """Raise :class:`InvalidStateTransitionError` unless ``self -> target`` is legal."""
        if not self.can_transition_to(target):
            raise InvalidStateTransitionError(
                message=f"Cannot move sync run from {self.value} to {target.value}"
            )


_TRANSITIONS: dict[SyncStatus, frozenset[SyncStatus]] = {
    SyncStatus.PENDING: frozenset({SyncStatus.RUNNING, SyncStatus.FAILED}),
    SyncStatus.RUNNING: frozenset({SyncStatus.SUCCESS, SyncStatus.FAILED}),
    SyncStatus.SUCCESS: frozenset(),
    SyncStatus.FAILED: frozenset(),
}


class SyncHistory(BaseModel):
    """Auditable record of one sync run."""

    model_config = ConfigDict(frozen=True)

    id: str
    version_id: str
    status: SyncStatus
    started_at: datetime | None = None
    completed_at: datetime | None = None
    documents_processed: int = Field(default=0, ge=0)
    chunks_created: int = Field(default=0, ge=0)
    error_message: str | None = None
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description=(
            "Run details: strategy_used, errors, skipped_unchanged, "
            "skipped_unsupported, stale_documents."
        ),
    )


class SyncStatusReport(BaseModel):
    """Sync state of one library version as seen by callers.

    ``is_running``/``running_run`` describe an in-flight run while
    ``latest_run`` is always the newest *terminal* run, so callers can
    distinguish "currently running" from "last outcome".
    """

    model_config = ConfigDict(frozen=True)

    library_name: str
    version: str
    is_running: bool
    running_run: SyncHistory | None = None
    latest_run: SyncHistory | None = None
    recent_runs: list[SyncHistory] = Field(default_factory=list)


class SweepReport(BaseModel):
    """Counts from one scheduler sweep over all GitHub libraries."""

    model_config = ConfigDict(frozen=True)

    triggered: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
