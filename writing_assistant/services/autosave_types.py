# ABOUTME: Types and enumerations shared by the section autosave coordinator and its presenters.
# ABOUTME: Defines save statuses, triggers, attempt records, coordinator state and the UI snapshot.

from enum import Enum
from typing import Optional
from dataclasses import dataclass, field
from datetime import datetime


OFFLINE_MESSAGE = "You are offline. Changes will be saved when the connection returns."
DEFAULT_SAVE_ERROR = "Failed to save section"


class AutoSaveStatus(Enum):
    """Lifecycle status of an autosave coordinator."""
    IDLE = "idle"
    SAVING = "saving"
    SAVED = "saved"
    RETRYING = "retrying"
    ERROR = "error"
    OFFLINE = "offline"


class SaveTrigger(Enum):
    """What caused a save attempt."""
    AUTO = "auto"
    MANUAL = "manual"
    RETRY = "retry"


class SaveOutcome(Enum):
    """Result of a single save attempt."""
    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class WatchedValue:
    """The (content, completion) pair whose changes drive autosave."""
    content: str = ""
    is_completed: bool = False


@dataclass
class SaveResult:
    """Value returned by a persistence gateway."""
    success: bool
    error: Optional[str] = None


@dataclass
class SaveAttempt:
    """Record of one persistence call."""
    trigger: SaveTrigger
    value: WatchedValue
    timestamp: datetime
    outcome: SaveOutcome = SaveOutcome.PENDING
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome == SaveOutcome.SUCCESS


@dataclass
class CoordinatorState:
    """Mutable state owned exclusively by one coordinator instance."""
    status: AutoSaveStatus = AutoSaveStatus.IDLE
    last_synced_value: WatchedValue = field(default_factory=WatchedValue)
    has_unsaved_changes: bool = False
    last_saved_at: Optional[datetime] = None
    retry_count: int = 0
    next_retry_at: Optional[datetime] = None
    is_offline: bool = False
    is_saving: bool = False
    last_error: Optional[str] = None


@dataclass(frozen=True)
class AutoSaveSnapshot:
    """Read-only status projection rendered by the UI."""
    status: AutoSaveStatus
    last_saved: Optional[datetime]
    has_unsaved_changes: bool
    error: Optional[str]
    retry_count: int
    max_retries: int
    next_retry_at: Optional[datetime]
    is_offline: bool
    is_saving: bool = False

    @property
    def can_retry(self) -> bool:
        """Manual retry is offered only once automatic retries are exhausted."""
        return self.status == AutoSaveStatus.ERROR
