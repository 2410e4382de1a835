"""
Services for the writing step: autosave coordination, connectivity and section lifecycle.
"""

from .autosave_types import (
    AutoSaveSnapshot,
    AutoSaveStatus,
    CoordinatorState,
    SaveAttempt,
    SaveOutcome,
    SaveResult,
    SaveTrigger,
    WatchedValue
)
from .autosave_coordinator import AutoSaveCoordinator
from .connectivity import ConnectivitySignal, HealthCheckPoller, get_connectivity_signal
from .editing_session import SectionEditingSession
