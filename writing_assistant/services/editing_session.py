# ABOUTME: Owns the autosave coordinator of the section currently active in the writing view.
# ABOUTME: Switching sections disposes the previous coordinator, which flushes its unsaved changes.

import logging
from typing import Callable, Optional, Tuple

from writing_assistant.config.settings import AutoSaveSettings
from writing_assistant.services.autosave_coordinator import AutoSaveCoordinator, SaveFunction
from writing_assistant.services.connectivity import ConnectivitySignal

logger = logging.getLogger(__name__)

SaverFactory = Callable[[str, str], SaveFunction]


class SectionEditingSession:
    """Keeps exactly one coordinator alive, for the active (article, section) pair."""

    def __init__(
        self,
        saver_factory: SaverFactory,
        settings: Optional[AutoSaveSettings] = None,
        connectivity: Optional[ConnectivitySignal] = None
    ):
        """
        Initialize the session.

        Args:
            saver_factory: Builds the save function for an (article_id, section_id) pair
            settings: Autosave settings passed to every coordinator
            connectivity: Connectivity signal passed to every coordinator
        """
        self.saver_factory = saver_factory
        self.settings = settings
        self.connectivity = connectivity
        self._active_key: Optional[Tuple[str, str]] = None
        self._coordinator: Optional[AutoSaveCoordinator] = None

    @property
    def active_key(self) -> Optional[Tuple[str, str]]:
        return self._active_key

    @property
    def coordinator(self) -> Optional[AutoSaveCoordinator]:
        return self._coordinator

    def activate(
        self,
        article_id: str,
        section_id: str,
        content: str = "",
        is_completed: bool = False
    ) -> AutoSaveCoordinator:
        """
        Make a section the active editing target.

        Re-activating the current section returns its existing coordinator.
        """
        key = (article_id, section_id)
        if self._coordinator is not None and key == self._active_key:
            return self._coordinator

        self.deactivate()
        logger.info(f"Activating autosave for article {article_id}, section {section_id}")
        self._coordinator = AutoSaveCoordinator(
            save=self.saver_factory(article_id, section_id),
            settings=self.settings,
            connectivity=self.connectivity,
            initial_content=content,
            initial_completed=is_completed
        )
        self._active_key = key
        return self._coordinator

    def deactivate(self):
        """Dispose the active coordinator, if any."""
        if self._coordinator is None:
            return
        article_id, section_id = self._active_key
        logger.info(f"Deactivating autosave for article {article_id}, section {section_id}")
        self._coordinator.dispose()
        self._coordinator = None
        self._active_key = None

    def close(self):
        """Tear down the session when the editing view goes away."""
        self.deactivate()
