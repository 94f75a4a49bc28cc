"""Editor session: the poster configuration plus view and generation state."""

import logging
import threading
from enum import Enum
from typing import Any

from qr_poster.api_client import BaseArtClient, GenerationError
from qr_poster.config import PosterConfig, default_config, merge_config

logger = logging.getLogger(__name__)

GENERATION_FAILED = "Failed to generate AI background. Check your API key or try again."


class Tab(str, Enum):
    """The three views of the editor panel."""

    CONTENT = "content"
    STYLE = "style"
    AI = "ai"


class GenerationInProgress(RuntimeError):
    """Raised when a background generation is requested while one is running."""


class PosterSession:
    """Owns the single configuration of an editing session.

    All changes go through ``update``/``reset`` and the generation methods,
    under one lock. At most one background generation runs at a time; the
    slot is claimed with ``begin_generation`` and released by
    ``run_generation`` whatever its outcome.
    """

    def __init__(self, config: PosterConfig | None = None):
        self._config = config or default_config()
        self._lock = threading.Lock()
        self._generating = False
        self.active_tab = Tab.CONTENT
        self.notifications: list[str] = []

    @property
    def config(self) -> PosterConfig:
        return self._config

    @property
    def generating(self) -> bool:
        return self._generating

    def update(self, **changes: Any) -> PosterConfig:
        """Merge a partial set of field changes into the configuration."""
        with self._lock:
            self._config = merge_config(self._config, changes)
            return self._config

    def reset(self) -> PosterConfig:
        with self._lock:
            self._config = default_config()
            return self._config

    def select_tab(self, tab: Tab | str) -> Tab:
        self.active_tab = Tab(tab)
        return self.active_tab

    def clear_notifications(self) -> None:
        with self._lock:
            self.notifications.clear()

    # -----------------------------------------------------------------------
    # Background generation
    # -----------------------------------------------------------------------

    def begin_generation(self) -> bool:
        """Claim the generation slot. Returns False if it is already taken."""
        with self._lock:
            if self._generating:
                return False
            self._generating = True
            return True

    def run_generation(self, client: BaseArtClient) -> str | None:
        """Generate a background with the slot held, then release the slot.

        The prompt and theme are read when the call starts. On success the
        image reference replaces ``background_image_url``. A None result
        leaves the configuration alone. A ``GenerationError`` is recorded
        as a notification and also leaves the configuration unchanged.

        Returns:
            The new image reference, or None if nothing was applied.
        """
        try:
            config = self._config
            try:
                image = client.generate(config.background_prompt, config.theme)
            except GenerationError as e:
                logger.warning("Background generation failed: %s", e)
                with self._lock:
                    self.notifications.append(GENERATION_FAILED)
                return None

            if not image:
                logger.info("Background generation returned no image")
                return None
            self.update(background_image_url=image)
            return image
        finally:
            with self._lock:
                self._generating = False

    def generate_background(self, client: BaseArtClient) -> str | None:
        """Claim the slot and generate synchronously.

        Raises:
            GenerationInProgress: If another generation holds the slot.
        """
        if not self.begin_generation():
            raise GenerationInProgress("A background is already being generated.")
        return self.run_generation(client)

    def snapshot(self) -> dict[str, Any]:
        """Configuration and editor state as a JSON-friendly dict."""
        with self._lock:
            return {
                "config": self._config.to_dict(),
                "active_tab": self.active_tab.value,
                "generating": self._generating,
                "notifications": list(self.notifications),
            }
