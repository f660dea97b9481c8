from __future__ import annotations

import logging
from typing import Optional

from catalog_reconciler.ports.session_provider import SessionProvider
from catalog_reconciler.ports.ui_surface import UiSurface

logger = logging.getLogger(__name__)


class SessionHandle:
    """
    Sole owner of the active UI surface.

    Components read the surface through `surface` on every use instead of
    keeping their own reference. Only the recovery supervisor calls
    `reacquire()`, and it does so before the controller resumes.
    """

    def __init__(self, provider: SessionProvider) -> None:
        self.provider = provider
        self._surface: Optional[UiSurface] = None
        self.generation = 0

    @property
    def surface(self) -> UiSurface:
        if self._surface is None:
            self._surface = self.provider.current()
        return self._surface

    def reacquire(self) -> UiSurface:
        self._surface = self.provider.reacquire()
        self.generation += 1
        logger.info(f"Session handle replaced (generation {self.generation})")
        return self._surface
