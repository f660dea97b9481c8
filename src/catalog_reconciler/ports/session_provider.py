from __future__ import annotations

from typing import Protocol

from catalog_reconciler.ports.ui_surface import UiSurface


class SessionProvider(Protocol):
    def start(self) -> None: ...

    def current(self) -> UiSurface: ...

    def reacquire(self) -> UiSurface: ...

    def close(self) -> None: ...
