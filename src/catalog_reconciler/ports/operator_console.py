from __future__ import annotations

from typing import Protocol


class OperatorConsole(Protocol):
    def wait_for_enter(self, prompt: str) -> None: ...
