from __future__ import annotations

from typing import List

from catalog_reconciler.ports.operator_console import OperatorConsole


class NoopConsole(OperatorConsole):
    """Never blocks; keeps the prompts it was asked to show."""

    def __init__(self) -> None:
        self.prompts: List[str] = []

    def wait_for_enter(self, prompt: str) -> None:
        self.prompts.append(prompt)
