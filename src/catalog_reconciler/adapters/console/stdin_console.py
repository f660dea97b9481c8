from __future__ import annotations

from catalog_reconciler.ports.operator_console import OperatorConsole


class StdinConsole(OperatorConsole):
    """Blocks on the terminal until the operator presses Enter."""

    def wait_for_enter(self, prompt: str) -> None:
        input(f"\n{prompt}")
