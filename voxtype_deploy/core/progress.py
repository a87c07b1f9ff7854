"""
Step-by-step progress reporting for resolution passes.

A single module-level reporter lets the pipeline announce its steps without
threading a console through every call. When no console is attached (library
use, tests) every call is a no-op.
"""

from typing import List, Optional

from rich.console import Console
from rich.status import Status


class ProgressReporter:
    """
    Shows the current step in a rich status spinner and prints a checkmark
    line for every completed step.
    """

    def __init__(self):
        self._status: Optional[Status] = None
        self._console: Optional[Console] = None
        self._current_step: Optional[str] = None
        self.completed_steps: List[str] = []

    def initialize(self, console: Console, initial_message: str = "Starting…") -> Status:
        """
        Attach a console and create the status spinner.

        Returns:
            Status object to be used as a context manager
        """
        self._console = console
        self._status = console.status(f"[dim]{initial_message}[/dim]")
        self._current_step = initial_message
        self.completed_steps = []
        return self._status

    def step(self, message: str) -> None:
        """Mark the current step completed and start a new one."""
        if self._status is None:
            return
        self._finish_current()
        self._current_step = message
        self._status.update(f"[dim]{message}[/dim]")

    def complete_step(self, message: Optional[str] = None) -> None:
        """Mark the current step completed without starting another."""
        if message is not None:
            self._current_step = message
        self._finish_current()

    def detach(self) -> None:
        """Forget the console so later library calls stay silent."""
        self._status = None
        self._console = None
        self._current_step = None

    def _finish_current(self) -> None:
        if self._current_step is None:
            return
        self.completed_steps.append(self._current_step)
        if self._console is not None:
            self._console.print(f"[green]✓[/green] [dim]{self._current_step}[/dim]")
        self._current_step = None


# Global reporter instance
reporter = ProgressReporter()
