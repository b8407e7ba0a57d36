"""
Step Sequencer

Tracks the current step of a wizard and decides whether a move is allowed.

States are 1..N. Moving forward asks a gate whether the current step may
be left; moving back is always allowed above step 1. The sequencer never
validates anything itself: the orchestrator supplies the gate, so the
sequencer stays a plain state machine that is easy to test.
"""

from typing import Callable, Optional

import structlog


logger = structlog.get_logger(__name__)

StepGate = Callable[[int], bool]

ACTION_NEXT = "next"
ACTION_SUBMIT = "submit"


def _always_open(step: int) -> bool:
    return True


class StepSequencer:
    """
    Manages navigation between wizard steps.

    Responsibilities:
    - Track current step (always within [1, total_steps])
    - Ask the gate before every forward move
    - Track which steps have been completed
    """

    def __init__(self, total_steps: int, gate: Optional[StepGate] = None):
        """
        Args:
            total_steps: Number of steps, at least 1
            gate: Called with the current step before moving forward;
                  returning False keeps the wizard where it is
        """
        if total_steps < 1:
            raise ValueError("A wizard needs at least one step")
        self._total = total_steps
        self._gate = gate or _always_open
        self._current = 1
        self._completed: set[int] = set()

    @property
    def current(self) -> int:
        return self._current

    @property
    def total_steps(self) -> int:
        return self._total

    @property
    def completed_steps(self) -> frozenset[int]:
        return frozenset(self._completed)

    @property
    def is_first(self) -> bool:
        return self._current == 1

    @property
    def is_last(self) -> bool:
        return self._current == self._total

    @property
    def action(self) -> str:
        """What the primary button does on the current step."""
        return ACTION_SUBMIT if self.is_last else ACTION_NEXT

    def next(self) -> bool:
        """
        Move one step forward.

        Returns:
            True if the step changed
        """
        if self.is_last:
            logger.debug("step_next_at_last", step=self._current)
            return False
        if not self._gate(self._current):
            logger.debug("step_next_blocked", step=self._current)
            return False

        self._completed.add(self._current)
        self._current += 1
        return True

    def prev(self) -> bool:
        """Move one step back. A no-op on step 1."""
        if self.is_first:
            return False
        self._current -= 1
        return True

    def jump_to(self, step: int) -> bool:
        """
        Jump straight to a step from the category selection screen.

        Only allowed while on step 1. A forward jump passes through the
        same gate as next().
        """
        if not self.is_first:
            logger.debug("step_jump_refused", step=self._current, target=step)
            return False
        if step < 1 or step > self._total:
            return False
        if step == self._current:
            return True
        if not self._gate(self._current):
            return False

        self._completed.add(self._current)
        self._current = step
        return True

    def reset(self) -> None:
        """Back to step 1 with nothing completed."""
        self._current = 1
        self._completed.clear()
