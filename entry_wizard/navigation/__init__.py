"""Step navigation."""

from entry_wizard.navigation.sequencer import (
    ACTION_NEXT,
    ACTION_SUBMIT,
    StepGate,
    StepSequencer,
)

__all__ = ["ACTION_NEXT", "ACTION_SUBMIT", "StepGate", "StepSequencer"]
