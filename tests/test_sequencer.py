"""Tests for step navigation."""

import pytest

from entry_wizard.navigation import ACTION_NEXT, ACTION_SUBMIT, StepSequencer


class TestStepSequencer:
    """Tests for StepSequencer."""

    def test_starts_at_step_one(self):
        sequencer = StepSequencer(5)
        assert sequencer.current == 1
        assert sequencer.action == ACTION_NEXT

    def test_next_until_last(self):
        sequencer = StepSequencer(3)
        assert sequencer.next() is True
        assert sequencer.next() is True
        assert sequencer.current == 3
        assert sequencer.action == ACTION_SUBMIT
        # At the last step next() has no effect
        assert sequencer.next() is False
        assert sequencer.current == 3

    def test_prev_at_first_is_noop(self):
        sequencer = StepSequencer(3)
        assert sequencer.prev() is False
        assert sequencer.current == 1

    def test_prev_always_allowed_above_first(self):
        sequencer = StepSequencer(3, gate=lambda step: step < 2)
        sequencer.next()
        assert sequencer.prev() is True
        assert sequencer.current == 1

    def test_gate_blocks_next(self):
        sequencer = StepSequencer(3, gate=lambda step: False)
        assert sequencer.next() is False
        assert sequencer.current == 1

    def test_gate_receives_current_step(self):
        seen = []

        def gate(step):
            seen.append(step)
            return True

        sequencer = StepSequencer(3, gate=gate)
        sequencer.next()
        sequencer.next()
        assert seen == [1, 2]

    def test_completed_steps_tracked(self):
        sequencer = StepSequencer(4)
        sequencer.next()
        sequencer.next()
        assert sequencer.completed_steps == frozenset({1, 2})

    def test_jump_only_from_first_step(self):
        sequencer = StepSequencer(5)
        assert sequencer.jump_to(4) is True
        assert sequencer.current == 4
        assert sequencer.jump_to(2) is False
        assert sequencer.current == 4

    def test_jump_goes_through_gate(self):
        sequencer = StepSequencer(5, gate=lambda step: False)
        assert sequencer.jump_to(3) is False
        assert sequencer.current == 1

    def test_jump_out_of_range_refused(self):
        sequencer = StepSequencer(5)
        assert sequencer.jump_to(0) is False
        assert sequencer.jump_to(6) is False

    def test_reset(self):
        sequencer = StepSequencer(3)
        sequencer.next()
        sequencer.reset()
        assert sequencer.current == 1
        assert sequencer.completed_steps == frozenset()

    def test_step_stays_in_range(self):
        sequencer = StepSequencer(3)
        for _ in range(10):
            sequencer.next()
        assert sequencer.current == 3
        for _ in range(10):
            sequencer.prev()
        assert sequencer.current == 1

    def test_needs_at_least_one_step(self):
        with pytest.raises(ValueError):
            StepSequencer(0)
