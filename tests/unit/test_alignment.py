"""
Unit tests for the behavioral AlignmentLine.

These tests verify:
1. Delay 0 is a same-cycle pass-through
2. Delay d returns zeros for d ticks, then the input from d ticks earlier
3. Reset flushes in-flight values
4. peek() does not advance the line
"""

import pytest

from wsarray.errors import ConfigurationError
from wsarray.model import AlignmentLine


class TestAlignmentLine:
    """Test suite for AlignmentLine."""

    def test_delay_zero_is_pass_through(self):
        """A zero-delay line returns its input on the same tick."""
        line = AlignmentLine(delay=0)
        for value in (5, -3, 127, 0, -128):
            assert line.tick(value) == value
        assert line.snapshot() == ()
        assert len(line) == 0

    @pytest.mark.parametrize("delay", [1, 2, 3, 7])
    def test_delay_sequence(self, delay):
        """Zeros for the first d ticks, then the inputs in order."""
        line = AlignmentLine(delay=delay)
        inputs = list(range(1, 11))
        outputs = [line.tick(v) for v in inputs]
        assert outputs == [0] * delay + inputs[: len(inputs) - delay]

    def test_reset_flushes(self):
        """After reset the line returns zeros again, not the old history."""
        line = AlignmentLine(delay=3)
        for v in (9, 8, 7, 6):
            line.tick(v)
        line.reset()
        assert line.snapshot() == (0, 0, 0)
        assert [line.tick(v) for v in (1, 2, 3, 4)] == [0, 0, 0, 1]

    def test_peek_does_not_advance(self):
        line = AlignmentLine(delay=2)
        line.tick(11)
        line.tick(22)
        before = line.snapshot()
        assert line.peek(99) == 11
        assert line.peek(99) == 11
        assert line.snapshot() == before
        assert line.tick(33) == 11
        assert line.snapshot() == (22, 33)

    def test_peek_zero_delay(self):
        assert AlignmentLine(delay=0).peek(42) == 42

    def test_negative_delay_rejected(self):
        with pytest.raises(ConfigurationError):
            AlignmentLine(delay=-1)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
