"""
AlignmentLine - per-row delay line that skews the input wavefront.

Row i of the grid is fed through a line of delay i, so the operand for row i
reaches column 0 i cycles after row 0's. Together with the one-cycle hop per
PE this lines each operand up with the partial sum travelling down its column:

          Row 0 ───→ ──────────────────→ grid in_0
          Row 1 ───→ [REG] ────────────→ grid in_1
          Row 2 ───→ [REG][REG] ───────→ grid in_2
          Row 3 ───→ [REG][REG][REG] ──→ grid in_3

A line of delay 0 is a plain wire: tick() returns its input on the same cycle.
A line of delay d > 0 returns zeros for its first d ticks after construction
or reset, then the input supplied d ticks earlier.
"""

from collections import deque

from ..errors import ConfigurationError


class AlignmentLine:
    """
    Fixed-depth FIFO of operands.

    Parameters:
        delay: Number of cycles between an input and its output (>= 0)
    """

    def __init__(self, delay: int):
        if delay < 0:
            raise ConfigurationError(f"alignment delay must be non-negative, got {delay}")
        self.delay = delay
        self._slots: deque[int] = deque([0] * delay, maxlen=delay)

    def reset(self) -> None:
        """Flush in-flight values; every slot reads zero again."""
        self._slots = deque([0] * self.delay, maxlen=self.delay)

    def peek(self, value: int) -> int:
        """Return what tick(value) would return, without advancing the line."""
        if self.delay == 0:
            return value
        return self._slots[0]

    def tick(self, value: int) -> int:
        """Push value in, return the value that entered delay ticks ago."""
        out = self.peek(value)
        if self.delay:
            # maxlen evicts the oldest slot
            self._slots.append(value)
        return out

    def snapshot(self) -> tuple[int, ...]:
        """Slot contents, oldest first."""
        return tuple(self._slots)

    def __len__(self) -> int:
        return self.delay

    def __repr__(self) -> str:
        return f"AlignmentLine(delay={self.delay}, slots={list(self._slots)})"
