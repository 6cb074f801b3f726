"""
Exception types raised by the weight-stationary engine.

All errors derive from WsArrayError so callers can catch the whole family,
and from the closest built-in so generic handlers keep working:

- ConfigurationError: bad construction parameters (fatal, raised up front)
- ShapeMismatchError: per-call vector/matrix size mismatch (state unchanged)
- OperandRangeError: input outside the signed operand range (state unchanged)
- AccumulatorOverflowError: partial sum left the accumulator range
- ProtocolError: the load/compute driver was used out of sequence
"""


class WsArrayError(Exception):
    """Base class for all engine errors."""


class ConfigurationError(WsArrayError, ValueError):
    """Invalid engine configuration, rejected before any tick occurs."""


class ShapeMismatchError(WsArrayError, ValueError):
    """An input vector or matrix does not match the configured grid."""

    def __init__(self, name: str, expected, actual):
        self.name = name
        self.expected = expected
        self.actual = actual
        super().__init__(f"{name}: expected {expected}, got {actual}")


class OperandRangeError(WsArrayError, ValueError):
    """An operand does not fit the configured signed operand width."""

    def __init__(self, name: str, index: int, value: int, bits: int):
        self.name = name
        self.index = index
        self.value = value
        self.bits = bits
        super().__init__(f"{name}[{index}] = {value} does not fit in a signed {bits}-bit operand")


class AccumulatorOverflowError(WsArrayError, ArithmeticError):
    """A partial sum exceeded the accumulator range."""

    def __init__(self, value: int, bits: int, row: int | None = None, col: int | None = None):
        self.value = value
        self.bits = bits
        self.row = row
        self.col = col
        where = f" at PE({row}, {col})" if row is not None else ""
        super().__init__(f"partial sum {value} overflows a signed {bits}-bit accumulator{where}")


class ProtocolError(WsArrayError, RuntimeError):
    """The two-phase load/compute protocol was driven out of order."""
