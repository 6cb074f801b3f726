"""
wsarray Configuration Module

This module defines the configuration dataclass for the weight-stationary
systolic engine. The same configuration drives both the cycle-accurate
behavioral model (wsarray.model) and the Amaranth HDL description
(wsarray.hdl), so the two always agree on grid shape and bit widths.

The engine computes C = A × B where B (R×C) is held stationary inside the
processing elements and A (M×R) streams in from the left edge.
"""

import operator
from dataclasses import dataclass
from enum import Enum

from .errors import ConfigurationError
from .util.intrange import required_acc_bits, signed_max, signed_min


class OperandPolicy(Enum):
    """
    What the engine boundary does with an operand outside the signed range.

    - REJECT: raise OperandRangeError, the call has no effect (default)
    - WRAP: truncate to operand_bits and reinterpret as two's complement
    """

    REJECT = 0
    WRAP = 1


class OverflowPolicy(Enum):
    """
    What a processing element does when a partial sum leaves the accumulator.

    Every policy other than RAISE sets the element's sticky overflow flag.

    - SATURATE: clamp to the accumulator range (default)
    - WRAP: two's-complement wrap, like an unguarded hardware adder
    - RAISE: raise AccumulatorOverflowError before any state is committed
    """

    SATURATE = 0
    WRAP = 1
    RAISE = 2


@dataclass
class EngineConfig:
    """
    Configuration for the weight-stationary engine.

    Example:
        >>> config = EngineConfig(rows=4, cols=4)
        >>> config.latency  # 7 cycles from top-left to bottom-right
        7
        >>> config.min_acc_bits  # narrowest safe accumulator for 4 rows of INT8
        18
    """

    # =========================================================================
    # Grid Dimensions
    # =========================================================================
    rows: int = 4
    """Number of PE rows (R). Also the contraction length of the product."""

    cols: int = 4
    """Number of PE columns (C). Number of output columns per tick."""

    # =========================================================================
    # Data Types (bit widths)
    # =========================================================================
    operand_bits: int = 8
    """Bit width of inputs and weights (8 for INT8)."""

    acc_bits: int = 32
    """Bit width of the partial-sum accumulator chain (32 for INT32)."""

    # =========================================================================
    # Range Policies
    # =========================================================================
    operand_policy: OperandPolicy = OperandPolicy.REJECT
    """Handling of out-of-range operands at the engine boundary."""

    overflow_policy: OverflowPolicy = OverflowPolicy.SATURATE
    """Handling of accumulator overflow inside the processing elements."""

    # =========================================================================
    # Computed Properties
    # =========================================================================
    @property
    def total_pes(self) -> int:
        """Total number of processing elements."""
        return self.rows * self.cols

    @property
    def latency(self) -> int:
        """Ticks (inclusive) for a value to cross the grid corner to corner."""
        return self.rows + self.cols - 1

    @property
    def operand_min(self) -> int:
        return signed_min(self.operand_bits)

    @property
    def operand_max(self) -> int:
        return signed_max(self.operand_bits)

    @property
    def acc_min(self) -> int:
        return signed_min(self.acc_bits)

    @property
    def acc_max(self) -> int:
        return signed_max(self.acc_bits)

    @property
    def min_acc_bits(self) -> int:
        """Narrowest accumulator that holds max_operand² × rows."""
        return required_acc_bits(self.operand_bits, self.rows)

    def __post_init__(self):
        """Validate configuration parameters."""
        for name in ("rows", "cols", "operand_bits", "acc_bits"):
            value = getattr(self, name)
            if isinstance(value, bool):
                raise ConfigurationError(f"{name} must be an integer, got {value!r}")
            try:
                setattr(self, name, operator.index(value))
            except TypeError:
                raise ConfigurationError(f"{name} must be an integer, got {value!r}") from None

        if self.rows <= 0:
            raise ConfigurationError(f"rows must be positive, got {self.rows}")
        if self.cols <= 0:
            raise ConfigurationError(f"cols must be positive, got {self.cols}")
        if self.operand_bits <= 0:
            raise ConfigurationError(f"operand_bits must be positive, got {self.operand_bits}")
        if self.acc_bits < self.min_acc_bits:
            raise ConfigurationError(
                f"acc_bits={self.acc_bits} cannot hold {self.rows} accumulated "
                f"{self.operand_bits}-bit products; need at least {self.min_acc_bits}"
            )
        if not isinstance(self.operand_policy, OperandPolicy):
            raise ConfigurationError(f"unknown operand_policy {self.operand_policy!r}")
        if not isinstance(self.overflow_policy, OverflowPolicy):
            raise ConfigurationError(f"unknown overflow_policy {self.overflow_policy!r}")


# Pre-defined configurations
DEFAULT_CONFIG = EngineConfig()
"""4x4 INT8 engine with a 32-bit accumulator."""

SMALL_CONFIG = EngineConfig(rows=2, cols=2)
"""2x2 engine for quick simulation."""

LARGE_CONFIG = EngineConfig(rows=16, cols=16)
"""16x16 engine, the usual size of a single accelerator tile."""

INT4_CONFIG = EngineConfig(rows=8, cols=8, operand_bits=4, acc_bits=16)
"""8x8 INT4 engine with a 16-bit accumulator."""
