"""
Engine - top-level cycle-accurate model of the weight-stationary array.

The Engine owns one AlignmentLine per grid row (row i delayed by i cycles)
and the ComputeGrid. Callers drive it once per simulated clock cycle with
flat, unskewed vectors:

    flat_ifmap_in[R] ──→ AlignmentLines ──→ ComputeGrid ──→ psum[C]
    flat_weight_in[C] ─────────────────────→ (top edge)

Weights bypass the alignment lines: they are loaded while compute is paused,
so no wavefront shaping is needed for them.

Two-phase protocol (driven by the caller, see MatmulDriver):
    1. Load:    load_phase=True for R cycles, weight rows fed last row first
    2. Compute: load_phase=False, row s of A fed on compute cycle s,
                then R + C - 1 cycles of zeros to drain the pipeline
    3. Sample:  C[s][c] leaves column c on compute cycle s + R - 1 + c

Every call validates its inputs before touching any state; a rejected call
has no effect and may be retried.
"""

import logging
import operator
from collections.abc import Sequence

import numpy as np

from ..config import EngineConfig, OperandPolicy
from ..errors import OperandRangeError, ShapeMismatchError
from ..util.intrange import fits_signed, wrap_signed
from .alignment import AlignmentLine
from .grid import ComputeGrid

logger = logging.getLogger(__name__)


class Engine:
    """
    Weight-stationary systolic engine with input skewing.

    Parameters:
        config: EngineConfig with grid shape, widths and range policies

    Attributes:
        grid: The ComputeGrid
        lines: AlignmentLines, lines[i] has delay i
        cycle: Number of ticks since construction or reset
    """

    def __init__(self, config: EngineConfig):
        self.config = config
        self.rows = config.rows
        self.cols = config.cols
        self.grid = ComputeGrid(config)
        self.lines = [AlignmentLine(delay=i) for i in range(self.rows)]

        # Statistics
        self.cycle = 0
        self.load_cycles = 0
        self.compute_cycles = 0

        logger.debug(
            "Engine %dx%d: %d-bit operands, %d-bit accumulator, latency %d",
            self.rows,
            self.cols,
            config.operand_bits,
            config.acc_bits,
            self.latency,
        )

    @property
    def latency(self) -> int:
        """Ticks (inclusive) from injection at the top-left to the bottom-right output."""
        return self.config.latency

    def reset(self) -> None:
        """Clear all PE registers, alignment lines and counters."""
        self.grid.reset()
        for line in self.lines:
            line.reset()
        self.cycle = 0
        self.load_cycles = 0
        self.compute_cycles = 0
        logger.debug("Engine %dx%d reset", self.rows, self.cols)

    def _check_operands(self, name: str, values: Sequence[int]) -> list[int]:
        """Validate the range of an input vector, applying the operand policy."""
        bits = self.config.operand_bits
        checked = []
        for i, value in enumerate(values):
            value = operator.index(value)
            if not fits_signed(value, bits):
                if self.config.operand_policy == OperandPolicy.REJECT:
                    raise OperandRangeError(name, i, value, bits)
                value = wrap_signed(value, bits)
            checked.append(value)
        return checked

    def tick(
        self,
        flat_ifmap_in: Sequence[int],
        flat_weight_in: Sequence[int],
        load_phase: bool,
    ) -> list[int]:
        """
        Advance the engine by one clock cycle.

        Args:
            flat_ifmap_in: Unskewed operands, one per row
            flat_weight_in: Weights, one per column (latched only in load phase)
            load_phase: True during weight loading, False during compute

        Returns:
            Partial sums leaving the bottom of the grid, one per column

        Raises:
            ShapeMismatchError: a vector has the wrong length
            OperandRangeError: an operand is out of range under OperandPolicy.REJECT
            AccumulatorOverflowError: overflow under OverflowPolicy.RAISE
        """
        # Both shapes before either range
        if len(flat_ifmap_in) != self.rows:
            raise ShapeMismatchError("flat_ifmap_in", self.rows, len(flat_ifmap_in))
        if len(flat_weight_in) != self.cols:
            raise ShapeMismatchError("flat_weight_in", self.cols, len(flat_weight_in))
        ifmap = self._check_operands("flat_ifmap_in", flat_ifmap_in)
        weights = self._check_operands("flat_weight_in", flat_weight_in)

        # Alignment lines advance only once the grid has accepted the cycle
        skewed = [line.peek(value) for line, value in zip(self.lines, ifmap)]
        result = self.grid.tick(skewed, weights, load_phase)
        for line, value in zip(self.lines, ifmap):
            line.tick(value)

        self.cycle += 1
        if load_phase:
            self.load_cycles += 1
        else:
            self.compute_cycles += 1
        return result

    @property
    def outputs(self) -> list[int]:
        """Partial sums currently presented at the bottom edge."""
        return self.grid.outputs

    @property
    def overflow(self) -> bool:
        """True if any accumulator overflowed since the last reset."""
        return self.grid.overflow

    def stored_weights(self) -> np.ndarray:
        """Weights currently latched in the grid, as an R×C array."""
        return self.grid.stored_weights()

    def snapshot(self) -> tuple:
        """Complete engine state; equal snapshots mean identical future behaviour."""
        lines = tuple(line.snapshot() for line in self.lines)
        return (self.cycle, self.grid.snapshot(), lines)

    def get_statistics(self) -> dict:
        """
        Get execution statistics.

        Returns:
            Dictionary with cycle counts and MAC operations issued
        """
        return {
            "cycles": self.cycle,
            "load_cycles": self.load_cycles,
            "compute_cycles": self.compute_cycles,
            "mac_ops": self.compute_cycles * self.config.total_pes,
            "total_pes": self.config.total_pes,
            "overflow": self.overflow,
        }

    def __repr__(self) -> str:
        return f"Engine({self.rows}x{self.cols}, cycle={self.cycle})"
