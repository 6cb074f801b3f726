"""
ComputeGrid - R×C mesh of weight-stationary processing elements.

Wiring for D = A × B with B stationary:

              in_w[0]     in_w[1]     in_w[2]
                 |           |           |   (psum enters as 0)
    in_x[0] -> [PE(0,0)] -> [PE(0,1)] -> [PE(0,2)]
                 |           |           |
    in_x[1] -> [PE(1,0)] -> [PE(1,1)] -> [PE(1,2)]
                 |           |           |
              out_psum[0] out_psum[1] out_psum[2]

- ifmap operands flow left to right along rows
- weights (during loading) and partial sums flow top to bottom
- load_phase is broadcast to every PE in the same cycle

PEs live in a flat list addressed by row * cols + col. Every cycle all PEs
evaluate their next state from the committed outputs of their neighbours,
and only then is the whole grid committed, so no PE can observe a
neighbour's new value within the same cycle.
"""

from collections.abc import Sequence

import numpy as np

from ..config import EngineConfig
from ..errors import ShapeMismatchError
from .pe import PEState, ProcessingElement


class ComputeGrid:
    """
    Grid of ProcessingElements with systolic neighbour wiring.

    Parameters:
        config: EngineConfig with grid dimensions, widths and overflow policy
    """

    def __init__(self, config: EngineConfig):
        self.config = config
        self.rows = config.rows
        self.cols = config.cols
        self.pes = [
            ProcessingElement(
                operand_bits=config.operand_bits,
                acc_bits=config.acc_bits,
                overflow_policy=config.overflow_policy,
                row=r,
                col=c,
            )
            for r in range(self.rows)
            for c in range(self.cols)
        ]

    def index(self, row: int, col: int) -> int:
        """Flat index of PE(row, col)."""
        return row * self.cols + col

    def get_pe(self, row: int, col: int) -> ProcessingElement:
        """Get PE at specified position."""
        return self.pes[self.index(row, col)]

    def reset(self) -> None:
        """Reset all PEs."""
        for pe in self.pes:
            pe.reset()

    def tick(
        self,
        ifmap_row_inputs: Sequence[int],
        weight_col_inputs: Sequence[int],
        load_phase: bool,
    ) -> list[int]:
        """
        Advance every PE by one clock cycle.

        Args:
            ifmap_row_inputs: One operand per row, entering at the left edge
            weight_col_inputs: One weight per column, entering at the top edge
            load_phase: True to latch weights, False to multiply-accumulate

        Returns:
            Partial sums leaving the bottom edge, one per column
        """
        if len(ifmap_row_inputs) != self.rows:
            raise ShapeMismatchError("ifmap_row_inputs", self.rows, len(ifmap_row_inputs))
        if len(weight_col_inputs) != self.cols:
            raise ShapeMismatchError("weight_col_inputs", self.cols, len(weight_col_inputs))

        rows, cols = self.rows, self.cols
        pes = self.pes
        load_phase = bool(load_phase)

        # Evaluate against the committed state of the whole grid
        next_states: list[PEState] = []
        for r in range(rows):
            for c in range(cols):
                if c == 0:
                    ifmap_in = ifmap_row_inputs[r]
                else:
                    ifmap_in = pes[r * cols + c - 1].ifmap_out

                if r == 0:
                    weight_in = weight_col_inputs[c]
                    psum_in = 0
                else:
                    above = pes[(r - 1) * cols + c]
                    weight_in = above.weight_out
                    psum_in = above.psum_out

                pe = pes[r * cols + c]
                next_states.append(pe.evaluate(ifmap_in, weight_in, psum_in, load_phase))

        for pe, state in zip(pes, next_states):
            pe.commit(state)

        return self.outputs

    @property
    def outputs(self) -> list[int]:
        """Registered partial sums of the bottom row."""
        base = (self.rows - 1) * self.cols
        return [self.pes[base + c].psum_out for c in range(self.cols)]

    @property
    def overflow(self) -> bool:
        """True if any PE has flagged an accumulator overflow since reset."""
        return any(pe.overflow for pe in self.pes)

    def stored_weights(self) -> np.ndarray:
        """Latched weights as an R×C array."""
        result = np.zeros((self.rows, self.cols), dtype=np.int64)
        for pe in self.pes:
            result[pe.row, pe.col] = pe.stored_weight
        return result

    def snapshot(self) -> tuple[PEState, ...]:
        """Complete register state of the grid in flat order."""
        return tuple(pe.state for pe in self.pes)

    def dump_weights(self) -> str:
        """
        Dump stored weights for debugging.

        Returns:
            Formatted string showing one grid row per line
        """
        lines = []
        for r in range(self.rows):
            values = [f"{self.get_pe(r, c).stored_weight:5d}" for c in range(self.cols)]
            lines.append(f"Row {r:2d}: " + " ".join(values))
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"ComputeGrid({self.rows}x{self.cols}, overflow={self.overflow})"
