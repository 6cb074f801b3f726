"""
Processing Element (PE) - cycle-accurate model of the weight-stationary MAC.

Each PE holds one stationary weight and three pipeline registers:

    ifmap  -> forwarded to the PE on the right
    weight -> forwarded to the PE below (only meaningful during loading)
    psum   -> partial sum forwarded to the PE below

Per clock edge:
    load phase:     stored_weight <- weight_in, psum <- psum_in
    compute phase:  psum <- ifmap_in * stored_weight + psum_in

ifmap and weight are forwarded every cycle regardless of phase so that
neighbouring PEs stay phase-aligned.

The update is split in two: evaluate() computes the next register state from
the inputs without touching the PE, commit() latches it. A grid evaluates
every PE first and commits afterwards, which gives the simultaneous-update
semantics of a clocked register array.
"""

import logging
from dataclasses import dataclass, field

from ..config import OverflowPolicy
from ..errors import AccumulatorOverflowError
from ..util.intrange import fits_signed, saturate_signed, wrap_signed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PEState:
    """Register contents of one PE after a clock edge."""

    stored_weight: int = 0
    ifmap: int = 0
    weight: int = 0
    psum: int = 0
    overflow: bool = False


@dataclass
class ProcessingElement:
    """
    Weight-stationary processing element.

    Attributes:
        operand_bits: Width of ifmap and weight operands
        acc_bits: Width of the partial sum
        overflow_policy: Behaviour when a partial sum leaves the accumulator
        row: Row position in the grid (for diagnostics)
        col: Column position in the grid (for diagnostics)
        state: Current (committed) register contents
    """

    operand_bits: int = 8
    acc_bits: int = 32
    overflow_policy: OverflowPolicy = OverflowPolicy.SATURATE
    row: int = 0
    col: int = 0
    state: PEState = field(default_factory=PEState)

    def reset(self) -> None:
        """Clear every register and the stored weight."""
        self.state = PEState()

    def evaluate(self, ifmap_in: int, weight_in: int, psum_in: int, load_phase: bool) -> PEState:
        """
        Compute the register state after the next clock edge.

        Does not modify the PE. Raises AccumulatorOverflowError under
        OverflowPolicy.RAISE.
        """
        current = self.state

        if load_phase:
            return PEState(
                stored_weight=weight_in,
                ifmap=ifmap_in,
                weight=weight_in,
                psum=psum_in,
                overflow=current.overflow,
            )

        psum = ifmap_in * current.stored_weight + psum_in
        overflow = current.overflow

        if not fits_signed(psum, self.acc_bits):
            if self.overflow_policy == OverflowPolicy.RAISE:
                raise AccumulatorOverflowError(psum, self.acc_bits, self.row, self.col)
            if not overflow:
                logger.warning(
                    "PE(%d, %d): partial sum %d overflows %d-bit accumulator",
                    self.row,
                    self.col,
                    psum,
                    self.acc_bits,
                )
            overflow = True
            if self.overflow_policy == OverflowPolicy.SATURATE:
                psum = saturate_signed(psum, self.acc_bits)
            else:
                psum = wrap_signed(psum, self.acc_bits)

        return PEState(
            stored_weight=current.stored_weight,
            ifmap=ifmap_in,
            weight=weight_in,
            psum=psum,
            overflow=overflow,
        )

    def commit(self, state: PEState) -> None:
        """Latch a state produced by evaluate()."""
        self.state = state

    def tick(
        self, ifmap_in: int, weight_in: int, psum_in: int, load_phase: bool
    ) -> tuple[int, int, int]:
        """
        Advance one clock cycle.

        Returns:
            (ifmap_out, weight_out, psum_out) as seen by neighbours next cycle
        """
        self.commit(self.evaluate(ifmap_in, weight_in, psum_in, load_phase))
        return self.outputs

    @property
    def outputs(self) -> tuple[int, int, int]:
        """Registered (ifmap_out, weight_out, psum_out)."""
        return (self.state.ifmap, self.state.weight, self.state.psum)

    @property
    def stored_weight(self) -> int:
        return self.state.stored_weight

    @property
    def ifmap_out(self) -> int:
        return self.state.ifmap

    @property
    def weight_out(self) -> int:
        return self.state.weight

    @property
    def psum_out(self) -> int:
        return self.state.psum

    @property
    def overflow(self) -> bool:
        """Sticky flag: a partial sum overflowed since the last reset."""
        return self.state.overflow

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"PE({self.row}, {self.col}, w={self.stored_weight}, psum={self.psum_out})"
