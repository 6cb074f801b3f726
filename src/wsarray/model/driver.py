"""
MatmulDriver - finite-state machine for the two-phase load/compute protocol.

The Engine itself has no notion of phases; it simply obeys load_phase on
every tick. This driver sequences a complete C = A × B on top of it:

    IDLE ──start()──→ LOADING (R ticks) ──→ STREAMING (M ticks)
      ↑                                          │
      └──────────── DRAINING (R + C - 1 ticks) ←─┘

LOADING feeds B[R-1], B[R-2], ..., B[0]: a weight fed on load tick k sits
R-1-k rows down when loading ends, so the last row has to go in first.
STREAMING feeds row s of A on tick s. Outputs are collected from the first
STREAMING tick on, and the product is read back along the output skew:
C[s][c] is column c of the output on collected tick s + R - 1 + c.

Example:
    engine = Engine(EngineConfig(rows=4, cols=4))
    driver = MatmulDriver(engine)
    C = driver.run(A, B)
"""

import logging
from enum import Enum, auto

import numpy as np

from ..config import EngineConfig, OperandPolicy
from ..errors import OperandRangeError, ProtocolError, ShapeMismatchError
from ..util.intrange import fits_signed, required_acc_bits
from .engine import Engine

logger = logging.getLogger(__name__)


class Phase(Enum):
    """Protocol phases of the driver."""

    IDLE = auto()
    LOADING = auto()
    STREAMING = auto()
    DRAINING = auto()


class MatmulDriver:
    """
    Drives an Engine through one matrix multiply at a time.

    Attributes:
        engine: The engine being driven
        phase: Current protocol phase
        remaining: Ticks left in the current phase
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self.phase = Phase.IDLE
        self.remaining = 0

        self._a: np.ndarray | None = None
        self._b: np.ndarray | None = None
        self._index = 0
        self._outputs: list[list[int]] = []
        self._result: np.ndarray | None = None

    @property
    def busy(self) -> bool:
        """True while a multiply is in flight."""
        return self.phase != Phase.IDLE

    @property
    def drain_cycles(self) -> int:
        return self.engine.rows + self.engine.cols - 1

    def _check_matrix(self, name: str, matrix, shape: tuple) -> np.ndarray:
        matrix = np.asarray(matrix)
        # Python ints beyond int64 arrive as an object array
        integral = np.issubdtype(matrix.dtype, np.integer) or (
            matrix.dtype == object
            and all(isinstance(v, int) and not isinstance(v, bool) for v in matrix.flat)
        )
        if matrix.ndim != 2 or not integral:
            raise ShapeMismatchError(name, "2-D integer matrix", f"{matrix.ndim}-D {matrix.dtype}")
        expected = tuple(matrix.shape[i] if dim is None else dim for i, dim in enumerate(shape))
        if matrix.shape != expected or matrix.size == 0:
            raise ShapeMismatchError(name, shape, matrix.shape)

        config = self.engine.config
        if config.operand_policy == OperandPolicy.REJECT:
            for i, value in enumerate(matrix.flat):
                if not fits_signed(int(value), config.operand_bits):
                    raise OperandRangeError(name, i, int(value), config.operand_bits)
        return matrix

    def start(self, a, b) -> None:
        """
        Begin computing a @ b.

        Args:
            a: M×R left operand, streamed through the grid
            b: R×C right operand, held stationary in the PEs

        Raises:
            ProtocolError: a multiply is already in progress
            ShapeMismatchError: a or b does not fit the engine
            OperandRangeError: an element is out of range under OperandPolicy.REJECT
        """
        if self.busy:
            raise ProtocolError(f"cannot start: driver is {self.phase.name}")

        rows, cols = self.engine.rows, self.engine.cols
        self._b = self._check_matrix("b", b, (rows, cols))
        self._a = self._check_matrix("a", a, (None, rows))

        self.engine.reset()
        self._outputs = []
        self._result = None
        logger.debug("Starting %dx%d @ %dx%d", *self._a.shape, *self._b.shape)
        self._enter(Phase.LOADING, rows)

    def _enter(self, phase: Phase, ticks: int) -> None:
        logger.debug("Phase %s -> %s (%d ticks)", self.phase.name, phase.name, ticks)
        self.phase = phase
        self.remaining = ticks
        self._index = 0

    def step(self) -> list[int]:
        """
        Issue exactly one engine tick for the current phase.

        Returns:
            The engine output for this tick
        """
        if not self.busy:
            raise ProtocolError("no multiply in progress")

        rows, cols = self.engine.rows, self.engine.cols
        zeros_in = [0] * rows
        zeros_w = [0] * cols

        if self.phase == Phase.LOADING:
            weights = self._b[rows - 1 - self._index].tolist()
            out = self.engine.tick(zeros_in, weights, load_phase=True)
        elif self.phase == Phase.STREAMING:
            out = self.engine.tick(self._a[self._index].tolist(), zeros_w, load_phase=False)
        else:
            out = self.engine.tick(zeros_in, zeros_w, load_phase=False)

        if self.phase != Phase.LOADING:
            self._outputs.append(out)

        self._index += 1
        self.remaining -= 1
        if self.remaining == 0:
            self._advance()
        return out

    def _advance(self) -> None:
        if self.phase == Phase.LOADING:
            self._enter(Phase.STREAMING, self._a.shape[0])
        elif self.phase == Phase.STREAMING:
            self._enter(Phase.DRAINING, self.drain_cycles)
        else:
            self._result = self._collect()
            self._enter(Phase.IDLE, 0)

    def _collect(self) -> np.ndarray:
        """Undo the output skew: C[s][c] left column c on tick s + R - 1 + c."""
        m = self._a.shape[0]
        rows, cols = self.engine.rows, self.engine.cols
        result = np.zeros((m, cols), dtype=np.int64)
        for s in range(m):
            for c in range(cols):
                result[s, c] = self._outputs[s + rows - 1 + c][c]
        return result

    def result(self) -> np.ndarray:
        """The M×C product of the last completed multiply."""
        if self._result is None:
            raise ProtocolError("no completed multiply")
        return self._result

    def run(self, a, b) -> np.ndarray:
        """Compute a @ b to completion and return the product."""
        self.start(a, b)
        while self.busy:
            self.step()
        return self.result()

    def __repr__(self) -> str:
        return f"MatmulDriver({self.phase.name}, remaining={self.remaining})"


def matmul(a, b, config: EngineConfig | None = None) -> np.ndarray:
    """
    Compute a @ b on a freshly built engine sized to b.

    Args:
        a: M×R integer matrix
        b: R×C integer matrix
        config: Engine configuration; by default R×C with INT8 operands and
            an accumulator wide enough for R

    Returns:
        The M×C product as an int64 array
    """
    if config is None:
        b = np.asarray(b)
        if b.ndim != 2:
            raise ShapeMismatchError("b", "2-D matrix", b.shape)
        rows, cols = b.shape
        config = EngineConfig(rows=rows, cols=cols, acc_bits=max(32, required_acc_bits(8, rows)))
    return MatmulDriver(Engine(config)).run(a, b)
