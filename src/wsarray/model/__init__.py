"""
Cycle-accurate behavioral model of the weight-stationary engine.

Components, leaf-first:
- ProcessingElement: MAC unit with one stationary weight
- AlignmentLine: per-row delay line that skews the input wavefront
- ComputeGrid: R×C mesh of PEs with systolic wiring
- Engine: alignment lines + grid behind a flat tick() interface
- MatmulDriver: load/stream/drain state machine on top of the Engine

Usage:
    from wsarray.config import EngineConfig
    from wsarray.model import Engine, MatmulDriver

    engine = Engine(EngineConfig(rows=4, cols=4))
    C = MatmulDriver(engine).run(A, B)
"""

from .alignment import AlignmentLine
from .driver import MatmulDriver, Phase, matmul
from .engine import Engine
from .grid import ComputeGrid
from .pe import PEState, ProcessingElement

__all__ = [
    "ProcessingElement",
    "PEState",
    "AlignmentLine",
    "ComputeGrid",
    "Engine",
    "MatmulDriver",
    "Phase",
    "matmul",
]
