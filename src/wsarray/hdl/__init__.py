"""
Amaranth HDL description of the weight-stationary engine.

These components mirror wsarray.model one to one and can be simulated with
amaranth.sim or converted to Verilog with amaranth.back.verilog:
- ProcessingElement: weight-stationary MAC with registered outputs
- AlignmentLine: per-row input delay line
- ComputeGrid: R×C mesh of PEs
- Engine: alignment lines + grid
"""

from .alignment import AlignmentLine
from .engine import Engine
from .grid import ComputeGrid
from .pe import ProcessingElement

__all__ = ["ProcessingElement", "AlignmentLine", "ComputeGrid", "Engine"]
