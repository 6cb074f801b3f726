"""
wsarray - A weight-stationary systolic matmul engine.

This package provides a cycle-accurate Python model of a weight-stationary
systolic array, and an equivalent Amaranth HDL description that simulates
and generates Verilog.
"""

from .config import EngineConfig, OperandPolicy, OverflowPolicy
from .errors import (
    AccumulatorOverflowError,
    ConfigurationError,
    OperandRangeError,
    ProtocolError,
    ShapeMismatchError,
    WsArrayError,
)

__version__ = "0.1.0"
__all__ = [
    "EngineConfig",
    "OperandPolicy",
    "OverflowPolicy",
    "WsArrayError",
    "ConfigurationError",
    "ShapeMismatchError",
    "OperandRangeError",
    "AccumulatorOverflowError",
    "ProtocolError",
    "__version__",
]
