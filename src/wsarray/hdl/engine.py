"""
Engine - RTL top level of the weight-stationary array.

                     in_weight_0..C-1
                            │
    in_ifmap_0 ──→ [      ] ──→ ┌──────────────┐
    in_ifmap_1 ──→ [R     ] ──→ │              │
    in_ifmap_2 ──→ [R][R  ] ──→ │ ComputeGrid  │──→ out_psum_0..C-1
    in_ifmap_3 ──→ [R][R][R] ─→ │              │
                                └──────────────┘

Row i passes through an AlignmentLine of delay i before entering the grid;
weights go straight to the top edge. The port-level behaviour is identical,
cycle for cycle, to wsarray.model.Engine: driving the inputs for one clock
edge corresponds to one Engine.tick() call, and holding 'clear' for one edge
corresponds to Engine.reset().
"""

from amaranth import Module, signed
from amaranth.lib.wiring import Component, In, Out

from ..config import EngineConfig
from .alignment import AlignmentLine
from .grid import ComputeGrid


class Engine(Component):
    """
    Alignment lines plus compute grid.

    Ports:
        in_ifmap_0..R-1: Unskewed operands, one per row
        in_weight_0..C-1: Weights, one per column
        in_load: Load-phase flag
        clear: Synchronous clear of the whole engine

        out_psum_0..C-1: Partial sums leaving the bottom edge
        out_overflow: Sticky accumulator overflow flag

    Parameters:
        config: EngineConfig with grid dimensions and data widths
    """

    def __init__(self, config: EngineConfig):
        self.config = config

        ports = {}

        for r in range(config.rows):
            ports[f"in_ifmap_{r}"] = In(signed(config.operand_bits))

        for c in range(config.cols):
            ports[f"in_weight_{c}"] = In(signed(config.operand_bits))

        ports["in_load"] = In(1)
        ports["clear"] = In(1)

        for c in range(config.cols):
            ports[f"out_psum_{c}"] = Out(signed(config.acc_bits))

        ports["out_overflow"] = Out(1)

        super().__init__(ports)

    def elaborate(self, _platform):
        m = Module()
        cfg = self.config

        m.submodules.grid = grid = ComputeGrid(cfg)

        for r in range(cfg.rows):
            line = AlignmentLine(delay=r, width=cfg.operand_bits, name_prefix=f"row_{r}")
            m.submodules[f"align_{r}"] = line
            m.d.comb += [
                line.in_data.eq(getattr(self, f"in_ifmap_{r}")),
                line.clear.eq(self.clear),
                getattr(grid, f"in_ifmap_{r}").eq(line.out_data),
            ]

        for c in range(cfg.cols):
            m.d.comb += [
                getattr(grid, f"in_weight_{c}").eq(getattr(self, f"in_weight_{c}")),
                getattr(self, f"out_psum_{c}").eq(getattr(grid, f"out_psum_{c}")),
            ]

        m.d.comb += [
            grid.in_load.eq(self.in_load),
            grid.clear.eq(self.clear),
            self.out_overflow.eq(grid.out_overflow),
        ]

        return m
