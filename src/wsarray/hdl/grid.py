"""
ComputeGrid - RTL mesh of weight-stationary processing elements.

Example 2x3 ComputeGrid:
                in_weight_0   in_weight_1   in_weight_2
                    |             |             |        (in_psum tied to 0)
    in_ifmap_0 --> [PE(0,0)] --> [PE(0,1)] --> [PE(0,2)]
                    |             |             |
    in_ifmap_1 --> [PE(1,0)] --> [PE(1,1)] --> [PE(1,2)]
                    |             |             |
                out_psum_0    out_psum_1    out_psum_2

Every PE output is registered, so the neighbour connections below are plain
wires and each hop costs exactly one cycle. in_load and clear are broadcast
to every PE in the same cycle.
"""

from amaranth import Cat, Module, signed
from amaranth.lib.wiring import Component, In, Out

from ..config import EngineConfig
from .pe import ProcessingElement


class ComputeGrid(Component):
    """
    R×C grid of ProcessingElements.

    Ports:
        in_ifmap_0..R-1: Operands entering at the left edge
        in_weight_0..C-1: Weights entering at the top edge
        in_load: Load-phase flag (broadcast)
        clear: Synchronous clear (broadcast)

        out_psum_0..C-1: Partial sums leaving the bottom edge
        out_overflow: OR of all PE overflow flags

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
        rows = cfg.rows
        cols = cfg.cols

        pes = [[ProcessingElement(cfg) for _ in range(cols)] for _ in range(rows)]

        for r in range(rows):
            for c in range(cols):
                m.submodules[f"pe_{r}_{c}"] = pes[r][c]

        # =================================================================
        # Horizontal (ifmap) Wiring - flows left to right
        # =================================================================
        for r in range(rows):
            m.d.comb += pes[r][0].in_ifmap.eq(getattr(self, f"in_ifmap_{r}"))
            for c in range(1, cols):
                m.d.comb += pes[r][c].in_ifmap.eq(pes[r][c - 1].out_ifmap)

        # =================================================================
        # Vertical (weight, psum) Wiring - flows top to bottom
        # =================================================================
        for c in range(cols):
            m.d.comb += [
                pes[0][c].in_weight.eq(getattr(self, f"in_weight_{c}")),
                pes[0][c].in_psum.eq(0),
            ]
            for r in range(1, rows):
                m.d.comb += [
                    pes[r][c].in_weight.eq(pes[r - 1][c].out_weight),
                    pes[r][c].in_psum.eq(pes[r - 1][c].out_psum),
                ]
            m.d.comb += getattr(self, f"out_psum_{c}").eq(pes[rows - 1][c].out_psum)

        # =================================================================
        # Control Broadcast and Overflow Reduction
        # =================================================================
        for r in range(rows):
            for c in range(cols):
                m.d.comb += [
                    pes[r][c].in_load.eq(self.in_load),
                    pes[r][c].clear.eq(self.clear),
                ]

        flags = Cat(*(pes[r][c].out_overflow for r in range(rows) for c in range(cols)))
        m.d.comb += self.out_overflow.eq(flags.any())

        return m
