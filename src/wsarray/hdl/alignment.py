"""
AlignmentLine - RTL delay line for one row of the input wavefront.

A line of delay d is a chain of d pipeline registers:

    delay 0:  in_data ───────────────────→ out_data   (combinational)
    delay 3:  in_data → [REG][REG][REG] ─→ out_data

'clear' flushes every stage to zero on the next clock edge.
"""

from amaranth import Module, Signal, signed
from amaranth.lib.wiring import Component, In, Out

from ..errors import ConfigurationError


class AlignmentLine(Component):
    """
    Fixed-depth delay line.

    Ports:
        in_data: Operand entering the line
        clear: Synchronous flush of all stages
        out_data: Operand that entered 'delay' cycles ago

    Parameters:
        delay: Number of pipeline stages (>= 0)
        width: Width of each operand in bits
        name_prefix: Prefix for stage signal names
    """

    def __init__(self, delay: int, width: int, name_prefix: str = "align"):
        if delay < 0:
            raise ConfigurationError(f"alignment delay must be non-negative, got {delay}")
        self.delay = delay
        self.width = width
        self.name_prefix = name_prefix

        super().__init__(
            {
                "in_data": In(signed(width)),
                "clear": In(1),
                "out_data": Out(signed(width)),
            }
        )

    def elaborate(self, _platform):
        m = Module()

        if self.delay == 0:
            m.d.comb += self.out_data.eq(self.in_data)
            return m

        stages = [
            Signal(signed(self.width), name=f"{self.name_prefix}_stage_{i}")
            for i in range(self.delay)
        ]

        with m.If(self.clear):
            m.d.sync += [stage.eq(0) for stage in stages]
        with m.Else():
            m.d.sync += stages[0].eq(self.in_data)
            for i in range(1, self.delay):
                m.d.sync += stages[i].eq(stages[i - 1])

        m.d.comb += self.out_data.eq(stages[-1])

        return m
