"""
Processing Element (PE) - RTL description of the weight-stationary MAC.

Each PE holds a stationary weight register and three output registers:
    out_ifmap  <- in_ifmap                      (every cycle)
    out_weight <- in_weight                     (every cycle)
    out_psum   <- in_psum                       (load phase)
    out_psum   <- in_ifmap * stored + in_psum   (compute phase)
    stored     <- in_weight                     (load phase)

The partial-sum adder is one bit wider than needed so that overflow can be
detected; the result is saturated or truncated according to the configured
OverflowPolicy and a sticky overflow flag is raised either way.

'clear' zeroes every register on the next clock edge, overriding the normal
update for that cycle.
"""

from amaranth import Module, Signal, signed
from amaranth.lib.wiring import Component, In, Out

from ..config import EngineConfig, OverflowPolicy


class ProcessingElement(Component):
    """
    Weight-stationary processing element.

    Ports:
        in_ifmap: Input operand (from the PE on the left)
        in_weight: Weight (from the PE above, latched in load phase)
        in_psum: Partial sum (from the PE above)
        in_load: 1 = load phase, 0 = compute phase
        clear: Synchronous clear of all registers

        out_ifmap: Registered in_ifmap (to the PE on the right)
        out_weight: Registered in_weight (to the PE below)
        out_psum: Registered partial sum (to the PE below)
        out_stored_weight: Currently latched weight
        out_overflow: Sticky accumulator overflow flag

    Parameters:
        config: EngineConfig with bit widths and overflow policy
    """

    def __init__(self, config: EngineConfig):
        self.config = config

        operand_width = config.operand_bits
        acc_width = config.acc_bits

        super().__init__(
            {
                # Inputs
                "in_ifmap": In(signed(operand_width)),
                "in_weight": In(signed(operand_width)),
                "in_psum": In(signed(acc_width)),
                "in_load": In(1),
                "clear": In(1),
                # Outputs
                "out_ifmap": Out(signed(operand_width)),
                "out_weight": Out(signed(operand_width)),
                "out_psum": Out(signed(acc_width)),
                "out_stored_weight": Out(signed(operand_width)),
                "out_overflow": Out(1),
            }
        )

    def elaborate(self, _platform):
        m = Module()
        cfg = self.config

        stored = Signal(signed(cfg.operand_bits), name="stored_weight")
        overflow = Signal(name="overflow")

        # =================================================================
        # Multiply-Accumulate Computation
        # =================================================================

        product = Signal(signed(2 * cfg.operand_bits), name="product")
        m.d.comb += product.eq(self.in_ifmap * stored)

        # One guard bit above the wider of the two addends
        mac_width = max(cfg.acc_bits, 2 * cfg.operand_bits) + 1
        mac = Signal(signed(mac_width), name="mac")
        m.d.comb += mac.eq(self.in_psum + product)

        too_big = Signal(name="too_big")
        too_small = Signal(name="too_small")
        m.d.comb += [
            too_big.eq(mac > cfg.acc_max),
            too_small.eq(mac < cfg.acc_min),
        ]

        # =================================================================
        # Register Update Logic
        # =================================================================

        with m.If(self.clear):
            m.d.sync += [
                stored.eq(0),
                overflow.eq(0),
                self.out_ifmap.eq(0),
                self.out_weight.eq(0),
                self.out_psum.eq(0),
            ]
        with m.Else():
            m.d.sync += [
                self.out_ifmap.eq(self.in_ifmap),
                self.out_weight.eq(self.in_weight),
            ]

            with m.If(self.in_load):
                m.d.sync += [
                    stored.eq(self.in_weight),
                    self.out_psum.eq(self.in_psum),
                ]
            with m.Else():
                with m.If(too_big | too_small):
                    m.d.sync += overflow.eq(1)

                if cfg.overflow_policy == OverflowPolicy.SATURATE:
                    with m.If(too_big):
                        m.d.sync += self.out_psum.eq(cfg.acc_max)
                    with m.Elif(too_small):
                        m.d.sync += self.out_psum.eq(cfg.acc_min)
                    with m.Else():
                        m.d.sync += self.out_psum.eq(mac)
                else:
                    # Truncation to acc_bits is a two's-complement wrap
                    m.d.sync += self.out_psum.eq(mac)

        m.d.comb += [
            self.out_stored_weight.eq(stored),
            self.out_overflow.eq(overflow),
        ]

        return m
