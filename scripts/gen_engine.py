#!/usr/bin/env python3
"""Generate weight-stationary Engine and PE Verilog from wsarray."""

import argparse
import sys
from pathlib import Path

# Add src to path if running from scripts/
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

from amaranth.back import verilog  # noqa: E402

from wsarray.config import EngineConfig  # noqa: E402
from wsarray.hdl import Engine, ProcessingElement  # noqa: E402


def main():
    parser = argparse.ArgumentParser(description="Generate engine Verilog")
    parser.add_argument("--rows", type=int, default=4, help="Grid rows (default: 4)")
    parser.add_argument("--cols", type=int, default=4, help="Grid columns (default: 4)")
    parser.add_argument("--operand-bits", type=int, default=8, help="Operand width (default: 8)")
    parser.add_argument("--acc-bits", type=int, default=32, help="Accumulator width (default: 32)")
    args = parser.parse_args()

    gen_dir = project_root / "gen"
    gen_dir.mkdir(exist_ok=True)

    config = EngineConfig(
        rows=args.rows,
        cols=args.cols,
        operand_bits=args.operand_bits,
        acc_bits=args.acc_bits,
    )

    pe_path = gen_dir / "ws_pe.v"
    with open(pe_path, "w") as f:
        f.write(verilog.convert(ProcessingElement(config), name="WsPE"))
    print(f"Generated {pe_path}")

    engine_path = gen_dir / f"ws_engine_{config.rows}x{config.cols}.v"
    with open(engine_path, "w") as f:
        f.write(verilog.convert(Engine(config), name=f"WsEngine_{config.rows}x{config.cols}"))
    print(f"Generated {engine_path}")


if __name__ == "__main__":
    main()
