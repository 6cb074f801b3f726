#!/usr/bin/env python3
"""
Weight-Stationary Matrix Multiply Demo.

This example runs C = A @ B through the cycle-accurate engine model and
shows the two-phase protocol cycle by cycle:

1. Load Phase (R cycles)
   - load_phase=1, one row of B per cycle, last row first
   - Weights ripple down the columns; PE(r, c) keeps B[r, c]

2. Compute Phase (M cycles)
   - load_phase=0, row s of A on the left edge at cycle s
   - Alignment lines delay row i by i cycles (the wavefront)

3. Drain (R + C - 1 cycles)
   - Zeros keep the pipeline moving until the last partial sum leaves

4. Verification
   - C[s, c] is read from column c at compute cycle s + R - 1 + c
   - Compared against the NumPy reference

Usage:
    python 01_ws_matmul.py [--rows R] [--cols C] [--m M] [--seed S] [--trace]
    python 01_ws_matmul.py --demo     # 4x4 scenario: A = I + 1, B[r,c] = r+c+2
"""

import argparse
import logging
import sys
from pathlib import Path

import numpy as np

# Add src to path if running from a checkout
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from wsarray.config import EngineConfig  # noqa: E402
from wsarray.model import Engine, MatmulDriver, Phase  # noqa: E402


def demo_matrices() -> tuple[np.ndarray, np.ndarray]:
    """A with 2 on the diagonal and 1 elsewhere; B[r, c] = (r + 1) + (c + 1)."""
    a = np.ones((4, 4), dtype=np.int64) + np.eye(4, dtype=np.int64)
    r, c = np.indices((4, 4))
    b = (r + 1) + (c + 1)
    return a, b


def random_matrices(m: int, rows: int, cols: int, bits: int, rng) -> tuple[np.ndarray, np.ndarray]:
    lo, hi = -(1 << (bits - 1)), 1 << (bits - 1)
    a = rng.integers(lo, hi, size=(m, rows), dtype=np.int64)
    b = rng.integers(lo, hi, size=(rows, cols), dtype=np.int64)
    return a, b


def print_matrix(name: str, matrix: np.ndarray) -> None:
    print(f"{name} ({matrix.shape[0]}x{matrix.shape[1]}):")
    for row in matrix:
        print("   " + " ".join(f"{int(v):7d}" for v in row))


def run(a: np.ndarray, b: np.ndarray, config: EngineConfig, trace: bool) -> np.ndarray:
    engine = Engine(config)
    driver = MatmulDriver(engine)
    driver.start(a, b)

    if trace:
        print(f"{'cycle':>5}  {'phase':<9}  outputs")
    while driver.busy:
        phase = driver.phase
        out = driver.step()
        if trace:
            values = " ".join(f"{v:7d}" for v in out)
            marker = "" if phase != Phase.LOADING else "  (weights in flight)"
            print(f"{engine.cycle - 1:5d}  {phase.name:<9}  {values}{marker}")

    if trace:
        print()
        print("Stored weights:")
        print(engine.grid.dump_weights())
        print()

    stats = engine.get_statistics()
    print(
        f"Completed in {stats['cycles']} cycles "
        f"({stats['load_cycles']} load, {stats['compute_cycles']} compute, "
        f"{stats['mac_ops']} MAC slots)"
    )
    return driver.result()


def main():
    parser = argparse.ArgumentParser(description="Weight-stationary matmul demo")
    parser.add_argument("--rows", type=int, default=4, help="Grid rows R (default: 4)")
    parser.add_argument("--cols", type=int, default=4, help="Grid columns C (default: 4)")
    parser.add_argument("--m", type=int, default=4, help="Rows of A to stream (default: 4)")
    parser.add_argument("--bits", type=int, default=8, help="Operand width (default: 8)")
    parser.add_argument("--seed", type=int, default=0, help="Random seed (default: 0)")
    parser.add_argument("--demo", action="store_true", help="Use the fixed 4x4 scenario")
    parser.add_argument("--trace", action="store_true", help="Print every cycle")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    if args.demo:
        a, b = demo_matrices()
        config = EngineConfig(rows=4, cols=4)
    else:
        rng = np.random.default_rng(args.seed)
        a, b = random_matrices(args.m, args.rows, args.cols, args.bits, rng)
        config = EngineConfig(rows=args.rows, cols=args.cols, operand_bits=args.bits)

    print_matrix("A", a)
    print_matrix("B", b)
    print()

    c = run(a, b, config, args.trace)
    expected = a @ b

    print_matrix("C (engine)", c)
    if np.array_equal(c, expected):
        print("PASS: engine result matches NumPy reference")
        return 0

    print_matrix("C (NumPy)", expected)
    print("FAIL: mismatch")
    return 1


if __name__ == "__main__":
    sys.exit(main())
