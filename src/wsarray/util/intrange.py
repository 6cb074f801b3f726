"""
Fixed-width signed integer helpers.

The behavioral model keeps every value as an unbounded Python int and applies
the hardware bit widths explicitly with these helpers, so results match the
two's-complement registers of the HDL description.
"""


def signed_min(bits: int) -> int:
    """Smallest value of a signed integer of the given width."""
    return -(1 << (bits - 1))


def signed_max(bits: int) -> int:
    """Largest value of a signed integer of the given width."""
    return (1 << (bits - 1)) - 1


def fits_signed(value: int, bits: int) -> bool:
    """Check whether value is representable as a signed integer of width bits."""
    return signed_min(bits) <= value <= signed_max(bits)


def wrap_signed(value: int, bits: int) -> int:
    """
    Truncate value to bits and reinterpret it as two's complement.

    Example:
        >>> wrap_signed(200, 8)
        -56
    """
    mask = (1 << bits) - 1
    value &= mask
    if value >= 1 << (bits - 1):
        value -= 1 << bits
    return value


def saturate_signed(value: int, bits: int) -> int:
    """Clamp value into the signed range of the given width."""
    return max(signed_min(bits), min(signed_max(bits), value))


def worst_case_accumulation(operand_bits: int, contraction_length: int) -> int:
    """
    Largest partial-sum magnitude reachable by a column of MACs.

    The largest product magnitude of two signed operands is
    (-2**(w-1)) * (-2**(w-1)) = 2**(2w-2), accumulated once per row.
    """
    return contraction_length * (1 << (2 * operand_bits - 2))


def required_acc_bits(operand_bits: int, contraction_length: int) -> int:
    """Narrowest signed accumulator that cannot overflow for the given shape."""
    # +1 for the sign bit
    return worst_case_accumulation(operand_bits, contraction_length).bit_length() + 1
