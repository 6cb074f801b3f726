"""Utility modules for the wsarray engine."""

from .intrange import (
    fits_signed,
    required_acc_bits,
    saturate_signed,
    signed_max,
    signed_min,
    worst_case_accumulation,
    wrap_signed,
)

__all__ = [
    "signed_min",
    "signed_max",
    "fits_signed",
    "wrap_signed",
    "saturate_signed",
    "worst_case_accumulation",
    "required_acc_bits",
]
