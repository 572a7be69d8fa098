"""
Checked unsigned integer arithmetic.

Python integers never overflow, so every ledger update goes through these
helpers to reproduce fixed-width semantics: a result outside ``[0, 2**bits)``
aborts the action with :class:`~shrimpfarm.errors.GameArithmeticError`.
"""

from __future__ import annotations

from .constants import U64_MAX, U128_MAX
from .errors import ErrorCode, GameArithmeticError, ValidationError

_LIMITS = {64: U64_MAX, 128: U128_MAX}


def _limit(bits: int) -> int:
    try:
        return _LIMITS[bits]
    except KeyError:
        raise ValueError(f"Unsupported integer width: {bits}") from None


def _overflow(op: str, a: int, b: int, bits: int) -> GameArithmeticError:
    return GameArithmeticError(
        ErrorCode.ARITHMETIC_OVERFLOW,
        internal_details=f"u{bits} {op} overflow: {a} {op} {b}",
    )


def checked_add(a: int, b: int, bits: int = 128) -> int:
    result = a + b
    if result > _limit(bits):
        raise _overflow("+", a, b, bits)
    return result


def checked_sub(a: int, b: int, bits: int = 128) -> int:
    result = a - b
    if result < 0:
        raise GameArithmeticError(
            ErrorCode.ARITHMETIC_UNDERFLOW,
            internal_details=f"u{bits} - underflow: {a} - {b}",
        )
    return result


def checked_mul(a: int, b: int, bits: int = 128) -> int:
    result = a * b
    if result > _limit(bits):
        raise _overflow("*", a, b, bits)
    return result


def checked_div(a: int, b: int) -> int:
    """Truncating division; division by zero aborts."""
    if b == 0:
        raise GameArithmeticError(
            ErrorCode.DIVISION_BY_ZERO,
            internal_details=f"division by zero: {a} / 0",
        )
    return a // b


def checked_add_or(a: int, b: int, default: int, bits: int = 128) -> int:
    """Add, returning ``default`` instead of aborting on overflow."""
    result = a + b
    if result > _limit(bits):
        return default
    return result


def percent_of(amount: int, percent: int, bits: int = 64) -> int:
    """``amount * percent / 100`` with checked multiplication."""
    return checked_div(checked_mul(amount, percent, bits), 100)


def to_u64(value: int) -> int:
    """Narrow a wide result to u64, aborting if it does not fit."""
    if value > U64_MAX:
        raise GameArithmeticError(
            ErrorCode.ARITHMETIC_OVERFLOW,
            internal_details=f"value does not fit in u64: {value}",
        )
    return value


def require_u64(value: int, field: str) -> int:
    """Validate an externally supplied u64 input."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(
            ErrorCode.INVALID_ARGUMENT,
            f"{field} must be an integer",
        )
    if not (0 <= value <= U64_MAX):
        raise ValidationError(
            ErrorCode.INVALID_ARGUMENT,
            f"{field} out of range",
            internal_details=f"{field}={value}",
        )
    return value


def require_u128(value: int, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(ErrorCode.INVALID_ARGUMENT, f"{field} must be an integer")
    if not (0 <= value <= U128_MAX):
        raise ValidationError(
            ErrorCode.INVALID_ARGUMENT,
            f"{field} out of range",
            internal_details=f"{field}={value}",
        )
    return value
