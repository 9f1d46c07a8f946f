#!/usr/bin/env python3
"""
Fixed-Point Ratio Math

Unsigned 18-decimal fixed-point arithmetic for basket weights, reference
amounts, prices and issuance heights. Values are plain Python ints scaled by
FIX_SCALE and bounded to the uint192 range, so results can be compared
exactly against on-chain style expectations.
"""

from decimal import Decimal, InvalidOperation, localcontext
from enum import Enum
from typing import Union

FIX_DECIMALS = 18
FIX_SCALE = 10 ** FIX_DECIMALS
FIX_ONE = FIX_SCALE
FIX_ZERO = 0
FIX_MAX = 2 ** 192 - 1


class RoundingMode(Enum):
    """Rounding applied to the last fixed-point digit"""
    FLOOR = "floor"
    ROUND = "round"  # nearest, half up
    CEIL = "ceil"


FLOOR = RoundingMode.FLOOR
ROUND = RoundingMode.ROUND
CEIL = RoundingMode.CEIL


class UIntOutOfBounds(ArithmeticError):
    """Fixed-point result fell outside [0, FIX_MAX]"""


def _check(value: int) -> int:
    if value < 0 or value > FIX_MAX:
        raise UIntOutOfBounds(f"Fixed-point value {value} out of bounds [0, {FIX_MAX}]")
    return value


def div_rnd(numerator: int, denominator: int, rounding: RoundingMode = FLOOR) -> int:
    """Divide two non-negative integers with explicit rounding"""
    if denominator == 0:
        raise ZeroDivisionError("Fixed-point division by zero")
    if numerator < 0 or denominator < 0:
        raise UIntOutOfBounds(f"Negative operand in division: {numerator} / {denominator}")

    quotient, remainder = divmod(numerator, denominator)
    if rounding == CEIL and remainder > 0:
        quotient += 1
    elif rounding == ROUND and remainder * 2 >= denominator:
        quotient += 1
    return quotient


def fp(value: Union[str, int, float, Decimal]) -> int:
    """
    Parse a decimal literal into fixed point without precision loss

    Floats are routed through their shortest repr, so fp(0.1) == fp("0.1").
    Literals with more than 18 decimals are rejected rather than truncated.
    """
    with localcontext() as ctx:
        ctx.prec = 100
        try:
            scaled = Decimal(str(value)) * FIX_SCALE
        except InvalidOperation as e:
            raise ValueError(f"Cannot parse fixed-point literal {value!r}") from e

        if scaled != scaled.to_integral_value():
            raise ValueError(f"{value!r} has more than {FIX_DECIMALS} decimals")
        return _check(int(scaled))


def fp_rounded(value: Union[str, int, float, Decimal], rounding: RoundingMode = ROUND) -> int:
    """Parse a decimal into fixed point, rounding away digits past the 18th"""
    with localcontext() as ctx:
        ctx.prec = 100
        try:
            scaled = Decimal(str(value)) * FIX_SCALE
        except InvalidOperation as e:
            raise ValueError(f"Cannot parse fixed-point literal {value!r}") from e

        if scaled < 0:
            raise UIntOutOfBounds(f"Fixed-point value {value!r} is negative")
        integral = int(scaled)
        remainder = scaled - integral
        if rounding == CEIL and remainder > 0:
            integral += 1
        elif rounding == ROUND and remainder * 2 >= 1:
            integral += 1
        return _check(integral)


def to_fix(value: int) -> int:
    """Convert a whole number into fixed point"""
    return _check(value * FIX_SCALE)


def shiftl_to_fix(value: int, shift: int, rounding: RoundingMode = FLOOR) -> int:
    """Convert value * 10**shift into fixed point (used for raw token units)"""
    exponent = shift + FIX_DECIMALS
    if exponent >= 0:
        return _check(value * 10 ** exponent)
    return _check(div_rnd(value, 10 ** (-exponent), rounding))


def shiftl_to_uint(value: int, shift: int, rounding: RoundingMode = FLOOR) -> int:
    """Convert fixed point value * 10**shift into a whole number"""
    exponent = shift - FIX_DECIMALS
    if exponent >= 0:
        return value * 10 ** exponent
    return div_rnd(value, 10 ** (-exponent), rounding)


def to_uint(value: int, rounding: RoundingMode = FLOOR) -> int:
    """Convert fixed point into a whole number"""
    return div_rnd(value, FIX_SCALE, rounding)


def mul(x: int, y: int, rounding: RoundingMode = FLOOR) -> int:
    return _check(div_rnd(x * y, FIX_SCALE, rounding))


def div(x: int, y: int, rounding: RoundingMode = FLOOR) -> int:
    return _check(div_rnd(x * FIX_SCALE, y, rounding))


def mul_div(x: int, y: int, z: int, rounding: RoundingMode = FLOOR) -> int:
    """x * y / z with a single rounding step"""
    return _check(div_rnd(x * y, z, rounding))


def add(x: int, y: int) -> int:
    return _check(x + y)


def sub(x: int, y: int) -> int:
    return _check(x - y)


def near(x: int, y: int, epsilon: int) -> bool:
    """True when x and y differ by less than epsilon"""
    return abs(x - y) < epsilon


def to_float(value: int) -> float:
    """Lossy conversion for reporting and charts"""
    return value / FIX_SCALE
