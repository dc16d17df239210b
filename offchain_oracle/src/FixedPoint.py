"""FixedPoint: Checked uint256 arithmetic for 1e18-scaled rates.

Rates are integers where ``ONE`` (10**18) means "one unit". Products of two
scaled values are renormalised by ``ONE``, products of three by ``ONE_SQUARED``.
Every intermediate result is checked against the uint256 range so that a
computation aborts with :class:`ArithmeticOverflow` instead of wrapping.

.. code-block:: python

    >>> mul_div(2 * ONE, 3 * ONE, ONE)
    6000000000000000000
    >>> scale_rate(ONE, 2 * ONE, ONE // 2)
    1000000000000000000
"""

from __future__ import annotations

from .errors import ArithmeticOverflow

ONE = 10**18
ONE_SQUARED = 10**36
UINT256_MAX = 2**256 - 1


def checked(value: int) -> int:
    """Ensure a value fits in the uint256 range.

    :param value: Integer to check.
    :returns: The value, unchanged.
    :raises ArithmeticOverflow: If value is negative or above 2**256 - 1.
    """
    if value < 0 or value > UINT256_MAX:
        raise ArithmeticOverflow(f"Value {value} outside uint256 range")
    return value


def add(a: int, b: int) -> int:
    """Checked addition."""
    return checked(a + b)


def mul(a: int, b: int) -> int:
    """Checked multiplication."""
    return checked(a * b)


def mul_div(a: int, b: int, denominator: int) -> int:
    """Compute ``a * b // denominator`` with the product checked first.

    :raises ArithmeticOverflow: If ``a * b`` overflows.
    :raises ZeroDivisionError: If denominator is zero.
    """
    return mul(a, b) // denominator


def scale_rate(rate: int, src_rate: int, dst_rate: int) -> int:
    """Apply source and destination wrapping rates to an oracle rate.

    Computes ``rate * src_rate * dst_rate / 1e36``, multiplying left to right
    and checking each product.

    :param rate: Oracle rate between the wrapped forms (1e18-scaled).
    :param src_rate: Source wrapping rate (1e18-scaled).
    :param dst_rate: Destination wrapping rate (1e18-scaled).
    :returns: Rate between the original assets (1e18-scaled).
    :raises ArithmeticOverflow: If an intermediate product overflows.
    """
    return mul(mul(rate, src_rate), dst_rate) // ONE_SQUARED


def to_decimal(value: int) -> str:
    """Render a 1e18-scaled value as an exact decimal string.

    .. code-block:: python

        >>> to_decimal(1_500_000_000_000_000_000)
        '1.500000000000000000'
    """
    return f"{value // ONE}.{value % ONE:018d}"
