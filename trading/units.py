"""
Fixed-point amount helpers

Amounts that represent money stay integers in base units (wei); decimal
strings are only produced for display and parsed back exactly.
"""

import re
from decimal import Decimal, InvalidOperation
from fractions import Fraction
from typing import Union

from .config import BPS_DENOMINATOR, MIN_GAS_LIMIT, MAX_GAS_LIMIT
from .exceptions import InputError, InvalidMinimumAmountError

_DECIMAL_RE = re.compile(r'^(\d+\.?\d*|\.\d+)$')
_RAW_RE = re.compile(r'^(\d+|0[xX][0-9a-fA-F]+)$')

Amount = Union[str, int, Decimal]


def parse_units(value: Amount, decimals: int) -> int:
    """
    Convert a decimal amount to integer base units

    Args:
        value: Decimal string ("0.1"), Decimal or int
        decimals: Token decimals

    Returns:
        Amount in base units
    """
    if isinstance(value, Decimal):
        value = format(value, 'f')
    text = str(value).strip()

    if not _DECIMAL_RE.match(text):
        raise InputError(f"Invalid amount: {value!r}")

    whole, _, fraction = text.partition('.')
    fraction = fraction.rstrip('0')
    if len(fraction) > decimals:
        raise InputError(f"Amount {text} has more than {decimals} decimal places")

    return int(whole or '0') * 10 ** decimals + int(fraction.ljust(decimals, '0') or '0')


def format_units(value: int, decimals: int) -> str:
    """Format base units as an exact decimal string without trailing zeros"""
    value = int(value)
    sign = '-' if value < 0 else ''
    whole, fraction = divmod(abs(value), 10 ** decimals)

    if decimals == 0 or fraction == 0:
        return f"{sign}{whole}"

    fraction_text = str(fraction).rjust(decimals, '0').rstrip('0')
    return f"{sign}{whole}.{fraction_text}"


def parse_positive_units(value: Amount, decimals: int) -> int:
    """parse_units that rejects zero"""
    amount = parse_units(value, decimals)
    if amount <= 0:
        raise InputError(f"Amount must be greater than zero, got {value!r}")
    return amount


def is_raw_amount(value: str) -> bool:
    """True for an integer or hex string already in base units"""
    return bool(_RAW_RE.match(value.strip()))


def parse_raw_amount(value: str) -> int:
    text = value.strip()
    if text.lower().startswith('0x'):
        return int(text, 16)
    return int(text)


def parse_percentage(value: str) -> Fraction:
    """
    Parse a percentage string such as "50%" or "12.5%"

    Returns:
        Percentage as an exact fraction in (0, 100]
    """
    text = value.strip()
    if not text.endswith('%'):
        raise InputError(f"Percentage must end with '%': {value!r}")

    try:
        percentage = Fraction(Decimal(text[:-1].strip()))
    except (InvalidOperation, ValueError, OverflowError):
        raise InputError(f"Invalid percentage: {value!r}")

    if percentage <= 0 or percentage > 100:
        raise InputError(f"Percentage must be between 0 and 100, got {value!r}")
    return percentage


def percentage_of(balance: int, percentage: Fraction) -> int:
    """Floor of percentage/100 * balance, computed exactly"""
    return int(balance * percentage / 100)


def validate_slippage_bps(slippage_bps: int) -> int:
    if isinstance(slippage_bps, bool) or not isinstance(slippage_bps, int):
        raise InputError(f"Slippage must be an integer number of basis points, got {slippage_bps!r}")
    if slippage_bps < 0 or slippage_bps >= BPS_DENOMINATOR:
        raise InputError(
            f"Slippage must be between 0 and {BPS_DENOMINATOR - 1} bps, got {slippage_bps}"
        )
    return slippage_bps


def validate_gas_limit(gas_limit: int) -> int:
    if isinstance(gas_limit, bool) or not isinstance(gas_limit, int):
        raise InputError(f"Gas limit must be an integer, got {gas_limit!r}")
    if gas_limit < MIN_GAS_LIMIT or gas_limit > MAX_GAS_LIMIT:
        raise InputError(
            f"Gas limit must be between {MIN_GAS_LIMIT} and {MAX_GAS_LIMIT}, got {gas_limit}"
        )
    return gas_limit


def slippage_pct_to_bps(slippage_pct: Union[str, float, Decimal]) -> int:
    """
    Convert a wallet setting in percent (10 -> 10%) to basis points

    Args:
        slippage_pct: Slippage percentage as stored by the settings service

    Returns:
        Slippage in basis points
    """
    try:
        bps = int(Decimal(str(slippage_pct).strip()) * 100)
    except (InvalidOperation, ValueError, OverflowError):
        raise InputError(f"Invalid slippage percentage: {slippage_pct!r}")
    return validate_slippage_bps(bps)


def calculate_minimum_out(amount_out: int, slippage_bps: int) -> int:
    """
    Lowest acceptable output for a quote at the given slippage

    Args:
        amount_out: Quoted output in base units
        slippage_bps: Tolerated reduction in basis points, 0 <= bps < 10000

    Returns:
        floor(amount_out * (10000 - slippage_bps) / 10000)
    """
    validate_slippage_bps(slippage_bps)

    minimum_out = amount_out * (BPS_DENOMINATOR - slippage_bps) // BPS_DENOMINATOR
    if minimum_out <= 0:
        raise InvalidMinimumAmountError(
            f"Minimum output rounds to zero (quoted {amount_out}, slippage {slippage_bps} bps)",
            details={'amount_out': amount_out, 'slippage_bps': slippage_bps}
        )
    return minimum_out
