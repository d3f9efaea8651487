"""
Wei/ETH conversions.

Profit values arrive as base-unit integers (wei), usually as strings
because they overflow JSON doubles.
"""

from decimal import Decimal

from arbwatch.config.constants import WEI_PER_ETH


def parse_wei(value: str | int) -> int:
    """
    Parse a wei amount.

    Args:
        value: Integer, decimal string, or 0x-prefixed hex string.

    Returns:
        Amount in wei.

    Raises:
        ValueError: If the value is not an integer amount.
    """
    if isinstance(value, bool):
        raise ValueError(f"Not a wei amount: {value!r}")
    if isinstance(value, int):
        return value

    text = value.strip()
    if text.lower().startswith(("0x", "-0x")):
        return int(text, 16)
    return int(text)


def wei_to_eth(value: str | int) -> float:
    """
    Convert a wei amount to ETH.

    Division happens in Decimal so large amounts keep their precision
    until the final float conversion.

    Example:
        >>> wei_to_eth("1000000000000000000")
        1.0
        >>> wei_to_eth("250000000000000000")
        0.25
    """
    return float(Decimal(parse_wei(value)) / Decimal(WEI_PER_ETH))
