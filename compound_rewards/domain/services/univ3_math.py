from __future__ import annotations

from decimal import Decimal, localcontext


Q128 = 2**128
MAX_UINT128 = 2**128 - 1
UINT32_MOD = 2**32
UINT256_MOD = 2**256


def delta_uint32(new_value: int, old_value: int) -> int:
    """Difference of two readings of a counter that wraps at 2**32."""
    return (UINT32_MOD + new_value - old_value) % UINT32_MOD


def delta_uint256(new_value: int, old_value: int) -> int:
    return (new_value - old_value) % UINT256_MOD


def parse_uint(value: int | str | Decimal | None, *, bits: int = 256) -> int:
    if value is None:
        raise ValueError(f"Missing uint{bits} value.")
    if isinstance(value, bool):
        raise ValueError(f"Unsupported uint{bits} value type.")
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str):
        raw = value.strip()
        if not raw:
            raise ValueError(f"Empty uint{bits} string.")
        parsed = int(raw, 16) if raw.lower().startswith("0x") else int(raw)
    elif isinstance(value, Decimal):
        if value != value.to_integral_value():
            raise ValueError(f"Decimal uint{bits} value must be integral.")
        parsed = int(value)
    else:
        raise ValueError(f"Unsupported uint{bits} value type.")

    if parsed < 0:
        raise ValueError(f"uint{bits} value must be non-negative.")
    if parsed >= 2**bits:
        raise ValueError(f"uint{bits} value out of range.")
    return parsed


def fees_from_growth(*, growth_x128: Decimal, liquidity: int) -> Decimal:
    if growth_x128 < 0:
        raise ValueError("growth_x128 must be non-negative.")
    if liquidity < 0:
        raise ValueError("liquidity must be non-negative.")
    with localcontext() as ctx:
        ctx.prec = 100
        return (Decimal(liquidity) * growth_x128) / Decimal(Q128)
