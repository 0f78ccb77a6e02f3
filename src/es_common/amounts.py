"""Integer arithmetic utilities for on-ledger quantities.

All amounts are int in the asset's smallest unit. No float, no Decimal.
Wire and record fields are u64; ledger balance columns are signed BIGINT.
"""

U64_MAX: int = (1 << 64) - 1
LEDGER_BALANCE_MAX: int = (1 << 63) - 1


def is_u64(value: int) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= U64_MAX


def units_to_display(amount: int, decimals: int) -> str:
    """Render base units with the asset's precision: (1500000, 6) -> '1.500000'."""
    if decimals == 0:
        return f"{amount:,}"
    sign = "-" if amount < 0 else ""
    whole, frac = divmod(abs(amount), 10**decimals)
    return f"{sign}{whole:,}.{frac:0{decimals}d}"


def storage_deposit(
    data_len: int,
    overhead_bytes: int,
    per_byte: int,
    multiplier: int,
) -> int:
    """Refundable deposit for persisting `data_len` bytes.

    deposit = (overhead + data_len) * per_byte * multiplier
    """
    if data_len < 0:
        raise ValueError(f"data_len must be >= 0, got {data_len}")
    return (overhead_bytes + data_len) * per_byte * multiplier
