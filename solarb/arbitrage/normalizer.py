"""
Price Normalizer
================
Venues quote a pool in its own orientation. The engine compares prices as
"non-base tokens per one SOL", so a quote whose SOL side is the second mint
is inverted.
"""

import math

from config.thresholds import WSOL_MINT
from solarb.shared.models import PoolSnapshot, PricedPool
from solarb.shared.system.errors import InvalidQuote


def normalize_price(raw_price: float, base_is_second: bool) -> float:
    """Return quote units per one base unit; reciprocal when base is the second mint."""
    try:
        price = float(raw_price)
    except (TypeError, ValueError):
        raise InvalidQuote(raw_price, "not a number") from None

    if not math.isfinite(price) or price <= 0:
        raise InvalidQuote(raw_price)

    return 1.0 / price if base_is_second else price


def normalize_snapshot(snapshot: PoolSnapshot, base_mint: str = WSOL_MINT) -> PricedPool:
    """Price a snapshot and resolve its non-base token by address."""
    base_first = snapshot.base_mint == base_mint
    base_second = snapshot.quote_mint == base_mint

    if base_first == base_second:
        reason = "base asset on both sides" if base_first else "pool has no base-asset side"
        raise InvalidQuote(snapshot.raw_price, reason, snapshot.pool_id)

    try:
        price = normalize_price(snapshot.raw_price, base_is_second=base_second)
    except InvalidQuote as e:
        e.pool_id = snapshot.pool_id
        raise

    if base_second:
        token_mint, token_symbol = snapshot.base_mint, snapshot.base_symbol
    else:
        token_mint, token_symbol = snapshot.quote_mint, snapshot.quote_symbol

    return PricedPool(snapshot=snapshot, price=price, token_mint=token_mint, token_symbol=token_symbol)
