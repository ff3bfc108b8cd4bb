"""
solarb - Centralized Thresholds
===============================
All tunable numeric parameters in one place.
"""

# ============================================
# BASE ASSET
# ============================================

WSOL_MINT = "So11111111111111111111111111111111111111112"
LAMPORTS_PER_SOL = 1_000_000_000


# ============================================
# PROFIT GUARD (basis points)
# ============================================

MIN_PROFIT_BPS = 50            # Minimum realized profit to submit
MAX_PRICE_IMPACT_BPS = 100     # Per-leg price impact ceiling
SLIPPAGE_BPS = 100             # Per-leg slippage tolerance


# ============================================
# MATCHER FILTERS
# ============================================

MIN_SPREAD_PCT = 0.5           # |spread| below this is noise
MAX_SPREAD_PCT = 10.0          # |spread| above this is almost always bad data
MIN_LIQUIDITY_USD = 1_000.0    # Per-venue liquidity floor
POOL_PREFILTER_LIQUIDITY_USD = 5_000.0  # Providers drop thinner pools before caching
TOP_N = 10

# Deployment profiles: (min_spread_pct, max_spread_pct, min_liquidity_usd)
PROFILES = {
    "standard": (0.5, 10.0, 1_000.0),
    "wide": (1.0, 50.0, 10_000.0),
}


# ============================================
# TRANSACTION ASSEMBLY
# ============================================

COMPUTE_UNIT_LIMIT = 1_400_000      # Two cross-venue swaps in one transaction
PRIORITY_FEE_MICROLAMPORTS = 0      # 0 = no priority-fee directive
RELAY_MIN_TIP_LAMPORTS = 1_000_000  # Relay rejects anything smaller
DEFAULT_TRADE_AMOUNT_SOL = 0.1


# ============================================
# CACHE TTLs (seconds)
# ============================================

TOP_N_CACHE_TTL_SEC = 300
POOL_CACHE_TTL_SEC = 30


# ============================================
# STAGE DEADLINES (seconds)
# ============================================

HTTP_TIMEOUT_SEC = 10.0
FETCH_TIMEOUT_SEC = 20.0
QUOTE_TIMEOUT_SEC = 10.0
BLOCKHASH_TIMEOUT_SEC = 5.0
SIMULATION_TIMEOUT_SEC = 10.0
RELAY_TIMEOUT_SEC = 5.0
BLOCKHASH_VALIDITY_SEC = 60.0   # ~150 slots
CONFIRMATION_WINDOW_SEC = 60.0
CONFIRMATION_POLL_SEC = 1.0
