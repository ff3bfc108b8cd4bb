import os
from dotenv import load_dotenv

from config import thresholds

# Load Environment Variables from project root .env
env_path = os.path.join(os.path.dirname(__file__), "../.env")
load_dotenv(env_path)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    # ═══════════════════════════════════════════════════════════════════
    # RUNTIME
    # ═══════════════════════════════════════════════════════════════════
    SILENT_MODE = _env_bool("SILENT_MODE", False)
    DEBUG = _env_bool("DEBUG", False)

    # Paths
    BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    CACHE_DIR = os.getenv("CACHE_DIR", os.path.join(BASE_DIR, "cache"))
    LOG_DIR = os.getenv("LOG_DIR", os.path.join(BASE_DIR, "logs"))

    # ═══════════════════════════════════════════════════════════════════
    # SECRETS & ENDPOINTS
    # ═══════════════════════════════════════════════════════════════════
    RPC_URL = os.getenv("RPC_URL", "https://api.mainnet-beta.solana.com")
    WALLET_PRIVATE_KEY = os.getenv("WALLET_PRIVATE_KEY", "")

    JUPITER_API_URL = os.getenv("JUPITER_API_URL", "https://lite-api.jup.ag/swap/v1")
    RAYDIUM_PAIRS_URL = os.getenv("RAYDIUM_PAIRS_URL", "https://api.raydium.io/v2/main/pairs")
    METEORA_PAIRS_URL = os.getenv("METEORA_PAIRS_URL", "https://dlmm-api.meteora.ag/pair/all")

    # Relay ("Fast" by default)
    RELAY_URL = os.getenv("RELAY_URL", "https://fast.circular.bot/transactions")
    RELAY_API_KEY = os.getenv("RELAY_API_KEY", "")
    RELAY_TIP_ACCOUNT = os.getenv(
        "RELAY_TIP_ACCOUNT", "FAST3dMFZvESiEipBvLSiXq3QCV51o3xuoHScqRU6cB6"
    )
    RELAY_TIP_LAMPORTS = int(
        os.getenv("RELAY_TIP_LAMPORTS", str(thresholds.RELAY_MIN_TIP_LAMPORTS))
    )
    FRONT_RUNNING_PROTECTION = _env_bool("FRONT_RUNNING_PROTECTION", False)

    # ═══════════════════════════════════════════════════════════════════
    # STRATEGY
    # ═══════════════════════════════════════════════════════════════════
    ARB_PROFILE = os.getenv("ARB_PROFILE", "standard")
    MIN_PROFIT_BPS = int(os.getenv("MIN_PROFIT_BPS", str(thresholds.MIN_PROFIT_BPS)))
    MAX_PRICE_IMPACT_BPS = int(
        os.getenv("MAX_PRICE_IMPACT_BPS", str(thresholds.MAX_PRICE_IMPACT_BPS))
    )
    SLIPPAGE_BPS = int(os.getenv("SLIPPAGE_BPS", str(thresholds.SLIPPAGE_BPS)))
    PRIORITY_FEE_MICROLAMPORTS = int(
        os.getenv("PRIORITY_FEE_MICROLAMPORTS", str(thresholds.PRIORITY_FEE_MICROLAMPORTS))
    )
    SIMULATE_BEFORE_SUBMIT = _env_bool("SIMULATE_BEFORE_SUBMIT", True)

    @staticmethod
    def profile() -> tuple:
        """Return (min_spread_pct, max_spread_pct, min_liquidity_usd) for ARB_PROFILE."""
        from solarb.shared.system.errors import ConfigurationMissing

        try:
            return thresholds.PROFILES[Settings.ARB_PROFILE]
        except KeyError:
            raise ConfigurationMissing(
                "ARB_PROFILE", f"unknown profile '{Settings.ARB_PROFILE}'"
            ) from None

    @staticmethod
    def require(*names: str) -> None:
        """Fail fast when a required setting is empty."""
        from solarb.shared.system.errors import ConfigurationMissing

        for name in names:
            if not getattr(Settings, name, ""):
                raise ConfigurationMissing(name)

    @staticmethod
    def load_signer():
        """Decode WALLET_PRIVATE_KEY (base58) into a solders Keypair."""
        from solders.keypair import Keypair
        from solarb.shared.system.errors import ConfigurationMissing

        Settings.require("WALLET_PRIVATE_KEY")
        try:
            return Keypair.from_base58_string(Settings.WALLET_PRIVATE_KEY)
        except ValueError as e:
            raise ConfigurationMissing("WALLET_PRIVATE_KEY", f"not a valid keypair: {e}") from e
