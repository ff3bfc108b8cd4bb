"""
solarb
======
Cross-venue (Raydium / Meteora DLMM) arbitrage detection and atomic execution on Solana.
"""

__version__ = "0.1.0"
