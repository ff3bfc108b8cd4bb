"""Venue clients: pool snapshots plus swap-instruction building."""

from solarb.venues.base import SwapSide, VenueClient
from solarb.venues.meteora import MeteoraClient
from solarb.venues.raydium import RaydiumClient

__all__ = ["SwapSide", "VenueClient", "MeteoraClient", "RaydiumClient"]
