"""
Integration Test Configuration
==============================
Fixtures for full pipeline wiring with mocked external services.
"""

import pytest
from solders.keypair import Keypair

from tests.mocks.mock_apis import arbitrage_scenario
from tests.mocks.mock_rpc import MockRpcGateway


@pytest.fixture
def apis():
    """Raydium BONK/WSOL at 1/102 SOL, Meteora WSOL/BONK at 100 tokens per SOL."""
    return arbitrage_scenario(raydium_tokens_per_sol=102.0, meteora_tokens_per_sol=100.0)


@pytest.fixture
def rpc(clock):
    return MockRpcGateway(balance=5_000_000_000, clock=clock)


@pytest.fixture
def signer():
    return Keypair()
