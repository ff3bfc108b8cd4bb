"""
solarb Test Mocks
=================
Reusable fakes for isolated testing.
"""

from tests.mocks.mock_apis import MockSolanaApis
from tests.mocks.mock_pipeline import build_pipeline
from tests.mocks.mock_rpc import MockRpcGateway

__all__ = [
    "MockSolanaApis",
    "MockRpcGateway",
    "build_pipeline",
]
