"""
Unit Test Configuration
=======================
Fixtures for pure logic tests - NO real network I/O.

httpx.MockTransport still works: only the real transport is blocked.
"""

import pytest


# ============================================================================
# AUTOUSE: ENFORCE I/O ISOLATION
# ============================================================================


@pytest.fixture(autouse=True)
def isolate_unit_tests(monkeypatch):
    """
    Any test that accidentally reaches for the real network fails loudly.
    """
    async def block_network(*args, **kwargs):
        raise RuntimeError(
            "Network I/O detected in unit test! "
            "Route HTTP through httpx.MockTransport or a mock gateway."
        )

    monkeypatch.setattr("httpx.AsyncHTTPTransport.handle_async_request", block_network)
