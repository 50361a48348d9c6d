"""
conftest.py - Shared pytest fixtures for batch ledger tests

Provides common fixtures used across unit, functional and conformance tests:
- Empty and populated ledgers
- A recording transfer agent

State comparison utilities live in tests/helpers.py.
"""

import pytest

from batch_ledger import BatchLedger, InMemoryTransferAgent


# =============================================================================
# BASIC FIXTURES
# =============================================================================

@pytest.fixture
def agent():
    """Transfer agent that accepts every transfer."""
    return InMemoryTransferAgent()


@pytest.fixture
def empty_ledger(agent):
    """Fresh ledger with no contributions."""
    return BatchLedger("test", transfer_agent=agent)


@pytest.fixture
def two_farmer_ledger(agent):
    """X(3 kg) and Y(7 kg) at 2 per kg: total price 20."""
    ledger = BatchLedger("test", transfer_agent=agent)
    ledger.add_contribution("x", "Xavier", "555-0001", 3)
    ledger.add_contribution("y", "Yara", "555-0002", 7)
    ledger.set_price_per_unit(2)
    return ledger


@pytest.fixture
def paid_ledger(two_farmer_ledger):
    """two_farmer_ledger with the full price received from 'buyer'."""
    two_farmer_ledger.receive_payment("buyer", 20)
    return two_farmer_ledger


@pytest.fixture
def four_farmer_ledger(agent):
    """a, b, c, d with quantities 1..4, in insertion order."""
    ledger = BatchLedger("test", transfer_agent=agent)
    for i, participant in enumerate(["a", "b", "c", "d"], start=1):
        ledger.add_contribution(participant, participant.upper(), f"555-000{i}", i)
    return ledger
