"""
Atomicity Conformance Tests

INVARIANT: Operations are all-or-nothing.

    ∀ operation O:
        O succeeds ⟹ all of O's state changes are visible
        O fails ⟹ the ledger is exactly as it was before O

For distribute() this holds even when some transfers already went out
before a later one failed.
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from batch_ledger import (
    BatchLedger, InMemoryTransferAgent, LedgerError, TransferFailed,
)
from tests.helpers import ledger_snapshot


def _ledger(qtys, agent=None):
    ledger = BatchLedger("atomicity", transfer_agent=agent or InMemoryTransferAgent())
    for i, qty in enumerate(qtys):
        ledger.add_contribution(f"p{i}", "", "", qty)
    return ledger


class TestAtomicityProperties:
    """Property-based atomicity tests."""

    @given(
        st.lists(st.integers(min_value=1, max_value=1_000), min_size=2, max_size=15),
        st.data(),
    )
    @settings(max_examples=100)
    def test_failed_transfer_restores_everything(self, qtys, data):
        """
        PROPERTY: If transfer k of N fails, no contribution is marked paid.
        """
        failing_index = data.draw(st.integers(min_value=0, max_value=len(qtys) - 1))
        agent = InMemoryTransferAgent(failing={f"p{failing_index}"})
        ledger = _ledger(qtys, agent)
        ledger.receive_payment("buyer", 10 ** 6)
        before = ledger_snapshot(ledger)

        with pytest.raises(TransferFailed):
            ledger.distribute()

        assert ledger_snapshot(ledger) == before
        assert ledger.total_paid() == 0
        # Transfers before the failing one went out and stay out
        assert [p for p, _ in agent.transfers] == [f"p{i}" for i in range(failing_index)]

    @given(
        st.lists(st.integers(min_value=1, max_value=1_000), min_size=1, max_size=10),
        st.integers(min_value=-100, max_value=0),
    )
    @settings(max_examples=50)
    def test_invalid_quantity_changes_nothing(self, qtys, bad_quantity):
        """PROPERTY: addContribution with quantity ≤ 0 leaves all state unchanged."""
        ledger = _ledger(qtys)
        before = ledger_snapshot(ledger)
        with pytest.raises(LedgerError):
            ledger.add_contribution("new", "", "", bad_quantity)
        assert ledger_snapshot(ledger) == before

    @given(
        st.lists(st.integers(min_value=1, max_value=1_000), min_size=1, max_size=10),
        st.integers(min_value=1, max_value=100),
        st.integers(min_value=1, max_value=10 ** 6),
    )
    @settings(max_examples=50)
    def test_underpayment_changes_nothing(self, qtys, price, shortfall):
        """PROPERTY: receivePayment below totalPrice leaves buyer and amount unchanged."""
        ledger = _ledger(qtys)
        ledger.set_price_per_unit(price)
        before = ledger_snapshot(ledger)
        with pytest.raises(LedgerError):
            ledger.receive_payment("buyer", ledger.total_price() - shortfall)
        assert ledger_snapshot(ledger) == before


class TestAtomicityExamples:
    """Explicit atomicity examples."""

    def test_failing_last_transfer_rolls_back_first(self):
        agent = InMemoryTransferAgent(failing={"p1"})
        ledger = _ledger([3, 7], agent)
        ledger.receive_payment("buyer", 20)
        with pytest.raises(TransferFailed):
            ledger.distribute()
        assert ledger.get_contribution("p0").paid is False
        assert ledger.get_contribution("p0").paid_amount == 0
        assert agent.balance_of("p0") == 6

    def test_failing_first_transfer_prevents_rest(self):
        agent = InMemoryTransferAgent(failing={"p0"})
        ledger = _ledger([3, 7], agent)
        ledger.receive_payment("buyer", 20)
        with pytest.raises(TransferFailed):
            ledger.distribute()
        assert agent.transfers == []
        assert ledger.get_contribution("p1").paid is False

    def test_partial_previous_round_untouched_by_failure(self):
        """Entries paid in an earlier call keep their payout when a later call fails."""
        agent = InMemoryTransferAgent()
        ledger = _ledger([3, 7], agent)
        ledger.receive_payment("buyer", 20)
        ledger.distribute()

        ledger.add_contribution("late", "", "", 10)
        ledger.receive_payment("buyer", 40)
        agent.failing.add("late")
        with pytest.raises(TransferFailed):
            ledger.distribute()

        assert ledger.get_contribution("p0").paid_amount == 6
        assert ledger.get_contribution("p1").paid_amount == 14
        assert ledger.get_contribution("late").paid is False

    def test_duplicate_keeps_first_state(self):
        ledger = _ledger([3])
        after_first = ledger_snapshot(ledger)
        with pytest.raises(LedgerError):
            ledger.add_contribution("p0", "again", "", 5)
        assert ledger_snapshot(ledger) == after_first
