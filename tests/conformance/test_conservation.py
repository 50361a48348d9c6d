"""
Conservation Conformance Tests

INVARIANTS:
    aggregate_quantity = Σ quantity over active contributions
    Σ paid_amount ≤ total_received
    total_received - Σ paid_amount < number of participants paid

Distribution splits the escrow but never pays out more than was received,
and floor division loses less than one minor unit per participant.
"""

import pytest
from hypothesis import given, settings, assume
from hypothesis import strategies as st

from batch_ledger import BatchLedger, InMemoryTransferAgent


# =============================================================================
# STRATEGIES FOR PROPERTY-BASED TESTING
# =============================================================================

quantities = st.lists(st.integers(min_value=1, max_value=10_000), min_size=1, max_size=25)


@st.composite
def batch_with_payment(draw):
    """Quantities for distinct participants plus a payment at or above price."""
    qtys = draw(quantities)
    price = draw(st.integers(min_value=1, max_value=1_000))
    extra = draw(st.integers(min_value=0, max_value=10 ** 9))
    return qtys, price, sum(qtys) * price + extra


def _ledger(qtys):
    agent = InMemoryTransferAgent()
    ledger = BatchLedger("conservation", transfer_agent=agent)
    for i, qty in enumerate(qtys):
        ledger.add_contribution(f"p{i}", f"farmer {i}", "", qty)
    return ledger, agent


class TestAggregateProperties:

    @given(quantities)
    @settings(max_examples=100)
    def test_aggregate_equals_sum(self, qtys):
        """PROPERTY: aggregate equals the sum of added quantities."""
        ledger, _ = _ledger(qtys)
        assert ledger.aggregate_quantity == sum(qtys)
        assert ledger.verify_invariants()["valid"]

    @given(quantities, st.data())
    @settings(max_examples=100)
    def test_removal_subtracts_exact_quantity(self, qtys, data):
        """PROPERTY: removing P lowers the aggregate by exactly P's quantity."""
        ledger, _ = _ledger(qtys)
        i = data.draw(st.integers(min_value=0, max_value=len(qtys) - 1))
        ledger.remove_contribution(f"p{i}")
        assert ledger.aggregate_quantity == sum(qtys) - qtys[i]
        assert ledger.count() == len(qtys) - 1
        assert ledger.verify_invariants()["valid"]

    @given(quantities, st.lists(st.integers(min_value=0, max_value=30), max_size=30))
    @settings(max_examples=100)
    def test_interleaved_removals_keep_invariant(self, qtys, removals):
        """PROPERTY: any removal sequence keeps aggregate == Σ active quantity."""
        ledger, _ = _ledger(qtys)
        for i in removals:
            ledger.remove_contribution(f"p{i}")
            assert ledger.verify_invariants()["valid"]
        remaining = {f"p{i}" for i in range(len(qtys))} - {f"p{i}" for i in removals}
        assert {c.participant for c in ledger.contributions()} == remaining


class TestPayoutProperties:

    @given(batch_with_payment())
    @settings(max_examples=200)
    def test_never_pays_more_than_received(self, batch):
        """PROPERTY: Σ paid_amount ≤ total_received."""
        qtys, price, amount = batch
        ledger, agent = _ledger(qtys)
        ledger.set_price_per_unit(price)
        ledger.receive_payment("buyer", amount)
        ledger.distribute()
        assert ledger.total_paid() <= ledger.total_received
        assert agent.total_sent() == ledger.total_paid()

    @given(batch_with_payment())
    @settings(max_examples=200)
    def test_dust_bound(self, batch):
        """PROPERTY: 0 ≤ dust < participant count."""
        qtys, price, amount = batch
        ledger, _ = _ledger(qtys)
        ledger.set_price_per_unit(price)
        ledger.receive_payment("buyer", amount)
        ledger.distribute()
        assert 0 <= ledger.dust() < len(qtys)

    @given(batch_with_payment())
    @settings(max_examples=100)
    def test_shares_are_monotonic_in_quantity(self, batch):
        """PROPERTY: a larger contribution never receives a smaller share."""
        qtys, price, amount = batch
        assume(len(qtys) >= 2)
        ledger, _ = _ledger(qtys)
        ledger.receive_payment("buyer", amount)
        ledger.distribute()
        records = sorted(ledger.contributions(), key=lambda r: r.quantity)
        for smaller, larger in zip(records, records[1:]):
            assert smaller.paid_amount <= larger.paid_amount

    @given(quantities, st.integers(min_value=1, max_value=1_000))
    @settings(max_examples=100)
    def test_exact_price_divides_without_dust(self, qtys, price):
        """PROPERTY: paying exactly quantity × price leaves no dust."""
        ledger, agent = _ledger(qtys)
        ledger.set_price_per_unit(price)
        ledger.receive_payment("buyer", ledger.total_price())
        ledger.distribute()
        assert ledger.dust() == 0
        for i, qty in enumerate(qtys):
            assert agent.balance_of(f"p{i}") == qty * price


class TestConservationExamples:

    def test_paid_amount_implies_paid(self):
        ledger, _ = _ledger([1, 2, 3])
        ledger.receive_payment("buyer", 600)
        ledger.distribute()
        for record in ledger.contributions():
            assert record.paid
            assert record.paid_amount > 0

    def test_tiny_payment_pays_zero_shares(self):
        """Shares may floor to zero; the entries are still marked paid."""
        ledger, agent = _ledger([1, 1, 1])
        ledger.receive_payment("buyer", 2)
        ledger.distribute()
        assert [r.paid_amount for r in ledger.contributions()] == [0, 0, 0]
        assert all(r.paid for r in ledger.contributions())
        assert ledger.dust() == 2
        assert len(agent.transfers) == 3
