#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: One Batch, Start to Finish

This is a pedagogical walkthrough of the batch ledger. Each step builds on
the previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:  Collecting   - Empty ledger, contributions, removal and order
  4-5:  Selling      - Pricing, receiving the lump-sum payment
  6-8:  Paying Out   - Proportional shares, dust, idempotent distribution
  9-10: Safety       - Failed transfers roll back, re-entrant calls rejected

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass, field
from typing import List, Tuple
import logging
import sys

from batch_ledger import (
    BatchLedger, InMemoryTransferAgent,
    LedgerError, TransferFailed,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    # (participant, name, phone, kg)
    farmers: List[Tuple[str, str, str, int]] = field(default_factory=lambda: [
        ("0xA1", "Asha", "555-0101", 120),
        ("0xB2", "Bela", "555-0102", 80),
        ("0xC3", "Chidi", "555-0103", 50),
        ("0xD4", "Dara", "555-0104", 33),
    ])
    price_per_kg: int = 450         # minor units
    overpayment: int = 7            # paid on top of the list price
    buyer: str = "0xROASTER"


CONFIG = DemoConfig()

# Global state for interactive mode
QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    """Print a step header with learning objective."""
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    """Print a section header within a step."""
    print(f"\n--- {text} ---\n")


def show_contributions(ledger: BatchLedger):
    for i in range(ledger.count()):
        r = ledger.get_by_index(i)
        status = f"paid {r.paid_amount}" if r.paid else "unpaid"
        print(f"  [{i}] {r.participant:<6} {r.name:<6} {r.quantity:>5} kg   {status}")
    print(f"  aggregate: {ledger.aggregate_quantity} kg")


# ============================================================================
# PHASE 1: COLLECTING (Steps 1-3)
# ============================================================================

def step_01_empty_ledger():
    """Create an empty ledger."""
    step_header(1, "The Empty Ledger",
        "A batch starts with no contributions, no price and no buyer.")

    print(">>> agent = InMemoryTransferAgent()")
    print(">>> ledger = BatchLedger('harvest-2026', transfer_agent=agent)")
    agent = InMemoryTransferAgent()
    ledger = BatchLedger("harvest-2026", transfer_agent=agent)
    ledger.set_label("Arabica, washed")

    section_header("Initial State")
    print(f"Contributions:   {ledger.count()}")
    print(f"Aggregate:       {ledger.aggregate_quantity} kg")
    print(f"Price per kg:    {ledger.get_price_per_unit()}")
    print(f"Buyer:           {ledger.buyer}")
    print(f"Label:           {ledger.label!r}")

    return ledger, agent


def step_02_contributions(ledger: BatchLedger):
    """Record each farmer's kilograms."""
    step_header(2, "Contributions",
        "Each participant contributes once; the aggregate tracks the total.")

    for participant, name, phone, kg in CONFIG.farmers:
        print(f">>> ledger.add_contribution({participant!r}, {name!r}, {phone!r}, {kg})")
        ledger.add_contribution(participant, name, phone, kg)

    section_header("Ledger")
    show_contributions(ledger)

    section_header("Rejected Input")
    for args in [("0xA1", "Asha", "555-0101", 10), ("0xE5", "Eko", "555-0105", 0)]:
        try:
            ledger.add_contribution(*args)
        except LedgerError as e:
            print(f"  add_contribution{args} -> {type(e).__name__}: {e}")

    return ledger


def step_03_removal(ledger: BatchLedger):
    """Remove a contribution and watch the order sequence."""
    step_header(3, "Removal and Order",
        "Removing an entry moves the last entry into its slot.")

    print(">>> ledger.remove_contribution('0xA1')")
    ledger.remove_contribution("0xA1")
    show_contributions(ledger)

    print("\n>>> ledger.add_contribution('0xA1', 'Asha', '555-0101', 120)")
    ledger.add_contribution("0xA1", "Asha", "555-0101", 120)
    show_contributions(ledger)

    section_header("Key Insight")
    print("""
    Order is insertion order until the first removal. Payouts walk this order.
    """)

    return ledger


# ============================================================================
# PHASE 2: SELLING (Steps 4-5)
# ============================================================================

def step_04_pricing(ledger: BatchLedger):
    """Set the price per kg."""
    step_header(4, "Pricing",
        "Total price is aggregate kg times price per kg.")

    print(f">>> ledger.set_price_per_unit({CONFIG.price_per_kg})")
    ledger.set_price_per_unit(CONFIG.price_per_kg)
    print(f"Total price: {ledger.total_price()}")

    return ledger


def step_05_payment(ledger: BatchLedger):
    """Receive the buyer's lump-sum payment."""
    step_header(5, "Receiving Payment",
        "The buyer pays at least the total price, once, into escrow.")

    short = ledger.total_price() - 1
    try:
        ledger.receive_payment(CONFIG.buyer, short)
    except LedgerError as e:
        print(f"  receive_payment({short}) -> {type(e).__name__}")

    amount = ledger.total_price() + CONFIG.overpayment
    print(f">>> ledger.receive_payment({CONFIG.buyer!r}, {amount})")
    ledger.receive_payment(CONFIG.buyer, amount)
    print(f"Buyer:          {ledger.buyer}")
    print(f"Total received: {ledger.total_received}")

    return ledger


# ============================================================================
# PHASE 3: PAYING OUT (Steps 6-8)
# ============================================================================

def step_06_distribute(ledger: BatchLedger, agent: InMemoryTransferAgent):
    """Split the escrow proportionally."""
    step_header(6, "Distribution",
        "share = floor(total_received * kg / aggregate kg)")

    print(">>> ledger.distribute()")
    for payout in ledger.distribute():
        print(f"  {payout.participant:<6} {payout.quantity:>5} kg -> {payout.amount}")

    section_header("Balances on the Rail")
    for participant, *_ in CONFIG.farmers:
        print(f"  {participant:<6} {agent.balance_of(participant)}")

    return ledger


def step_07_dust(ledger: BatchLedger):
    """Look at what floor division left behind."""
    step_header(7, "Dust",
        "Floor division can leave a remainder smaller than the participant count.")

    print(f"Total received: {ledger.total_received}")
    print(f"Total paid:     {ledger.total_paid()}")
    print(f"Dust:           {ledger.dust()}")

    result = ledger.verify_invariants()
    print(f"Invariants valid: {result['valid']}")

    return ledger


def step_08_idempotency(ledger: BatchLedger, agent: InMemoryTransferAgent):
    """Call distribute again."""
    step_header(8, "Idempotent Distribution",
        "Paid entries are skipped; a second call sends nothing.")

    before = agent.total_sent()
    print(f">>> ledger.distribute()  -> {ledger.distribute()}")
    print(f"Sent before: {before}, after: {agent.total_sent()}")

    return ledger


# ============================================================================
# PHASE 4: SAFETY (Steps 9-10)
# ============================================================================

def step_09_rollback():
    """A failing transfer rolls back the whole distribution."""
    step_header(9, "Failed Transfers",
        "If any transfer fails, no entry is marked paid.")

    agent = InMemoryTransferAgent(failing={"0xC3"})
    ledger = BatchLedger("flaky", transfer_agent=agent)
    for participant, name, phone, kg in CONFIG.farmers:
        ledger.add_contribution(participant, name, phone, kg)
    ledger.receive_payment(CONFIG.buyer, 1_000)

    try:
        ledger.distribute()
    except TransferFailed as e:
        print(f"  distribute() -> TransferFailed: {e}")

    show_contributions(ledger)
    print(f"\nAlready sent by the rail: {agent.transfers}")

    section_header("Key Insight")
    print("""
    The ledger's bookkeeping is restored. Transfers that already left the
    rail stay sent; the rail owns reconciliation of those.
    """)


def step_10_reentrancy():
    """The transfer agent cannot call back into the ledger."""
    step_header(10, "Re-entrancy",
        "A mutating call made during another mutating call is rejected.")

    ledger = None

    def sneaky(participant, amount):
        ledger.add_contribution("0xEVIL", "", "", 1)

    ledger = BatchLedger("guarded", transfer_agent=InMemoryTransferAgent(hook=sneaky))
    ledger.add_contribution("0xA1", "Asha", "555-0101", 1)
    ledger.receive_payment(CONFIG.buyer, 10)

    try:
        ledger.distribute()
    except TransferFailed as e:
        print(f"  distribute() -> TransferFailed caused by {type(e.__cause__).__name__}")

    print(f"Contributions: {ledger.count()} (0xEVIL was never added)")


def main():
    """Run the complete tutorial."""
    logging.basicConfig(level=logging.WARNING)

    print("=" * 70)
    print("       BATCH LEDGER - INTERACTIVE TUTORIAL")
    print("=" * 70)

    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")
    else:
        print("Running in INTERACTIVE mode (press Enter to advance)")

    wait_for_enter()

    ledger, agent = step_01_empty_ledger()
    wait_for_enter()

    ledger = step_02_contributions(ledger)
    wait_for_enter()

    ledger = step_03_removal(ledger)
    wait_for_enter()

    ledger = step_04_pricing(ledger)
    wait_for_enter()

    ledger = step_05_payment(ledger)
    wait_for_enter()

    ledger = step_06_distribute(ledger, agent)
    wait_for_enter()

    ledger = step_07_dust(ledger)
    wait_for_enter()

    ledger = step_08_idempotency(ledger, agent)
    wait_for_enter()

    step_09_rollback()
    wait_for_enter()

    step_10_reentrancy()

    print(f"\n{'='*70}")
    print("TUTORIAL COMPLETE")
    print(f"{'='*70}")


if __name__ == "__main__":
    main()
