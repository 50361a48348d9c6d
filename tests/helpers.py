"""
helpers.py - Test helpers for BatchLedger state comparison

Plain functions, importable from any test module.
"""

from typing import List

from batch_ledger import BatchLedger


def ledger_snapshot(ledger: BatchLedger) -> dict:
    """Everything observable about a ledger's state, as plain data."""
    return {
        "records": [
            (r.participant, r.name, r.phone, r.quantity, r.paid, r.paid_amount)
            for r in ledger.contributions()
        ],
        "aggregate_quantity": ledger.aggregate_quantity,
        "price_per_unit": ledger.get_price_per_unit(),
        "buyer": ledger.buyer,
        "total_received": ledger.total_received,
        "label": ledger.label,
        "events": len(ledger.event_log),
    }


def ledger_state_equals(ledger1: BatchLedger, ledger2: BatchLedger) -> bool:
    """Check if two ledgers have identical observable state."""
    return ledger_snapshot(ledger1) == ledger_snapshot(ledger2)


def event_types(ledger: BatchLedger) -> List[str]:
    return [e.event_type for e in ledger.event_log]
