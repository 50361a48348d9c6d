"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the batch ledger.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. conservation.py - Aggregate bookkeeping and payout bounds
2. atomicity.py - All-or-nothing operation semantics
3. idempotency.py - Repeated distribution handling
4. determinism.py - Reproducible order and payouts

These tests use hypothesis for property-based testing.
"""
