"""
ledger.py - The batch ledger aggregate

BatchLedger owns every piece of state for one batch (contributions, price,
escrow, label, event log) and is the only public way to change it.

Key responsibilities:
    - Runs each mutating operation as one atomic unit: validation happens
      before mutation, and distribute() restores what it touched on failure
    - Rejects re-entrant mutating calls (ReentrancyRejected) while an
      operation is in progress, including calls made from the transfer agent
    - Buffers events during an operation and commits them to the event log
      only when the operation succeeds; subscribers see committed events
      after the lock is released, and a failing subscriber is logged
    - Performs no access control: any caller may add, remove, price, pay,
      distribute and label
"""

from __future__ import annotations
from functools import wraps
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging

from .core import (
    Contribution, PaymentDetails, LedgerEvent, TransferAgent,
    MAX_AMOUNT,
    EVENT_CONTRIBUTION_RECORDED, EVENT_PRICE_UPDATED,
    EVENT_BATCH_SOLD, EVENT_PAYMENT_DISTRIBUTED,
    ReentrancyRejected,
)
from .contributions import ContributionLedger
from .pricing import PricingEngine
from .escrow import Escrow
from .distribution import DistributionEngine, Payout
from .transfers import InMemoryTransferAgent

logger = logging.getLogger(__name__)

EventCallback = Callable[[LedgerEvent], None]


def _mutating(method):
    """Run a BatchLedger method under the reentrancy lock and commit its events."""

    @wraps(method)
    def guarded(self: BatchLedger, *args, **kwargs):
        if self._active_operation is not None:
            logger.warning(
                "reentrant_call_rejected",
                extra={"operation": method.__name__, "active_operation": self._active_operation},
            )
            raise ReentrancyRejected(
                f"{method.__name__}() rejected: {self._active_operation}() is in progress"
            )
        self._active_operation = method.__name__
        try:
            result = method(self, *args, **kwargs)
            committed = self._commit_events()
        finally:
            self._pending_events = []
            self._active_operation = None
        self._notify(committed)
        return result

    return guarded


class BatchLedger:
    """
    Contribution ledger, pricing, escrow and distribution for one batch.

    Thread Safety:
        Not thread-safe. One operation runs at a time; the lock only guards
        against re-entry from code the ledger itself calls out to.

    Example:
        agent = InMemoryTransferAgent()
        ledger = BatchLedger("harvest", transfer_agent=agent)
        ledger.add_contribution("0xA1", "Asha", "555-0101", 3)
        ledger.add_contribution("0xB2", "Bela", "555-0102", 7)
        ledger.set_price_per_unit(2)
        ledger.receive_payment("0xBUYER", ledger.total_price())   # 20
        ledger.distribute()
        agent.balance_of("0xA1")   # 6
    """

    def __init__(
        self,
        name: str = "batch",
        transfer_agent: Optional[TransferAgent] = None,
        max_amount: int = MAX_AMOUNT,
    ):
        """
        Create an empty batch ledger.

        Args:
            name: Ledger identifier, stamped on every event
            transfer_agent: Payout rail (default: a fresh InMemoryTransferAgent)
            max_amount: Overflow ceiling for quantities and money values
        """
        self.name = name
        self.max_amount = max_amount
        self._contributions = ContributionLedger(max_amount)
        self._pricing = PricingEngine(max_amount)
        self._escrow = Escrow(max_amount)
        self._distribution = DistributionEngine(
            transfer_agent if transfer_agent is not None else InMemoryTransferAgent(),
            max_amount,
        )
        self._label: str = ""
        self.event_log: List[LedgerEvent] = []
        self._next_sequence: int = 0
        self._pending_events: List[Tuple[str, Tuple[Tuple[str, Any], ...]]] = []
        self._subscribers: List[EventCallback] = []
        self._active_operation: Optional[str] = None

    # ========================================================================
    # EVENTS
    # ========================================================================

    def subscribe(self, callback: EventCallback) -> None:
        """Register a callback for every committed event."""
        self._subscribers.append(callback)

    def _emit(self, event_type: str, **params: Any) -> None:
        self._pending_events.append((event_type, tuple(params.items())))

    def _commit_events(self) -> List[LedgerEvent]:
        committed = []
        for event_type, params in self._pending_events:
            event = LedgerEvent(
                sequence=self._next_sequence,
                event_type=event_type,
                ledger_name=self.name,
                params=params,
            )
            self._next_sequence += 1
            self.event_log.append(event)
            committed.append(event)
        return committed

    def _notify(self, events: List[LedgerEvent]) -> None:
        # State is already committed; subscriber failures are logged, not raised.
        for event in events:
            for callback in list(self._subscribers):
                try:
                    callback(event)
                except Exception:
                    logger.exception(
                        "subscriber_failed",
                        extra={"ledger": self.name, "event_id": event.event_id},
                    )

    @property
    def in_progress(self) -> Optional[str]:
        """Name of the mutating operation currently running, if any."""
        return self._active_operation

    # ========================================================================
    # CONTRIBUTIONS
    # ========================================================================

    @_mutating
    def add_contribution(self, participant: str, name: str, phone: str, quantity: int) -> Contribution:
        """
        Record a participant's contribution to the batch.

        Raises:
            InvalidParticipant: If participant is empty
            InvalidQuantity: If quantity <= 0
            DuplicateParticipant: If participant already contributed
            ArithmeticOverflow: If the aggregate would overflow
        """
        record = self._contributions.add(participant, name, phone, quantity)
        self._emit(EVENT_CONTRIBUTION_RECORDED, participant=participant, name=name, quantity=quantity)
        return record

    @_mutating
    def remove_contribution(self, participant: str) -> Optional[Contribution]:
        """Remove a contribution; a participant without one is a no-op."""
        return self._contributions.remove(participant)

    def get_contribution(self, participant: str) -> Contribution:
        return self._contributions.get(participant)

    def count(self) -> int:
        """Number of active contributions."""
        return self._contributions.count()

    def get_by_index(self, index: int) -> Contribution:
        """Record at a position in the order sequence (IndexOutOfRange if past the end)."""
        return self._contributions.get_by_index(index)

    def contributions(self) -> List[Contribution]:
        """All active records in order-sequence order."""
        return self._contributions.records()

    @property
    def aggregate_quantity(self) -> int:
        return self._contributions.aggregate_quantity

    def get_payment_details(self, participant: str) -> PaymentDetails:
        return PaymentDetails.of(self._contributions.get(participant))

    # ========================================================================
    # PRICING
    # ========================================================================

    @_mutating
    def set_price_per_unit(self, price: int) -> None:
        """
        Set the price per kilogram in minor units.

        Raises:
            InvalidPrice: If price <= 0
        """
        self._pricing.set_price_per_unit(price)
        self._emit(EVENT_PRICE_UPDATED, price_per_unit=price)

    def get_price_per_unit(self) -> int:
        return self._pricing.price_per_unit

    def total_price(self) -> int:
        """aggregate_quantity * price_per_unit (ArithmeticOverflow on overflow)."""
        return self._pricing.total_price(self._contributions.aggregate_quantity)

    # ========================================================================
    # ESCROW
    # ========================================================================

    @_mutating
    def receive_payment(self, payer: str, amount: int) -> None:
        """
        Accept the lump-sum payment for the batch, replacing any earlier one.

        Raises:
            InvalidParticipant: If payer is empty
            EmptyBatch: If the batch holds no quantity
            InsufficientPayment: If amount < total_price()
            ArithmeticOverflow: If the total price overflows
        """
        self._escrow.receive_payment(payer, amount, self._contributions, self._pricing)
        self._emit(EVENT_BATCH_SOLD, buyer=payer, amount=amount)

    @property
    def buyer(self) -> Optional[str]:
        return self._escrow.buyer

    @property
    def total_received(self) -> int:
        return self._escrow.total_received

    # ========================================================================
    # DISTRIBUTION
    # ========================================================================

    @_mutating
    def distribute(self) -> List[Payout]:
        """
        Pay each unpaid contribution its proportional share of the escrow.

        Returns:
            Payouts made in this call (empty when everyone is already paid)

        Raises:
            NoPaymentReceived: If no payment has been received
            EmptyBatch: If the batch holds no quantity
            TransferFailed: If any transfer fails; nothing in the ledger changes
        """
        def paid(payout: Payout) -> None:
            self._emit(EVENT_PAYMENT_DISTRIBUTED, participant=payout.participant, amount=payout.amount)

        return self._distribution.distribute(self._contributions, self._escrow, on_paid=paid)

    @property
    def transfer_agent(self) -> TransferAgent:
        return self._distribution.transfer_agent

    def total_paid(self) -> int:
        return sum(record.paid_amount for record in self._contributions.records())

    def dust(self) -> int:
        """Escrowed amount not assigned to any contribution."""
        return self._escrow.total_received - self.total_paid()

    # ========================================================================
    # LABEL
    # ========================================================================

    @property
    def label(self) -> str:
        return self._label

    @_mutating
    def set_label(self, text: str) -> None:
        """Replace the free-text label. Not validated."""
        self._label = text
        logger.info("label_updated", extra={"ledger": self.name})

    # ========================================================================
    # LEDGER OPERATIONS
    # ========================================================================

    def verify_invariants(self) -> Dict[str, Any]:
        """
        Check the ledger's bookkeeping invariants.

        Returns:
            Dict with keys:
            - 'valid': bool - True if every invariant holds
            - 'aggregate_quantity': maintained aggregate
            - 'recorded_quantity': sum of active quantities
            - 'total_paid': sum of paid_amount
            - 'total_received': escrowed amount
            - 'discrepancies': List[str] describing each violation

        Example:
            result = ledger.verify_invariants()
            assert result['valid'], result['discrepancies']
        """
        records = self._contributions.records()
        recorded = sum(r.quantity for r in records)
        total_paid = sum(r.paid_amount for r in records)
        discrepancies = []

        if recorded != self.aggregate_quantity:
            discrepancies.append(
                f"aggregate {self.aggregate_quantity} != recorded quantity {recorded}"
            )
        if total_paid > self.total_received:
            discrepancies.append(
                f"total paid {total_paid} exceeds total received {self.total_received}"
            )
        for r in records:
            if r.quantity <= 0:
                discrepancies.append(f"{r.participant} has non-positive quantity {r.quantity}")
            if r.paid_amount > 0 and not r.paid:
                discrepancies.append(f"{r.participant} has paid_amount without paid flag")

        return {
            'valid': not discrepancies,
            'aggregate_quantity': self.aggregate_quantity,
            'recorded_quantity': recorded,
            'total_paid': total_paid,
            'total_received': self.total_received,
            'discrepancies': discrepancies,
        }

    def clone(self) -> BatchLedger:
        """
        Create an independent copy of this ledger's state.

        The clone shares the transfer agent but not the subscribers, and
        starts with no operation in progress.
        """
        cloned = BatchLedger.__new__(BatchLedger)
        cloned.name = self.name
        cloned.max_amount = self.max_amount
        cloned._contributions = self._contributions.clone()
        cloned._pricing = self._pricing.clone()
        cloned._escrow = self._escrow.clone()
        cloned._distribution = DistributionEngine(self.transfer_agent, self.max_amount)
        cloned._label = self._label
        cloned.event_log = list(self.event_log)
        cloned._next_sequence = self._next_sequence
        cloned._pending_events = []
        cloned._subscribers = []
        cloned._active_operation = None
        return cloned

    def __repr__(self) -> str:
        return (
            f"BatchLedger({self.name!r}, {self.count()} contributions, "
            f"{self.aggregate_quantity} kg, received={self.total_received})"
        )
