"""
contributions.py - Participant contributions and the batch aggregate

ContributionLedger keeps one Contribution per participant and the running
aggregate quantity of the batch.

Iteration order is held in a dense list with a participant -> slot index map.
Removing a participant moves the last slot into the freed one, so the order is
insertion order only until the first removal:

    order [a, b, c, d]  remove b  ->  [a, d, c]

Every method validates before it mutates; a raised error leaves the ledger
untouched.
"""

from __future__ import annotations
from dataclasses import replace
from typing import Dict, List, Optional, Tuple
import logging

from .core import (
    Contribution,
    MAX_AMOUNT,
    InvalidQuantity, InvalidParticipant, DuplicateParticipant, IndexOutOfRange,
    checked_add, checked_sub, require_int, require_str,
)

logger = logging.getLogger(__name__)


class ContributionLedger:
    """
    Map of participant -> Contribution plus the order sequence.

    Not thread-safe. BatchLedger serializes access to it.
    """

    def __init__(self, max_amount: int = MAX_AMOUNT):
        self._records: Dict[str, Contribution] = {}
        self._order: List[str] = []
        self._slots: Dict[str, int] = {}
        self._aggregate: int = 0
        self._max_amount = max_amount

    # ========================================================================
    # QUERIES
    # ========================================================================

    @property
    def aggregate_quantity(self) -> int:
        """Sum of all active quantities."""
        return self._aggregate

    def count(self) -> int:
        return len(self._order)

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, participant: str) -> bool:
        return participant in self._records

    def get(self, participant: str) -> Contribution:
        """Return the participant's record, or Contribution.empty() if absent."""
        return self._records.get(participant, Contribution.empty())

    def get_by_index(self, index: int) -> Contribution:
        """
        Return the record at a position in the order sequence.

        Raises:
            IndexOutOfRange: If index >= count() or index < 0
        """
        require_int(index, "index")
        if index < 0 or index >= len(self._order):
            raise IndexOutOfRange(
                f"index {index} out of range for {len(self._order)} contributions"
            )
        return self._records[self._order[index]]

    def participants(self) -> Tuple[str, ...]:
        """Participant identities in the current order."""
        return tuple(self._order)

    def records(self) -> List[Contribution]:
        """Records in the current order."""
        return [self._records[p] for p in self._order]

    # ========================================================================
    # MUTATIONS
    # ========================================================================

    def add(self, participant: str, name: str, phone: str, quantity: int) -> Contribution:
        """
        Record a new contribution and grow the aggregate.

        Raises:
            InvalidParticipant: If participant is empty
            InvalidQuantity: If quantity <= 0
            DuplicateParticipant: If participant already has a contribution
            ArithmeticOverflow: If the aggregate would exceed the ceiling
        """
        require_str(participant, "participant")
        if not participant.strip():
            raise InvalidParticipant("participant cannot be empty")
        require_int(quantity, "quantity")
        if quantity <= 0:
            raise InvalidQuantity(f"quantity must be positive, got {quantity}")
        if participant in self._records:
            raise DuplicateParticipant(f"{participant} already has a contribution")
        new_aggregate = checked_add(self._aggregate, quantity, self._max_amount)

        record = Contribution(
            participant=participant,
            name=name,
            phone=phone,
            quantity=quantity,
        )
        self._records[participant] = record
        self._slots[participant] = len(self._order)
        self._order.append(participant)
        self._aggregate = new_aggregate

        logger.info(
            "contribution_added",
            extra={"participant": participant, "quantity": quantity,
                   "aggregate_quantity": new_aggregate},
        )
        return record

    def remove(self, participant: str) -> Optional[Contribution]:
        """
        Remove a participant's contribution.

        Removing a participant with no contribution changes nothing and is not
        an error.

        Returns:
            The removed record, or None if there was none
        """
        record = self._records.get(participant)
        removed_quantity = record.quantity if record is not None else 0
        self._aggregate = checked_sub(self._aggregate, removed_quantity, self._max_amount)
        if record is None:
            logger.debug("contribution_remove_absent", extra={"participant": participant})
            return None

        del self._records[participant]
        slot = self._slots.pop(participant)
        last = self._order.pop()
        if last != participant:
            self._order[slot] = last
            self._slots[last] = slot

        logger.info(
            "contribution_removed",
            extra={"participant": participant, "quantity": removed_quantity,
                   "aggregate_quantity": self._aggregate},
        )
        return record

    def mark_paid(self, participant: str, amount: int) -> Contribution:
        """
        Flag a contribution as paid with the given amount.

        Returns:
            The record as it was before the change, for rollback
        """
        previous = self._records[participant]
        self._records[participant] = replace(previous, paid=True, paid_amount=amount)
        return previous

    def restore(self, record: Contribution) -> None:
        """Put back a record previously returned by mark_paid()."""
        if record.participant not in self._records:
            raise KeyError(f"cannot restore {record.participant}: not an active contribution")
        self._records[record.participant] = record

    def clone(self) -> ContributionLedger:
        """Independent copy (records are immutable, so containers suffice)."""
        cloned = ContributionLedger.__new__(ContributionLedger)
        cloned._records = dict(self._records)
        cloned._order = list(self._order)
        cloned._slots = dict(self._slots)
        cloned._aggregate = self._aggregate
        cloned._max_amount = self._max_amount
        return cloned
