"""
Core types and pure functions for the batch ledger.

This module provides the foundational data structures and protocols:
1. Protocols: TransferAgent for paying participants out
2. Immutable data structures: Contribution, PaymentDetails, LedgerEvent
3. Exceptions: LedgerError and the typed failure modes below it
4. Checked integer arithmetic that never wraps

Nothing in this module holds ledger state. BatchLedger owns all mutation.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Protocol, Tuple, runtime_checkable


# ============================================================================
# CONSTANTS
# ============================================================================

# Ceiling for every quantity and money value (unsigned 256-bit range).
MAX_AMOUNT = 2 ** 256 - 1

# Event type constants (strings, not enum, same as the unit type constants).
EVENT_CONTRIBUTION_RECORDED = "CONTRIBUTION_RECORDED"
EVENT_PRICE_UPDATED = "PRICE_UPDATED"
EVENT_BATCH_SOLD = "BATCH_SOLD"
EVENT_PAYMENT_DISTRIBUTED = "PAYMENT_DISTRIBUTED"


# ============================================================================
# ERRORS
# ============================================================================

class ErrorKind(Enum):
    """Machine-readable failure kinds carried by every LedgerError."""
    INVALID_QUANTITY = "InvalidQuantity"
    INVALID_PRICE = "InvalidPrice"
    INSUFFICIENT_PAYMENT = "InsufficientPayment"
    INVALID_PARTICIPANT = "InvalidParticipant"
    DUPLICATE_PARTICIPANT = "DuplicateParticipant"
    EMPTY_BATCH = "EmptyBatch"
    NO_PAYMENT_RECEIVED = "NoPaymentReceived"
    INDEX_OUT_OF_RANGE = "IndexOutOfRange"
    TRANSFER_FAILED = "TransferFailed"
    REENTRANCY_REJECTED = "ReentrancyRejected"
    ARITHMETIC_OVERFLOW = "ArithmeticOverflow"


class LedgerError(Exception):
    """
    Base exception for all ledger errors.

    The message is the human-readable reason; ``kind`` identifies the failure
    mode without parsing the message.
    """
    kind: Optional[ErrorKind] = None

    @property
    def reason(self) -> str:
        return str(self)


class ValidationError(LedgerError):
    """The caller supplied an out-of-contract value."""
    pass


class StateError(LedgerError):
    """The operation is invalid given the current ledger or escrow state."""
    pass


class TransferError(LedgerError):
    """An external payout failed."""
    pass


class ConcurrencyError(LedgerError):
    """A mutating operation was attempted while another was in progress."""
    pass


class LedgerArithmeticError(LedgerError, ArithmeticError):
    """Checked arithmetic left the representable range."""
    pass


class InvalidQuantity(ValidationError):
    """Raised when a contribution quantity is not positive."""
    kind = ErrorKind.INVALID_QUANTITY


class InvalidPrice(ValidationError):
    """Raised when a unit price is not positive."""
    kind = ErrorKind.INVALID_PRICE


class InsufficientPayment(ValidationError):
    """Raised when a payment is below the batch's total price."""
    kind = ErrorKind.INSUFFICIENT_PAYMENT


class InvalidParticipant(ValidationError):
    """Raised when a participant or payer identity is empty."""
    kind = ErrorKind.INVALID_PARTICIPANT


class DuplicateParticipant(StateError):
    """Raised when a participant already has an active contribution."""
    kind = ErrorKind.DUPLICATE_PARTICIPANT


class EmptyBatch(StateError):
    """Raised when the batch holds no quantity."""
    kind = ErrorKind.EMPTY_BATCH


class NoPaymentReceived(StateError):
    """Raised when distributing before any payment was received."""
    kind = ErrorKind.NO_PAYMENT_RECEIVED


class IndexOutOfRange(StateError, IndexError):
    """Raised when an order-sequence index is past the end."""
    kind = ErrorKind.INDEX_OUT_OF_RANGE


class TransferFailed(TransferError):
    """Raised when the transfer agent reports or raises a failure."""
    kind = ErrorKind.TRANSFER_FAILED


class ReentrancyRejected(ConcurrencyError):
    """Raised when a mutating operation is re-entered."""
    kind = ErrorKind.REENTRANCY_REJECTED


class ArithmeticOverflow(LedgerArithmeticError, OverflowError):
    """Raised instead of wrapping when a value leaves [0, MAX_AMOUNT]."""
    kind = ErrorKind.ARITHMETIC_OVERFLOW


# ============================================================================
# CHECKED ARITHMETIC
# ============================================================================

def require_int(value: Any, field_name: str) -> int:
    """Reject anything that is not a plain int (bool included)."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{field_name} must be int, got {type(value).__name__}")
    return value


def require_str(value: Any, field_name: str) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{field_name} must be str, got {type(value).__name__}")
    return value


def _check_range(result: int, op: str, a: int, b: int, ceiling: int) -> int:
    if result < 0 or result > ceiling:
        raise ArithmeticOverflow(f"{a} {op} {b} leaves [0, {ceiling}]")
    return result


def checked_add(a: int, b: int, ceiling: int = MAX_AMOUNT) -> int:
    return _check_range(a + b, "+", a, b, ceiling)


def checked_sub(a: int, b: int, ceiling: int = MAX_AMOUNT) -> int:
    return _check_range(a - b, "-", a, b, ceiling)


def checked_mul(a: int, b: int, ceiling: int = MAX_AMOUNT) -> int:
    return _check_range(a * b, "*", a, b, ceiling)


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class TransferAgent(Protocol):
    """
    Capability that moves funds out of escrow to a participant.

    The agent runs arbitrary code and may call back into the ledger before it
    returns. Returning False (or raising) means the transfer did not happen.
    """

    def transfer(self, participant: str, amount: int) -> bool:
        ...


# ============================================================================
# RECORDS
# ============================================================================

@dataclass(frozen=True, slots=True)
class Contribution:
    """
    One participant's share of the batch.

    Attributes:
        participant: Identity that receives the payout.
        name: Display name (opaque).
        phone: Contact phone (opaque).
        quantity: Kilograms contributed; fixed at creation.
        paid: True once distribution has paid this entry.
        paid_amount: Minor units paid out; non-zero only when paid.
    """
    participant: str
    name: str
    phone: str
    quantity: int
    paid: bool = False
    paid_amount: int = 0

    @classmethod
    def empty(cls) -> Contribution:
        """Default record returned for participants with no contribution."""
        return cls(participant="", name="", phone="", quantity=0)

    def is_empty(self) -> bool:
        return self.quantity == 0 and not self.participant


@dataclass(frozen=True, slots=True)
class PaymentDetails:
    """Payout view of a single participant."""
    name: str
    phone: str
    quantity: int
    paid: bool
    paid_amount: int

    @classmethod
    def of(cls, contribution: Contribution) -> PaymentDetails:
        return cls(
            name=contribution.name,
            phone=contribution.phone,
            quantity=contribution.quantity,
            paid=contribution.paid,
            paid_amount=contribution.paid_amount,
        )


@dataclass(frozen=True, slots=True)
class LedgerEvent:
    """
    Immutable record of a committed ledger mutation.

    Events are data for external collaborators only; the engine never reads
    them back.

    Attributes:
        sequence: Monotonic position within the ledger's event log
        event_type: One of the EVENT_* constants
        ledger_name: Name of the ledger that emitted the event
        params: Event fields as a frozen tuple of (key, value) pairs
    """
    sequence: int
    event_type: str
    ledger_name: str
    params: Tuple[Tuple[str, Any], ...] = field(default_factory=tuple)

    @property
    def params_dict(self) -> Dict[str, Any]:
        return dict(self.params)

    @property
    def event_id(self) -> str:
        """Deterministic ID: ledger, sequence and type."""
        return f"{self.ledger_name}:{self.sequence:012d}:{self.event_type}"

    def __repr__(self) -> str:
        fields = ", ".join(f"{k}={v!r}" for k, v in self.params)
        return f"LedgerEvent(#{self.sequence} {self.event_type}: {fields})"
