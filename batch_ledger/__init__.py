"""
batch_ledger - Pooled-batch contribution ledger with escrowed proportional payout

Participants contribute kilograms to a shared batch, the batch is priced per
kilogram, a buyer pays for it once, and the payment is split back to the
contributors in proportion to their quantity.

Usage:
    from batch_ledger import BatchLedger, InMemoryTransferAgent

    agent = InMemoryTransferAgent()
    ledger = BatchLedger("harvest", transfer_agent=agent)
    ledger.add_contribution("0xA1", "Asha", "555-0101", 3)
    ledger.add_contribution("0xB2", "Bela", "555-0102", 7)
    ledger.set_price_per_unit(2)

    ledger.receive_payment("0xBUYER", ledger.total_price())
    ledger.distribute()

    agent.balance_of("0xA1")   # 6
    agent.balance_of("0xB2")   # 14
"""

# Core types
from .core import (
    Contribution,
    PaymentDetails,
    LedgerEvent,
    TransferAgent,
    ErrorKind,
    LedgerError,
    ValidationError,
    StateError,
    TransferError,
    ConcurrencyError,
    LedgerArithmeticError,
    InvalidQuantity,
    InvalidPrice,
    InsufficientPayment,
    InvalidParticipant,
    DuplicateParticipant,
    EmptyBatch,
    NoPaymentReceived,
    IndexOutOfRange,
    TransferFailed,
    ReentrancyRejected,
    ArithmeticOverflow,
    checked_add,
    checked_sub,
    checked_mul,
    MAX_AMOUNT,
    EVENT_CONTRIBUTION_RECORDED,
    EVENT_PRICE_UPDATED,
    EVENT_BATCH_SOLD,
    EVENT_PAYMENT_DISTRIBUTED,
)

# Components
from .contributions import ContributionLedger
from .pricing import PricingEngine
from .escrow import Escrow
from .distribution import (
    DistributionEngine,
    Payout,
    compute_share,
    compute_payouts,
)
from .transfers import InMemoryTransferAgent

# Ledger
from .ledger import BatchLedger

__all__ = [
    # Core
    'Contribution', 'PaymentDetails', 'LedgerEvent', 'TransferAgent',
    'checked_add', 'checked_sub', 'checked_mul',
    'MAX_AMOUNT',
    'EVENT_CONTRIBUTION_RECORDED', 'EVENT_PRICE_UPDATED',
    'EVENT_BATCH_SOLD', 'EVENT_PAYMENT_DISTRIBUTED',
    # Errors
    'ErrorKind', 'LedgerError',
    'ValidationError', 'StateError', 'TransferError', 'ConcurrencyError',
    'LedgerArithmeticError',
    'InvalidQuantity', 'InvalidPrice', 'InsufficientPayment', 'InvalidParticipant',
    'DuplicateParticipant', 'EmptyBatch', 'NoPaymentReceived', 'IndexOutOfRange',
    'TransferFailed', 'ReentrancyRejected', 'ArithmeticOverflow',
    # Components
    'ContributionLedger', 'PricingEngine', 'Escrow',
    'DistributionEngine', 'Payout', 'compute_share', 'compute_payouts',
    'InMemoryTransferAgent',
    # Ledger
    'BatchLedger',
]

__version__ = '1.0.0'
