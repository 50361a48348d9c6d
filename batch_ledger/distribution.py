"""
distribution.py - Proportional payout of the escrowed amount

=== SHARE MODEL ===

Each unpaid contribution with a positive quantity receives

    share = floor(total_received * quantity / aggregate_quantity)

The numerator is overflow-checked. Floor division leaves
total_received - sum(shares) unassigned ("dust"); nothing sweeps it.

=== PURE FUNCTIONS ===

    compute_share(total_received, quantity, aggregate_quantity) -> int
    compute_payouts(total_received, records, aggregate_quantity) -> [Payout]

Both are trivially testable - no ledger, no transfer agent.

=== EXECUTION ===

DistributionEngine.distribute() plans every payout first, then for each one:
    1. marks the contribution paid (effects)
    2. calls the transfer agent (interaction)
If any transfer fails, every contribution touched in the call is restored and
TransferFailed is raised. Funds already sent are not recalled.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional
import logging

from .core import (
    Contribution, TransferAgent,
    MAX_AMOUNT,
    EmptyBatch, NoPaymentReceived, TransferFailed,
    checked_mul,
)
from .contributions import ContributionLedger
from .escrow import Escrow

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Payout:
    """Instruction to pay one participant their share."""
    participant: str
    quantity: int
    amount: int


# =============================================================================
# PURE FUNCTIONS
# =============================================================================

def compute_share(
    total_received: int,
    quantity: int,
    aggregate_quantity: int,
    ceiling: int = MAX_AMOUNT,
) -> int:
    """
    Floor-divided proportional share of total_received for quantity.

    Example:
        compute_share(10, 1, 3) == 3
        compute_share(10, 2, 3) == 6

    Raises:
        EmptyBatch: If aggregate_quantity is 0
        ArithmeticOverflow: If total_received * quantity exceeds the ceiling
    """
    if aggregate_quantity <= 0:
        raise EmptyBatch("cannot compute a share of an empty batch")
    return checked_mul(total_received, quantity, ceiling) // aggregate_quantity


def compute_payouts(
    total_received: int,
    records: Iterable[Contribution],
    aggregate_quantity: int,
    ceiling: int = MAX_AMOUNT,
) -> List[Payout]:
    """
    Plan the payouts for every unpaid, non-zero record, in the given order.

    Already-paid records are skipped, so planning after a complete
    distribution returns an empty list.
    """
    payouts = []
    for record in records:
        if record.paid or record.quantity <= 0:
            continue
        amount = compute_share(total_received, record.quantity, aggregate_quantity, ceiling)
        payouts.append(Payout(record.participant, record.quantity, amount))
    return payouts


# =============================================================================
# ENGINE
# =============================================================================

class DistributionEngine:
    """Executes payouts through a TransferAgent."""

    def __init__(self, transfer_agent: TransferAgent, max_amount: int = MAX_AMOUNT):
        self.transfer_agent = transfer_agent
        self._max_amount = max_amount

    def distribute(
        self,
        contributions: ContributionLedger,
        escrow: Escrow,
        on_paid: Optional[Callable[[Payout], None]] = None,
    ) -> List[Payout]:
        """
        Pay every unpaid contribution its share of the escrowed amount.

        Args:
            contributions: Ledger whose records are walked and marked paid
            escrow: Source of total_received
            on_paid: Called once per successful transfer

        Returns:
            The payouts made in this call (empty if everyone was already paid)

        Raises:
            NoPaymentReceived: If escrow.total_received == 0
            EmptyBatch: If the aggregate quantity is 0
            ArithmeticOverflow: If a share numerator overflows (before any transfer)
            TransferFailed: If the agent returns False or raises
        """
        total_received = escrow.total_received
        aggregate = contributions.aggregate_quantity
        if total_received == 0:
            raise NoPaymentReceived("no payment has been received")
        if aggregate == 0:
            raise EmptyBatch("cannot distribute over an empty batch")

        plan = compute_payouts(total_received, contributions.records(), aggregate, self._max_amount)

        touched: List[Contribution] = []
        made: List[Payout] = []
        for payout in plan:
            touched.append(contributions.mark_paid(payout.participant, payout.amount))
            try:
                ok = self.transfer_agent.transfer(payout.participant, payout.amount)
            except Exception as exc:
                self._rollback(contributions, touched, payout)
                raise TransferFailed(
                    f"transfer of {payout.amount} to {payout.participant} raised: {exc}"
                ) from exc
            except BaseException:
                self._rollback(contributions, touched, payout)
                raise
            if not ok:
                self._rollback(contributions, touched, payout)
                raise TransferFailed(
                    f"transfer of {payout.amount} to {payout.participant} was refused"
                )
            made.append(payout)
            logger.info(
                "payment_distributed",
                extra={"participant": payout.participant, "amount": payout.amount,
                       "quantity": payout.quantity},
            )
            if on_paid is not None:
                on_paid(payout)

        return made

    @staticmethod
    def _rollback(
        contributions: ContributionLedger,
        touched: List[Contribution],
        failed: Payout,
    ) -> None:
        for previous in reversed(touched):
            contributions.restore(previous)
        logger.warning(
            "distribution_rolled_back",
            extra={"participant": failed.participant, "amount": failed.amount,
                   "restored": len(touched)},
        )
