"""
escrow.py - The single incoming payment for the batch

Escrow records who paid for the batch and how much. Only one payment slot
exists: a new payment overwrites the previous buyer and amount, it is never
added to them.
"""

from __future__ import annotations
from typing import Optional
import logging

from .core import (
    MAX_AMOUNT,
    ArithmeticOverflow, EmptyBatch, InsufficientPayment, InvalidParticipant,
    require_int, require_str,
)
from .contributions import ContributionLedger
from .pricing import PricingEngine

logger = logging.getLogger(__name__)


class Escrow:
    """Buyer identity and the amount received from them."""

    def __init__(self, max_amount: int = MAX_AMOUNT):
        self._buyer: Optional[str] = None
        self._total_received: int = 0
        self._max_amount = max_amount

    @property
    def buyer(self) -> Optional[str]:
        """Payer of the most recent payment (None until the first one)."""
        return self._buyer

    @property
    def total_received(self) -> int:
        return self._total_received

    def receive_payment(
        self,
        payer: str,
        amount: int,
        contributions: ContributionLedger,
        pricing: PricingEngine,
    ) -> int:
        """
        Accept a payment for the whole batch.

        Checks, in order: payer identity, an empty batch, then the amount
        against the total price.

        Returns:
            The total price the payment was checked against

        Raises:
            InvalidParticipant: If payer is empty
            EmptyBatch: If the batch holds no quantity
            ArithmeticOverflow: If the total price or amount exceeds the ceiling
            InsufficientPayment: If amount < total price
        """
        require_str(payer, "payer")
        if not payer.strip():
            raise InvalidParticipant("payer cannot be empty")
        require_int(amount, "amount")
        if contributions.aggregate_quantity == 0:
            raise EmptyBatch("cannot pay for an empty batch")
        price = pricing.total_price(contributions.aggregate_quantity)
        if amount < price:
            raise InsufficientPayment(f"payment {amount} is below total price {price}")
        if amount > self._max_amount:
            raise ArithmeticOverflow(f"payment {amount} exceeds {self._max_amount}")

        if self._total_received:
            logger.warning(
                "escrow_payment_overwritten",
                extra={"previous_buyer": self._buyer,
                       "previous_amount": self._total_received},
            )
        self._buyer = payer
        self._total_received = amount
        logger.info(
            "batch_sold",
            extra={"buyer": payer, "amount": amount, "total_price": price},
        )
        return price

    def clone(self) -> Escrow:
        cloned = Escrow(self._max_amount)
        cloned._buyer = self._buyer
        cloned._total_received = self._total_received
        return cloned
