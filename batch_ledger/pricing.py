"""
pricing.py - Unit price of the batch

PricingEngine holds a single price per kilogram in minor units and derives the
batch's total price from the aggregate quantity.
"""

from __future__ import annotations
import logging

from .core import MAX_AMOUNT, InvalidPrice, checked_mul, require_int

logger = logging.getLogger(__name__)


class PricingEngine:
    """Price per unit (minor units per kg). Zero means not yet set."""

    def __init__(self, max_amount: int = MAX_AMOUNT):
        self._price_per_unit: int = 0
        self._max_amount = max_amount

    @property
    def price_per_unit(self) -> int:
        return self._price_per_unit

    def set_price_per_unit(self, price: int) -> int:
        """
        Replace the stored price.

        Returns:
            The previous price

        Raises:
            InvalidPrice: If price <= 0 or above the ceiling
        """
        require_int(price, "price")
        if price <= 0:
            raise InvalidPrice(f"price must be positive, got {price}")
        if price > self._max_amount:
            raise InvalidPrice(f"price {price} exceeds {self._max_amount}")
        previous = self._price_per_unit
        self._price_per_unit = price
        logger.info("price_updated", extra={"previous_price": previous, "price": price})
        return previous

    def total_price(self, aggregate_quantity: int) -> int:
        """
        aggregate_quantity * price_per_unit.

        Raises:
            ArithmeticOverflow: If the product exceeds the ceiling
        """
        return checked_mul(aggregate_quantity, self._price_per_unit, self._max_amount)

    def clone(self) -> PricingEngine:
        cloned = PricingEngine(self._max_amount)
        cloned._price_per_unit = self._price_per_unit
        return cloned
