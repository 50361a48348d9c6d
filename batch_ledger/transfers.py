"""
transfers.py - In-memory payment rail

InMemoryTransferAgent implements the TransferAgent protocol by crediting
per-participant balances. It is the rail used by the demo and the tests:
participants listed in ``failing`` refuse every transfer, and ``hook`` runs
arbitrary code (e.g. a call back into the ledger) before each transfer lands.

Funds credited here stay credited even if the ledger later rolls back its own
bookkeeping for the same distribution.
"""

from __future__ import annotations
from collections import defaultdict
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple


TransferHook = Callable[[str, int], None]


class InMemoryTransferAgent:
    """
    Example:
        agent = InMemoryTransferAgent(failing={"mallory"})
        agent.transfer("alice", 600)   # True
        agent.transfer("mallory", 10)  # False
        agent.balance_of("alice")      # 600
    """

    def __init__(
        self,
        failing: Optional[Iterable[str]] = None,
        hook: Optional[TransferHook] = None,
    ):
        self.balances: Dict[str, int] = defaultdict(int)
        self.transfers: List[Tuple[str, int]] = []
        self.failing: Set[str] = set(failing or ())
        self.hook = hook

    def transfer(self, participant: str, amount: int) -> bool:
        if self.hook is not None:
            self.hook(participant, amount)
        if participant in self.failing:
            return False
        self.balances[participant] += amount
        self.transfers.append((participant, amount))
        return True

    def balance_of(self, participant: str) -> int:
        return self.balances.get(participant, 0)

    def total_sent(self) -> int:
        return sum(amount for _, amount in self.transfers)

    def __repr__(self) -> str:
        return f"InMemoryTransferAgent({len(self.transfers)} transfers, {self.total_sent()} sent)"
