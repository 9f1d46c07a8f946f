#!/usr/bin/env python3
"""
Token Ledgers

TokenLedger tracks raw balances of every collateral token per account.
SupplyLedger is the elastic-supply token itself: mint/burn primitives plus the
number of basket units the outstanding supply is owed.
"""

from collections import defaultdict
from typing import Dict, Sequence

from .errors import InsufficientBalance
from .events import EventLog, EventType
from .fixed import add


class TokenLedger:
    """Raw balances per (token, account)"""

    def __init__(self):
        self.balances: Dict[str, Dict[str, int]] = defaultdict(lambda: defaultdict(int))

    def balance_of(self, token: str, account: str) -> int:
        return self.balances[token][account]

    def mint(self, token: str, account: str, amount: int):
        """Create tokens out of thin air (funding for tests and simulations)"""
        if amount < 0:
            raise ValueError(f"Cannot mint negative amount of {token}")
        self.balances[token][account] += amount

    def transfer(self, token: str, sender: str, recipient: str, amount: int):
        if amount < 0:
            raise ValueError(f"Cannot transfer negative amount of {token}")
        if self.balances[token][sender] < amount:
            raise InsufficientBalance(
                f"{sender} holds {self.balances[token][sender]} {token}, needs {amount}"
            )
        self.balances[token][sender] -= amount
        self.balances[token][recipient] += amount

    def require_balances(self, account: str, tokens: Sequence[str], amounts: Sequence[int]):
        """Raise unless account can cover every (token, amount) pair at once"""
        needed: Dict[str, int] = defaultdict(int)
        for token, amount in zip(tokens, amounts):
            if amount < 0:
                raise ValueError(f"Negative amount of {token}")
            needed[token] += amount

        for token, amount in needed.items():
            if self.balances[token][account] < amount:
                raise InsufficientBalance(
                    f"{account} holds {self.balances[token][account]} {token}, needs {amount}"
                )

    def transfer_many(self, tokens: Sequence[str], sender: str, recipient: str, amounts: Sequence[int]):
        """Move several tokens at once; nothing moves if any leg would fail"""
        if len(tokens) != len(amounts):
            raise ValueError("tokens and amounts differ in length")
        self.require_balances(sender, tokens, amounts)
        for token, amount in zip(tokens, amounts):
            self.transfer(token, sender, recipient, amount)


class SupplyLedger:
    """Elastic-supply token with basket-unit accounting"""

    def __init__(self, events: EventLog, symbol: str = "BSKT", decimals: int = 18):
        self.events = events
        self.symbol = symbol
        self.decimals = decimals
        self._balances: Dict[str, int] = defaultdict(int)
        self._total_supply = 0
        self.baskets_needed = 0  # fixed point {BU}

    @property
    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, account: str) -> int:
        return self._balances[account]

    def mint(self, recipient: str, amount: int):
        if amount < 0:
            raise ValueError("Cannot mint a negative amount")
        self._balances[recipient] += amount
        self._total_supply += amount

    def burn(self, holder: str, amount: int):
        if amount < 0:
            raise ValueError("Cannot burn a negative amount")
        if self._balances[holder] < amount:
            raise InsufficientBalance(f"{holder} holds {self._balances[holder]} {self.symbol}, burning {amount}")
        self._balances[holder] -= amount
        self._total_supply -= amount

    def adjust_baskets_needed(self, delta: int):
        """Add (or remove, when negative) basket units owed to holders"""
        before = self.baskets_needed
        after = add(before, delta)
        self.baskets_needed = after
        self.events.emit(EventType.BASKETS_NEEDED_CHANGED, before=before, after=after)
