#!/usr/bin/env python3
"""
Read-only helpers over a BasketProtocol for wallets and dashboards.
"""

from typing import List, Tuple

from .fixed import FIX_MAX, mul_div, shiftl_to_fix, shiftl_to_uint
from .protocol import BACKING_CUSTODY, BasketProtocol


class Facade:
    """Aggregated views that would otherwise need several calls"""

    def __init__(self, protocol: BasketProtocol):
        self.protocol = protocol

    def max_issuable(self, account: str) -> int:
        """Elastic-token units `account` could issue with its current balances"""
        self.protocol.poke()
        held = self.protocol.basket.baskets_held_by(account)
        if held == FIX_MAX:
            return 0

        decimals = self.protocol.supply.decimals
        needed = self.protocol.supply.baskets_needed
        if needed == 0:
            return shiftl_to_uint(held, decimals)

        total_supply = shiftl_to_fix(self.protocol.supply.total_supply, -decimals)
        return shiftl_to_uint(mul_div(held, total_supply, needed), decimals)

    def current_backing(self) -> Tuple[List[str], List[int]]:
        """Basket tokens and the raw amount of each held as backing"""
        erc20s = list(self.protocol.basket.basket.erc20s)
        quantities = [self.protocol.tokens.balance_of(e, BACKING_CUSTODY) for e in erc20s]
        return erc20s, quantities
