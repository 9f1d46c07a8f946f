#!/usr/bin/env python3
"""
Basket Protocol

Wires the asset registry, basket engine, issuance engine and ledgers of one
elastic-supply token together and exposes the user-facing flows: issue, vest,
cancel and redeem.
"""

import logging
from typing import List, Tuple

from .basket import BasketEngine
from .collateral import Asset, CollateralStatus
from .context import ExecutionContext
from .errors import BasketNotSound, InsufficientBalance, InvalidConfiguration
from .events import EventType
from .fixed import CEIL, FLOOR, mul_div
from .issuance import DEFAULT_ISSUANCE_RATE, DEFAULT_MIN_ISSUANCE_RATE, IssuanceEngine
from .ledger import SupplyLedger
from .oracle import OracleFeed
from .registry import AssetRegistry

logger = logging.getLogger(__name__)

ISSUANCE_CUSTODY = "issuance_queue"
BACKING_CUSTODY = "backing_manager"


class BasketProtocol:
    """One elastic-supply token backed by a diversified collateral basket"""

    def __init__(
        self,
        context: ExecutionContext = None,
        oracle: OracleFeed = None,
        symbol: str = "BSKT",
        issuance_rate: int = DEFAULT_ISSUANCE_RATE,
        min_issuance_rate: int = DEFAULT_MIN_ISSUANCE_RATE,
        max_basket_size: int = 64,
        max_backup_erc20s: int = 64
    ):
        self.context = context or ExecutionContext.create()
        self.oracle = oracle or OracleFeed()

        self.registry = AssetRegistry(self.context)
        self.basket = BasketEngine(self.context, self.registry, max_basket_size, max_backup_erc20s)
        self.supply = SupplyLedger(self.context.events, symbol=symbol)
        self.issuance = IssuanceEngine(
            self.context,
            self.basket,
            self.supply,
            custody=ISSUANCE_CUSTODY,
            backing_custody=BACKING_CUSTODY,
            issuance_rate=issuance_rate,
            min_issuance_rate=min_issuance_rate
        )

    @property
    def clock(self):
        return self.context.clock

    @property
    def tokens(self):
        return self.context.tokens

    @property
    def events(self):
        return self.context.events

    def register(self, asset: Asset) -> bool:
        return self.registry.register(asset)

    def poke(self):
        """Refresh every collateral's status"""
        self.registry.force_updates()

    # ------------------------------------------------------------------
    # User flows
    # ------------------------------------------------------------------

    def issue(self, account: str, amount: int) -> int:
        """
        Deposit the current basket quote for `amount` tokens and queue the mint

        Returns the index of the issuance in the account's queue.
        """
        if amount <= 0:
            raise InvalidConfiguration("Cannot issue zero")

        self.poke()
        if self.basket.status() != CollateralStatus.SOUND:
            raise BasketNotSound(f"Basket is {self.basket.status().name}; issuance requires SOUND")

        baskets = self._baskets_for(amount)
        erc20s, deposits = self.basket.quote(baskets, CEIL)
        self.tokens.transfer_many(erc20s, account, ISSUANCE_CUSTODY, deposits)

        return self.issuance.issue(account, amount, baskets, erc20s, deposits)

    def vest(self, account: str, end_id: int) -> int:
        self.poke()
        return self.issuance.vest(account, end_id)

    def cancel(self, account: str, end_id: int, earliest: bool) -> List[int]:
        return self.issuance.cancel(account, end_id, earliest)

    def redeem(self, account: str, amount: int) -> Tuple[List[str], List[int]]:
        """Burn `amount` tokens for a pro-rata share of the current basket"""
        if amount <= 0:
            raise InvalidConfiguration("Cannot redeem zero")

        self.poke()
        if self.basket.status() == CollateralStatus.DISABLED:
            raise BasketNotSound("Basket is DISABLED; redemption unavailable")

        total_supply = self.supply.total_supply
        if amount > self.supply.balance_of(account):
            raise InsufficientBalance(f"{account} cannot redeem more than it holds")

        baskets = mul_div(self.supply.baskets_needed, amount, total_supply)
        erc20s, amounts = self.basket.quote(baskets, FLOOR)

        # Never pay out more than this redemption's share of what is held
        for i, erc20 in enumerate(erc20s):
            held = self.tokens.balance_of(erc20, BACKING_CUSTODY)
            prorata = mul_div(held, amount, total_supply)
            amounts[i] = min(amounts[i], prorata)

        self.supply.burn(account, amount)
        self.supply.adjust_baskets_needed(-baskets)
        self.tokens.transfer_many(erc20s, BACKING_CUSTODY, account, amounts)

        self.events.emit(EventType.REDEMPTION, redeemer=account, amount=amount, baskets=baskets)
        logger.debug("Redeemed %d for %s", amount, account, extra={"account": account})
        return erc20s, amounts

    def _baskets_for(self, amount: int) -> int:
        """Basket units owed for `amount` newly issued tokens"""
        if self.supply.total_supply == 0:
            return amount
        return mul_div(self.supply.baskets_needed, amount, self.supply.total_supply, CEIL)
