#!/usr/bin/env python3
"""
Basket Engine

Owns the governance-set prime and backup configuration and the currently
realized basket. The realized basket is rebuilt from configuration plus live
collateral health: defaulted prime collateral is replaced, per target group, by
healthy backups taken in configured order.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from .collateral import Collateral, CollateralStatus
from .context import ExecutionContext
from .errors import InvalidConfiguration, NotCollateral, UnknownAsset
from .events import EventType
from .fixed import CEIL, FIX_MAX, RoundingMode, add, div, fp, mul, sub
from .ordered import OrderedSet
from .registry import AssetRegistry

logger = logging.getLogger(__name__)

MAX_TARGET_AMT = fp(1000)  # {target/BU}
DEFAULT_MAX_BASKET_SIZE = 64
DEFAULT_MAX_BACKUP_ERC20S = 64


@dataclass(frozen=True)
class Basket:
    """Immutable snapshot: reference amount per basket unit for each token"""
    erc20s: Tuple[str, ...] = ()
    ref_amts: Tuple[int, ...] = ()

    def ref_amt(self, erc20: str) -> int:
        for token, amt in zip(self.erc20s, self.ref_amts):
            if token == erc20:
                return amt
        return 0

    def items(self) -> Iterator[Tuple[str, int]]:
        return iter(zip(self.erc20s, self.ref_amts))

    def __len__(self) -> int:
        return len(self.erc20s)


@dataclass
class BackupConfig:
    """Ordered backup candidates for one target group"""
    max_collateral: int
    erc20s: List[str]


class BasketConfig:
    """Governance-owned prime basket and backup configuration"""

    def __init__(self):
        self.erc20s: List[str] = []
        self.target_amts: Dict[str, int] = {}  # {target/BU}
        self.target_names: Dict[str, str] = {}
        self.backups: Dict[str, BackupConfig] = {}
        self.version = 0


class BasketEngine:
    """Selects, defaults and reconstructs the backing basket"""

    def __init__(
        self,
        context: ExecutionContext,
        registry: AssetRegistry,
        max_basket_size: int = DEFAULT_MAX_BASKET_SIZE,
        max_backup_erc20s: int = DEFAULT_MAX_BACKUP_ERC20S
    ):
        self.context = context
        self.registry = registry
        self.max_basket_size = max_basket_size
        self.max_backup_erc20s = max_backup_erc20s

        self.config = BasketConfig()
        self.basket = Basket()
        self.nonce = 0
        self.timestamp = 0  # timestamp of the last commit

    # ------------------------------------------------------------------
    # Governance configuration
    # ------------------------------------------------------------------

    def set_prime_basket(self, erc20s: Sequence[str], target_amts: Sequence[int]):
        """Replace the prime basket; validates everything before changing anything"""
        if len(erc20s) != len(target_amts):
            raise InvalidConfiguration("erc20s and target_amts must be the same length")
        if len(erc20s) > self.max_basket_size:
            raise InvalidConfiguration(f"Prime basket larger than {self.max_basket_size} tokens")
        if len(set(erc20s)) != len(erc20s):
            raise InvalidConfiguration("Duplicate token in prime basket")

        target_names = {}
        for erc20, amt in zip(erc20s, target_amts):
            collateral = self.registry.to_collateral(erc20)
            if amt <= 0 or amt > MAX_TARGET_AMT:
                raise InvalidConfiguration(f"Invalid target amount {amt} for {erc20}")
            target_names[erc20] = collateral.target_name

        self.config.erc20s = list(erc20s)
        self.config.target_amts = dict(zip(erc20s, target_amts))
        self.config.target_names = target_names
        self.config.version += 1

        self.context.events.emit(
            EventType.PRIME_BASKET_SET,
            erc20s=list(erc20s),
            target_amts=list(target_amts),
            target_names=[target_names[e] for e in erc20s]
        )

    def set_backup_config(self, target_name: str, max_collateral: int, erc20s: Sequence[str]):
        """Replace the backup candidate list and cap for one target group"""
        if max_collateral < 0:
            raise InvalidConfiguration("max_collateral cannot be negative")
        if len(erc20s) > self.max_backup_erc20s:
            raise InvalidConfiguration(f"More than {self.max_backup_erc20s} backup tokens")

        for erc20 in erc20s:
            collateral = self.registry.to_collateral(erc20)
            if collateral.target_name != target_name:
                raise InvalidConfiguration(
                    f"Backup {erc20} tracks {collateral.target_name}, not {target_name}"
                )

        self.config.backups[target_name] = BackupConfig(max_collateral, list(erc20s))
        self.config.version += 1

        self.context.events.emit(
            EventType.BACKUP_CONFIG_SET,
            target_name=target_name,
            max_collateral=max_collateral,
            erc20s=list(erc20s)
        )

    def prime_basket(self) -> List[Tuple[str, int]]:
        return [(e, self.config.target_amts[e]) for e in self.config.erc20s]

    def backup_config(self, target_name: str) -> Optional[BackupConfig]:
        return self.config.backups.get(target_name)

    # ------------------------------------------------------------------
    # Basket (re)construction
    # ------------------------------------------------------------------

    def ensure_basket(self) -> bool:
        """Refresh all collateral and switch if the basket is DISABLED"""
        self.registry.force_updates()
        if self.status() == CollateralStatus.DISABLED:
            return self.switch_basket()
        return False

    def switch_basket(self) -> bool:
        """
        Derive a new basket from configuration and collateral health

        Returns False, leaving the realized basket and nonce unchanged, when a
        target group has a deficit but no eligible backup (or the result would
        be empty).
        """
        config = self.config
        self.registry.refresh(config.erc20s)

        target_names = OrderedSet(config.target_names[e] for e in config.erc20s)
        total_weights = {name: 0 for name in target_names}
        good_weights = {name: 0 for name in target_names}
        new_basket: Dict[str, int] = {}

        for erc20 in config.erc20s:
            if not self.registry.is_registered(erc20):
                continue

            name = config.target_names[erc20]
            weight = config.target_amts[erc20]
            total_weights[name] = add(total_weights[name], weight)

            collateral = self._good_collateral(erc20)
            if collateral is not None:
                good_weights[name] = add(good_weights[name], weight)
                self._add_ref_amt(new_basket, erc20, div(weight, collateral.target_per_ref()))

        for name in target_names:
            if total_weights[name] <= good_weights[name]:
                continue

            deficit = sub(total_weights[name], good_weights[name])
            backups = self._select_backups(name)
            if not backups:
                logger.warning("Cannot capitalize target %s: deficit %d with no eligible backups",
                               name, deficit, extra={"nonce": self.nonce})
                return False

            share = deficit // len(backups)
            for collateral in backups:
                self._add_ref_amt(new_basket, collateral.erc20, div(share, collateral.target_per_ref()))

        if not new_basket:
            logger.warning("Basket switch produced an empty basket", extra={"nonce": self.nonce})
            return False

        self._commit(new_basket)
        return True

    def _select_backups(self, target_name: str) -> List[Collateral]:
        backup = self.config.backups.get(target_name)
        if backup is None:
            return []

        selected: List[Collateral] = []
        for erc20 in backup.erc20s:
            if len(selected) >= backup.max_collateral:
                break
            collateral = self._good_collateral(erc20)
            if collateral is not None and collateral not in selected:
                selected.append(collateral)
        return selected

    def _good_collateral(self, erc20: str) -> Optional[Collateral]:
        """Registered collateral that is not DISABLED, else None"""
        try:
            collateral = self.registry.to_collateral(erc20)
        except (UnknownAsset, NotCollateral):
            return None
        if collateral.status() == CollateralStatus.DISABLED:
            return None
        return collateral

    @staticmethod
    def _add_ref_amt(basket: Dict[str, int], erc20: str, ref_amt: int):
        basket[erc20] = add(basket.get(erc20, 0), ref_amt)

    def _commit(self, new_basket: Dict[str, int]):
        self.basket = Basket(tuple(new_basket), tuple(new_basket.values()))
        self.nonce += 1
        self.timestamp = self.context.clock.timestamp

        logger.info("Basket %d committed: %s", self.nonce, list(self.basket.erc20s),
                    extra={"nonce": self.nonce, "block": self.context.clock.block_number})
        self.context.events.emit(
            EventType.BASKET_SET,
            erc20s=list(self.basket.erc20s),
            ref_amts=list(self.basket.ref_amts),
            nonce=self.nonce
        )

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def status(self) -> CollateralStatus:
        """Worst status among basket tokens; DISABLED for an empty basket"""
        if not self.basket.erc20s:
            return CollateralStatus.DISABLED

        worst = CollateralStatus.SOUND
        for erc20 in self.basket.erc20s:
            try:
                status = self.registry.to_collateral(erc20).status()
            except (UnknownAsset, NotCollateral):
                return CollateralStatus.DISABLED

            if status == CollateralStatus.DISABLED:
                return CollateralStatus.DISABLED
            worst = max(worst, status)
        return worst

    def quantity(self, erc20: str) -> int:
        """Whole tokens per basket unit; 0 for unregistered or non-collateral tokens"""
        try:
            collateral = self.registry.to_collateral(erc20)
        except (UnknownAsset, NotCollateral):
            return 0

        ref_amt = self.basket.ref_amt(erc20)
        if ref_amt == 0:
            return 0
        return div(ref_amt, collateral.ref_per_tok(), CEIL)

    def price(self) -> int:
        """Unit-of-account value of one basket unit, ignoring DISABLED tokens"""
        total = 0
        for erc20 in self.basket.erc20s:
            try:
                collateral = self.registry.to_collateral(erc20)
            except (UnknownAsset, NotCollateral):
                continue
            if collateral.status() == CollateralStatus.DISABLED:
                continue
            total = add(total, mul(collateral.price(), self.quantity(erc20)))
        return total

    def quote(self, amount: int, rounding: RoundingMode) -> Tuple[List[str], List[int]]:
        """Raw token quantities backing `amount` basket units"""
        erc20s = list(self.basket.erc20s)
        quantities = []
        for erc20 in erc20s:
            q = self.quantity(erc20)
            if q == 0:
                quantities.append(0)
                continue
            collateral = self.registry.to_collateral(erc20)
            quantities.append(collateral.to_raw(mul(amount, q, rounding), rounding))
        return erc20s, quantities

    def baskets_held_by(self, account: str) -> int:
        """Whole basket units `account` could assemble; FIX_MAX for an empty basket"""
        baskets = FIX_MAX
        for erc20 in self.basket.erc20s:
            q = self.quantity(erc20)
            if q == 0:
                continue
            collateral = self.registry.to_collateral(erc20)
            balance = collateral.to_fix(self.context.tokens.balance_of(erc20, account))
            baskets = min(baskets, div(balance, q))
        return baskets
