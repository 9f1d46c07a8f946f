#!/usr/bin/env python3
"""
Rate-Limited Issuance Engine

Pending mints wait in per-account queues until the issuance throughput of the
chain catches up with them. Throughput is fixed on the first issuance of each
block as max(min rate, issuance rate x supply); every queued request is bound
to the basket nonce at request time and only settles while that basket is
still the realized one.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from .basket import BasketEngine
from .collateral import CollateralStatus
from .context import ExecutionContext
from .errors import BasketNotSound, InvalidConfiguration, QueueRangeError
from .events import EventType
from .fixed import CEIL, FIX_ONE, fp, mul, mul_div, to_fix
from .ledger import SupplyLedger

logger = logging.getLogger(__name__)

MAX_ISSUANCE_RATE = FIX_ONE  # 100% of supply per block
DEFAULT_MIN_ISSUANCE_RATE = fp(10_000)  # tokens per block
DEFAULT_ISSUANCE_RATE = fp("0.00025")  # 0.025% of supply per block


@dataclass
class SlowIssuance:
    """One pending issuance request"""
    issuer: str
    amount: int  # {qTok} elastic-token units
    baskets: int  # {BU}
    erc20s: Tuple[str, ...]
    deposits: Tuple[int, ...]  # raw collateral units, aligned with erc20s
    basket_nonce: int
    block_available_at: int  # fixed-point block height
    processed: bool = False


class IssuanceEngine:
    """Queues, paces, settles and cancels issuance requests"""

    def __init__(
        self,
        context: ExecutionContext,
        basket_engine: BasketEngine,
        supply: SupplyLedger,
        custody: str,
        backing_custody: str,
        issuance_rate: int = DEFAULT_ISSUANCE_RATE,
        min_issuance_rate: int = DEFAULT_MIN_ISSUANCE_RATE
    ):
        if min_issuance_rate <= 0:
            raise InvalidConfiguration("min_issuance_rate must be positive")

        self.context = context
        self.basket_engine = basket_engine
        self.supply = supply
        self.custody = custody
        self.backing_custody = backing_custody
        self.min_issuance_rate = min_issuance_rate

        self.issuance_rate = 0
        self.set_issuance_rate(issuance_rate)

        self.issuances: Dict[str, List[SlowIssuance]] = {}
        self.all_vest_at = 0  # fixed-point block height at which every queued issuance is due
        self.last_rate_block = 0
        self.last_rate = 0  # tokens per block fixed for last_rate_block

    def set_issuance_rate(self, rate: int):
        """Fraction of supply that may vest per block"""
        if rate < 0 or rate > MAX_ISSUANCE_RATE:
            raise InvalidConfiguration(f"Issuance rate {rate} outside [0, {MAX_ISSUANCE_RATE}]")
        self.context.events.emit(EventType.ISSUANCE_RATE_SET, before=self.issuance_rate, after=rate)
        self.issuance_rate = rate

    def queue(self, account: str) -> List[SlowIssuance]:
        return self.issuances.get(account, [])

    # ------------------------------------------------------------------
    # Issue
    # ------------------------------------------------------------------

    def issue(
        self,
        issuer: str,
        amount: int,
        baskets: int,
        erc20s: Sequence[str],
        deposits: Sequence[int]
    ) -> int:
        """
        Queue an issuance whose deposits are already held in custody

        Returns the index of the new record in the issuer's queue. The record
        settles immediately when its availability height has already been
        reached.
        """
        if len(erc20s) != len(deposits):
            raise InvalidConfiguration("erc20s and deposits must be the same length")
        if amount <= 0:
            raise InvalidConfiguration("Cannot issue zero")

        block_available_at = self._when_finished(amount)

        record = SlowIssuance(
            issuer=issuer,
            amount=amount,
            baskets=baskets,
            erc20s=tuple(erc20s),
            deposits=tuple(deposits),
            basket_nonce=self.basket_engine.nonce,
            block_available_at=block_available_at
        )
        queue = self.issuances.setdefault(issuer, [])
        queue.append(record)
        index = len(queue) - 1

        logger.debug("Issuance %s[%d] of %d available at %d", issuer, index, amount, block_available_at,
                     extra={"account": issuer, "block": self.context.clock.block_number})
        self.context.events.emit(
            EventType.ISSUANCE_STARTED,
            issuer=issuer,
            index=index,
            amount=amount,
            baskets=baskets,
            erc20s=list(erc20s),
            deposits=list(deposits),
            block_available_at=block_available_at
        )

        if block_available_at <= to_fix(self.context.clock.block_number):
            vested = self._try_vest(issuer, index)
            if vested:
                self.context.events.emit(EventType.ISSUANCES_COMPLETED, account=issuer, start=index, end=index + 1)
        return index

    def _when_finished(self, amount: int) -> int:
        block = self.context.clock.block_number
        if self.last_rate_block < block:
            self.last_rate_block = block
            self.last_rate = max(self.min_issuance_rate, mul(self.issuance_rate, self.supply.total_supply))

        before = max(self.all_vest_at, to_fix(block - 1))
        finished = before + mul_div(amount, FIX_ONE, self.last_rate, CEIL)
        self.all_vest_at = finished
        return finished

    # ------------------------------------------------------------------
    # Vest
    # ------------------------------------------------------------------

    def vest(self, account: str, end_id: int) -> int:
        """Settle every due, current-basket entry below end_id; returns amount minted"""
        if self.basket_engine.status() != CollateralStatus.SOUND:
            raise BasketNotSound("Collateral default: vesting requires a SOUND basket")

        queue = self.queue(account)
        if end_id < 0 or end_id > len(queue):
            raise QueueRangeError(f"end_id {end_id} outside queue of length {len(queue)}")

        vested = 0
        for i in range(end_id):
            vested += self._try_vest(account, i)

        if vested > 0:
            self.context.events.emit(EventType.ISSUANCES_COMPLETED, account=account, start=0, end=end_id)
        return vested

    def end_id_for_vest(self, account: str) -> int:
        """
        Count of leading queue entries whose availability height has passed

        Advisory only: processed entries and entries bound to an older basket
        nonce are counted too, so vesting up to this index may settle less.
        """
        now = to_fix(self.context.clock.block_number)
        queue = self.queue(account)
        i = 0
        while i < len(queue) and queue[i].block_available_at <= now:
            i += 1
        return i

    def _try_vest(self, account: str, index: int) -> int:
        record = self.issuances[account][index]
        if record.processed:
            return 0
        if record.basket_nonce != self.basket_engine.nonce:
            return 0
        if record.block_available_at > to_fix(self.context.clock.block_number):
            return 0

        self.context.tokens.transfer_many(record.erc20s, self.custody, self.backing_custody, record.deposits)
        self.supply.mint(record.issuer, record.amount)
        self.supply.adjust_baskets_needed(record.baskets)
        record.processed = True

        logger.debug("Vested %s[%d]: %d", account, index, record.amount, extra={"account": account})
        return record.amount

    # ------------------------------------------------------------------
    # Cancel
    # ------------------------------------------------------------------

    def cancel(self, account: str, end_id: int, earliest: bool) -> List[int]:
        """
        Refund unprocessed entries in [0, end_id) if earliest else [end_id, len)

        Refunds are summed by position across the canceled records, which
        assumes every record in range lists its tokens in the same order.
        """
        queue = self.queue(account)
        if end_id < 0 or end_id > len(queue):
            raise QueueRangeError(f"end_id {end_id} outside queue of length {len(queue)}")

        first, last = (0, end_id) if earliest else (end_id, len(queue))
        pending = [queue[n] for n in range(first, last) if not queue[n].processed]

        deposits: List[int] = []
        for record in pending:
            self.context.tokens.transfer_many(record.erc20s, self.custody, record.issuer, record.deposits)
            if len(deposits) < len(record.deposits):
                deposits.extend([0] * (len(record.deposits) - len(deposits)))
            for i, amount in enumerate(record.deposits):
                deposits[i] += amount
            record.processed = True

        if pending:
            logger.debug("Canceled %d issuances of %s", len(pending), account, extra={"account": account})
            self.context.events.emit(EventType.ISSUANCES_CANCELED, account=account, start=first, end=last)
        return deposits
