#!/usr/bin/env python3
"""
Assets and Collateral Capabilities

One capability class per registered token. Collateral variants (fiat-pegged,
non-fiat, yield-wrapped) are a closed set of tags dispatched inside a single
Collateral class, the same way asset-specific parameters are selected per
Asset in the lending protocol.
"""

from enum import Enum, IntEnum
from typing import Optional, Tuple

from .errors import PriceUnavailable
from .fixed import FIX_ONE, FLOOR, RoundingMode, mul, shiftl_to_fix, shiftl_to_uint
from .oracle import OracleFeed


class CollateralStatus(IntEnum):
    """Collateral health, ordered by severity"""
    SOUND = 0
    IFFY = 1
    DISABLED = 2


class CollateralKind(Enum):
    """Supported collateral variants"""
    FIAT = "fiat"
    NON_FIAT = "non_fiat"
    YIELD_WRAPPED = "yield_wrapped"


class Asset:
    """Registrable token with a price; not usable as basket collateral"""

    def __init__(self, erc20: str, decimals: int, oracle: OracleFeed, reference: Optional[str] = None):
        if decimals < 0 or decimals > 36:
            raise ValueError(f"Unsupported decimals for {erc20}: {decimals}")
        self.erc20 = erc20
        self.decimals = decimals
        self.oracle = oracle
        self.reference = reference or erc20

    def is_collateral(self) -> bool:
        return False

    def price(self) -> int:
        """Unit-of-account price of one whole token; raises PriceUnavailable"""
        return self.oracle.price(self.reference)

    def to_fix(self, raw_amount: int, rounding: RoundingMode = FLOOR) -> int:
        """Raw token units -> whole-token fixed point"""
        return shiftl_to_fix(raw_amount, -self.decimals, rounding)

    def to_raw(self, amount: int, rounding: RoundingMode = FLOOR) -> int:
        """Whole-token fixed point -> raw token units"""
        return shiftl_to_uint(amount, self.decimals, rounding)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.erc20!r})"


class Collateral(Asset):
    """Collateral capability: health status, conversion ratios and valuation"""

    def __init__(
        self,
        erc20: str,
        decimals: int,
        oracle: OracleFeed,
        kind: CollateralKind,
        target_name: str,
        reference: Optional[str] = None,
        target_per_ref: int = FIX_ONE,
        exchange_rate: int = FIX_ONE
    ):
        super().__init__(erc20, decimals, oracle, reference)
        self.kind = kind
        self.target_name = target_name

        if kind != CollateralKind.NON_FIAT and target_per_ref != FIX_ONE:
            raise ValueError(f"{kind.value} collateral {erc20} must have targetPerRef of 1")
        if kind != CollateralKind.YIELD_WRAPPED and exchange_rate != FIX_ONE:
            raise ValueError(f"Only yield-wrapped collateral has an exchange rate ({erc20})")
        if target_per_ref <= 0:
            raise ValueError(f"targetPerRef must be positive for {erc20}")

        self._target_per_ref = target_per_ref
        self._exchange_rate = exchange_rate
        self._status = CollateralStatus.SOUND
        self._prev_ref_per_tok = self.ref_per_tok()

    def is_collateral(self) -> bool:
        return True

    def status(self) -> CollateralStatus:
        return self._status

    def ref_per_tok(self) -> int:
        """Reference units per whole token"""
        if self.kind == CollateralKind.YIELD_WRAPPED:
            return self._exchange_rate
        return FIX_ONE

    def target_per_ref(self) -> int:
        """Target units per reference unit"""
        if self.kind == CollateralKind.NON_FIAT:
            return self._target_per_ref
        return FIX_ONE

    def price(self) -> int:
        """Unit-of-account price of one whole token; raises PriceUnavailable"""
        ref_price = self.oracle.price(self.reference)
        if self.kind == CollateralKind.YIELD_WRAPPED:
            return mul(ref_price, self.ref_per_tok())
        return ref_price

    def set_exchange_rate(self, rate: int):
        """Move the wrapper's exchange rate (simulates the underlying protocol)"""
        if self.kind != CollateralKind.YIELD_WRAPPED:
            raise ValueError(f"{self.erc20} is not yield-wrapped")
        if rate < 0:
            raise ValueError(f"Negative exchange rate for {self.erc20}")
        self._exchange_rate = rate

    def evaluate(self) -> Tuple[CollateralStatus, int]:
        """
        Compute the next (status, refPerTok observation) without applying it

        DISABLED is terminal. A strict decrease in refPerTok since the previous
        observation disables immediately. Otherwise a successful valuation means
        SOUND and PriceUnavailable means IFFY; any other error propagates.
        """
        if self._status == CollateralStatus.DISABLED:
            return self._status, self._prev_ref_per_tok

        ref_per_tok = self.ref_per_tok()
        if ref_per_tok < self._prev_ref_per_tok:
            return CollateralStatus.DISABLED, ref_per_tok

        try:
            self.price()
        except PriceUnavailable:
            return CollateralStatus.IFFY, ref_per_tok
        return CollateralStatus.SOUND, ref_per_tok

    def apply(self, status: CollateralStatus, ref_per_tok: int):
        self._status = status
        self._prev_ref_per_tok = ref_per_tok

    def refresh(self) -> CollateralStatus:
        """Re-evaluate and store health status"""
        self.apply(*self.evaluate())
        return self._status
