#!/usr/bin/env python3
"""
Reference Price Feeds

Simple mutable price source keyed by reference symbol. Simulations move prices,
take feeds offline (stale) or inject arbitrary failures to exercise the
collateral status machine.
"""

from typing import Dict, Optional

from .errors import PriceUnavailable
from .fixed import fp_rounded


class OracleFeed:
    """Unit-of-account prices per reference symbol, in fixed point"""

    def __init__(self, prices: Optional[Dict[str, int]] = None):
        self.prices: Dict[str, int] = dict(prices or {})
        self.stale: Dict[str, bool] = {}
        self.failures: Dict[str, Exception] = {}

    def set_price(self, symbol: str, price: int):
        """Set the fixed-point price of a reference unit"""
        if price < 0:
            raise ValueError(f"Negative price for {symbol}: {price}")
        self.prices[symbol] = price
        self.stale[symbol] = False

    def set_price_float(self, symbol: str, price: float):
        self.set_price(symbol, fp_rounded(price))

    def mark_stale(self, symbol: str, stale: bool = True):
        """Take a feed offline (or bring it back)"""
        self.stale[symbol] = stale

    def inject_failure(self, symbol: str, error: Optional[Exception]):
        """Make the next reads raise an arbitrary error; None clears it"""
        if error is None:
            self.failures.pop(symbol, None)
        else:
            self.failures[symbol] = error

    def price(self, symbol: str) -> int:
        if symbol in self.failures:
            raise self.failures[symbol]
        if self.stale.get(symbol, False):
            raise PriceUnavailable(f"Price feed for {symbol} is stale")

        price = self.prices.get(symbol, 0)
        if price == 0:
            raise PriceUnavailable(f"No price for {symbol}")
        return price
