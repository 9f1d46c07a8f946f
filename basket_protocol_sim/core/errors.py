#!/usr/bin/env python3
"""
Protocol Exceptions

Recoverable, caller-visible failures. Arithmetic domain errors are not listed
here: they surface as UIntOutOfBounds or ZeroDivisionError and abort the call.
"""


class BasketProtocolError(Exception):
    """Base class for protocol-level failures"""


class InvalidConfiguration(BasketProtocolError, ValueError):
    """Governance configuration rejected; no state was changed"""


class UnknownAsset(BasketProtocolError, KeyError):
    """Token is not registered in the asset registry"""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "unknown asset"


class NotCollateral(BasketProtocolError, ValueError):
    """Registered asset cannot back the basket"""


class PriceUnavailable(BasketProtocolError):
    """Price source could not produce a valuation (stale or missing feed)"""


class BasketNotSound(BasketProtocolError):
    """Operation requires a healthier basket than the current one"""


class InsufficientBalance(BasketProtocolError, ValueError):
    """Account does not hold enough of a token"""


class QueueRangeError(BasketProtocolError, IndexError):
    """Issuance queue index outside the account's queue"""
