#!/usr/bin/env python3
"""
Asset Registry

Maps token identifiers to their Asset / Collateral capability objects and
refreshes collateral health on demand.
"""

import logging
from typing import Dict, Iterable, List

from .collateral import Asset, Collateral
from .context import ExecutionContext
from .errors import NotCollateral, UnknownAsset
from .events import EventType

logger = logging.getLogger(__name__)


class AssetRegistry:
    """Token -> capability lookup, in registration order"""

    def __init__(self, context: ExecutionContext):
        self.context = context
        self._assets: Dict[str, Asset] = {}

    def register(self, asset: Asset) -> bool:
        """Register a new asset; returns False if the token is already registered"""
        if asset.erc20 in self._assets:
            return False
        self._assets[asset.erc20] = asset
        self.context.events.emit(EventType.ASSET_REGISTERED, erc20=asset.erc20, asset=repr(asset))
        return True

    def swap_registered(self, asset: Asset) -> Asset:
        """Replace the capability of an already-registered token"""
        previous = self.to_asset(asset.erc20)
        self._assets[asset.erc20] = asset
        self.context.events.emit(EventType.ASSET_UNREGISTERED, erc20=previous.erc20, asset=repr(previous))
        self.context.events.emit(EventType.ASSET_REGISTERED, erc20=asset.erc20, asset=repr(asset))
        return previous

    def unregister(self, erc20: str) -> Asset:
        asset = self.to_asset(erc20)
        del self._assets[erc20]
        self.context.events.emit(EventType.ASSET_UNREGISTERED, erc20=erc20, asset=repr(asset))
        return asset

    def is_registered(self, erc20: str) -> bool:
        return erc20 in self._assets

    def to_asset(self, erc20: str) -> Asset:
        try:
            return self._assets[erc20]
        except KeyError:
            raise UnknownAsset(f"{erc20} is not registered") from None

    def to_collateral(self, erc20: str) -> Collateral:
        asset = self.to_asset(erc20)
        if not asset.is_collateral():
            raise NotCollateral(f"{erc20} is not collateral")
        return asset

    def erc20s(self) -> List[str]:
        return list(self._assets)

    def force_updates(self):
        """Refresh every registered collateral, in registration order"""
        self.refresh(self.erc20s())

    def refresh(self, erc20s: Iterable[str]):
        """
        Refresh the listed collateral; unregistered and non-collateral tokens
        are skipped. Every status is evaluated before any is stored, so an
        unrecognized valuation error leaves all of them untouched.
        """
        pending = []
        for erc20 in erc20s:
            asset = self._assets.get(erc20)
            if asset is None or not asset.is_collateral():
                continue
            pending.append((erc20, asset, asset.evaluate()))

        for erc20, asset, (status, ref_per_tok) in pending:
            before = asset.status()
            asset.apply(status, ref_per_tok)
            after = asset.status()
            if after != before:
                logger.info("Collateral %s: %s -> %s", erc20, before.name, after.name,
                            extra={"block": self.context.clock.block_number})
                self.context.events.emit(
                    EventType.COLLATERAL_STATUS_CHANGED,
                    erc20=erc20, before=before.name, after=after.name
                )
