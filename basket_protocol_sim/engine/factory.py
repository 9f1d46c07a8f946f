#!/usr/bin/env python3
"""
Protocol Factory

Builds a ready BasketProtocol from a validated ProtocolConfig: oracle prices,
asset registration, prime and backup configuration, and the first basket.
"""

import logging
from typing import Optional

from ..core.collateral import Asset, Collateral
from ..core.context import ExecutionContext
from ..core.errors import InvalidConfiguration
from ..core.fixed import fp_rounded
from ..core.oracle import OracleFeed
from ..core.protocol import BasketProtocol
from .config import CollateralSpec, ProtocolConfig

logger = logging.getLogger(__name__)


def build_asset(spec: CollateralSpec, oracle: OracleFeed) -> Asset:
    """Asset or Collateral for one spec"""
    if not spec.is_collateral:
        return Asset(spec.erc20, spec.decimals, oracle, reference=spec.reference_symbol)

    return Collateral(
        spec.erc20,
        spec.decimals,
        oracle,
        kind=spec.kind,
        target_name=spec.target_name,
        reference=spec.reference_symbol,
        target_per_ref=fp_rounded(spec.target_per_ref),
        exchange_rate=fp_rounded(spec.exchange_rate)
    )


def build_protocol(config: ProtocolConfig, context: Optional[ExecutionContext] = None) -> BasketProtocol:
    """
    Deploy a protocol and commit its first basket

    Raises:
        InvalidConfiguration: if the initial basket cannot be derived
    """
    oracle = OracleFeed()
    for spec in config.collateral:
        oracle.set_price(spec.reference_symbol, fp_rounded(spec.initial_price))

    protocol = BasketProtocol(
        context=context,
        oracle=oracle,
        symbol=config.symbol,
        issuance_rate=fp_rounded(config.issuance_rate),
        min_issuance_rate=fp_rounded(config.min_issuance_rate),
        max_basket_size=config.max_basket_size,
        max_backup_erc20s=config.max_backup_erc20s
    )

    for spec in config.collateral:
        protocol.register(build_asset(spec, oracle))

    erc20s = list(config.prime_basket)
    protocol.basket.set_prime_basket(erc20s, [fp_rounded(config.prime_basket[e]) for e in erc20s])
    for backup in config.backups:
        protocol.basket.set_backup_config(backup.target_name, backup.max_collateral, backup.erc20s)

    if not protocol.basket.switch_basket():
        raise InvalidConfiguration(f"Could not derive an initial basket for {config.name}")

    logger.info("Deployed %s (%s) with basket %s", config.name, config.symbol,
                list(protocol.basket.basket.erc20s))
    return protocol
