#!/usr/bin/env python3
"""
Test builders

Small constructors for protocols and collateral used across the test modules.
"""

from basket_protocol_sim.core.collateral import Collateral, CollateralKind
from basket_protocol_sim.core.context import ExecutionContext
from basket_protocol_sim.core.fixed import fp
from basket_protocol_sim.core.oracle import OracleFeed
from basket_protocol_sim.core.protocol import BasketProtocol


def make_protocol(**kwargs) -> BasketProtocol:
    return BasketProtocol(context=ExecutionContext.create(), oracle=OracleFeed(), **kwargs)


def add_fiat(protocol: BasketProtocol, erc20: str, decimals: int = 18, target: str = "USD", price: str = "1") -> Collateral:
    protocol.oracle.set_price(erc20, fp(price))
    collateral = Collateral(erc20, decimals, protocol.oracle, CollateralKind.FIAT, target)
    protocol.register(collateral)
    return collateral


def add_non_fiat(protocol: BasketProtocol, erc20: str, target_per_ref: str, target: str = "BTC",
                 decimals: int = 8, price: str = "1") -> Collateral:
    protocol.oracle.set_price(erc20, fp(price))
    collateral = Collateral(erc20, decimals, protocol.oracle, CollateralKind.NON_FIAT, target,
                            target_per_ref=fp(target_per_ref))
    protocol.register(collateral)
    return collateral


def add_wrapped(protocol: BasketProtocol, erc20: str, reference: str, exchange_rate: str,
                decimals: int = 8, target: str = "USD", price: str = "1") -> Collateral:
    protocol.oracle.set_price(reference, fp(price))
    collateral = Collateral(erc20, decimals, protocol.oracle, CollateralKind.YIELD_WRAPPED, target,
                            reference=reference, exchange_rate=fp(exchange_rate))
    protocol.register(collateral)
    return collateral


def fund(protocol: BasketProtocol, account: str, whole_tokens: int, *erc20s: str):
    """Mint `whole_tokens` of each token (scaled by its decimals) to account"""
    for erc20 in erc20s:
        decimals = protocol.registry.to_asset(erc20).decimals
        protocol.tokens.mint(erc20, account, whole_tokens * 10 ** decimals)
