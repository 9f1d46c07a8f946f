import pytest

from basket_protocol_sim.core.fixed import fp
from basket_protocol_sim.engine.config import SimulationConfig

from basket_protocol_sim.tests.builders import add_fiat, make_protocol


@pytest.fixture
def two_token_protocol():
    """USDC/DAI basket at 0.5 target each, with a committed basket"""
    protocol = make_protocol()
    add_fiat(protocol, "USDC", decimals=6)
    add_fiat(protocol, "DAI", decimals=18)
    protocol.basket.set_prime_basket(["USDC", "DAI"], [fp("0.5"), fp("0.5")])
    assert protocol.basket.switch_basket()
    return protocol


@pytest.fixture
def short_simulation_config():
    return SimulationConfig(blocks=30, random_seed=42, num_issuers=3)
