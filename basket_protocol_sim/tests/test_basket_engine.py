#!/usr/bin/env python3
"""
Basket Engine test suite

Covers prime/backup configuration, the basket switch algorithm, aggregate
status and the quantity / price / quote / basketsHeldBy views.
"""

import pytest

from basket_protocol_sim.core.basket import MAX_TARGET_AMT, BasketEngine
from basket_protocol_sim.core.collateral import Asset, CollateralStatus
from basket_protocol_sim.core.errors import InvalidConfiguration, NotCollateral, UnknownAsset
from basket_protocol_sim.core.events import EventType
from basket_protocol_sim.core.fixed import CEIL, FIX_MAX, FLOOR, div, fp, near
from basket_protocol_sim.tests.builders import add_fiat, add_non_fiat, add_wrapped, fund, make_protocol


class TestPrimeBasketScenario:
    """Two SOUND tokens at 0.5 target each"""

    def setup_method(self):
        self.protocol = make_protocol()
        self.engine = self.protocol.basket
        add_fiat(self.protocol, "USDC", decimals=6)
        add_wrapped(self.protocol, "cDAI", reference="DAI", exchange_rate="0.02")
        self.engine.set_prime_basket(["USDC", "cDAI"], [fp("0.5"), fp("0.5")])
        assert self.engine.switch_basket()

    def test_quantity_is_ref_amount_over_ref_per_tok(self):
        assert self.engine.quantity("USDC") == fp("0.5")
        assert self.engine.quantity("cDAI") == fp(25)

    def test_price_is_weighted_sum(self):
        assert self.engine.price() == fp(1)

    def test_first_commit(self):
        assert self.engine.nonce == 1
        assert self.engine.status() == CollateralStatus.SOUND

        committed = self.protocol.events.of_type(EventType.BASKET_SET)
        assert len(committed) == 1
        assert committed[0].data == {
            "erc20s": ["USDC", "cDAI"],
            "ref_amts": [fp("0.5"), fp("0.5")],
            "nonce": 1
        }

    def test_quote_rounding(self):
        erc20s, amounts = self.engine.quote(fp(10), CEIL)
        assert erc20s == ["USDC", "cDAI"]
        assert amounts == [5 * 10 ** 6, 250 * 10 ** 8]

        _, up = self.engine.quote(fp("0.0000001"), CEIL)
        _, down = self.engine.quote(fp("0.0000001"), FLOOR)
        assert up[0] == 1
        assert down[0] == 0

    def test_quantity_zero_outside_basket_or_registry(self):
        add_fiat(self.protocol, "USDT", decimals=6)
        self.protocol.oracle.set_price("COMP", fp(50))
        self.protocol.register(Asset("COMP", 18, self.protocol.oracle))

        assert self.engine.quantity("USDT") == 0
        assert self.engine.quantity("COMP") == 0
        assert self.engine.quantity("WBTC") == 0

        self.protocol.registry.unregister("USDC")
        assert self.engine.quantity("USDC") == 0

    def test_iffy_token_makes_basket_iffy(self):
        self.protocol.oracle.mark_stale("DAI")
        self.protocol.poke()
        assert self.engine.status() == CollateralStatus.IFFY

    def test_unregistered_token_disables_basket(self):
        self.protocol.registry.unregister("USDC")
        assert self.engine.status() == CollateralStatus.DISABLED


class TestBasketSwitching:
    """Defaulted prime collateral replaced by backups"""

    def setup_method(self):
        self.protocol = make_protocol()
        self.engine = self.protocol.basket
        add_fiat(self.protocol, "USDC", decimals=6)
        self.cdai = add_wrapped(self.protocol, "cDAI", reference="DAI", exchange_rate="0.02")
        add_fiat(self.protocol, "USDT", decimals=6)
        add_fiat(self.protocol, "TUSD")
        add_fiat(self.protocol, "BUSD")
        self.engine.set_prime_basket(["USDC", "cDAI"], [fp("0.5"), fp("0.5")])
        assert self.engine.switch_basket()

    def test_single_backup_takes_lost_weight(self):
        self.engine.set_backup_config("USD", 1, ["USDT"])
        self.cdai.set_exchange_rate(fp("0.01"))

        assert self.engine.switch_basket()
        assert self.engine.nonce == 2
        assert self.engine.basket.erc20s == ("USDC", "USDT")
        assert self.engine.basket.ref_amt("USDT") == fp("0.5")
        assert self.engine.status() == CollateralStatus.SOUND

    def test_no_backup_leaves_basket_unchanged(self):
        self.cdai.set_exchange_rate(fp("0.01"))
        before = self.engine.basket

        assert not self.engine.switch_basket()
        assert self.engine.basket == before
        assert self.engine.nonce == 1
        assert self.engine.status() == CollateralStatus.DISABLED

    def test_ensure_basket_switches_only_when_disabled(self):
        self.engine.set_backup_config("USD", 1, ["USDT"])
        assert not self.engine.ensure_basket()
        assert self.engine.nonce == 1

        self.cdai.set_exchange_rate(fp("0.01"))
        assert self.engine.ensure_basket()
        assert self.engine.nonce == 2

    def test_commit_stamps_clock_time(self):
        assert self.engine.timestamp == 0
        self.cdai.set_exchange_rate(fp("0.01"))
        self.protocol.clock.advance(10)

        assert not self.engine.switch_basket()
        assert self.engine.timestamp == 0

        self.engine.set_backup_config("USD", 1, ["USDT"])
        assert self.engine.switch_basket()
        assert self.engine.timestamp == self.protocol.clock.timestamp == 120

    def test_deficit_split_evenly_across_backups(self):
        self.engine.set_backup_config("USD", 3, ["USDT", "TUSD", "BUSD"])
        self.cdai.set_exchange_rate(fp("0.01"))
        assert self.engine.switch_basket()

        share = fp("0.5") // 3
        assigned = sum(self.engine.basket.ref_amt(e) for e in ("USDT", "TUSD", "BUSD"))
        assert all(self.engine.basket.ref_amt(e) == share for e in ("USDT", "TUSD", "BUSD"))

        good = self.engine.basket.ref_amt("USDC")
        assert good + assigned <= fp(1)
        assert near(good + assigned, fp(1), 3)

    def test_backup_selection_skips_unhealthy_and_respects_max(self):
        cusdt = add_wrapped(self.protocol, "cUSDT", reference="USDT", exchange_rate="0.02")
        cusdt.set_exchange_rate(fp("0.01"))
        cusdt.refresh()
        self.protocol.registry.unregister("BUSD")

        self.engine.set_backup_config("USD", 1, ["cUSDT", "USDT", "TUSD"])
        self.cdai.set_exchange_rate(fp("0.01"))
        assert self.engine.switch_basket()
        assert self.engine.basket.erc20s == ("USDC", "USDT")

    def test_duplicate_backups_counted_once(self):
        self.engine.set_backup_config("USD", 2, ["USDT", "USDT", "TUSD"])
        self.cdai.set_exchange_rate(fp("0.01"))
        assert self.engine.switch_basket()
        assert self.engine.basket.ref_amt("USDT") == fp("0.25")
        assert self.engine.basket.ref_amt("TUSD") == fp("0.25")

    def test_all_prime_disabled_without_backups_fails(self):
        self.protocol.registry.unregister("USDC")
        self.cdai.set_exchange_rate(fp("0.01"))
        assert not self.engine.switch_basket()
        assert self.engine.nonce == 1

    def test_switch_rebuilds_even_when_sound(self):
        assert self.engine.switch_basket()
        assert self.engine.nonce == 2
        assert self.engine.basket.erc20s == ("USDC", "cDAI")


class TestTargetGroups:
    """Several target groups, visited in first-seen order"""

    def setup_method(self):
        self.protocol = make_protocol()
        self.engine = self.protocol.basket
        self.cdai = add_wrapped(self.protocol, "cDAI", reference="DAI", exchange_rate="0.02")
        self.ceur = add_wrapped(self.protocol, "cEUR", reference="EURT", exchange_rate="0.02", target="EUR")
        add_fiat(self.protocol, "USDC", decimals=6)
        add_fiat(self.protocol, "USDT", decimals=6)
        add_fiat(self.protocol, "EURS", decimals=2, target="EUR")

    def test_backups_appended_in_first_seen_target_order(self):
        self.engine.set_prime_basket(["cDAI", "cEUR", "USDC"], [fp("0.3"), fp("0.4"), fp("0.3")])
        self.engine.set_backup_config("EUR", 1, ["EURS"])
        self.engine.set_backup_config("USD", 1, ["USDT"])
        assert self.engine.switch_basket()

        self.cdai.set_exchange_rate(fp("0.01"))
        self.ceur.set_exchange_rate(fp("0.01"))
        assert self.engine.switch_basket()

        assert self.engine.basket.erc20s == ("USDC", "USDT", "EURS")
        assert self.engine.basket.ref_amt("USDT") == fp("0.3")
        assert self.engine.basket.ref_amt("EURS") == fp("0.4")

    def test_non_fiat_ref_amount_uses_target_per_ref(self):
        add_non_fiat(self.protocol, "WBTC", target_per_ref="0.5")
        self.engine.set_prime_basket(["WBTC", "USDC"], [fp("0.01"), fp(1)])
        assert self.engine.switch_basket()

        assert self.engine.basket.ref_amt("WBTC") == div(fp("0.01"), fp("0.5"))
        assert self.engine.basket.ref_amt("WBTC") == fp("0.02")
        assert self.engine.basket.ref_amt("USDC") == fp(1)


class TestBasketConfiguration:
    """Validation of governance configuration"""

    def setup_method(self):
        self.protocol = make_protocol()
        self.engine = self.protocol.basket
        add_fiat(self.protocol, "USDC", decimals=6)
        add_fiat(self.protocol, "DAI")
        add_fiat(self.protocol, "EURT", decimals=6, target="EUR")
        self.protocol.oracle.set_price("COMP", fp(50))
        self.protocol.register(Asset("COMP", 18, self.protocol.oracle))

    def _assert_unchanged(self):
        assert self.engine.prime_basket() == []
        assert self.engine.config.version == 0

    def test_length_mismatch(self):
        with pytest.raises(InvalidConfiguration):
            self.engine.set_prime_basket(["USDC", "DAI"], [fp("0.5")])
        self._assert_unchanged()

    def test_non_collateral_and_unknown_tokens(self):
        with pytest.raises(NotCollateral):
            self.engine.set_prime_basket(["USDC", "COMP"], [fp("0.5"), fp("0.5")])
        with pytest.raises(UnknownAsset):
            self.engine.set_prime_basket(["USDC", "WBTC"], [fp("0.5"), fp("0.5")])
        self._assert_unchanged()

    def test_weights_and_duplicates(self):
        with pytest.raises(InvalidConfiguration):
            self.engine.set_prime_basket(["USDC"], [0])
        with pytest.raises(InvalidConfiguration):
            self.engine.set_prime_basket(["USDC"], [MAX_TARGET_AMT + 1])
        with pytest.raises(InvalidConfiguration):
            self.engine.set_prime_basket(["USDC", "USDC"], [fp("0.5"), fp("0.5")])
        self._assert_unchanged()

    def test_basket_size_limit(self):
        engine = BasketEngine(self.protocol.context, self.protocol.registry, max_basket_size=1)
        with pytest.raises(InvalidConfiguration):
            engine.set_prime_basket(["USDC", "DAI"], [fp("0.5"), fp("0.5")])

    def test_backup_list_limit(self):
        engine = BasketEngine(self.protocol.context, self.protocol.registry, max_backup_erc20s=1)
        with pytest.raises(InvalidConfiguration):
            engine.set_backup_config("USD", 1, ["USDC", "DAI"])
        assert engine.backup_config("USD") is None

        engine.set_backup_config("USD", 1, ["DAI"])
        assert engine.backup_config("USD").erc20s == ["DAI"]

    def test_backup_must_track_target(self):
        with pytest.raises(InvalidConfiguration):
            self.engine.set_backup_config("USD", 1, ["EURT"])
        with pytest.raises(InvalidConfiguration):
            self.engine.set_backup_config("USD", -1, ["DAI"])
        assert self.engine.backup_config("USD") is None

    def test_configuration_is_versioned_and_announced(self):
        self.engine.set_prime_basket(["USDC", "DAI"], [fp("0.5"), fp("0.5")])
        self.engine.set_backup_config("USD", 1, ["DAI"])

        assert self.engine.prime_basket() == [("USDC", fp("0.5")), ("DAI", fp("0.5"))]
        assert self.engine.backup_config("USD").erc20s == ["DAI"]
        assert self.engine.config.version == 2
        assert self.protocol.events.names()[-2:] == [EventType.PRIME_BASKET_SET, EventType.BACKUP_CONFIG_SET]

    def test_status_disabled_before_first_basket(self):
        assert self.engine.status() == CollateralStatus.DISABLED
        assert self.engine.nonce == 0


class TestBasketsHeldBy:
    """Whole basket units an account can assemble"""

    def test_minimum_over_tokens(self, two_token_protocol):
        protocol = two_token_protocol
        fund(protocol, "alice", 100, "USDC")
        fund(protocol, "alice", 50, "DAI")
        assert protocol.basket.baskets_held_by("alice") == fp(100)

    def test_non_decreasing_in_balances(self, two_token_protocol):
        protocol = two_token_protocol
        fund(protocol, "alice", 100, "USDC")
        fund(protocol, "alice", 50, "DAI")
        before = protocol.basket.baskets_held_by("alice")

        fund(protocol, "alice", 10, "USDC")
        assert protocol.basket.baskets_held_by("alice") >= before

        fund(protocol, "alice", 10, "DAI")
        assert protocol.basket.baskets_held_by("alice") > before

    def test_empty_basket_is_unbounded(self):
        protocol = make_protocol()
        assert protocol.basket.baskets_held_by("alice") == FIX_MAX
