#!/usr/bin/env python3
"""
Simulation, scenario and configuration tests
"""

import json
import logging

import pytest
from pydantic import ValidationError

from basket_protocol_sim.analysis.metrics import BasketMetricsCalculator
from basket_protocol_sim.analysis.results_manager import ResultsManager, RunMetadata
from basket_protocol_sim.core.collateral import CollateralKind, CollateralStatus
from basket_protocol_sim.engine.config import (
    BasketStressScenarios, CollateralSpec, ProtocolConfig, SimulationConfig,
    create_default_protocol_config
)
from basket_protocol_sim.engine.factory import build_protocol
from basket_protocol_sim.log import JsonFormatter
from basket_protocol_sim.main import main
from basket_protocol_sim.simulation.engine import BasketSimulationEngine
from basket_protocol_sim.stress_testing.runner import StressTestRunner
from basket_protocol_sim.stress_testing.scenarios import BasketStressTestSuite


class TestConfiguration:
    """Pydantic validation of deployments and runs"""

    def test_default_deployment_builds(self):
        protocol = build_protocol(create_default_protocol_config())
        assert list(protocol.basket.basket.erc20s) == ["USDC", "DAI", "cDAI"]
        assert protocol.basket.nonce == 1
        assert protocol.basket.status() == CollateralStatus.SOUND
        assert not protocol.registry.to_asset("COMP").is_collateral()

    def test_undeclared_prime_token_rejected(self):
        with pytest.raises(ValidationError):
            ProtocolConfig(
                collateral=[CollateralSpec(erc20="USDC", decimals=6)],
                prime_basket={"USDC": 0.5, "DAI": 0.5}
            )

    def test_backup_for_other_target_rejected(self):
        with pytest.raises(ValidationError):
            ProtocolConfig(
                collateral=[
                    CollateralSpec(erc20="USDC", decimals=6),
                    CollateralSpec(erc20="EURT", decimals=6, target_name="EUR")
                ],
                prime_basket={"USDC": 1.0},
                backups=[{"target_name": "USD", "max_collateral": 1, "erc20s": ["EURT"]}]
            )

    def test_issuance_rate_capped(self):
        with pytest.raises(ValidationError):
            ProtocolConfig(
                collateral=[CollateralSpec(erc20="USDC", decimals=6)],
                prime_basket={"USDC": 1.0},
                issuance_rate=1.5
            )

    def test_kind_parameters_checked(self):
        with pytest.raises(ValidationError):
            CollateralSpec(erc20="USDT", kind=CollateralKind.FIAT, exchange_rate=2.0)

    def test_overrides_are_revalidated(self):
        base = SimulationConfig(random_seed=1)
        changed = base.with_overrides({"protocol.backups": [], "num_issuers": 2})

        assert changed.protocol.backups == []
        assert changed.num_issuers == 2
        assert base.protocol.backups

        with pytest.raises(ValidationError):
            base.with_overrides({"blocks": 0})

    def test_long_float_parameters_are_rounded_on_deploy(self):
        config = create_default_protocol_config().model_copy(update={"issuance_rate": 1.2345678901234567e-05})
        config = ProtocolConfig.model_validate(config.model_dump())

        protocol = build_protocol(config)
        assert protocol.issuance.issuance_rate == 12345678901235

    def test_deployment_from_json(self, tmp_path):
        path = tmp_path / "deployment.json"
        path.write_text(json.dumps(create_default_protocol_config().model_dump(mode="json")))

        loaded = ProtocolConfig.from_json(path)
        assert loaded == create_default_protocol_config()


class TestSimulationEngine:
    """Block-by-block driver"""

    def test_short_run(self, short_simulation_config):
        results = BasketSimulationEngine(short_simulation_config).run_simulation()

        assert results["blocks_simulated"] == 30
        assert len(results["metrics_history"]) == 30
        assert set(results["agent_summaries"]) == {"issuer_0", "issuer_1", "issuer_2"}
        assert results["final_state"]["basket_status"] == "SOUND"
        assert results["metrics_history"][-1]["backing"].keys() >= {"USDC", "DAI", "cDAI"}

    def test_same_seed_same_run(self, short_simulation_config):
        first = BasketSimulationEngine(short_simulation_config).run_simulation()
        second = BasketSimulationEngine(short_simulation_config).run_simulation()
        assert first["metrics_history"] == second["metrics_history"]
        assert first["agent_actions_history"] == second["agent_actions_history"]

    def test_agents_are_funded_by_value(self, short_simulation_config):
        engine = BasketSimulationEngine(short_simulation_config)
        tokens = engine.protocol.tokens
        assert tokens.balance_of("USDC", "issuer_0") == 100_000 * 10 ** 6
        # 100k USD of cDAI at 0.022 DAI per token
        assert tokens.balance_of("cDAI", "issuer_0") == 4_545_454 * 10 ** 8
        assert tokens.balance_of("COMP", "issuer_0") == 0

    def test_unknown_shock_rejected(self, short_simulation_config):
        engine = BasketSimulationEngine(short_simulation_config)
        with pytest.raises(ValueError):
            engine.apply_shock({"type": "earthquake"})


class TestStressScenarios:
    """Scenario outcomes on a small issuer population"""

    def setup_method(self):
        self.base = SimulationConfig(random_seed=7, num_issuers=2)
        self.suite = BasketStressTestSuite()

    def test_suite_lists_every_scenario(self):
        names = [s["name"] for s in BasketStressScenarios.get_all_scenarios()]
        assert self.suite.get_scenario_names() == names
        with pytest.raises(ValueError):
            self.suite.get_scenario("Meteor_Strike")

    def test_wrapped_default_switches_to_backups(self):
        results = self.suite.run_scenario("Wrapped_Collateral_Default", self.base)

        final = results["final_state"]
        assert final["basket_nonce"] == 2
        assert final["basket_status"] == "SOUND"
        assert "cDAI" not in final["basket"]
        assert set(final["basket"]) == {"USDC", "DAI", "USDT", "TUSD"}
        assert BasketMetricsCalculator(results).calculate_summary()["basket_switches"] == 1

    def test_default_without_backups_stays_disabled(self):
        results = self.suite.run_scenario("Default_Without_Backups", self.base)

        assert results["final_state"]["basket_status"] == "DISABLED"
        assert results["final_state"]["basket_nonce"] == 1
        summary = BasketMetricsCalculator(results).calculate_summary()
        assert summary["blocks_disabled"] == 50

    def test_oracle_outage_makes_basket_iffy(self):
        results = self.suite.run_scenario("Oracle_Outage", self.base)

        summary = BasketMetricsCalculator(results).calculate_summary()
        assert summary["blocks_not_sound"] == 20
        assert summary["blocks_disabled"] == 0
        assert results["final_state"]["basket_status"] == "SOUND"
        prices = [m["basket_price"] for m in results["metrics_history"]]
        assert prices[25] is None

    def test_monte_carlo_aggregates_runs(self):
        runner = StressTestRunner(self.base.with_overrides({"num_issuers": 1}), auto_save=False)
        aggregated = runner.run_monte_carlo_stress_test("Oracle_Outage", num_runs=2)

        assert aggregated["num_successful_runs"] == 2
        assert aggregated["statistics"]["blocks_not_sound"]["mean"] == 20.0
        assert aggregated["sample_scenario_results"]["scenario_name"] == "Oracle_Outage"


class TestResultsStorage:
    """Run directories and serialized output"""

    def _run_dir(self, results_dir, scenario_name):
        run_dirs = sorted((results_dir / scenario_name).iterdir())
        assert len(run_dirs) == 1
        return run_dirs[0]

    def test_targeted_run_saves_results_and_chart(self, tmp_path):
        config = SimulationConfig(random_seed=7, num_issuers=1)
        runner = StressTestRunner(config, auto_save=True, results_dir=str(tmp_path))
        runner.run_targeted_scenario("Wrapped_Collateral_Default")

        run_dir = self._run_dir(tmp_path, "Wrapped_Collateral_Default")
        for name in ("results.json", "metadata.json", "summary.md", "metrics_history.csv"):
            assert (run_dir / name).exists()
        assert (run_dir / "charts" / "wrapped_collateral_default_basket_dynamics.png").exists()

        summary = (run_dir / "summary.md").read_text()
        assert "Basket Switches" in summary
        assert "wrapped_collateral_default_basket_dynamics.png" in summary

    def test_monte_carlo_run_charts_sample(self, tmp_path):
        config = SimulationConfig(random_seed=7, num_issuers=1)
        runner = StressTestRunner(config, auto_save=True, results_dir=str(tmp_path))
        runner.run_monte_carlo_stress_test("Oracle_Outage", num_runs=2)

        run_dir = self._run_dir(tmp_path, "Oracle_Outage")
        assert (run_dir / "charts" / "oracle_outage_basket_dynamics.png").exists()

        saved = json.loads((run_dir / "results.json").read_text())
        assert saved["num_successful_runs"] == 2
        assert saved["statistics"]["blocks_not_sound"]["mean"] == 20.0
        assert "Blocks Not Sound" in (run_dir / "summary.md").read_text()

    def test_save_and_reload(self, tmp_path, short_simulation_config):
        results = BasketSimulationEngine(short_simulation_config).run_simulation()
        manager = ResultsManager(str(tmp_path))

        run_dir = manager.create_run_directory("Baseline")
        metadata = RunMetadata(
            run_id=run_dir.name,
            scenario_name="Baseline",
            timestamp="2026-01-01 00:00:00",
            parameters={"num_runs": 1},
            execution_time=0.5
        )
        manager.save_results(run_dir, results, metadata)

        loaded = manager.load_results(run_dir)
        assert loaded["final_state"] == results["final_state"]
        assert (run_dir / "metrics_history.csv").exists()
        assert manager.load_metadata(run_dir) == metadata

        second = manager.create_run_directory("Baseline")
        assert second.name.startswith("run_002_")
        assert [r["run_id"] for r in manager.list_scenario_runs("Baseline")] == [run_dir.name, second.name]

    def test_metrics_frame_flattens_backing(self, short_simulation_config):
        results = BasketSimulationEngine(short_simulation_config).run_simulation()
        frame = BasketMetricsCalculator(results).metrics_frame()

        assert len(frame) == 30
        assert "backing_USDC" in frame.columns
        assert (frame["basket_status"] == "SOUND").all()


class TestCommandLine:
    """Entry point and log formatting"""

    def test_list_scenarios(self, capsys):
        assert main(["--list-scenarios"]) == 0
        assert "Wrapped_Collateral_Default" in capsys.readouterr().out

    def test_no_action_prints_help(self, capsys):
        assert main([]) == 1

    def test_unknown_scenario_points_to_listing(self, tmp_path, capsys):
        assert main(["--scenario", "Meteor_Strike", "--results-dir", str(tmp_path)]) == 1
        assert "--list-scenarios" in capsys.readouterr().out

    def test_json_log_records_carry_extras(self):
        record = logging.LogRecord("basket", logging.INFO, __file__, 1, "Basket %d committed", (2,), None)
        record.nonce = 2
        payload = json.loads(JsonFormatter().format(record))

        assert payload["message"] == "Basket 2 committed"
        assert payload["nonce"] == 2
        assert "block" not in payload
