#!/usr/bin/env python3
"""
Stress Test Execution Engine

Runs basket scenarios once or as a Monte Carlo batch over random seeds, and
optionally stores results and charts through the ResultsManager.
"""

import logging
import time
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np

from ..analysis.metrics import BasketMetricsCalculator
from ..analysis.results_manager import ResultsManager, RunMetadata
from ..analysis.scenario_charts import ScenarioChartGenerator
from ..core.errors import BasketProtocolError
from ..engine.config import SimulationConfig
from .scenarios import BasketStressTestSuite

logger = logging.getLogger(__name__)


class StressTestRunner:
    """Stress test execution engine with Monte Carlo capabilities and results storage"""

    def __init__(
        self,
        config: Optional[SimulationConfig] = None,
        auto_save: bool = True,
        results_dir: str = "results"
    ):
        self.config = config or SimulationConfig()
        self.test_suite = BasketStressTestSuite()
        self.results = {}

        self.auto_save = auto_save
        self.results_manager = ResultsManager(results_dir) if auto_save else None
        self.chart_generator = ScenarioChartGenerator() if auto_save else None

    def run_targeted_scenario(self, scenario_name: str) -> Dict:
        """
        Run a single scenario with the runner's configuration

        Returns:
            Scenario results and their summary
        """
        print(f"Running targeted stress test: {scenario_name}")
        start_time = time.time()

        results = self.test_suite.run_scenario(scenario_name, self.config)
        summary = BasketMetricsCalculator(results).calculate_summary()

        final_results = {
            "scenario_results": results,
            "summary": summary
        }
        self.results[scenario_name] = final_results

        if self.auto_save:
            self._save_scenario_results(scenario_name, final_results, time.time() - start_time, 1)
        return final_results

    def run_monte_carlo_stress_test(self, scenario_name: str, num_runs: int = 20) -> Dict:
        """
        Run a scenario repeatedly with independent random seeds

        Args:
            scenario_name: Name of stress scenario to run
            num_runs: Number of Monte Carlo runs

        Returns:
            Per-metric statistics across runs plus the last run as a sample
        """
        print(f"Running Monte Carlo stress test: {scenario_name}")
        print(f"Number of runs: {num_runs}")
        print("=" * 50)

        seeds = np.random.SeedSequence(self.config.random_seed).generate_state(num_runs)
        summaries: List[Dict] = []
        failures: List[Dict] = []
        sample = None
        start_time = time.time()

        for run, seed in enumerate(seeds):
            config = self.config.with_overrides({"random_seed": int(seed)})
            try:
                result = self.test_suite.run_scenario(scenario_name, config)
            except BasketProtocolError as e:
                logger.warning("Run %d of %s failed: %s", run, scenario_name, e, extra={"scenario": scenario_name})
                failures.append({"run": run, "seed": int(seed), "error": str(e)})
                continue

            summaries.append(BasketMetricsCalculator(result).calculate_summary())
            sample = result

            if (run + 1) % 10 == 0:
                print(f"Completed {run + 1}/{num_runs} runs ({time.time() - start_time:.1f}s)")

        total_time = time.time() - start_time
        print(f"Monte Carlo stress test completed in {total_time:.1f}s")

        aggregated = {
            "scenario_name": scenario_name,
            "num_runs": num_runs,
            "num_successful_runs": len(summaries),
            "failures": failures,
            "statistics": BasketMetricsCalculator.aggregate_runs(summaries) if summaries else {},
            "run_summaries": summaries,
            "sample_scenario_results": sample
        }
        self.results[scenario_name] = aggregated

        if self.auto_save:
            self._save_scenario_results(scenario_name, aggregated, total_time, num_runs)
        return aggregated

    def run_full_stress_test_suite(self, num_monte_carlo_runs: int = 20) -> Dict:
        """Monte Carlo over every scenario in the suite"""
        print("Running Full Basket Protocol Stress Test Suite")
        print("=" * 60)

        scenario_names = self.test_suite.get_scenario_names()
        for i, scenario_name in enumerate(scenario_names):
            print(f"\n[{i + 1}/{len(scenario_names)}] Testing: {scenario_name}")
            self.run_monte_carlo_stress_test(scenario_name, num_monte_carlo_runs)

        return dict(self.results)

    def _save_scenario_results(self, scenario_name: str, results: Dict, execution_time: float, num_runs: int) -> Path:
        """Store results, metadata, chart and markdown summary for one run"""
        run_dir = self.results_manager.create_run_directory(scenario_name)

        metadata = RunMetadata(
            run_id=run_dir.name,
            scenario_name=scenario_name,
            timestamp=time.strftime("%Y-%m-%d %H:%M:%S"),
            parameters={
                "num_runs": num_runs,
                "random_seed": self.config.random_seed,
                "num_issuers": self.config.num_issuers,
                "protocol": self.config.protocol.name
            },
            execution_time=execution_time
        )
        self.results_manager.save_results(run_dir, results, metadata)

        charts = self.chart_generator.generate_scenario_charts(scenario_name, results, run_dir / "charts")

        key_metrics = results.get("summary")
        if key_metrics is None:
            key_metrics = {name: stats["mean"] for name, stats in results.get("statistics", {}).items()}

        self.results_manager.save_summary_report(run_dir, {
            "metadata": metadata.__dict__,
            "key_metrics": key_metrics,
            "charts_generated": [chart.name for chart in charts]
        })

        print(f"\nResults saved to: {run_dir}")
        return run_dir
