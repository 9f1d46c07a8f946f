#!/usr/bin/env python3
"""
Stress Test Scenario Definitions

Collateral default, oracle outage, missing backups and issuance surge
scenarios for the basket protocol.
"""

from typing import Dict, List, Optional

from ..engine.config import BasketStressScenarios, SimulationConfig
from ..simulation.engine import BasketSimulationEngine


class StressTestScenario:
    """Individual stress test scenario"""

    def __init__(
        self,
        name: str,
        description: str,
        shocks: Optional[List[dict]] = None,
        overrides: Optional[Dict] = None,
        duration: int = 100
    ):
        self.name = name
        self.description = description
        self.shocks = list(shocks or [])
        self.overrides = dict(overrides or {})
        self.duration = duration
        self.results = None

    @classmethod
    def from_definition(cls, definition: Dict) -> "StressTestScenario":
        return cls(
            definition["name"],
            definition["description"],
            shocks=definition.get("shocks"),
            overrides=definition.get("overrides"),
            duration=definition.get("duration", 100)
        )

    def build_config(self, base_config: SimulationConfig) -> SimulationConfig:
        """Base configuration with this scenario's overrides applied"""
        overrides = dict(self.overrides)
        overrides.setdefault("name", self.name)
        overrides.setdefault("description", self.description)
        return base_config.with_overrides(overrides)

    def apply_to_engine(self, engine: BasketSimulationEngine):
        """Schedule this scenario's shocks on the engine"""
        for shock in self.shocks:
            engine.schedule_shock(shock["block"], shock)

    def run(self, base_config: SimulationConfig) -> dict:
        """Run the stress test scenario on a fresh engine"""
        engine = BasketSimulationEngine(self.build_config(base_config))
        self.apply_to_engine(engine)

        results = engine.run_simulation(self.duration)
        results["scenario_name"] = self.name
        self.results = results
        return results


class BasketStressTestSuite:
    """Complete stress test suite for the basket protocol"""

    def __init__(self):
        self.scenarios = [
            StressTestScenario.from_definition(definition)
            for definition in BasketStressScenarios.get_all_scenarios()
        ]
        self.results = {}

    def run_scenario(self, scenario_name: str, base_config: SimulationConfig) -> dict:
        """Run a specific scenario"""
        scenario = self.get_scenario(scenario_name)
        results = scenario.run(base_config)
        self.results[scenario_name] = results
        return results

    def get_scenario(self, scenario_name: str) -> StressTestScenario:
        scenario = next((s for s in self.scenarios if s.name == scenario_name), None)
        if not scenario:
            raise ValueError(f"Scenario '{scenario_name}' not found")
        return scenario

    def get_scenario_names(self) -> List[str]:
        """Get list of all scenario names"""
        return [scenario.name for scenario in self.scenarios]
