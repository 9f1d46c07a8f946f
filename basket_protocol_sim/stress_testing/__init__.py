"""Stress scenarios and the Monte Carlo runner"""

from .runner import StressTestRunner
from .scenarios import BasketStressTestSuite, StressTestScenario

__all__ = ["StressTestRunner", "BasketStressTestSuite", "StressTestScenario"]
