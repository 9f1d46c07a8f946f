"""Metrics, results storage and charts for simulation runs"""

from .metrics import BasketMetricsCalculator
from .results_manager import ResultsManager, RunMetadata
from .scenario_charts import ScenarioChartGenerator

__all__ = ["BasketMetricsCalculator", "ResultsManager", "RunMetadata", "ScenarioChartGenerator"]
