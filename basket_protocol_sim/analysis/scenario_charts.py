#!/usr/bin/env python3
"""
Scenario Chart Generator

One time-series figure per scenario: supply against baskets needed, basket
status, issuance queue depth and the composition of backing collateral.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List

import matplotlib
matplotlib.use('Agg')  # Use non-interactive backend
import matplotlib.pyplot as plt
import seaborn as sns

from .metrics import BasketMetricsCalculator

logger = logging.getLogger(__name__)

STATUS_LEVELS = {"SOUND": 0, "IFFY": 1, "DISABLED": 2}


class ScenarioChartGenerator:
    """Generates one time-series chart per scenario"""

    def __init__(self):
        self._setup_styling()

    def _setup_styling(self):
        sns.set_theme(style="whitegrid")
        sns.set_palette("husl")
        plt.rcParams.update({
            'figure.figsize': (12, 8),
            'font.size': 11,
            'axes.titlesize': 14,
            'axes.labelsize': 12,
            'legend.fontsize': 10
        })

    def generate_scenario_charts(self, scenario_name: str, results: Dict[str, Any], charts_dir: Path) -> List[Path]:
        """Write the scenario's dynamics chart into charts_dir; returns written paths"""
        scenario_results = results.get("scenario_results", results)
        if not scenario_results.get("metrics_history") and "sample_scenario_results" in results:
            scenario_results = results["sample_scenario_results"]

        df = BasketMetricsCalculator(scenario_results).metrics_frame()
        if df.empty:
            logger.warning("No metrics history for %s; skipping chart", scenario_name)
            return []

        charts_dir.mkdir(parents=True, exist_ok=True)

        fig, ((ax1, ax2), (ax3, ax4)) = plt.subplots(2, 2, figsize=(14, 10))
        fig.suptitle(f'{scenario_name.replace("_", " ")} - Basket Dynamics', fontsize=16, fontweight='bold')

        self._plot_supply(ax1, df)
        self._plot_status(ax2, df, scenario_results)
        self._plot_queue(ax3, df)
        self._plot_backing(ax4, df)

        plt.tight_layout()
        chart_path = charts_dir / f"{scenario_name.lower()}_basket_dynamics.png"
        fig.savefig(chart_path, dpi=150, bbox_inches='tight')
        plt.close(fig)
        return [chart_path]

    def _plot_supply(self, ax, df):
        sns.lineplot(x=df["block"], y=df["total_supply"], ax=ax, linewidth=2.5, label="Total supply")
        sns.lineplot(x=df["block"], y=df["baskets_needed"], ax=ax, linewidth=2, linestyle="--", label="Baskets needed")
        ax.set_title("Supply vs Baskets Needed")
        ax.set_xlabel("Block")
        ax.set_ylabel("Units")

    def _plot_status(self, ax, df, scenario_results):
        levels = df["basket_status"].map(STATUS_LEVELS)
        ax.step(df["block"], levels, where="post", linewidth=2.5, color="#E74C3C")
        ax.set_yticks(list(STATUS_LEVELS.values()))
        ax.set_yticklabels(list(STATUS_LEVELS))

        for switch in scenario_results.get("basket_switches", []):
            ax.axvline(x=switch["block"], color="gray", linestyle=":", alpha=0.8)

        ax.set_title("Basket Status (dotted: basket switch)")
        ax.set_xlabel("Block")

    def _plot_queue(self, ax, df):
        sns.lineplot(x=df["block"], y=df["pending_issuances"], ax=ax, linewidth=2, color="#F39C12")
        ax.set_title("Pending Issuances")
        ax.set_xlabel("Block")
        ax.set_ylabel("Queued requests")

    def _plot_backing(self, ax, df):
        columns = [c for c in df.columns if c.startswith("backing_")]
        held = [c for c in columns if df[c].max() > 0]
        if not held:
            ax.text(0.5, 0.5, "No backing held", ha="center", va="center", transform=ax.transAxes)
        else:
            ax.stackplot(df["block"], *[df[c] for c in held], labels=[c[len("backing_"):] for c in held], alpha=0.8)
            ax.legend(loc="upper left")
        ax.set_title("Backing Collateral (whole tokens)")
        ax.set_xlabel("Block")
