#!/usr/bin/env python3
"""
Results Management

Stores each scenario run under results/<scenario>/run_NNN_<timestamp>/ with
the raw results, run metadata, a markdown summary and a charts/ folder.
"""

import json
import threading
from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd


@dataclass
class RunMetadata:
    """Metadata for a single scenario run"""
    run_id: str
    scenario_name: str
    timestamp: str
    parameters: Dict[str, Any]
    execution_time: float
    status: str = "completed"


class ResultsManager:
    """Handles results storage and run numbering"""

    def __init__(self, base_results_dir: str = "results"):
        self.base_results_dir = Path(base_results_dir)
        self._lock = threading.Lock()
        self.base_results_dir.mkdir(parents=True, exist_ok=True)

    def create_run_directory(self, scenario_name: str) -> Path:
        """
        Create the next numbered run directory for a scenario

        Args:
            scenario_name: Name of the stress test scenario

        Returns:
            Path to the created run directory
        """
        with self._lock:
            scenario_dir = self.base_results_dir / scenario_name
            scenario_dir.mkdir(exist_ok=True)

            run_number = self._get_next_run_number(scenario_dir)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

            run_dir = scenario_dir / f"run_{run_number:03d}_{timestamp}"
            run_dir.mkdir(exist_ok=True)
            (run_dir / "charts").mkdir(exist_ok=True)
            return run_dir

    def _get_next_run_number(self, scenario_dir: Path) -> int:
        run_numbers = []
        for run_dir in scenario_dir.iterdir():
            if not run_dir.is_dir() or not run_dir.name.startswith("run_"):
                continue
            parts = run_dir.name.split("_")
            if len(parts) >= 2 and parts[1].isdigit():
                run_numbers.append(int(parts[1]))
        return max(run_numbers) + 1 if run_numbers else 1

    def save_results(self, run_dir: Path, results: Dict[str, Any], metadata: RunMetadata) -> Path:
        """Write results.json and metadata.json; returns the results file"""
        results_file = run_dir / "results.json"
        with open(results_file, "w") as f:
            json.dump(self._make_serializable(results), f, indent=2)

        with open(run_dir / "metadata.json", "w") as f:
            json.dump(self._make_serializable(asdict(metadata)), f, indent=2)

        metrics_history = results.get("metrics_history")
        if metrics_history:
            pd.json_normalize(metrics_history, sep="_").to_csv(run_dir / "metrics_history.csv", index=False)

        return results_file

    def save_summary_report(self, run_dir: Path, summary: Dict[str, Any]) -> Path:
        """Save a markdown summary report"""
        summary_file = run_dir / "summary.md"
        with open(summary_file, "w") as f:
            f.write(self._generate_markdown_summary(summary))
        return summary_file

    def _generate_markdown_summary(self, summary: Dict[str, Any]) -> str:
        lines = ["# Simulation Run Summary\n"]

        metadata = summary.get("metadata")
        if metadata:
            lines.append("## Run Information")
            lines.append(f"- **Scenario**: {metadata.get('scenario_name', 'Unknown')}")
            lines.append(f"- **Timestamp**: {metadata.get('timestamp', 'Unknown')}")
            lines.append(f"- **Execution Time**: {metadata.get('execution_time', 0):.2f}s")
            lines.append("")

        key_metrics = summary.get("key_metrics")
        if key_metrics:
            lines.append("## Key Metrics")
            for key, value in key_metrics.items():
                label = key.replace("_", " ").title()
                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    lines.append(f"- **{label}**: {value}")
                elif isinstance(value, int):
                    lines.append(f"- **{label}**: {value:,}")
                else:
                    lines.append(f"- **{label}**: {value:,.3f}")
            lines.append("")

        charts = summary.get("charts_generated")
        if charts:
            lines.append("## Generated Charts")
            for chart in charts:
                lines.append(f"- `charts/{chart}`")

        return "\n".join(lines)

    def list_scenario_runs(self, scenario_name: str) -> List[Dict[str, Any]]:
        """List all runs for a specific scenario, oldest first"""
        scenario_dir = self.base_results_dir / scenario_name
        if not scenario_dir.exists():
            return []

        runs = []
        for run_dir in scenario_dir.iterdir():
            if not run_dir.is_dir() or not run_dir.name.startswith("run_"):
                continue
            metadata = self.load_metadata(run_dir)
            entry = {"run_id": run_dir.name, "path": str(run_dir), "scenario_name": scenario_name}
            if metadata is not None:
                entry.update(asdict(metadata))
            runs.append(entry)

        runs.sort(key=lambda x: x["run_id"])
        return runs

    def load_results(self, run_path: Path) -> Optional[Dict[str, Any]]:
        results_file = run_path / "results.json"
        if not results_file.exists():
            return None
        with open(results_file, "r") as f:
            return json.load(f)

    def load_metadata(self, run_path: Path) -> Optional[RunMetadata]:
        metadata_file = run_path / "metadata.json"
        if not metadata_file.exists():
            return None
        try:
            with open(metadata_file, "r") as f:
                return RunMetadata(**json.load(f))
        except (json.JSONDecodeError, TypeError):
            return None

    def _make_serializable(self, obj: Any) -> Any:
        """Convert results to JSON-serializable form"""
        if isinstance(obj, Enum):
            return obj.name
        elif hasattr(obj, "tolist"):  # numpy arrays
            return obj.tolist()
        elif hasattr(obj, "item"):  # numpy scalars
            return obj.item()
        elif isinstance(obj, dict):
            return {
                (k.name if isinstance(k, Enum) else str(k)): self._make_serializable(v)
                for k, v in obj.items()
            }
        elif isinstance(obj, (list, tuple, set, frozenset)):
            return [self._make_serializable(item) for item in obj]
        elif isinstance(obj, (str, int, float, bool)) or obj is None:
            return obj
        return str(obj)
