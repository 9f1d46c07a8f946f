#!/usr/bin/env python3
"""
Basket Protocol Metrics

Turns simulation results into pandas DataFrames and a compact summary of
protocol stability: basket switches, time spent outside SOUND, issuance
queue pressure and vesting delays.
"""

from typing import Any, Dict

import numpy as np
import pandas as pd

from ..core.events import EventType
from ..core.fixed import FIX_SCALE


class BasketMetricsCalculator:
    """Protocol stability metrics calculator"""

    def __init__(self, results: Dict[str, Any]):
        self.results = results

    def metrics_frame(self) -> pd.DataFrame:
        """One row per recorded block; backing balances flattened to backing_<token>"""
        history = self.results.get("metrics_history", [])
        if not history:
            return pd.DataFrame()

        df = pd.json_normalize(history, sep="_")
        return df.set_index("block", drop=False)

    def events_frame(self) -> pd.DataFrame:
        events = self.results.get("events", [])
        if not events:
            return pd.DataFrame(columns=["seq", "name", "block", "timestamp"])
        return pd.DataFrame(events)

    def vesting_delays(self) -> pd.Series:
        """Scheduled blocks between each issuance request and its availability"""
        events = self.events_frame()
        if events.empty:
            return pd.Series(dtype=float)

        started = events[events["name"] == EventType.ISSUANCE_STARTED.value]
        if started.empty:
            return pd.Series(dtype=float)

        available = started["block_available_at"].astype(float) / FIX_SCALE
        return (available - started["block"]).clip(lower=0)

    def calculate_summary(self) -> Dict[str, Any]:
        """Key stability figures for one run"""
        metrics = self.metrics_frame()
        events = self.events_frame()
        final_state = self.results.get("final_state", {})

        summary: Dict[str, Any] = {
            "final_total_supply": final_state.get("total_supply", 0.0),
            "final_baskets_needed": final_state.get("baskets_needed", 0.0),
            "final_basket_status": final_state.get("basket_status", "UNKNOWN"),
            "final_basket_nonce": final_state.get("basket_nonce", 0),
            "basket_switches": len(self.results.get("basket_switches", [])),
            "rejected_actions": len(self.results.get("rejected_actions", [])),
        }

        if not metrics.empty:
            status = metrics["basket_status"]
            summary["blocks_not_sound"] = int((status != "SOUND").sum())
            summary["blocks_disabled"] = int((status == "DISABLED").sum())
            summary["max_pending_issuances"] = int(metrics["pending_issuances"].max())
            prices = pd.to_numeric(metrics["basket_price"], errors="coerce")
            summary["min_basket_price"] = float(prices.min()) if prices.notna().any() else None
        else:
            summary["blocks_not_sound"] = 0
            summary["blocks_disabled"] = 0
            summary["max_pending_issuances"] = 0
            summary["min_basket_price"] = None

        delays = self.vesting_delays()
        summary["mean_vesting_delay_blocks"] = float(delays.mean()) if not delays.empty else 0.0
        summary["max_vesting_delay_blocks"] = float(delays.max()) if not delays.empty else 0.0

        if not events.empty:
            counts = events["name"].value_counts()
            summary["issuances_started"] = int(counts.get(EventType.ISSUANCE_STARTED.value, 0))
            summary["issuance_cancellations"] = int(counts.get(EventType.ISSUANCES_CANCELED.value, 0))
            summary["redemptions"] = int(counts.get(EventType.REDEMPTION.value, 0))
            summary["status_changes"] = int(counts.get(EventType.COLLATERAL_STATUS_CHANGED.value, 0))

        return summary

    @staticmethod
    def aggregate_runs(summaries: list) -> Dict[str, Dict[str, float]]:
        """Distribution of every numeric summary field across Monte Carlo runs"""
        frame = pd.DataFrame(summaries)
        stats = {}
        for column in frame.select_dtypes(include=[np.number]).columns:
            values = frame[column].dropna().to_numpy(dtype=float)
            if values.size == 0:
                continue
            stats[column] = {
                "mean": float(np.mean(values)),
                "std": float(np.std(values)),
                "min": float(np.min(values)),
                "max": float(np.max(values)),
                "percentile_5": float(np.percentile(values, 5)),
                "percentile_95": float(np.percentile(values, 95))
            }
        return stats
