#!/usr/bin/env python3
"""
Issuer Agent

Deposits collateral for new elastic tokens, vests them once due, cancels
requests stranded by a basket switch and occasionally redeems.
"""

from typing import Optional, Tuple

import numpy as np

from ..core.collateral import CollateralStatus
from .base_agent import AgentAction, BaseAgent


class IssuerAgent(BaseAgent):
    """Issues, vests, cancels and redeems against one protocol"""

    def __init__(
        self,
        agent_id: str,
        rng: Optional[np.random.Generator] = None,
        issue_fraction: float = 0.1,
        issue_probability: float = 0.3,
        redeem_probability: float = 0.05,
        redeem_fraction: float = 0.25
    ):
        super().__init__(agent_id, "issuer", rng)
        self.issue_fraction = issue_fraction
        self.issue_probability = issue_probability
        self.redeem_probability = redeem_probability
        self.redeem_fraction = redeem_fraction

    def decide_action(self, protocol_state: dict) -> Tuple[AgentAction, dict]:
        """
        Decision order:
        1. Cancel entries bound to a basket that is no longer realized
        2. Vest due entries while the basket is SOUND
        3. Issue a fraction of max issuable when nothing is pending
        4. Redeem part of holdings
        5. Hold otherwise
        """
        queue = protocol_state["queue"]
        status = protocol_state["status"]
        pending = [entry for entry in queue if not entry["processed"]]

        stale = [entry for entry in pending if entry["basket_nonce"] != protocol_state["nonce"]]
        if stale:
            end_id = stale[-1]["index"] + 1
            return AgentAction.CANCEL, {"end_id": end_id, "earliest": True, "count": len(stale)}

        if status == CollateralStatus.SOUND:
            if any(entry["due"] for entry in pending):
                return AgentAction.VEST, {"end_id": protocol_state["end_id_for_vest"]}

            if not pending and self.rng.random() < self.issue_probability:
                amount = self._scaled(protocol_state["max_issuable"], self.issue_fraction)
                if amount > 0:
                    return AgentAction.ISSUE, {"amount": amount}

        if status != CollateralStatus.DISABLED and protocol_state["balance"] > 0:
            if self.rng.random() < self.redeem_probability:
                amount = self._scaled(protocol_state["balance"], self.redeem_fraction)
                if amount > 0:
                    return AgentAction.REDEEM, {"amount": amount}

        return AgentAction.HOLD, {}

    @staticmethod
    def _scaled(amount: int, fraction: float) -> int:
        return amount * int(round(fraction * 10_000)) // 10_000
