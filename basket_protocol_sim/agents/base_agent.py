#!/usr/bin/env python3
"""
Minimal Agent Interface

Base class for basket protocol agents. Agents only decide; the simulation
engine executes their actions against the protocol and reports the outcome
back through record_outcome.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, Optional, Tuple

import numpy as np


class AgentAction(Enum):
    """Agent action types"""
    ISSUE = "issue"
    VEST = "vest"
    CANCEL = "cancel"
    REDEEM = "redeem"
    HOLD = "hold"


class AgentState:
    """Running totals of what an agent has done, in elastic-token units"""

    def __init__(self, agent_id: str):
        self.agent_id = agent_id
        self.issued = 0
        self.vested = 0
        self.redeemed = 0
        self.issuances_requested = 0
        self.issuances_canceled = 0
        self.rejected_actions = 0
        self.last_action: Optional[AgentAction] = None


class BaseAgent(ABC):
    """Minimal agent interface"""

    def __init__(self, agent_id: str, agent_type: str, rng: Optional[np.random.Generator] = None):
        self.agent_id = agent_id
        self.agent_type = agent_type
        self.state = AgentState(agent_id)
        self.rng = rng if rng is not None else np.random.default_rng()
        self.active = True

    @abstractmethod
    def decide_action(self, protocol_state: dict) -> Tuple[AgentAction, dict]:
        """
        Decide what action to take based on current protocol state

        Returns:
            Tuple of (action_type, params)
        """
        pass

    def record_outcome(self, action_type: AgentAction, params: dict, result) -> None:
        """Update running totals after the engine executed an action"""
        self.state.last_action = action_type
        if result is None:
            self.state.rejected_actions += 1
            return

        if action_type == AgentAction.ISSUE:
            self.state.issuances_requested += 1
            self.state.issued += params["amount"]
        elif action_type == AgentAction.VEST:
            self.state.vested += result
        elif action_type == AgentAction.CANCEL:
            self.state.issuances_canceled += params.get("count", 0)
        elif action_type == AgentAction.REDEEM:
            self.state.redeemed += params["amount"]

    def get_summary(self) -> Dict:
        """Get summary of agent's activity"""
        return {
            "agent_id": self.agent_id,
            "agent_type": self.agent_type,
            "issued": self.state.issued,
            "vested": self.state.vested,
            "redeemed": self.state.redeemed,
            "issuances_requested": self.state.issuances_requested,
            "issuances_canceled": self.state.issuances_canceled,
            "rejected_actions": self.state.rejected_actions
        }
