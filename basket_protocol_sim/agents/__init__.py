"""Simulation agents"""

from .base_agent import AgentAction, AgentState, BaseAgent
from .issuer_agent import IssuerAgent

__all__ = ["AgentAction", "AgentState", "BaseAgent", "IssuerAgent"]
