"""
Basket Protocol Simulation

Basket management and rate-limited issuance for an elastic-supply token
backed by a diversified collateral basket, with a block-by-block simulation
and stress testing harness around it.
"""

__version__ = "1.0.0"

# Core components
from .core.basket import Basket, BasketEngine, BackupConfig
from .core.collateral import Asset, Collateral, CollateralKind, CollateralStatus
from .core.context import ChainClock, ExecutionContext
from .core.events import EventLog, EventType
from .core.facade import Facade
from .core.issuance import IssuanceEngine, SlowIssuance
from .core.oracle import OracleFeed
from .core.protocol import BasketProtocol
from .core.registry import AssetRegistry

# Agents
from .agents.base_agent import AgentAction, AgentState, BaseAgent
from .agents.issuer_agent import IssuerAgent

# Engine
from .engine.config import ProtocolConfig, SimulationConfig, BasketStressScenarios
from .engine.factory import build_protocol

# Simulation
from .simulation.engine import BasketSimulationEngine

__all__ = [
    # Core
    "Basket", "BasketEngine", "BackupConfig",
    "Asset", "Collateral", "CollateralKind", "CollateralStatus",
    "ChainClock", "ExecutionContext", "EventLog", "EventType",
    "Facade", "IssuanceEngine", "SlowIssuance", "OracleFeed",
    "BasketProtocol", "AssetRegistry",

    # Agents
    "AgentAction", "AgentState", "BaseAgent", "IssuerAgent",

    # Engine
    "ProtocolConfig", "SimulationConfig", "BasketStressScenarios", "build_protocol",

    # Simulation
    "BasketSimulationEngine"
]
