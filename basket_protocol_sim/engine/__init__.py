"""Deployment configuration and protocol construction"""

from .config import (
    BackupSpec,
    BasketStressScenarios,
    CollateralSpec,
    ProtocolConfig,
    SimulationConfig,
    create_default_protocol_config
)
from .factory import build_asset, build_protocol

__all__ = [
    "BackupSpec", "BasketStressScenarios", "CollateralSpec", "ProtocolConfig",
    "SimulationConfig", "create_default_protocol_config",
    "build_asset", "build_protocol"
]
