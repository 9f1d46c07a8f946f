"""Core basket and issuance components"""

from .basket import Basket, BasketEngine, BackupConfig
from .collateral import Asset, Collateral, CollateralKind, CollateralStatus
from .context import ChainClock, ExecutionContext
from .events import EventLog, EventType, ProtocolEvent
from .facade import Facade
from .issuance import IssuanceEngine, SlowIssuance
from .ledger import SupplyLedger, TokenLedger
from .oracle import OracleFeed
from .protocol import BACKING_CUSTODY, ISSUANCE_CUSTODY, BasketProtocol
from .registry import AssetRegistry

__all__ = [
    "Basket", "BasketEngine", "BackupConfig",
    "Asset", "Collateral", "CollateralKind", "CollateralStatus",
    "ChainClock", "ExecutionContext",
    "EventLog", "EventType", "ProtocolEvent",
    "Facade",
    "IssuanceEngine", "SlowIssuance",
    "SupplyLedger", "TokenLedger",
    "OracleFeed",
    "BasketProtocol", "BACKING_CUSTODY", "ISSUANCE_CUSTODY",
    "AssetRegistry"
]
