#!/usr/bin/env python3
"""
Protocol Notifications

Ordered, append-only event sink the engines write to. Subscribers receive each
event as it is emitted; tests and analysis read the recorded sequence.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, TYPE_CHECKING

if TYPE_CHECKING:
    from .context import ChainClock

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Structured notification names"""
    PRIME_BASKET_SET = "PrimeBasketSet"
    BACKUP_CONFIG_SET = "BackupConfigSet"
    BASKET_SET = "BasketSet"
    ISSUANCE_STARTED = "IssuanceStarted"
    ISSUANCES_COMPLETED = "IssuancesCompleted"
    ISSUANCES_CANCELED = "IssuancesCanceled"
    ISSUANCE_RATE_SET = "IssuanceRateSet"
    BASKETS_NEEDED_CHANGED = "BasketsNeededChanged"
    REDEMPTION = "Redemption"
    ASSET_REGISTERED = "AssetRegistered"
    ASSET_UNREGISTERED = "AssetUnregistered"
    COLLATERAL_STATUS_CHANGED = "CollateralStatusChanged"


@dataclass(frozen=True)
class ProtocolEvent:
    """A single emitted notification"""
    seq: int
    name: EventType
    block: int
    timestamp: int
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "seq": self.seq,
            "name": self.name.value,
            "block": self.block,
            "timestamp": self.timestamp,
            **self.data
        }


class EventLog:
    """Append-only notification sink"""

    def __init__(self, clock: "ChainClock"):
        self.clock = clock
        self.events: List[ProtocolEvent] = []
        self._subscribers: List[Callable[[ProtocolEvent], None]] = []

    def subscribe(self, callback: Callable[[ProtocolEvent], None]):
        self._subscribers.append(callback)

    def emit(self, name: EventType, **data: Any) -> ProtocolEvent:
        event = ProtocolEvent(
            seq=len(self.events),
            name=name,
            block=self.clock.block_number,
            timestamp=self.clock.timestamp,
            data=data
        )
        self.events.append(event)
        logger.debug("%s %s", name.value, data, extra={"block": event.block})

        for callback in self._subscribers:
            callback(event)
        return event

    def of_type(self, name: EventType) -> List[ProtocolEvent]:
        return [e for e in self.events if e.name == name]

    def names(self) -> List[EventType]:
        return [e.name for e in self.events]

    def __len__(self) -> int:
        return len(self.events)

    def __iter__(self) -> Iterator[ProtocolEvent]:
        return iter(self.events)
