#!/usr/bin/env python3
"""
Execution Context

Block clock, notification sink and token balances shared by the engines of a
single protocol instance. Passed explicitly; nothing lives at module level.
"""

from dataclasses import dataclass

from .events import EventLog
from .ledger import TokenLedger


class ChainClock:
    """Block height and timestamp"""

    def __init__(self, block_number: int = 1, timestamp: int = 0, seconds_per_block: int = 12):
        if block_number < 1:
            raise ValueError("block_number must be at least 1")
        self.block_number = block_number
        self.timestamp = timestamp
        self.seconds_per_block = seconds_per_block

    def advance(self, blocks: int = 1):
        if blocks < 0:
            raise ValueError("Cannot move the clock backwards")
        self.block_number += blocks
        self.timestamp += blocks * self.seconds_per_block


@dataclass
class ExecutionContext:
    """Everything an engine needs besides its own state"""
    clock: ChainClock
    events: EventLog
    tokens: TokenLedger

    @classmethod
    def create(cls, block_number: int = 1, timestamp: int = 0, seconds_per_block: int = 12) -> "ExecutionContext":
        clock = ChainClock(block_number, timestamp, seconds_per_block)
        return cls(clock=clock, events=EventLog(clock), tokens=TokenLedger())
