#!/usr/bin/env python3
"""
Basket Simulation Engine

Block-by-block driver: applies scheduled shocks, refreshes collateral and
re-derives the basket when it defaults, lets issuer agents act, and records
protocol metrics for analysis.
"""

import logging
from typing import Dict, List, Optional

import numpy as np

from ..agents.base_agent import AgentAction, BaseAgent
from ..agents.issuer_agent import IssuerAgent
from ..core.collateral import Collateral, CollateralStatus
from ..core.context import ExecutionContext
from ..core.errors import BasketProtocolError, PriceUnavailable
from ..core.events import EventType, ProtocolEvent
from ..core.facade import Facade
from ..core.fixed import fp_rounded, to_float, to_fix
from ..core.protocol import BACKING_CUSTODY
from ..engine.config import SimulationConfig
from ..engine.factory import build_protocol

logger = logging.getLogger(__name__)


class BasketSimulationEngine:
    """Simulation runner driving one protocol instance with issuer agents"""

    def __init__(self, config: SimulationConfig):
        self.config = config
        self.context = ExecutionContext.create(seconds_per_block=config.seconds_per_block)
        self.protocol = build_protocol(config.protocol, self.context)
        self.facade = Facade(self.protocol)

        self.seed_sequence = np.random.SeedSequence(config.random_seed)
        self.agents = self._initialize_agents()
        self._fund_agents()

        self.current_step = 0
        self.scheduled_shocks: Dict[int, List[dict]] = {}

        self.metrics_history: List[Dict] = []
        self.agent_actions_history: List[Dict] = []
        self.rejected_actions: List[Dict] = []
        self.shock_history: List[Dict] = []
        self.basket_switches: List[Dict] = []

        self.context.events.subscribe(self._on_event)

    def _initialize_agents(self) -> Dict[str, BaseAgent]:
        """Initialize issuer agents, each with its own random stream"""
        agents = {}
        streams = self.seed_sequence.spawn(self.config.num_issuers)
        for i, stream in enumerate(streams):
            agent_id = f"issuer_{i}"
            agents[agent_id] = IssuerAgent(
                agent_id,
                rng=np.random.default_rng(stream),
                issue_fraction=self.config.issue_fraction,
                issue_probability=self.config.issue_probability,
                redeem_probability=self.config.redeem_probability,
                redeem_fraction=self.config.redeem_fraction
            )
        return agents

    def _fund_agents(self):
        """Give every agent `issuer_initial_balance` of UoA value in each collateral token"""
        for erc20 in self.protocol.registry.erc20s():
            asset = self.protocol.registry.to_asset(erc20)
            if not asset.is_collateral():
                continue
            whole_tokens = int(self.config.issuer_initial_balance / to_float(asset.price()))
            raw = asset.to_raw(to_fix(whole_tokens))
            for agent_id in self.agents:
                self.protocol.tokens.mint(erc20, agent_id, raw)

    # ------------------------------------------------------------------
    # Shocks
    # ------------------------------------------------------------------

    def schedule_shock(self, block_offset: int, shock: dict):
        """Apply `shock` when the run reaches step `block_offset`"""
        self.scheduled_shocks.setdefault(block_offset, []).append(shock)

    def _apply_shocks(self):
        for shock in self.scheduled_shocks.get(self.current_step, []):
            self.apply_shock(shock)

    def apply_shock(self, shock: dict):
        """
        Apply one market event

        Supported types: 'exchange_rate' (erc20, value), 'price' (symbol,
        value), 'stale' (symbol, value) and 'failure' (symbol, value: an
        exception or None).
        """
        shock_type = shock["type"]
        if shock_type == "exchange_rate":
            collateral = self.protocol.registry.to_collateral(shock["erc20"])
            collateral.set_exchange_rate(fp_rounded(shock["value"]))
        elif shock_type == "price":
            self.protocol.oracle.set_price_float(shock["symbol"], shock["value"])
        elif shock_type == "stale":
            self.protocol.oracle.mark_stale(shock["symbol"], shock["value"])
        elif shock_type == "failure":
            self.protocol.oracle.inject_failure(shock["symbol"], shock["value"])
        else:
            raise ValueError(f"Unknown shock type: {shock_type}")

        logger.info("Applied %s shock %s", shock_type, shock, extra={"block": self.protocol.clock.block_number})
        self.shock_history.append({"step": self.current_step, "block": self.protocol.clock.block_number, **shock})

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    def run_simulation(self, blocks: Optional[int] = None) -> Dict:
        """Run simulation for the given number of blocks (default: config.blocks)"""
        blocks = blocks or self.config.blocks

        for step in range(blocks):
            self.current_step = step

            self._apply_shocks()
            self.protocol.basket.ensure_basket()
            self._process_agent_actions()

            if step % self.config.metrics_recording_frequency == 0:
                self._record_metrics()

            self.protocol.clock.advance(1)

        return self._generate_results()

    def _process_agent_actions(self):
        """Process actions for all agents"""
        for agent_id, agent in self.agents.items():
            if not agent.active:
                continue

            protocol_state = self._get_protocol_state(agent_id)
            action_type, params = agent.decide_action(protocol_state)

            if action_type == AgentAction.HOLD:
                continue

            result = self._execute_agent_action(agent, action_type, params)
            agent.record_outcome(action_type, params, result)
            if result is not None:
                self._record_agent_action(agent_id, action_type, params, result)

    def _execute_agent_action(self, agent: BaseAgent, action_type: AgentAction, params: dict):
        """Execute through the protocol; None when the protocol rejects the action"""
        try:
            if action_type == AgentAction.ISSUE:
                return self.protocol.issue(agent.agent_id, params["amount"])
            elif action_type == AgentAction.VEST:
                return self.protocol.vest(agent.agent_id, params["end_id"])
            elif action_type == AgentAction.CANCEL:
                return self.protocol.cancel(agent.agent_id, params["end_id"], params["earliest"])
            elif action_type == AgentAction.REDEEM:
                return self.protocol.redeem(agent.agent_id, params["amount"])
            raise ValueError(f"Unsupported action {action_type}")
        except BasketProtocolError as e:
            logger.info("Rejected %s for %s: %s", action_type.value, agent.agent_id, e,
                        extra={"account": agent.agent_id, "block": self.protocol.clock.block_number})
            self.rejected_actions.append({
                "block": self.protocol.clock.block_number,
                "agent_id": agent.agent_id,
                "action": action_type.value,
                "error": type(e).__name__,
                "message": str(e)
            })
            return None

    def _get_protocol_state(self, agent_id: str) -> dict:
        """What an agent can observe about the protocol and its own position"""
        issuance = self.protocol.issuance
        now = to_fix(self.protocol.clock.block_number)
        queue = [
            {
                "index": i,
                "basket_nonce": record.basket_nonce,
                "due": record.block_available_at <= now,
                "processed": record.processed
            }
            for i, record in enumerate(issuance.queue(agent_id))
        ]

        return {
            "block": self.protocol.clock.block_number,
            "status": self.protocol.basket.status(),
            "nonce": self.protocol.basket.nonce,
            "balance": self.protocol.supply.balance_of(agent_id),
            "max_issuable": self.facade.max_issuable(agent_id),
            "end_id_for_vest": issuance.end_id_for_vest(agent_id),
            "queue": queue
        }

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def _on_event(self, event: ProtocolEvent):
        if event.name == EventType.BASKET_SET:
            self.basket_switches.append({
                "block": event.block,
                "nonce": event.data["nonce"],
                "erc20s": event.data["erc20s"]
            })

    def _record_agent_action(self, agent_id: str, action_type: AgentAction, params: dict, result):
        self.agent_actions_history.append({
            "block": self.protocol.clock.block_number,
            "agent_id": agent_id,
            "action": action_type.value,
            "params": dict(params),
            "result": result
        })

    def _basket_price(self) -> Optional[float]:
        try:
            return to_float(self.protocol.basket.price())
        except PriceUnavailable:
            return None

    def _pending_issuances(self) -> int:
        return sum(
            1
            for queue in self.protocol.issuance.issuances.values()
            for record in queue
            if not record.processed
        )

    def _record_metrics(self):
        """Record one sample of protocol state"""
        protocol = self.protocol
        backing = {}
        for erc20 in protocol.registry.erc20s():
            asset = protocol.registry.to_asset(erc20)
            if isinstance(asset, Collateral):
                backing[erc20] = to_float(asset.to_fix(protocol.tokens.balance_of(erc20, BACKING_CUSTODY)))

        self.metrics_history.append({
            "step": self.current_step,
            "block": protocol.clock.block_number,
            "timestamp": protocol.clock.timestamp,
            "total_supply": protocol.supply.total_supply / 10 ** protocol.supply.decimals,
            "baskets_needed": to_float(protocol.supply.baskets_needed),
            "basket_nonce": protocol.basket.nonce,
            "basket_status": protocol.basket.status().name,
            "basket_price": self._basket_price(),
            "basket_size": len(protocol.basket.basket),
            "pending_issuances": self._pending_issuances(),
            "all_vest_at": to_float(protocol.issuance.all_vest_at),
            "backing": backing
        })

    def _generate_results(self) -> Dict:
        protocol = self.protocol
        final_status = protocol.basket.status()
        return {
            "simulation_name": self.config.name,
            "config": self.config.model_dump(mode="json"),
            "blocks_simulated": self.current_step + 1,
            "metrics_history": self.metrics_history,
            "events": [event.to_dict() for event in protocol.events],
            "agent_actions_history": self.agent_actions_history,
            "rejected_actions": self.rejected_actions,
            "shock_history": self.shock_history,
            "basket_switches": self.basket_switches,
            "agent_summaries": {agent_id: agent.get_summary() for agent_id, agent in self.agents.items()},
            "final_state": {
                "block": protocol.clock.block_number,
                "basket_nonce": protocol.basket.nonce,
                "basket_status": final_status.name,
                "basket": {
                    erc20: to_float(amt) for erc20, amt in protocol.basket.basket.items()
                },
                "total_supply": protocol.supply.total_supply / 10 ** protocol.supply.decimals,
                "baskets_needed": to_float(protocol.supply.baskets_needed),
                "sound": final_status == CollateralStatus.SOUND
            }
        }
