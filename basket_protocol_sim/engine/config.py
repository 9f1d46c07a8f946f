#!/usr/bin/env python3
"""
Configuration Schemas and Stress Scenarios

Pydantic models describing a basket protocol deployment and a simulation run,
plus the catalogue of stress scenarios the runner knows how to apply.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from ..core.collateral import CollateralKind
from ..core.issuance import MAX_ISSUANCE_RATE
from ..core.fixed import to_float


class CollateralSpec(BaseModel):
    """One registrable token"""
    erc20: str = Field(description="Token symbol")
    decimals: int = Field(ge=0, le=36, default=18, description="Raw token decimals")
    kind: CollateralKind = Field(default=CollateralKind.FIAT, description="Collateral variant")
    target_name: str = Field(default="USD", description="Unit of target this collateral tracks")
    reference: Optional[str] = Field(None, description="Reference unit symbol, defaults to erc20")
    initial_price: float = Field(gt=0, default=1.0, description="Reference unit price in UoA")
    target_per_ref: float = Field(gt=0, default=1.0, description="Target units per reference unit")
    exchange_rate: float = Field(gt=0, default=1.0, description="Reference units per token")
    is_collateral: bool = Field(default=True, description="False registers a plain priced asset")

    @model_validator(mode="after")
    def validate_kind_parameters(self):
        """Only non-fiat collateral has a targetPerRef, only wrappers have a rate"""
        if self.kind != CollateralKind.NON_FIAT and self.target_per_ref != 1.0:
            raise ValueError(f"{self.erc20}: target_per_ref must be 1 for {self.kind.value} collateral")
        if self.kind != CollateralKind.YIELD_WRAPPED and self.exchange_rate != 1.0:
            raise ValueError(f"{self.erc20}: only yield-wrapped collateral has an exchange rate")
        return self

    @property
    def reference_symbol(self) -> str:
        return self.reference or self.erc20


class BackupSpec(BaseModel):
    """Backup candidates for one target group"""
    target_name: str = Field(description="Target group the backups serve")
    max_collateral: int = Field(ge=0, default=1, description="Maximum backups used at once")
    erc20s: List[str] = Field(default_factory=list, description="Ordered backup tokens")


class ProtocolConfig(BaseModel):
    """Complete basket protocol deployment"""
    name: str = Field(default="default", description="Deployment name")
    version: str = Field(default="1.0.0", description="Configuration version")
    symbol: str = Field(default="BSKT", description="Elastic token symbol")

    collateral: List[CollateralSpec] = Field(description="Tokens to register")
    prime_basket: Dict[str, float] = Field(description="Target amount per basket unit for each prime token")
    backups: List[BackupSpec] = Field(default_factory=list, description="Backup configuration per target")

    issuance_rate: float = Field(ge=0, default=0.00025, description="Fraction of supply vesting per block")
    min_issuance_rate: float = Field(gt=0, default=10_000, description="Minimum tokens vesting per block")
    max_basket_size: int = Field(gt=0, default=64, description="Maximum prime basket tokens")
    max_backup_erc20s: int = Field(gt=0, default=64, description="Maximum backups per target")

    @field_validator("issuance_rate")
    @classmethod
    def validate_issuance_rate(cls, v):
        if v > to_float(MAX_ISSUANCE_RATE):
            raise ValueError("issuance_rate cannot exceed 1.0")
        return v

    @field_validator("collateral")
    @classmethod
    def validate_collateral(cls, v):
        """Token symbols must be unique"""
        symbols = [spec.erc20 for spec in v]
        if len(symbols) != len(set(symbols)):
            raise ValueError("Collateral symbols must be unique")
        return v

    @field_validator("prime_basket")
    @classmethod
    def validate_prime_basket(cls, v):
        if not v:
            raise ValueError("prime_basket cannot be empty")
        for erc20, amount in v.items():
            if amount <= 0:
                raise ValueError(f"Target amount for {erc20} must be positive")
        return v

    @model_validator(mode="after")
    def validate_references(self):
        """Prime and backup tokens must be declared collateral of the right target"""
        errors = []
        declared = {spec.erc20: spec for spec in self.collateral}

        for erc20 in self.prime_basket:
            spec = declared.get(erc20)
            if spec is None:
                errors.append(f"Prime token {erc20} is not declared")
            elif not spec.is_collateral:
                errors.append(f"Prime token {erc20} is not collateral")

        targets = {declared[e].target_name for e in self.prime_basket if e in declared}
        for backup in self.backups:
            if backup.target_name not in targets:
                errors.append(f"Backup config for unknown target {backup.target_name}")
            for erc20 in backup.erc20s:
                spec = declared.get(erc20)
                if spec is None or not spec.is_collateral:
                    errors.append(f"Backup token {erc20} is not declared collateral")
                elif spec.target_name != backup.target_name:
                    errors.append(f"Backup token {erc20} tracks {spec.target_name}, not {backup.target_name}")

        if errors:
            raise ValueError("Configuration validation failed:\n" + "\n".join(errors))
        return self

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "ProtocolConfig":
        """Load a deployment from a JSON file"""
        with open(path, "r") as f:
            return cls.model_validate(json.load(f))


class SimulationConfig(BaseModel):
    """Main simulation configuration"""
    name: str = Field(default="basket_simulation", description="Simulation name")
    description: Optional[str] = Field(None, description="Simulation description")
    blocks: int = Field(gt=0, default=200, description="Blocks to simulate")
    seconds_per_block: int = Field(gt=0, default=12, description="Timestamp step per block")
    random_seed: Optional[int] = Field(None, description="Random seed for reproducibility")

    num_issuers: int = Field(gt=0, default=5, description="Number of issuer agents")
    issuer_initial_balance: float = Field(gt=0, default=100_000, description="UoA value of each collateral given to every issuer")
    issue_fraction: float = Field(gt=0, le=1, default=0.1, description="Share of max issuable requested per issue")
    issue_probability: float = Field(ge=0, le=1, default=0.3, description="Chance an idle issuer issues in a block")
    redeem_probability: float = Field(ge=0, le=1, default=0.05, description="Chance an issuer redeems in a block")
    redeem_fraction: float = Field(gt=0, le=1, default=0.25, description="Share of holdings redeemed")

    metrics_recording_frequency: int = Field(gt=0, default=1, description="Blocks between metric samples")
    monte_carlo_runs: int = Field(gt=0, default=20, description="Number of Monte Carlo runs")

    protocol: ProtocolConfig = Field(default_factory=lambda: create_default_protocol_config())

    def with_overrides(self, overrides: Dict[str, Any]) -> "SimulationConfig":
        """Copy with top-level and `protocol.*` fields replaced, re-validated"""
        data = self.model_dump()
        for key, value in overrides.items():
            if key.startswith("protocol."):
                data["protocol"][key.split(".", 1)[1]] = value
            else:
                data[key] = value
        return SimulationConfig.model_validate(data)


def create_default_protocol_config() -> ProtocolConfig:
    """USD basket of two fiat stablecoins and a yield-bearing wrapper, with two backups"""
    collateral = [
        CollateralSpec(erc20="USDC", decimals=6, kind=CollateralKind.FIAT),
        CollateralSpec(erc20="DAI", decimals=18, kind=CollateralKind.FIAT),
        CollateralSpec(
            erc20="cDAI",
            decimals=8,
            kind=CollateralKind.YIELD_WRAPPED,
            reference="DAI",
            exchange_rate=0.022
        ),
        CollateralSpec(erc20="USDT", decimals=6, kind=CollateralKind.FIAT),
        CollateralSpec(erc20="TUSD", decimals=18, kind=CollateralKind.FIAT),
        CollateralSpec(erc20="COMP", decimals=18, initial_price=50.0, is_collateral=False),
    ]

    return ProtocolConfig(
        name="usd_basket",
        collateral=collateral,
        prime_basket={"USDC": 0.4, "DAI": 0.3, "cDAI": 0.3},
        backups=[BackupSpec(target_name="USD", max_collateral=2, erc20s=["USDT", "TUSD"])]
    )


class BasketStressScenarios:
    """Stress scenarios applied on top of a SimulationConfig"""

    BASELINE = {
        "name": "Baseline",
        "description": "Steady issuance and redemption with healthy collateral",
        "shocks": [],
        "overrides": {},
        "duration": 100
    }

    WRAPPED_COLLATERAL_DEFAULT = {
        "name": "Wrapped_Collateral_Default",
        "description": "cDAI exchange rate falls, collateral defaults and backups take its place",
        "shocks": [
            {"block": 30, "type": "exchange_rate", "erc20": "cDAI", "value": 0.015}
        ],
        "overrides": {},
        "duration": 100
    }

    ORACLE_OUTAGE = {
        "name": "Oracle_Outage",
        "description": "DAI feed goes stale for 20 blocks, basket is IFFY and vesting stops",
        "shocks": [
            {"block": 20, "type": "stale", "symbol": "DAI", "value": True},
            {"block": 40, "type": "stale", "symbol": "DAI", "value": False}
        ],
        "overrides": {},
        "duration": 80
    }

    DEFAULT_WITHOUT_BACKUPS = {
        "name": "Default_Without_Backups",
        "description": "cDAI defaults with no backup configuration, basket cannot be recapitalized",
        "shocks": [
            {"block": 30, "type": "exchange_rate", "erc20": "cDAI", "value": 0.015}
        ],
        "overrides": {"protocol.backups": []},
        "duration": 80
    }

    ISSUANCE_SURGE = {
        "name": "Issuance_Surge",
        "description": "Large issuance requests against a low minimum rate queue up and vest slowly",
        "shocks": [],
        "overrides": {
            "protocol.min_issuance_rate": 500,
            "issue_fraction": 0.5,
            "issue_probability": 0.6
        },
        "duration": 100
    }

    @classmethod
    def get_all_scenarios(cls) -> List[Dict]:
        return [
            cls.BASELINE,
            cls.WRAPPED_COLLATERAL_DEFAULT,
            cls.ORACLE_OUTAGE,
            cls.DEFAULT_WITHOUT_BACKUPS,
            cls.ISSUANCE_SURGE
        ]

    @classmethod
    def get_scenario(cls, name: str) -> Dict:
        for scenario in cls.get_all_scenarios():
            if scenario["name"] == name:
                return scenario
        raise KeyError(f"Unknown scenario: {name}")
