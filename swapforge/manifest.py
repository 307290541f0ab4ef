"""Deployment config loading."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from solders.pubkey import Pubkey

from .constants import DEFAULT_CONFIG_REWARDS, SWAP_PROGRAM_ID
from .errors import ConfigurationError
from .layouts import FarmRewards, Fees, Rewards
from .oracle import OraclePriority, PriceBook, to_decimal
from .util import camel_to_snake
from .validate import parse_slope, raise_on_errors, validate_config


def _load_toml_bytes(data: bytes) -> Dict[str, Any]:
    try:
        import tomllib  # Python 3.11+
    except ImportError:  # pragma: no cover
        import tomli as tomllib  # type: ignore
    return tomllib.loads(data.decode("utf-8"))


def load_config_file(path: str | Path) -> Dict[str, Any]:
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Deployment config not found: {config_path}")
    data = config_path.read_bytes()
    if config_path.suffix == ".toml":
        return _load_toml_bytes(data)
    return json.loads(data.decode("utf-8"))


@dataclass
class TokenInfo:
    symbol: str
    mint: Pubkey
    decimals: int
    pyth_product_name: Optional[str] = None
    fixed_usd_price: Optional[Decimal] = None
    rewards: Optional[Rewards] = None
    farm_rewards: Optional[FarmRewards] = None
    name: Optional[str] = None
    logo_uri: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "TokenInfo":
        rewards = raw.get("rewards")
        farm = raw.get("farmRewards")
        price = raw.get("fixedUsdPrice")
        return cls(
            symbol=raw["symbol"],
            mint=Pubkey.from_string(raw["mint"]),
            decimals=raw["decimals"],
            pyth_product_name=raw.get("pythProductName"),
            fixed_usd_price=to_decimal(price, f"{raw['symbol']}.fixedUsdPrice") if price is not None else None,
            rewards=Rewards(is_initialized=True, **{camel_to_snake(k): v for k, v in rewards.items()}) if rewards else None,
            farm_rewards=FarmRewards(**{camel_to_snake(k): v for k, v in farm.items()}) if farm else None,
            name=raw.get("name"),
            logo_uri=raw.get("logoURI"),
        )


@dataclass
class PoolSpec:
    token_a: str
    token_b: str
    slope: int
    swap_out_limit_percentage: int
    stable: bool = False
    oracle_priority: OraclePriority = OraclePriority.PYTH_ONLY

    @property
    def name(self) -> str:
        return f"{self.token_a}-{self.token_b}"


@dataclass
class DeployConfig:
    network: str
    admin_key_name: str
    payer_key_name: str
    fees: Fees
    swap_pools: List[PoolSpec]
    stable_swap_pools: List[PoolSpec]
    program_id: Pubkey = SWAP_PROGRAM_ID
    deltafi_mint: Optional[Pubkey] = None
    tokens: Dict[str, TokenInfo] = field(default_factory=dict)
    prices: PriceBook = field(default_factory=PriceBook)
    config_rewards: Rewards = field(default_factory=lambda: Rewards(is_initialized=True, **DEFAULT_CONFIG_REWARDS))
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def pools(self) -> List[PoolSpec]:
        """Normal pools first, then stable pools."""
        return list(self.swap_pools) + list(self.stable_swap_pools)

    def token(self, symbol: str) -> TokenInfo:
        try:
            return self.tokens[symbol]
        except KeyError:
            raise ConfigurationError(f"Token {symbol} is not configured") from None


def _pool_spec(raw: Dict[str, Any], stable: bool) -> PoolSpec:
    priority = raw.get("oraclePriority")
    return PoolSpec(
        token_a=raw["tokenA"],
        token_b=raw["tokenB"],
        slope=parse_slope(raw["slope"]),
        swap_out_limit_percentage=raw["swapOutLimitPercentage"],
        stable=stable,
        oracle_priority=OraclePriority.from_name(priority) if priority else OraclePriority.PYTH_ONLY,
    )


def parse_deploy_config(raw: Dict[str, Any]) -> DeployConfig:
    """Validate ``raw`` and build a typed DeployConfig; raises ValidationError."""
    raise_on_errors(validate_config(raw))
    fees = Fees(is_initialized=True, **{camel_to_snake(k): v for k, v in raw["fees"].items()})
    config = DeployConfig(
        network=raw["network"],
        admin_key_name=raw["adminKeyName"],
        payer_key_name=raw["payerKeyName"],
        fees=fees,
        swap_pools=[_pool_spec(p, False) for p in raw["swapPools"]],
        stable_swap_pools=[_pool_spec(p, True) for p in raw["stableSwapPools"]],
        tokens={t["symbol"]: TokenInfo.from_dict(t) for t in raw.get("tokens") or []},
        prices=PriceBook.from_config(raw),
        raw=raw,
    )
    if raw.get("swapProgramId"):
        config.program_id = Pubkey.from_string(raw["swapProgramId"])
    if raw.get("deltafiMint"):
        config.deltafi_mint = Pubkey.from_string(raw["deltafiMint"])
    if raw.get("configRewards"):
        config.config_rewards = Rewards(
            is_initialized=True, **{camel_to_snake(k): v for k, v in raw["configRewards"].items()}
        )
    return config


def load_deploy_config(path: str | Path) -> DeployConfig:
    return parse_deploy_config(load_config_file(path))
