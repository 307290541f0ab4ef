"""Account layouts of the swap program."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from decimal import Decimal
from typing import Any, ClassVar, Dict, Type

from construct import Container, Struct
from solders.pubkey import Pubkey

from .codec import Bool, Decimal64, PublicKey, Reserved, U8, U16, U32, U64
from .constants import SWAP_TYPE_NORMAL
from .errors import CodecRangeError, LayoutConflictError

_ZERO_KEY = Pubkey.default()

LAYOUTS: Dict[str, Type["Record"]] = {}


class Record:
    """Dataclass mixin binding a construct ``LAYOUT`` to typed fields."""

    LAYOUT: ClassVar[Struct]
    SIZE: ClassVar[int]
    NESTED: ClassVar[Dict[str, Type["Record"]]] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if "LAYOUT" in cls.__dict__:
            cls.SIZE = cls.LAYOUT.sizeof()
            LAYOUTS[cls.__name__] = cls

    @property
    def initialized(self) -> bool:
        return bool(getattr(self, "is_initialized", True))

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            out[f.name] = value.to_dict() if isinstance(value, Record) else value
        return out

    @classmethod
    def from_container(cls, obj: Container):
        kwargs: Dict[str, Any] = {}
        for f in fields(cls):
            value = obj[f.name]
            nested = cls.NESTED.get(f.name)
            kwargs[f.name] = nested.from_container(value) if nested else value
        return cls(**kwargs)

    def encode(self) -> bytes:
        return self.LAYOUT.build(self.to_dict())

    @classmethod
    def decode(cls, data: bytes):
        if len(data) != cls.SIZE:
            raise CodecRangeError(f"{cls.__name__} expects {cls.SIZE} bytes, got {len(data)}")
        return cls.from_container(cls.LAYOUT.parse(bytes(data)))


FEES_LAYOUT = Struct(
    "is_initialized" / Bool,
    "admin_trade_fee_numerator" / U64,
    "admin_trade_fee_denominator" / U64,
    "admin_withdraw_fee_numerator" / U64,
    "admin_withdraw_fee_denominator" / U64,
    "trade_fee_numerator" / U64,
    "trade_fee_denominator" / U64,
    "withdraw_fee_numerator" / U64,
    "withdraw_fee_denominator" / U64,
)


@dataclass
class Fees(Record):
    LAYOUT: ClassVar[Struct] = FEES_LAYOUT

    is_initialized: bool = True
    admin_trade_fee_numerator: int = 0
    admin_trade_fee_denominator: int = 0
    admin_withdraw_fee_numerator: int = 0
    admin_withdraw_fee_denominator: int = 0
    trade_fee_numerator: int = 0
    trade_fee_denominator: int = 0
    withdraw_fee_numerator: int = 0
    withdraw_fee_denominator: int = 0

    def ratios(self) -> Dict[str, int]:
        """Fee fields without the initialization flag, for comparison."""
        values = self.to_dict()
        values.pop("is_initialized")
        return values


REWARDS_LAYOUT = Struct(
    "is_initialized" / Bool,
    "decimals" / U8,
    Reserved(U8.size + U16.size + U32.size).con,
    "trade_reward_numerator" / U64,
    "trade_reward_denominator" / U64,
    "trade_reward_cap" / U64,
)


@dataclass
class Rewards(Record):
    LAYOUT: ClassVar[Struct] = REWARDS_LAYOUT

    is_initialized: bool = True
    decimals: int = 0
    trade_reward_numerator: int = 0
    trade_reward_denominator: int = 0
    trade_reward_cap: int = 0

    def values(self) -> Dict[str, int]:
        values = self.to_dict()
        values.pop("is_initialized")
        return values


FARM_REWARDS_LAYOUT = Struct(
    "apr_numerator" / U64,
    "apr_denominator" / U64,
)


@dataclass
class FarmRewards(Record):
    LAYOUT: ClassVar[Struct] = FARM_REWARDS_LAYOUT

    apr_numerator: int = 0
    apr_denominator: int = 0


POOL_STATE_LAYOUT = Struct(
    "market_price" / Decimal64,
    "slope" / Decimal64,
    "base_target" / Decimal64,
    "quote_target" / Decimal64,
    "base_reserve" / Decimal64,
    "quote_reserve" / Decimal64,
    "total_supply" / U64,
    "multiplier" / U8,
    "last_market_price" / Decimal64,
    "last_valid_market_price_slot" / U64,
)


@dataclass
class PoolState(Record):
    LAYOUT: ClassVar[Struct] = POOL_STATE_LAYOUT

    market_price: Decimal = Decimal(0)
    slope: Decimal = Decimal(0)
    base_target: Decimal = Decimal(0)
    quote_target: Decimal = Decimal(0)
    base_reserve: Decimal = Decimal(0)
    quote_reserve: Decimal = Decimal(0)
    total_supply: int = 0
    multiplier: int = 0
    last_market_price: Decimal = Decimal(0)
    last_valid_market_price_slot: int = 0


CONFIG_INFO_LAYOUT = Struct(
    "version" / U8,
    "bump_seed" / U8,
    "admin_key" / PublicKey,
    "deltafi_mint" / PublicKey,
    "pyth_program_id" / PublicKey,
    "fees" / FEES_LAYOUT,
    "rewards" / REWARDS_LAYOUT,
    "deltafi_token" / PublicKey,
    Reserved(128).con,
)


@dataclass
class ConfigInfo(Record):
    LAYOUT: ClassVar[Struct] = CONFIG_INFO_LAYOUT
    NESTED: ClassVar[Dict[str, Type[Record]]] = {"fees": Fees, "rewards": Rewards}

    version: int = 0
    bump_seed: int = 0
    admin_key: Pubkey = _ZERO_KEY
    deltafi_mint: Pubkey = _ZERO_KEY
    pyth_program_id: Pubkey = _ZERO_KEY
    fees: Fees = field(default_factory=Fees)
    rewards: Rewards = field(default_factory=Rewards)
    deltafi_token: Pubkey = _ZERO_KEY

    @property
    def initialized(self) -> bool:
        return self.version != 0


SWAP_INFO_LAYOUT = Struct(
    "is_initialized" / Bool,
    "is_paused" / Bool,
    "nonce" / U8,
    "swap_type" / U8,
    "config_key" / PublicKey,
    "token_a" / PublicKey,
    "token_b" / PublicKey,
    "pyth_a" / PublicKey,
    "pyth_b" / PublicKey,
    "pool_mint" / PublicKey,
    "token_mint_a" / PublicKey,
    "token_mint_b" / PublicKey,
    "admin_fee_key_a" / PublicKey,
    "admin_fee_key_b" / PublicKey,
    "fees" / FEES_LAYOUT,
    "rewards" / REWARDS_LAYOUT,
    "pool_state" / POOL_STATE_LAYOUT,
    "token_a_decimals" / U8,
    "token_b_decimals" / U8,
    "swap_out_limit_percentage" / U8,
    "oracle_priority_flags" / U8,
    "serum_combined_address" / PublicKey,
    Reserved(28).con,
)


@dataclass
class SwapInfo(Record):
    LAYOUT: ClassVar[Struct] = SWAP_INFO_LAYOUT
    NESTED: ClassVar[Dict[str, Type[Record]]] = {
        "fees": Fees,
        "rewards": Rewards,
        "pool_state": PoolState,
    }

    is_initialized: bool = False
    is_paused: bool = False
    nonce: int = 0
    swap_type: int = SWAP_TYPE_NORMAL
    config_key: Pubkey = _ZERO_KEY
    token_a: Pubkey = _ZERO_KEY
    token_b: Pubkey = _ZERO_KEY
    pyth_a: Pubkey = _ZERO_KEY
    pyth_b: Pubkey = _ZERO_KEY
    pool_mint: Pubkey = _ZERO_KEY
    token_mint_a: Pubkey = _ZERO_KEY
    token_mint_b: Pubkey = _ZERO_KEY
    admin_fee_key_a: Pubkey = _ZERO_KEY
    admin_fee_key_b: Pubkey = _ZERO_KEY
    fees: Fees = field(default_factory=Fees)
    rewards: Rewards = field(default_factory=Rewards)
    pool_state: PoolState = field(default_factory=PoolState)
    token_a_decimals: int = 0
    token_b_decimals: int = 0
    swap_out_limit_percentage: int = 0
    oracle_priority_flags: int = 0
    serum_combined_address: Pubkey = _ZERO_KEY


FARM_INFO_LAYOUT = Struct(
    "is_initialized" / Bool,
    "bump_seed" / U8,
    "config_key" / PublicKey,
    "pool_mint" / PublicKey,
    "pool_token" / PublicKey,
    "reserved_amount" / U64,
    "fee_numerator" / U64,
    "fee_denominator" / U64,
    "rewards_numerator" / U64,
    "rewards_denominator" / U64,
    Reserved(64).con,
)


@dataclass
class FarmInfo(Record):
    LAYOUT: ClassVar[Struct] = FARM_INFO_LAYOUT

    is_initialized: bool = False
    bump_seed: int = 0
    config_key: Pubkey = _ZERO_KEY
    pool_mint: Pubkey = _ZERO_KEY
    pool_token: Pubkey = _ZERO_KEY
    reserved_amount: int = 0
    fee_numerator: int = 0
    fee_denominator: int = 0
    rewards_numerator: int = 0
    rewards_denominator: int = 0


FARM_USER_LAYOUT = Struct(
    "is_initialized" / Bool,
    "config_key" / PublicKey,
    "farm_pool_key" / PublicKey,
    "owner" / PublicKey,
    "position_len" / U8,
    "position_pool" / PublicKey,
    "deposited_amount" / U64,
    "rewards_owed" / U64,
    "rewards_estimated" / U64,
    "cumulative_interest" / U64,
    "last_update_ts" / U64,
    "next_claim_ts" / U64,
    "latest_deposit_slot" / U64,
    Reserved(64).con,
)


@dataclass
class FarmUser(Record):
    LAYOUT: ClassVar[Struct] = FARM_USER_LAYOUT

    is_initialized: bool = False
    config_key: Pubkey = _ZERO_KEY
    farm_pool_key: Pubkey = _ZERO_KEY
    owner: Pubkey = _ZERO_KEY
    position_len: int = 0
    position_pool: Pubkey = _ZERO_KEY
    deposited_amount: int = 0
    rewards_owed: int = 0
    rewards_estimated: int = 0
    cumulative_interest: int = 0
    last_update_ts: int = 0
    next_claim_ts: int = 0
    latest_deposit_slot: int = 0


USER_REFERRER_DATA_LAYOUT = Struct(
    "is_initialized" / Bool,
    "config_key" / PublicKey,
    "owner" / PublicKey,
    "referrer" / PublicKey,
)


@dataclass
class UserReferrerData(Record):
    LAYOUT: ClassVar[Struct] = USER_REFERRER_DATA_LAYOUT

    is_initialized: bool = False
    config_key: Pubkey = _ZERO_KEY
    owner: Pubkey = _ZERO_KEY
    referrer: Pubkey = _ZERO_KEY


CONFIG_SIZE = ConfigInfo.SIZE
SWAP_INFO_SIZE = SwapInfo.SIZE
FARM_INFO_SIZE = FarmInfo.SIZE
FARM_USER_SIZE = FarmUser.SIZE
USER_REFERRER_DATA_SIZE = UserReferrerData.SIZE


def assert_distinct_spans(*record_types: Type[Record]) -> None:
    """Raise LayoutConflictError if any two records share a byte span."""
    seen: Dict[int, Type[Record]] = {}
    for record_type in record_types:
        other = seen.get(record_type.SIZE)
        if other is not None and other is not record_type:
            raise LayoutConflictError(
                f"{record_type.__name__} and {other.__name__} both span {record_type.SIZE} bytes"
            )
        seen[record_type.SIZE] = record_type


PROGRAM_ACCOUNT_TYPES = (ConfigInfo, SwapInfo, FarmInfo, FarmUser, UserReferrerData)
assert_distinct_spans(*PROGRAM_ACCOUNT_TYPES)
