"""Instruction builders for the swap, stable swap, farm and admin programs.

Every payload is ``[opcode: u8] ++ args``. Account lists are ordered exactly
as the program reads them; signer and writable flags are advisory.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, NamedTuple, Optional, Union

from construct import Struct
from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from solders.sysvar import CLOCK, RENT
from spl.token.constants import TOKEN_PROGRAM_ID

from . import constants as c
from .codec import Decimal128, PublicKey, U8, U64
from .layouts import FARM_REWARDS_LAYOUT, FEES_LAYOUT, REWARDS_LAYOUT, FarmRewards, Fees, Rewards

INITIALIZE_DATA_LAYOUT = Struct(
    "nonce" / U8,
    "slope" / U64,
    "mid_price" / Decimal128,
    "token_a_decimals" / U8,
    "token_b_decimals" / U8,
    "token_a_amount" / U64,
    "token_b_amount" / U64,
    "oracle_priority_flags" / U8,
)

STABLE_INITIALIZE_DATA_LAYOUT = Struct(
    "nonce" / U8,
    "slope" / U64,
    "token_a_decimals" / U8,
    "token_b_decimals" / U8,
    "token_a_amount" / U64,
    "token_b_amount" / U64,
)

SWAP_DATA_LAYOUT = Struct(
    "amount_in" / U64,
    "minimum_amount_out" / U64,
    "swap_direction" / U8,
)

DEPOSIT_DATA_LAYOUT = Struct(
    "token_a_amount" / U64,
    "token_b_amount" / U64,
    "min_mint_amount" / U64,
)

WITHDRAW_DATA_LAYOUT = Struct(
    "pool_token_amount" / U64,
    "minimum_token_a_amount" / U64,
    "minimum_token_b_amount" / U64,
)

ADMIN_INITIALIZE_DATA_LAYOUT = Struct(
    "fees" / FEES_LAYOUT,
    "rewards" / REWARDS_LAYOUT,
)

FARM_INITIALIZE_DATA_LAYOUT = Struct(
    "fee_numerator" / U64,
    "fee_denominator" / U64,
    "rewards_numerator" / U64,
    "rewards_denominator" / U64,
    "bump_seed" / U8,
)

AMOUNT_LAYOUT = Struct("amount" / U64)
PUBKEY_LAYOUT = Struct("new_admin" / PublicKey)
SLOPE_LAYOUT = Struct("slope" / U64)
DECIMALS_LAYOUT = Struct("token_a_decimals" / U8, "token_b_decimals" / U8)
SWAP_LIMIT_LAYOUT = Struct("swap_out_limit_percentage" / U8)


def encode_instruction(opcode: int, layout: Optional[Struct] = None, args: Optional[Dict[str, Any]] = None) -> bytes:
    data = U8.con.build(opcode)
    if layout is not None:
        data += layout.build(args or {})
    return data


def _meta(pubkey: Pubkey, signer: bool = False, writable: bool = False) -> AccountMeta:
    return AccountMeta(pubkey=pubkey, is_signer=signer, is_writable=writable)


def _ix(program_id: Pubkey, accounts: List[AccountMeta], data: bytes) -> Instruction:
    return Instruction(program_id=program_id, data=data, accounts=accounts)


# ---------------------------------------------------------------------------
# Swap pool


class InitializeParams(NamedTuple):
    """Accounts and arguments for a normal (oracle priced) pool."""

    program_id: Pubkey
    config: Pubkey
    token_swap: Pubkey
    """[s, w] New swap account."""
    authority: Pubkey
    admin_fee_a: Pubkey
    admin_fee_b: Pubkey
    token_a: Pubkey
    token_b: Pubkey
    pool_mint: Pubkey
    pool_token: Pubkey
    pyth_product_a: Pubkey
    pyth_price_a: Pubkey
    pyth_product_b: Pubkey
    pyth_price_b: Pubkey
    admin: Pubkey
    serum_market: Pubkey
    serum_bids: Pubkey
    serum_asks: Pubkey

    nonce: int
    slope: int
    """Raw WAD-scaled slope."""
    mid_price: Union[Decimal, int, str]
    token_a_decimals: int
    token_b_decimals: int
    token_a_amount: int
    token_b_amount: int
    oracle_priority_flags: int


def initialize(params: InitializeParams) -> Instruction:
    data = encode_instruction(
        c.OP_INITIALIZE,
        INITIALIZE_DATA_LAYOUT,
        dict(
            nonce=params.nonce,
            slope=params.slope,
            mid_price=params.mid_price,
            token_a_decimals=params.token_a_decimals,
            token_b_decimals=params.token_b_decimals,
            token_a_amount=params.token_a_amount,
            token_b_amount=params.token_b_amount,
            oracle_priority_flags=params.oracle_priority_flags,
        ),
    )
    accounts = [
        _meta(params.config),
        _meta(params.token_swap, signer=True, writable=True),
        _meta(params.authority),
        _meta(params.admin_fee_a),
        _meta(params.admin_fee_b),
        _meta(params.token_a),
        _meta(params.token_b),
        _meta(params.pool_mint, writable=True),
        _meta(params.pool_token, writable=True),
        _meta(params.pyth_product_a),
        _meta(params.pyth_price_a),
        _meta(params.pyth_product_b),
        _meta(params.pyth_price_b),
        _meta(params.admin, signer=True),
        _meta(params.serum_market),
        _meta(params.serum_bids),
        _meta(params.serum_asks),
        _meta(CLOCK),
        _meta(RENT),
        _meta(TOKEN_PROGRAM_ID),
    ]
    return _ix(params.program_id, accounts, data)


class StableInitializeParams(NamedTuple):
    program_id: Pubkey
    config: Pubkey
    token_swap: Pubkey
    authority: Pubkey
    admin_fee_a: Pubkey
    admin_fee_b: Pubkey
    token_a: Pubkey
    token_b: Pubkey
    pool_mint: Pubkey
    pool_token: Pubkey
    admin: Pubkey

    nonce: int
    slope: int
    token_a_decimals: int
    token_b_decimals: int
    token_a_amount: int
    token_b_amount: int


def stable_initialize(params: StableInitializeParams) -> Instruction:
    data = encode_instruction(
        c.OP_STABLE_INITIALIZE,
        STABLE_INITIALIZE_DATA_LAYOUT,
        dict(
            nonce=params.nonce,
            slope=params.slope,
            token_a_decimals=params.token_a_decimals,
            token_b_decimals=params.token_b_decimals,
            token_a_amount=params.token_a_amount,
            token_b_amount=params.token_b_amount,
        ),
    )
    accounts = [
        _meta(params.config),
        _meta(params.token_swap, signer=True, writable=True),
        _meta(params.authority),
        _meta(params.admin_fee_a),
        _meta(params.admin_fee_b),
        _meta(params.token_a),
        _meta(params.token_b),
        _meta(params.pool_mint, writable=True),
        _meta(params.pool_token, writable=True),
        _meta(params.admin, signer=True),
        _meta(RENT),
        _meta(TOKEN_PROGRAM_ID),
    ]
    return _ix(params.program_id, accounts, data)


class SwapParams(NamedTuple):
    program_id: Pubkey
    config: Pubkey
    token_swap: Pubkey
    market_authority: Pubkey
    swap_authority: Pubkey
    user_transfer_authority: Pubkey
    source: Pubkey
    swap_source: Pubkey
    swap_destination: Pubkey
    destination: Pubkey
    reward_token: Pubkey
    reward_mint: Pubkey
    admin_fee_destination: Pubkey
    pyth_a: Pubkey
    pyth_b: Pubkey

    amount_in: int
    minimum_amount_out: int
    swap_direction: int = c.SWAP_DIRECTION_SELL_BASE


def _swap_accounts(params: SwapParams, with_oracles: bool) -> List[AccountMeta]:
    accounts = [
        _meta(params.config),
        _meta(params.token_swap, writable=True),
        _meta(params.market_authority),
        _meta(params.swap_authority),
        _meta(params.user_transfer_authority),
        _meta(params.source, writable=True),
        _meta(params.swap_source, writable=True),
        _meta(params.swap_destination, writable=True),
        _meta(params.destination, writable=True),
        _meta(params.reward_token, writable=True),
        _meta(params.reward_mint, writable=True),
        _meta(params.admin_fee_destination, writable=True),
    ]
    if with_oracles:
        accounts += [_meta(params.pyth_a), _meta(params.pyth_b)]
    accounts.append(_meta(TOKEN_PROGRAM_ID))
    return accounts


def _swap_data(opcode: int, params: SwapParams) -> bytes:
    return encode_instruction(
        opcode,
        SWAP_DATA_LAYOUT,
        dict(
            amount_in=params.amount_in,
            minimum_amount_out=params.minimum_amount_out,
            swap_direction=params.swap_direction,
        ),
    )


def swap(params: SwapParams) -> Instruction:
    return _ix(params.program_id, _swap_accounts(params, with_oracles=True), _swap_data(c.OP_SWAP, params))


def stable_swap(params: SwapParams) -> Instruction:
    """Stable pools price without oracles; ``pyth_a``/``pyth_b`` are ignored."""
    return _ix(params.program_id, _swap_accounts(params, with_oracles=False), _swap_data(c.OP_STABLE_SWAP, params))


class DepositParams(NamedTuple):
    program_id: Pubkey
    token_swap: Pubkey
    authority: Pubkey
    user_transfer_authority: Pubkey
    deposit_token_a: Pubkey
    deposit_token_b: Pubkey
    swap_token_a: Pubkey
    swap_token_b: Pubkey
    pool_mint: Pubkey
    destination: Pubkey
    pyth_a: Pubkey
    pyth_b: Pubkey

    token_a_amount: int
    token_b_amount: int
    min_mint_amount: int


def _deposit(opcode: int, params: DepositParams, with_oracles: bool) -> Instruction:
    data = encode_instruction(
        opcode,
        DEPOSIT_DATA_LAYOUT,
        dict(
            token_a_amount=params.token_a_amount,
            token_b_amount=params.token_b_amount,
            min_mint_amount=params.min_mint_amount,
        ),
    )
    accounts = [
        _meta(params.token_swap, writable=True),
        _meta(params.authority),
        _meta(params.user_transfer_authority),
        _meta(params.deposit_token_a, writable=True),
        _meta(params.deposit_token_b, writable=True),
        _meta(params.swap_token_a, writable=True),
        _meta(params.swap_token_b, writable=True),
        _meta(params.pool_mint, writable=True),
        _meta(params.destination, writable=True),
    ]
    if with_oracles:
        accounts += [_meta(params.pyth_a), _meta(params.pyth_b)]
    accounts.append(_meta(TOKEN_PROGRAM_ID))
    return _ix(params.program_id, accounts, data)


def deposit(params: DepositParams) -> Instruction:
    return _deposit(c.OP_DEPOSIT, params, with_oracles=True)


def stable_deposit(params: DepositParams) -> Instruction:
    return _deposit(c.OP_STABLE_DEPOSIT, params, with_oracles=False)


class WithdrawParams(NamedTuple):
    program_id: Pubkey
    token_swap: Pubkey
    authority: Pubkey
    user_transfer_authority: Pubkey
    pool_mint: Pubkey
    source: Pubkey
    swap_token_a: Pubkey
    swap_token_b: Pubkey
    destination_token_a: Pubkey
    destination_token_b: Pubkey
    admin_fee_a: Pubkey
    admin_fee_b: Pubkey
    pyth_a: Pubkey
    pyth_b: Pubkey

    pool_token_amount: int
    minimum_token_a_amount: int
    minimum_token_b_amount: int


def _withdraw(opcode: int, params: WithdrawParams, with_oracles: bool) -> Instruction:
    data = encode_instruction(
        opcode,
        WITHDRAW_DATA_LAYOUT,
        dict(
            pool_token_amount=params.pool_token_amount,
            minimum_token_a_amount=params.minimum_token_a_amount,
            minimum_token_b_amount=params.minimum_token_b_amount,
        ),
    )
    accounts = [
        _meta(params.token_swap, writable=True),
        _meta(params.authority),
        _meta(params.user_transfer_authority),
        _meta(params.pool_mint, writable=True),
        _meta(params.source, writable=True),
        _meta(params.swap_token_a, writable=True),
        _meta(params.swap_token_b, writable=True),
        _meta(params.destination_token_a, writable=True),
        _meta(params.destination_token_b, writable=True),
        _meta(params.admin_fee_a, writable=True),
        _meta(params.admin_fee_b, writable=True),
    ]
    if with_oracles:
        accounts += [_meta(params.pyth_a), _meta(params.pyth_b)]
    accounts.append(_meta(TOKEN_PROGRAM_ID))
    return _ix(params.program_id, accounts, data)


def withdraw(params: WithdrawParams) -> Instruction:
    return _withdraw(c.OP_WITHDRAW, params, with_oracles=True)


def stable_withdraw(params: WithdrawParams) -> Instruction:
    return _withdraw(c.OP_STABLE_WITHDRAW, params, with_oracles=False)


def set_referrer(
    program_id: Pubkey,
    config: Pubkey,
    owner: Pubkey,
    user_referrer_data: Pubkey,
    referrer: Pubkey,
) -> Instruction:
    accounts = [
        _meta(config, writable=True),
        _meta(owner, signer=True),
        _meta(user_referrer_data, writable=True),
        _meta(referrer),
        _meta(RENT),
        _meta(TOKEN_PROGRAM_ID),
    ]
    return _ix(program_id, accounts, encode_instruction(c.OP_SET_REFERRER))


# ---------------------------------------------------------------------------
# Admin


def admin_initialize(
    program_id: Pubkey,
    config: Pubkey,
    market_authority: Pubkey,
    deltafi_mint: Pubkey,
    admin: Pubkey,
    pyth_program_id: Pubkey,
    deltafi_token: Pubkey,
    fees: Fees,
    rewards: Rewards,
) -> Instruction:
    data = encode_instruction(
        c.OP_ADMIN_INITIALIZE,
        ADMIN_INITIALIZE_DATA_LAYOUT,
        dict(fees=fees.to_dict(), rewards=rewards.to_dict()),
    )
    accounts = [
        _meta(config, signer=True, writable=True),
        _meta(market_authority),
        _meta(deltafi_mint),
        _meta(admin, signer=True),
        _meta(RENT),
        _meta(TOKEN_PROGRAM_ID),
        _meta(pyth_program_id),
        _meta(deltafi_token),
    ]
    return _ix(program_id, accounts, data)


def _swap_admin(program_id: Pubkey, config: Pubkey, swap: Pubkey, admin: Pubkey, data: bytes) -> Instruction:
    accounts = [
        _meta(config),
        _meta(swap, writable=True),
        _meta(admin, signer=True),
    ]
    return _ix(program_id, accounts, data)


def pause(program_id: Pubkey, config: Pubkey, swap: Pubkey, admin: Pubkey) -> Instruction:
    return _swap_admin(program_id, config, swap, admin, encode_instruction(c.OP_PAUSE))


def unpause(program_id: Pubkey, config: Pubkey, swap: Pubkey, admin: Pubkey) -> Instruction:
    return _swap_admin(program_id, config, swap, admin, encode_instruction(c.OP_UNPAUSE))


def set_fee_account(
    program_id: Pubkey,
    config: Pubkey,
    swap: Pubkey,
    authority: Pubkey,
    admin: Pubkey,
    new_fee_account: Pubkey,
) -> Instruction:
    accounts = [
        _meta(config),
        _meta(swap, writable=True),
        _meta(authority),
        _meta(admin, signer=True),
        _meta(new_fee_account),
        _meta(TOKEN_PROGRAM_ID),
    ]
    return _ix(program_id, accounts, encode_instruction(c.OP_SET_FEE_ACCOUNT))


def commit_new_admin(
    program_id: Pubkey,
    config: Pubkey,
    admin: Pubkey,
    deltafi_mint: Pubkey,
    new_admin: Pubkey,
) -> Instruction:
    accounts = [
        _meta(config, writable=True),
        _meta(admin, signer=True),
        _meta(deltafi_mint, writable=True),
        _meta(TOKEN_PROGRAM_ID),
    ]
    data = encode_instruction(c.OP_COMMIT_NEW_ADMIN, PUBKEY_LAYOUT, dict(new_admin=new_admin))
    return _ix(program_id, accounts, data)


def set_new_fees(program_id: Pubkey, config: Pubkey, swap: Pubkey, admin: Pubkey, fees: Fees) -> Instruction:
    data = encode_instruction(c.OP_SET_NEW_FEES, FEES_LAYOUT, fees.to_dict())
    return _swap_admin(program_id, config, swap, admin, data)


def set_new_rewards(program_id: Pubkey, config: Pubkey, swap: Pubkey, admin: Pubkey, rewards: Rewards) -> Instruction:
    data = encode_instruction(c.OP_SET_NEW_REWARDS, REWARDS_LAYOUT, rewards.to_dict())
    return _swap_admin(program_id, config, swap, admin, data)


def set_farm_rewards(
    program_id: Pubkey,
    config: Pubkey,
    farm_pool: Pubkey,
    admin: Pubkey,
    farm_rewards: FarmRewards,
) -> Instruction:
    data = encode_instruction(c.OP_SET_FARM_REWARDS, FARM_REWARDS_LAYOUT, farm_rewards.to_dict())
    accounts = [
        _meta(config),
        _meta(farm_pool, writable=True),
        _meta(admin, signer=True),
    ]
    return _ix(program_id, accounts, data)


def set_new_slope(program_id: Pubkey, config: Pubkey, swap: Pubkey, admin: Pubkey, slope: int) -> Instruction:
    data = encode_instruction(c.OP_SET_NEW_SLOPE, SLOPE_LAYOUT, dict(slope=slope))
    return _swap_admin(program_id, config, swap, admin, data)


def set_decimals(
    program_id: Pubkey,
    config: Pubkey,
    swap: Pubkey,
    admin: Pubkey,
    token_a_decimals: int,
    token_b_decimals: int,
) -> Instruction:
    data = encode_instruction(
        c.OP_SET_DECIMALS,
        DECIMALS_LAYOUT,
        dict(token_a_decimals=token_a_decimals, token_b_decimals=token_b_decimals),
    )
    return _swap_admin(program_id, config, swap, admin, data)


def set_swap_limit(
    program_id: Pubkey,
    config: Pubkey,
    swap: Pubkey,
    admin: Pubkey,
    swap_out_limit_percentage: int,
) -> Instruction:
    data = encode_instruction(
        c.OP_SET_SWAP_LIMIT,
        SWAP_LIMIT_LAYOUT,
        dict(swap_out_limit_percentage=swap_out_limit_percentage),
    )
    return _swap_admin(program_id, config, swap, admin, data)


# ---------------------------------------------------------------------------
# Farm


def farm_initialize(
    program_id: Pubkey,
    config: Pubkey,
    swap: Pubkey,
    farm_pool: Pubkey,
    authority: Pubkey,
    pool_token: Pubkey,
    admin: Pubkey,
    fee_numerator: int,
    fee_denominator: int,
    rewards_numerator: int,
    rewards_denominator: int,
    bump_seed: int,
) -> Instruction:
    data = encode_instruction(
        c.OP_FARM_INITIALIZE,
        FARM_INITIALIZE_DATA_LAYOUT,
        dict(
            fee_numerator=fee_numerator,
            fee_denominator=fee_denominator,
            rewards_numerator=rewards_numerator,
            rewards_denominator=rewards_denominator,
            bump_seed=bump_seed,
        ),
    )
    accounts = [
        _meta(config),
        _meta(swap),
        _meta(farm_pool, signer=True, writable=True),
        _meta(authority),
        _meta(pool_token),
        _meta(admin, signer=True),
        _meta(RENT),
    ]
    return _ix(program_id, accounts, data)


def farm_initialize_user(
    program_id: Pubkey,
    config: Pubkey,
    farm_pool: Pubkey,
    farm_user: Pubkey,
    owner: Pubkey,
) -> Instruction:
    accounts = [
        _meta(config),
        _meta(farm_pool),
        _meta(farm_user, writable=True),
        _meta(owner, signer=True),
        _meta(RENT),
    ]
    return _ix(program_id, accounts, encode_instruction(c.OP_FARM_INITIALIZE_USER))


def farm_deposit(
    program_id: Pubkey,
    config: Pubkey,
    farm_pool: Pubkey,
    user_transfer_authority: Pubkey,
    source: Pubkey,
    destination: Pubkey,
    farm_user: Pubkey,
    owner: Pubkey,
    amount: int,
) -> Instruction:
    accounts = [
        _meta(config),
        _meta(farm_pool, writable=True),
        _meta(user_transfer_authority, signer=True),
        _meta(source, writable=True),
        _meta(destination, writable=True),
        _meta(farm_user, writable=True),
        _meta(owner, signer=True),
        _meta(TOKEN_PROGRAM_ID),
    ]
    data = encode_instruction(c.OP_FARM_DEPOSIT, AMOUNT_LAYOUT, dict(amount=amount))
    return _ix(program_id, accounts, data)


def farm_withdraw(
    program_id: Pubkey,
    config: Pubkey,
    farm_pool: Pubkey,
    farm_user: Pubkey,
    authority: Pubkey,
    source: Pubkey,
    destination: Pubkey,
    owner: Pubkey,
    amount: int,
) -> Instruction:
    accounts = [
        _meta(config),
        _meta(farm_pool, writable=True),
        _meta(farm_user, writable=True),
        _meta(authority),
        _meta(source, writable=True),
        _meta(destination, writable=True),
        _meta(owner, signer=True),
        _meta(TOKEN_PROGRAM_ID),
    ]
    data = encode_instruction(c.OP_FARM_WITHDRAW, AMOUNT_LAYOUT, dict(amount=amount))
    return _ix(program_id, accounts, data)


def farm_claim(
    program_id: Pubkey,
    config: Pubkey,
    farm_pool: Pubkey,
    farm_user: Pubkey,
    owner: Pubkey,
    market_authority: Pubkey,
    claim_destination: Pubkey,
    claim_source: Pubkey,
) -> Instruction:
    accounts = [
        _meta(config),
        _meta(farm_pool),
        _meta(farm_user, writable=True),
        _meta(owner, signer=True),
        _meta(market_authority),
        _meta(claim_destination, writable=True),
        _meta(claim_source, writable=True),
        _meta(TOKEN_PROGRAM_ID),
    ]
    return _ix(program_id, accounts, encode_instruction(c.OP_FARM_CLAIM))


def farm_refresh(program_id: Pubkey, config: Pubkey, farm_pool: Pubkey, farm_user: Pubkey) -> Instruction:
    accounts = [
        _meta(config),
        _meta(farm_pool, writable=True),
        _meta(farm_user, writable=True),
    ]
    return _ix(program_id, accounts, encode_instruction(c.OP_FARM_REFRESH))
