"""Resumable deployment of the market config, swap pools and farm pools.

Each pool moves through the stages in ``state.Stage``. A stage's results are
written to the deployment store only after its transaction confirms, so a
rerun resumes at the first stage that has not been recorded. Reconciliation
runs on every pass and only sends an admin instruction when decoded on-chain
state differs from the config.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.system_program import CreateAccountParams, create_account
from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import (
    AuthorityType,
    InitializeAccountParams,
    InitializeMintParams,
    SetAuthorityParams,
    TransferParams,
    create_associated_token_account,
    get_associated_token_address,
    initialize_account,
    initialize_mint,
    set_authority,
    transfer,
)

from . import instructions as ix
from .accounts import find_authority, load_farm_info, load_mint_decimals, load_swap_info
from .cluster import Cluster
from .codec import encode_wad
from .constants import (
    DEFAULT_FARM_FEE,
    DEFAULT_FARM_REWARDS,
    DEFAULT_MID_PRICE,
    INVALID_ORACLE_ADDRESS,
    NATIVE_SYMBOL,
    PYTH_PROGRAM_IDS,
    TOKEN_ACCOUNT_SIZE,
    MINT_SIZE,
)
from .errors import ConfigurationError, OnChainMismatchError
from .layouts import CONFIG_SIZE, FARM_INFO_SIZE, SWAP_INFO_SIZE, FarmInfo, SwapInfo
from .manifest import DeployConfig, PoolSpec, TokenInfo
from .oracle import OraclePriority, initial_amount
from .state import DeploymentStore, Stage
from .util import keypair_secret

logger = logging.getLogger(__name__)


@dataclass
class DeployContext:
    cluster: Cluster
    config: DeployConfig
    store: DeploymentStore
    admin: Keypair
    payer: Keypair
    new_keypair: Callable[[], Keypair] = Keypair
    sent: List[str] = field(default_factory=list)

    @property
    def program_id(self) -> Pubkey:
        return self.config.program_id

    @property
    def pyth_program_id(self) -> Pubkey:
        return PYTH_PROGRAM_IDS[self.config.network]

    def send(self, instructions: Sequence[Instruction], signers: Sequence[Keypair], label: str) -> str:
        unique: List[Keypair] = []
        for signer in signers:
            if all(signer.pubkey() != other.pubkey() for other in unique):
                unique.append(signer)
        signature = self.cluster.send(instructions, unique, label)
        self.sent.append(label)
        return signature

    def rent(self, size: int) -> int:
        return self.cluster.get_minimum_balance_for_rent_exemption(size)


@dataclass
class DeployReport:
    shared: Dict[str, Any]
    pools: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    updates: Dict[str, List[str]] = field(default_factory=dict)
    transactions: List[str] = field(default_factory=list)


def _key(name: str, suffix: str) -> str:
    return f"pool_{name}_{suffix}"


def _create_token_account(
    ctx: DeployContext,
    account: Pubkey,
    mint: Pubkey,
    owner: Pubkey,
    lamports: int,
) -> List[Instruction]:
    return [
        create_account(
            CreateAccountParams(
                from_pubkey=ctx.payer.pubkey(),
                to_pubkey=account,
                lamports=lamports,
                space=TOKEN_ACCOUNT_SIZE,
                owner=TOKEN_PROGRAM_ID,
            )
        ),
        initialize_account(
            InitializeAccountParams(program_id=TOKEN_PROGRAM_ID, account=account, mint=mint, owner=owner)
        ),
    ]


def _create_program_account(ctx: DeployContext, account: Pubkey, size: int, lamports: int) -> Instruction:
    return create_account(
        CreateAccountParams(
            from_pubkey=ctx.payer.pubkey(),
            to_pubkey=account,
            lamports=lamports,
            space=size,
            owner=ctx.program_id,
        )
    )


# ---------------------------------------------------------------------------
# Market config


def init_config(ctx: DeployContext) -> Dict[str, Any]:
    """Create the protocol token account and the config account, then initialize it."""
    deltafi_mint = ctx.config.deltafi_mint
    if deltafi_mint is None:
        raise ConfigurationError("deltafiMint is required to initialize the market config")

    config_kp = ctx.new_keypair()
    market_authority, bump_seed = find_authority(config_kp.pubkey(), ctx.program_id)
    deltafi_token_kp = ctx.new_keypair()

    ctx.send(
        _create_token_account(
            ctx, deltafi_token_kp.pubkey(), deltafi_mint, market_authority, ctx.rent(TOKEN_ACCOUNT_SIZE)
        ),
        [ctx.payer, deltafi_token_kp],
        "create protocol token account",
    )
    ctx.send(
        [
            _create_program_account(ctx, config_kp.pubkey(), CONFIG_SIZE, ctx.rent(CONFIG_SIZE)),
            ix.admin_initialize(
                program_id=ctx.program_id,
                config=config_kp.pubkey(),
                market_authority=market_authority,
                deltafi_mint=deltafi_mint,
                admin=ctx.admin.pubkey(),
                pyth_program_id=ctx.pyth_program_id,
                deltafi_token=deltafi_token_kp.pubkey(),
                fees=ctx.config.fees,
                rewards=ctx.config.config_rewards,
            ),
        ],
        [ctx.payer, config_kp, ctx.admin],
        "initialize market config",
    )
    logger.info("Market config %s initialized (authority %s, bump %d)", config_kp.pubkey(), market_authority, bump_seed)
    return {
        "network": ctx.config.network,
        "config": str(config_kp.pubkey()),
        "marketAuthority": str(market_authority),
        "bumpSeed": bump_seed,
        "deltafiMint": str(deltafi_mint),
        "deltafiToken": str(deltafi_token_kp.pubkey()),
    }


def ensure_config(ctx: DeployContext) -> Dict[str, Any]:
    shared = ctx.store.load_shared()
    if shared is not None:
        logger.info("Market config already exists: %s", shared["config"])
        return shared
    shared = init_config(ctx)
    ctx.store.save_shared(shared)
    return shared


# ---------------------------------------------------------------------------
# Pool stages


def check_token_decimals(ctx: DeployContext, token: TokenInfo) -> None:
    decimals = load_mint_decimals(ctx.cluster, token.mint)
    if decimals != token.decimals:
        raise ConfigurationError(
            f"Token {token.symbol}: mint {token.mint} has {decimals} decimals, config says {token.decimals}"
        )


def create_token_accounts(ctx: DeployContext, pool: PoolSpec) -> None:
    token_a = ctx.config.token(pool.token_a)
    token_b = ctx.config.token(pool.token_b)
    kp_a = ctx.new_keypair()
    kp_b = ctx.new_keypair()
    rent = ctx.rent(TOKEN_ACCOUNT_SIZE)
    instructions: List[Instruction] = []
    for kp, token in ((kp_a, token_a), (kp_b, token_b)):
        lamports = rent if token.symbol == NATIVE_SYMBOL else rent * 2
        instructions += _create_token_account(ctx, kp.pubkey(), token.mint, ctx.admin.pubkey(), lamports)
    ctx.send(instructions, [ctx.payer, kp_a, kp_b], f"{pool.name}: create token accounts")
    ctx.store.advance(
        pool.name,
        Stage.TOKEN_ACCOUNTS_READY,
        pubkeys={
            _key(pool.name, token_a.symbol): str(kp_a.pubkey()),
            _key(pool.name, token_b.symbol): str(kp_b.pubkey()),
        },
        secrets={
            _key(pool.name, token_a.symbol): keypair_secret(kp_a),
            _key(pool.name, token_b.symbol): keypair_secret(kp_b),
        },
    )


def create_pool_shell(ctx: DeployContext, pool: PoolSpec) -> None:
    token_a = ctx.config.token(pool.token_a)
    token_b = ctx.config.token(pool.token_b)
    pubkeys = ctx.store.pool_pubkeys(pool.name)
    swap_kp = ctx.new_keypair()
    mint_kp = ctx.new_keypair()
    pool_token_kp = ctx.new_keypair()
    authority, nonce = find_authority(swap_kp.pubkey(), ctx.program_id)

    instructions: List[Instruction] = [
        create_account(
            CreateAccountParams(
                from_pubkey=ctx.payer.pubkey(),
                to_pubkey=mint_kp.pubkey(),
                lamports=ctx.rent(MINT_SIZE),
                space=MINT_SIZE,
                owner=TOKEN_PROGRAM_ID,
            )
        ),
        initialize_mint(
            InitializeMintParams(
                decimals=token_a.decimals,
                program_id=TOKEN_PROGRAM_ID,
                mint=mint_kp.pubkey(),
                mint_authority=authority,
            )
        ),
    ]
    instructions += _create_token_account(
        ctx, pool_token_kp.pubkey(), mint_kp.pubkey(), ctx.admin.pubkey(), ctx.rent(TOKEN_ACCOUNT_SIZE)
    )
    for symbol in (token_a.symbol, token_b.symbol):
        instructions.append(
            set_authority(
                SetAuthorityParams(
                    program_id=TOKEN_PROGRAM_ID,
                    account=Pubkey.from_string(pubkeys[_key(pool.name, symbol)]),
                    authority=AuthorityType.ACCOUNT_OWNER,
                    current_authority=ctx.admin.pubkey(),
                    new_authority=authority,
                )
            )
        )
    ctx.send(instructions, [ctx.payer, mint_kp, pool_token_kp, ctx.admin], f"{pool.name}: create pool mint")
    ctx.store.advance(
        pool.name,
        Stage.POOL_SHELL_READY,
        pubkeys={
            _key(pool.name, "authority"): str(authority),
            _key(pool.name, "swap"): str(swap_kp.pubkey()),
            _key(pool.name, "mint"): str(mint_kp.pubkey()),
            _key(pool.name, "token"): str(pool_token_kp.pubkey()),
            _key(pool.name, "decimals"): token_a.decimals,
        },
        secrets={
            _key(pool.name, "swap"): keypair_secret(swap_kp),
            _key(pool.name, "mint"): keypair_secret(mint_kp),
            _key(pool.name, "token"): keypair_secret(pool_token_kp),
            _key(pool.name, "nonce"): nonce,
        },
    )


def admin_fee_account(ctx: DeployContext, mint: Pubkey) -> Pubkey:
    """Admin's associated token account for ``mint``, created if missing."""
    address = get_associated_token_address(ctx.admin.pubkey(), mint)
    if ctx.cluster.get_account(address) is None:
        ctx.send(
            [create_associated_token_account(ctx.payer.pubkey(), ctx.admin.pubkey(), mint)],
            [ctx.payer],
            f"create admin fee account for {mint}",
        )
    return address


def initial_amounts(ctx: DeployContext, pool: PoolSpec) -> Dict[str, Any]:
    """Initial liquidity and oracle accounts for a pool."""
    token_a = ctx.config.token(pool.token_a)
    token_b = ctx.config.token(pool.token_b)
    prices = ctx.config.prices
    usd_b = prices.usd_price(token_b.symbol, token_b.pyth_product_name, token_b.fixed_usd_price)
    result: Dict[str, Any] = {
        "pyth_product_a": INVALID_ORACLE_ADDRESS,
        "pyth_price_a": INVALID_ORACLE_ADDRESS,
        "pyth_product_b": INVALID_ORACLE_ADDRESS,
        "pyth_price_b": INVALID_ORACLE_ADDRESS,
        "serum_market": INVALID_ORACLE_ADDRESS,
        "serum_bids": INVALID_ORACLE_ADDRESS,
        "serum_asks": INVALID_ORACLE_ADDRESS,
    }
    if pool.stable or pool.oracle_priority == OraclePriority.PYTH_ONLY:
        usd_a = prices.usd_price(token_a.symbol, token_a.pyth_product_name, token_a.fixed_usd_price)
        if not pool.stable:
            pyth_a = prices.pyth_product(token_a.pyth_product_name)
            pyth_b = prices.pyth_product(token_b.pyth_product_name)
            result.update(
                pyth_product_a=pyth_a.product,
                pyth_price_a=pyth_a.price,
                pyth_product_b=pyth_b.product,
                pyth_price_b=pyth_b.price,
            )
    else:
        market = prices.serum_market(pool.name)
        if market.mid_price is None:
            raise ConfigurationError(f"No Serum market price for pool {pool.name}")
        usd_a = market.mid_price * usd_b
        result.update(serum_market=market.market, serum_bids=market.bids, serum_asks=market.asks)
    result["amount_a"] = initial_amount(token_a.decimals, usd_a)
    result["amount_b"] = initial_amount(token_b.decimals, usd_b)
    logger.info(
        "%s: usd price A %s -> %d, usd price B %s -> %d",
        pool.name,
        usd_a,
        result["amount_a"],
        usd_b,
        result["amount_b"],
    )
    return result


def initialize_pool(ctx: DeployContext, pool: PoolSpec, shared: Dict[str, Any]) -> None:
    token_a = ctx.config.token(pool.token_a)
    token_b = ctx.config.token(pool.token_b)
    pubkeys = ctx.store.pool_pubkeys(pool.name)
    secrets = ctx.store.pool_secrets(pool.name)
    account_a = Pubkey.from_string(pubkeys[_key(pool.name, token_a.symbol)])
    account_b = Pubkey.from_string(pubkeys[_key(pool.name, token_b.symbol)])
    swap_kp = Keypair.from_bytes(bytes(secrets[_key(pool.name, "swap")]))
    nonce = secrets[_key(pool.name, "nonce")]
    plan = initial_amounts(ctx, pool)

    fee_a = admin_fee_account(ctx, token_a.mint)
    fee_b = admin_fee_account(ctx, token_b.mint)

    if pubkeys.get(_key(pool.name, "funded")):
        # Initialize must match what was transferred, even if prices moved since
        plan["amount_a"] = pubkeys.get(_key(pool.name, "funded_amount_a"), plan["amount_a"])
        plan["amount_b"] = pubkeys.get(_key(pool.name, "funded_amount_b"), plan["amount_b"])
    else:
        ctx.send(
            [
                transfer(
                    TransferParams(
                        program_id=TOKEN_PROGRAM_ID,
                        source=get_associated_token_address(ctx.payer.pubkey(), token.mint),
                        dest=dest,
                        owner=ctx.payer.pubkey(),
                        amount=amount,
                    )
                )
                for token, dest, amount in (
                    (token_a, account_a, plan["amount_a"]),
                    (token_b, account_b, plan["amount_b"]),
                )
            ],
            [ctx.payer],
            f"{pool.name}: fund pool",
        )
        ctx.store.advance(
            pool.name,
            Stage.POOL_SHELL_READY,
            pubkeys={
                _key(pool.name, "funded"): True,
                _key(pool.name, "funded_amount_a"): plan["amount_a"],
                _key(pool.name, "funded_amount_b"): plan["amount_b"],
            },
        )

    config = Pubkey.from_string(shared["config"])
    authority = Pubkey.from_string(pubkeys[_key(pool.name, "authority")])
    pool_mint = Pubkey.from_string(pubkeys[_key(pool.name, "mint")])
    pool_token = Pubkey.from_string(pubkeys[_key(pool.name, "token")])
    if pool.stable:
        init_ix = ix.stable_initialize(
            ix.StableInitializeParams(
                program_id=ctx.program_id,
                config=config,
                token_swap=swap_kp.pubkey(),
                authority=authority,
                admin_fee_a=fee_a,
                admin_fee_b=fee_b,
                token_a=account_a,
                token_b=account_b,
                pool_mint=pool_mint,
                pool_token=pool_token,
                admin=ctx.admin.pubkey(),
                nonce=nonce,
                slope=pool.slope,
                token_a_decimals=token_a.decimals,
                token_b_decimals=token_b.decimals,
                token_a_amount=plan["amount_a"],
                token_b_amount=plan["amount_b"],
            )
        )
    else:
        init_ix = ix.initialize(
            ix.InitializeParams(
                program_id=ctx.program_id,
                config=config,
                token_swap=swap_kp.pubkey(),
                authority=authority,
                admin_fee_a=fee_a,
                admin_fee_b=fee_b,
                token_a=account_a,
                token_b=account_b,
                pool_mint=pool_mint,
                pool_token=pool_token,
                pyth_product_a=plan["pyth_product_a"],
                pyth_price_a=plan["pyth_price_a"],
                pyth_product_b=plan["pyth_product_b"],
                pyth_price_b=plan["pyth_price_b"],
                admin=ctx.admin.pubkey(),
                serum_market=plan["serum_market"],
                serum_bids=plan["serum_bids"],
                serum_asks=plan["serum_asks"],
                nonce=nonce,
                slope=pool.slope,
                mid_price=Decimal(DEFAULT_MID_PRICE),
                token_a_decimals=token_a.decimals,
                token_b_decimals=token_b.decimals,
                token_a_amount=plan["amount_a"],
                token_b_amount=plan["amount_b"],
                oracle_priority_flags=int(pool.oracle_priority),
            )
        )
    ctx.send(
        [
            _create_program_account(ctx, swap_kp.pubkey(), SWAP_INFO_SIZE, ctx.rent(SWAP_INFO_SIZE) * 2),
            init_ix,
        ],
        [ctx.payer, swap_kp, ctx.admin],
        f"{pool.name}: initialize swap",
    )

    record: Dict[str, Any] = {"adminFeeA": str(fee_a), "adminFeeB": str(fee_b)}
    if not pool.stable:
        record["oraclePriority"] = pool.oracle_priority.name
    if not pool.stable and pool.oracle_priority == OraclePriority.SERUM_ONLY:
        record.update(
            serumMarket=str(plan["serum_market"]),
            serumBids=str(plan["serum_bids"]),
            serumAsks=str(plan["serum_asks"]),
        )
    ctx.store.advance(pool.name, Stage.INITIALIZED, pubkeys=record)


def init_farm_pool(ctx: DeployContext, pool: PoolSpec, shared: Dict[str, Any]) -> None:
    pubkeys = ctx.store.pool_pubkeys(pool.name)
    farm_kp = ctx.new_keypair()
    reserve_kp = ctx.new_keypair()
    farm_authority, bump_seed = find_authority(farm_kp.pubkey(), ctx.program_id)
    pool_mint = Pubkey.from_string(pubkeys[_key(pool.name, "mint")])
    swap = Pubkey.from_string(pubkeys[_key(pool.name, "swap")])

    instructions = _create_token_account(
        ctx, reserve_kp.pubkey(), pool_mint, farm_authority, ctx.rent(TOKEN_ACCOUNT_SIZE)
    )
    instructions += [
        _create_program_account(ctx, farm_kp.pubkey(), FARM_INFO_SIZE, ctx.rent(FARM_INFO_SIZE)),
        ix.farm_initialize(
            program_id=ctx.program_id,
            config=Pubkey.from_string(shared["config"]),
            swap=swap,
            farm_pool=farm_kp.pubkey(),
            authority=farm_authority,
            pool_token=reserve_kp.pubkey(),
            admin=ctx.admin.pubkey(),
            fee_numerator=DEFAULT_FARM_FEE[0],
            fee_denominator=DEFAULT_FARM_FEE[1],
            rewards_numerator=DEFAULT_FARM_REWARDS[0],
            rewards_denominator=DEFAULT_FARM_REWARDS[1],
            bump_seed=bump_seed,
        ),
    ]
    ctx.send(instructions, [ctx.payer, reserve_kp, farm_kp, ctx.admin], f"{pool.name}: initialize farm")
    farm_key = f"farm_pool_{pool.name}"
    ctx.store.advance(
        pool.name,
        Stage.FARM_READY,
        pubkeys={
            farm_key: str(farm_kp.pubkey()),
            f"{farm_key}_reserve_token": str(reserve_kp.pubkey()),
        },
        secrets={
            farm_key: keypair_secret(farm_kp),
            f"{farm_key}_reserve_token": keypair_secret(reserve_kp),
        },
    )


def publish_result(ctx: DeployContext, pool: PoolSpec, shared: Dict[str, Any]) -> Dict[str, Any]:
    pubkeys: Dict[str, Any] = {
        "config": shared["config"],
        "deltafiMint": shared["deltafiMint"],
        "deltafiToken": shared["deltafiToken"],
        "network": ctx.config.network,
    }
    funding = {_key(pool.name, suffix) for suffix in ("funded", "funded_amount_a", "funded_amount_b")}
    pubkeys.update({k: v for k, v in ctx.store.pool_pubkeys(pool.name).items() if k not in funding})
    secrets = {"network": ctx.config.network}
    secrets.update(ctx.store.pool_secrets(pool.name))
    path = ctx.store.write_result(pool.name, pubkeys, secrets)
    logger.info("%s: wrote %s", pool.name, path)
    return pubkeys


def provision_pool(ctx: DeployContext, pool: PoolSpec, shared: Dict[str, Any]) -> Dict[str, Any]:
    """Run the creation stages a pool has not completed; return its checkpoint pubkeys."""
    if ctx.store.has_result(pool.name):
        logger.info("Pool %s has been created already, skipping", pool.name)
        pubkeys = ctx.store.read_result(pool.name)
        ctx.store.check_shared(pubkeys)
        return pubkeys

    stage = ctx.store.pool_stage(pool.name)
    if stage < Stage.TOKEN_ACCOUNTS_READY:
        create_token_accounts(ctx, pool)
    if stage < Stage.POOL_SHELL_READY:
        create_pool_shell(ctx, pool)
    if stage < Stage.INITIALIZED:
        initialize_pool(ctx, pool, shared)
    if stage < Stage.FARM_READY:
        init_farm_pool(ctx, pool, shared)
    return publish_result(ctx, pool, shared)


# ---------------------------------------------------------------------------
# Reconciliation


def rewards_update(ctx: DeployContext, pool: PoolSpec, config: Pubkey, swap: Pubkey, info: SwapInfo) -> Optional[Instruction]:
    desired = ctx.config.token(pool.token_a).rewards
    if desired is None:
        logger.info("%s: no rewards configured for %s", pool.name, pool.token_a)
        return None
    if info.rewards.values() == desired.values():
        logger.info("%s: rewards unchanged", pool.name)
        return None
    return ix.set_new_rewards(ctx.program_id, config, swap, ctx.admin.pubkey(), desired)


def farm_rewards_update(ctx: DeployContext, pool: PoolSpec, config: Pubkey, farm_pool: Pubkey, info: FarmInfo) -> Optional[Instruction]:
    desired = ctx.config.token(pool.token_a).farm_rewards
    if desired is None:
        logger.info("%s: no farm rewards configured for %s", pool.name, pool.token_a)
        return None
    if (info.rewards_numerator, info.rewards_denominator) == (desired.apr_numerator, desired.apr_denominator):
        logger.info("%s: farm rewards unchanged", pool.name)
        return None
    return ix.set_farm_rewards(ctx.program_id, config, farm_pool, ctx.admin.pubkey(), desired)


def fees_update(ctx: DeployContext, pool: PoolSpec, config: Pubkey, swap: Pubkey, info: SwapInfo) -> Optional[Instruction]:
    desired = ctx.config.fees
    if info.fees.ratios() == desired.ratios():
        logger.info("%s: fees unchanged", pool.name)
        return None
    return ix.set_new_fees(ctx.program_id, config, swap, ctx.admin.pubkey(), desired)


def slope_update(ctx: DeployContext, pool: PoolSpec, config: Pubkey, swap: Pubkey, info: SwapInfo) -> Optional[Instruction]:
    if encode_wad(info.pool_state.slope) == pool.slope:
        logger.info("%s: slope unchanged", pool.name)
        return None
    return ix.set_new_slope(ctx.program_id, config, swap, ctx.admin.pubkey(), pool.slope)


def decimals_update(ctx: DeployContext, pool: PoolSpec, config: Pubkey, swap: Pubkey, info: SwapInfo) -> Optional[Instruction]:
    """Decimals are set once; a different non-zero pair on chain is fatal."""
    desired = (ctx.config.token(pool.token_a).decimals, ctx.config.token(pool.token_b).decimals)
    current = (info.token_a_decimals, info.token_b_decimals)
    if current == desired:
        logger.info("%s: decimals already set", pool.name)
        return None
    if current == (0, 0):
        return ix.set_decimals(ctx.program_id, config, swap, ctx.admin.pubkey(), *desired)
    raise OnChainMismatchError(f"{pool.name}: on-chain decimals {current} differ from configured {desired}")


def swap_limit_update(ctx: DeployContext, pool: PoolSpec, config: Pubkey, swap: Pubkey, info: SwapInfo) -> Optional[Instruction]:
    if info.swap_out_limit_percentage == pool.swap_out_limit_percentage:
        logger.info("%s: swap limit unchanged", pool.name)
        return None
    return ix.set_swap_limit(ctx.program_id, config, swap, ctx.admin.pubkey(), pool.swap_out_limit_percentage)


def reconcile_pool(ctx: DeployContext, pool: PoolSpec, pubkeys: Dict[str, Any]) -> List[str]:
    """Send one admin instruction per differing setting; return their labels."""
    config = Pubkey.from_string(pubkeys["config"])
    swap = Pubkey.from_string(pubkeys[_key(pool.name, "swap")])
    farm_pool = Pubkey.from_string(pubkeys[f"farm_pool_{pool.name}"])
    swap_info: SwapInfo = load_swap_info(ctx.cluster, swap, ctx.program_id).data
    farm_info: FarmInfo = load_farm_info(ctx.cluster, farm_pool, ctx.program_id).data

    checks = [
        ("rewards", rewards_update(ctx, pool, config, swap, swap_info)),
        ("farm rewards", farm_rewards_update(ctx, pool, config, farm_pool, farm_info)),
        ("fees", fees_update(ctx, pool, config, swap, swap_info)),
        ("slope", slope_update(ctx, pool, config, swap, swap_info)),
        ("decimals", decimals_update(ctx, pool, config, swap, swap_info)),
        ("swap limit", swap_limit_update(ctx, pool, config, swap, swap_info)),
    ]
    sent: List[str] = []
    for what, instruction in checks:
        if instruction is None:
            continue
        label = f"{pool.name}: update {what}"
        ctx.send([instruction], [ctx.payer, ctx.admin], label)
        sent.append(label)
    ctx.store.advance(pool.name, Stage.RECONCILED)
    return sent


def preflight(ctx: DeployContext) -> None:
    """Resolve every token, mint and price the run needs; raises before anything is sent."""
    if ctx.store.load_shared() is None and ctx.config.deltafi_mint is None:
        raise ConfigurationError("deltafiMint is required to initialize the market config")
    checked: Dict[str, bool] = {}
    for pool in ctx.config.pools:
        for symbol in (pool.token_a, pool.token_b):
            if symbol not in checked:
                check_token_decimals(ctx, ctx.config.token(symbol))
                checked[symbol] = True
        if ctx.store.pool_stage(pool.name) < Stage.INITIALIZED:
            initial_amounts(ctx, pool)


def run_deployment(ctx: DeployContext) -> DeployReport:
    """Bring the config and every configured pool up to date."""
    preflight(ctx)
    shared = ensure_config(ctx)
    report = DeployReport(shared=shared)

    for pool in ctx.config.pools:
        logger.info("Processing %s pool %s", "stable" if pool.stable else "swap", pool.name)
        pubkeys = provision_pool(ctx, pool, shared)
        report.pools[pool.name] = pubkeys
        report.updates[pool.name] = reconcile_pool(ctx, pool, pubkeys)
    report.transactions = list(ctx.sent)
    return report


def set_paused(ctx: DeployContext, pool_name: str, paused: bool) -> str:
    """Pause or unpause a provisioned pool."""
    if not ctx.store.has_result(pool_name):
        raise ConfigurationError(f"Pool {pool_name} has not been deployed")
    pubkeys = ctx.store.read_result(pool_name)
    config = Pubkey.from_string(pubkeys["config"])
    swap = Pubkey.from_string(pubkeys[_key(pool_name, "swap")])
    build = ix.pause if paused else ix.unpause
    return ctx.send(
        [build(ctx.program_id, config, swap, ctx.admin.pubkey())],
        [ctx.payer, ctx.admin],
        f"{pool_name}: {'pause' if paused else 'unpause'}",
    )
