"""In-memory cluster that applies the swap program's effects for deploy tests."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from solders.system_program import decode_create_account
from spl.token.constants import ASSOCIATED_TOKEN_PROGRAM_ID, TOKEN_PROGRAM_ID

from swapforge import constants as c
from swapforge.cluster import AccountInfo, Cluster
from swapforge.constants import MINT_DECIMALS_OFFSET, MINT_SIZE, TOKEN_ACCOUNT_SIZE, WAD
from swapforge.errors import TransactionError
from swapforge.instructions import (
    ADMIN_INITIALIZE_DATA_LAYOUT,
    DECIMALS_LAYOUT,
    FARM_INITIALIZE_DATA_LAYOUT,
    INITIALIZE_DATA_LAYOUT,
    SLOPE_LAYOUT,
    STABLE_INITIALIZE_DATA_LAYOUT,
    SWAP_LIMIT_LAYOUT,
)
from swapforge.layouts import (
    FARM_REWARDS_LAYOUT,
    FEES_LAYOUT,
    REWARDS_LAYOUT,
    ConfigInfo,
    FarmInfo,
    Fees,
    PoolState,
    Rewards,
    SwapInfo,
)


def keypair_factory(start: int = 1):
    """Deterministic keypairs: seed bytes 1, 2, 3, ..."""
    counter = [start]

    def make() -> Keypair:
        seed = counter[0].to_bytes(2, "little") * 16
        counter[0] += 1
        return Keypair.from_seed(seed)

    return make


def mint_data(decimals: int) -> bytes:
    data = bytearray(MINT_SIZE)
    data[MINT_DECIMALS_OFFSET] = decimals
    return bytes(data)


class FakeCluster(Cluster):
    def __init__(self, program_id: Pubkey):
        self.program_id = program_id
        self.accounts: Dict[Pubkey, AccountInfo] = {}
        self.sent: List[Tuple[str, List[Instruction], List[Pubkey]]] = []
        self.fail_labels: Set[str] = set()

    # Cluster interface

    def get_account(self, pubkey: Pubkey) -> Optional[AccountInfo]:
        return self.accounts.get(pubkey)

    def get_minimum_balance_for_rent_exemption(self, size: int) -> int:
        return 1_000 + size * 10

    def send(self, instructions: Sequence[Instruction], signers: Sequence[Keypair], label: str = "") -> str:
        for pattern in list(self.fail_labels):
            if pattern in label:
                self.fail_labels.discard(pattern)
                raise TransactionError(f"{label} failed: simulated")
        for instruction in instructions:
            self._apply(instruction)
        self.sent.append((label, list(instructions), [s.pubkey() for s in signers]))
        return f"sig{len(self.sent)}"

    # helpers for tests

    def add_mint(self, mint: Pubkey, decimals: int) -> None:
        self.accounts[mint] = AccountInfo(data=mint_data(decimals), owner=TOKEN_PROGRAM_ID, lamports=1)

    def labels(self) -> List[str]:
        return [label for label, _, _ in self.sent]

    def read(self, pubkey: Pubkey, record_type):
        return record_type.decode(self.accounts[pubkey].data)

    def write(self, pubkey: Pubkey, record) -> None:
        account = self.accounts[pubkey]
        self.accounts[pubkey] = AccountInfo(data=record.encode(), owner=account.owner, lamports=account.lamports)

    # program effects

    def _apply(self, instruction: Instruction) -> None:
        program = instruction.program_id
        keys = [meta.pubkey for meta in instruction.accounts]
        if program == SYSTEM_PROGRAM_ID:
            params = decode_create_account(instruction)
            to = params["to_pubkey"]
            if to in self.accounts:
                raise TransactionError(f"account {to} already in use")
            self.accounts[to] = AccountInfo(
                data=bytes(params["space"]), owner=params["owner"], lamports=params["lamports"]
            )
        elif program == ASSOCIATED_TOKEN_PROGRAM_ID:
            self.accounts.setdefault(
                keys[1], AccountInfo(data=bytes(TOKEN_ACCOUNT_SIZE), owner=TOKEN_PROGRAM_ID, lamports=1)
            )
        elif program == TOKEN_PROGRAM_ID:
            data = bytes(instruction.data)
            if data[0] == 0:  # InitializeMint
                account = self.accounts[keys[0]]
                raw = bytearray(account.data)
                raw[MINT_DECIMALS_OFFSET] = data[1]
                self.accounts[keys[0]] = AccountInfo(data=bytes(raw), owner=account.owner, lamports=account.lamports)
        elif program == self.program_id:
            self._apply_swap_program(bytes(instruction.data), keys)

    def _apply_swap_program(self, data: bytes, keys: List[Pubkey]) -> None:
        opcode, args = data[0], data[1:]
        if opcode == c.OP_ADMIN_INITIALIZE:
            parsed = ADMIN_INITIALIZE_DATA_LAYOUT.parse(args)
            _, bump = Pubkey.find_program_address([bytes(keys[0])], self.program_id)
            self.write(
                keys[0],
                ConfigInfo(
                    version=1,
                    bump_seed=bump,
                    admin_key=keys[3],
                    deltafi_mint=keys[2],
                    pyth_program_id=keys[6],
                    fees=Fees.from_container(parsed.fees),
                    rewards=Rewards.from_container(parsed.rewards),
                    deltafi_token=keys[7],
                ),
            )
        elif opcode in (c.OP_INITIALIZE, c.OP_STABLE_INITIALIZE):
            stable = opcode == c.OP_STABLE_INITIALIZE
            parsed = (STABLE_INITIALIZE_DATA_LAYOUT if stable else INITIALIZE_DATA_LAYOUT).parse(args)
            config = self.read(keys[0], ConfigInfo)
            self.write(
                keys[1],
                SwapInfo(
                    is_initialized=True,
                    nonce=parsed.nonce,
                    swap_type=c.SWAP_TYPE_STABLE if stable else c.SWAP_TYPE_NORMAL,
                    config_key=keys[0],
                    token_a=keys[5],
                    token_b=keys[6],
                    pyth_a=Pubkey.default() if stable else keys[10],
                    pyth_b=Pubkey.default() if stable else keys[12],
                    pool_mint=keys[7],
                    admin_fee_key_a=keys[3],
                    admin_fee_key_b=keys[4],
                    fees=config.fees,
                    rewards=config.rewards,
                    pool_state=PoolState(
                        market_price=Decimal(1) if stable else parsed.mid_price,
                        slope=Decimal(parsed.slope) / WAD,
                    ),
                    token_a_decimals=parsed.token_a_decimals,
                    token_b_decimals=parsed.token_b_decimals,
                    oracle_priority_flags=0 if stable else parsed.oracle_priority_flags,
                ),
            )
        elif opcode == c.OP_FARM_INITIALIZE:
            parsed = FARM_INITIALIZE_DATA_LAYOUT.parse(args)
            swap = self.read(keys[1], SwapInfo)
            self.write(
                keys[2],
                FarmInfo(
                    is_initialized=True,
                    bump_seed=parsed.bump_seed,
                    config_key=keys[0],
                    pool_mint=swap.pool_mint,
                    pool_token=keys[4],
                    fee_numerator=parsed.fee_numerator,
                    fee_denominator=parsed.fee_denominator,
                    rewards_numerator=parsed.rewards_numerator,
                    rewards_denominator=parsed.rewards_denominator,
                ),
            )
        elif opcode == c.OP_SET_FARM_REWARDS:
            parsed = FARM_REWARDS_LAYOUT.parse(args)
            farm = self.read(keys[1], FarmInfo)
            farm.rewards_numerator = parsed.apr_numerator
            farm.rewards_denominator = parsed.apr_denominator
            self.write(keys[1], farm)
        else:
            swap = self.read(keys[1], SwapInfo)
            if opcode == c.OP_PAUSE:
                swap.is_paused = True
            elif opcode == c.OP_UNPAUSE:
                swap.is_paused = False
            elif opcode == c.OP_SET_NEW_FEES:
                swap.fees = Fees.from_container(FEES_LAYOUT.parse(args))
            elif opcode == c.OP_SET_NEW_REWARDS:
                swap.rewards = Rewards.from_container(REWARDS_LAYOUT.parse(args))
            elif opcode == c.OP_SET_NEW_SLOPE:
                swap.pool_state.slope = Decimal(SLOPE_LAYOUT.parse(args).slope) / WAD
            elif opcode == c.OP_SET_DECIMALS:
                parsed = DECIMALS_LAYOUT.parse(args)
                swap.token_a_decimals = parsed.token_a_decimals
                swap.token_b_decimals = parsed.token_b_decimals
            elif opcode == c.OP_SET_SWAP_LIMIT:
                swap.swap_out_limit_percentage = SWAP_LIMIT_LAYOUT.parse(args).swap_out_limit_percentage
            else:
                raise TransactionError(f"unsupported opcode {opcode}")
            self.write(keys[1], swap)


_sample_keys = keypair_factory(500)
SAMPLE_KEYS = {name: str(_sample_keys().pubkey()) for name in (
    "SOL", "USDC", "USDT", "DELTAFI",
    "SOL/USD product", "SOL/USD price", "USDC/USD product", "USDC/USD price",
)}


def sample_config() -> Dict[str, Any]:
    """One oracle-priced pool and one stable pool over three tokens."""
    return {
        "network": "localhost",
        "adminKeyName": "admin",
        "payerKeyName": "payer",
        "deltafiMint": SAMPLE_KEYS["DELTAFI"],
        "fees": {
            "adminTradeFeeNumerator": 1,
            "adminTradeFeeDenominator": 5,
            "adminWithdrawFeeNumerator": 1,
            "adminWithdrawFeeDenominator": 5,
            "tradeFeeNumerator": 3,
            "tradeFeeDenominator": 1000,
            "withdrawFeeNumerator": 1,
            "withdrawFeeDenominator": 1000,
        },
        "tokens": [
            {
                "symbol": "SOL",
                "mint": SAMPLE_KEYS["SOL"],
                "decimals": 9,
                "pythProductName": "SOL/USD",
                "name": "Solana",
                "rewards": {
                    "decimals": 9,
                    "tradeRewardNumerator": 1,
                    "tradeRewardDenominator": 1000,
                    "tradeRewardCap": 100_000_000,
                },
                "farmRewards": {"aprNumerator": 1, "aprDenominator": 100},
            },
            {
                "symbol": "USDC",
                "mint": SAMPLE_KEYS["USDC"],
                "decimals": 6,
                "pythProductName": "USDC/USD",
                "rewards": {
                    "decimals": 6,
                    "tradeRewardNumerator": 1,
                    "tradeRewardDenominator": 2000,
                    "tradeRewardCap": 1_000_000,
                },
            },
            {"symbol": "USDT", "mint": SAMPLE_KEYS["USDT"], "decimals": 6, "fixedUsdPrice": 1},
        ],
        "pyth": [
            {
                "productName": "SOL/USD",
                "product": SAMPLE_KEYS["SOL/USD product"],
                "price": SAMPLE_KEYS["SOL/USD price"],
            },
            {
                "productName": "USDC/USD",
                "product": SAMPLE_KEYS["USDC/USD product"],
                "price": SAMPLE_KEYS["USDC/USD price"],
            },
        ],
        "prices": {"SOL/USD": 25, "USDC/USD": 1},
        "swapPools": [
            {
                "tokenA": "SOL",
                "tokenB": "USDC",
                "slope": "500000000000",
                "swapOutLimitPercentage": 10,
                "oraclePriority": "PYTH_ONLY",
            }
        ],
        "stableSwapPools": [
            {"tokenA": "USDC", "tokenB": "USDT", "slope": 1_000_000_000, "swapOutLimitPercentage": 5}
        ],
    }


def sample_cluster(program_id: Pubkey) -> FakeCluster:
    cluster = FakeCluster(program_id)
    for symbol, decimals in (("SOL", 9), ("USDC", 6), ("USDT", 6)):
        cluster.add_mint(Pubkey.from_string(SAMPLE_KEYS[symbol]), decimals)
    return cluster
