"""Program ids, opcodes and sizes for the swap program."""

from solders.pubkey import Pubkey

SWAP_PROGRAM_ID = Pubkey.from_string("DEH6htv2rzSkpC3aFK7VKiCiPrpoeQ4CXQboAKPsPgRL")

PYTH_PROGRAM_IDS = {
    "mainnet-beta": Pubkey.from_string("FsJ3A3u2vn5cTVofAjvy6y5kwABJAqYWpe4975bi2epH"),
    "testnet": Pubkey.from_string("8tfDNiaEyrV6Q1U4DEXrEigs9DoDtkugzFbybENEbCDz"),
    "devnet": Pubkey.from_string("gSbePebfvPy7tRqimPoVecS2UsBvYv46ynrzWocc92s"),
    "localhost": Pubkey.from_string("8tfDNiaEyrV6Q1U4DEXrEigs9DoDtkugzFbybENEbCDz"),
}

CLUSTER_URLS = {
    "mainnet-beta": "https://api.mainnet-beta.solana.com",
    "testnet": "https://api.testnet.solana.com",
    "devnet": "https://api.devnet.solana.com",
    "localhost": "http://127.0.0.1:8899",
}

# Placeholder for oracle accounts a pool does not read.
INVALID_ORACLE_ADDRESS = Pubkey.from_string("66666666666666666666666666666666666666666666")

WAD = 10**12
DEFAULT_DECIMALS = 9
U64_MAX = 2**64 - 1

# SPL token program account sizes.
TOKEN_ACCOUNT_SIZE = 165
MINT_SIZE = 82
MINT_DECIMALS_OFFSET = 44

# Core swap opcodes.
OP_INITIALIZE = 0
OP_SWAP = 1
OP_DEPOSIT = 2
OP_WITHDRAW = 3
OP_SET_REFERRER = 4

# Stable swap opcodes.
OP_STABLE_INITIALIZE = 10
OP_STABLE_SWAP = 11
OP_STABLE_DEPOSIT = 12
OP_STABLE_WITHDRAW = 13

# Farm opcodes.
OP_FARM_INITIALIZE = 20
OP_FARM_INITIALIZE_USER = 21
OP_FARM_CLAIM = 22
OP_FARM_REFRESH = 23
OP_FARM_DEPOSIT = 24
OP_FARM_WITHDRAW = 25

# Admin opcodes.
OP_ADMIN_INITIALIZE = 100
OP_PAUSE = 101
OP_UNPAUSE = 102
OP_SET_FEE_ACCOUNT = 103
OP_COMMIT_NEW_ADMIN = 104
OP_SET_NEW_FEES = 105
OP_SET_NEW_REWARDS = 106
OP_SET_FARM_REWARDS = 107
OP_SET_NEW_SLOPE = 108
OP_SET_DECIMALS = 109
OP_SET_SWAP_LIMIT = 110

SWAP_TYPE_NORMAL = 0
SWAP_TYPE_STABLE = 1

SWAP_DIRECTION_SELL_BASE = 0
SWAP_DIRECTION_SELL_QUOTE = 1

ORACLE_PRIORITY_NAMES = ("PYTH_ONLY", "SERUM_ONLY")

REFERRER_SEED = "referrer"

# Deployment defaults.
DEFAULT_MID_PRICE = 51
DEFAULT_FARM_FEE = (1, 1000)
DEFAULT_FARM_REWARDS = (1, 500)
DEFAULT_CONFIG_REWARDS = {
    "decimals": DEFAULT_DECIMALS,
    "trade_reward_numerator": 1,
    "trade_reward_denominator": 1000,
    "trade_reward_cap": 100_000_000,
}

NATIVE_SYMBOL = "SOL"
