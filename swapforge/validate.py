"""Deployment config validation."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Set, Tuple

from solders.pubkey import Pubkey

from .constants import CLUSTER_URLS, ORACLE_PRIORITY_NAMES, U64_MAX, WAD
from .errors import ValidationError

FEE_PAIRS = (
    ("adminTradeFeeNumerator", "adminTradeFeeDenominator"),
    ("adminWithdrawFeeNumerator", "adminWithdrawFeeDenominator"),
    ("tradeFeeNumerator", "tradeFeeDenominator"),
    ("withdrawFeeNumerator", "withdrawFeeDenominator"),
)

REQUIRED_KEYS = ("network", "adminKeyName", "payerKeyName", "fees", "swapPools", "stableSwapPools")
OPTIONAL_KEYS = ("swapProgramId", "deltafiMint", "tokens", "pyth", "serum", "prices", "configRewards")

REWARD_KEYS = ("decimals", "tradeRewardNumerator", "tradeRewardDenominator", "tradeRewardCap")
FARM_REWARD_KEYS = ("aprNumerator", "aprDenominator")


def parse_slope(raw: Any) -> Optional[int]:
    """Slope as a raw WAD integer, or None if it is not an integer."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str):
        text = raw.strip()
        if text.isascii() and text.isdigit():
            return int(text)
    return None


def is_pubkey(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        Pubkey.from_string(value)
    except ValueError:
        return False
    return True


def _is_uint(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= U64_MAX


def pair_key(token_a: str, token_b: str) -> Tuple[str, str]:
    """Unordered pair identity."""
    return (token_a, token_b) if token_a <= token_b else (token_b, token_a)


def validate_config(config: Dict[str, Any]) -> List[str]:
    errors: List[str] = []

    def err(msg: str) -> None:
        errors.append(msg)

    for key in REQUIRED_KEYS:
        if key not in config:
            err(f"Missing required key: {key}")

    allowed = set(REQUIRED_KEYS) | set(OPTIONAL_KEYS)
    for key in config.keys():
        if key not in allowed:
            err(f"Unknown top-level key: {key}")

    network = config.get("network")
    if network is not None and network not in CLUSTER_URLS:
        err(f"network must be one of {sorted(CLUSTER_URLS)}")

    for key in ("swapProgramId", "deltafiMint"):
        if key in config and not is_pubkey(config[key]):
            err(f"{key} must be a base58 public key")

    for key in ("adminKeyName", "payerKeyName"):
        value = config.get(key)
        if value is not None and (not isinstance(value, str) or not value):
            err(f"{key} must be a non-empty string")

    fees = config.get("fees")
    if fees is not None:
        if not isinstance(fees, dict):
            err("fees must be a table")
        else:
            for num_key, den_key in FEE_PAIRS:
                num = fees.get(num_key)
                den = fees.get(den_key)
                if not _is_uint(num):
                    err(f"fees.{num_key} must be a u64 integer")
                    continue
                if not _is_uint(den):
                    err(f"fees.{den_key} must be a u64 integer")
                    continue
                if den == 0:
                    err(f"fees.{den_key} must be > 0")
                elif num > den:
                    err(f"fees.{num_key} must be <= fees.{den_key}")
            known = {k for pair in FEE_PAIRS for k in pair}
            for key in fees:
                if key not in known:
                    err(f"Unknown fee key: {key}")

    config_rewards = config.get("configRewards")
    if config_rewards is not None:
        if not isinstance(config_rewards, dict):
            err("configRewards must be a table")
        else:
            for key in REWARD_KEYS:
                if not _is_uint(config_rewards.get(key)):
                    err(f"configRewards.{key} must be a u64 integer")
            for key in config_rewards:
                if key not in REWARD_KEYS:
                    err(f"Unknown configRewards key: {key}")

    tokens = config.get("tokens")
    # pools may only use listed tokens; an absent list lists none
    symbols: Optional[Set[str]] = set()
    if tokens is not None:
        if not isinstance(tokens, list):
            err("tokens must be an array")
            symbols = None
        else:
            for i, token in enumerate(tokens):
                _validate_token(token, i, symbols, err)

    seen_pairs: Set[Tuple[str, str]] = set()
    for list_key, stable in (("swapPools", False), ("stableSwapPools", True)):
        pools = config.get(list_key)
        if pools is None:
            continue
        if not isinstance(pools, list):
            err(f"{list_key} must be an array")
            continue
        for i, pool in enumerate(pools):
            _validate_pool(pool, f"{list_key}[{i}]", stable, symbols, seen_pairs, err)

    return errors


def _validate_token(token: Any, index: int, symbols: Set[str], err) -> None:
    where = f"tokens[{index}]"
    if not isinstance(token, dict):
        err(f"{where} must be a table")
        return
    symbol = token.get("symbol")
    if not isinstance(symbol, str) or not symbol:
        err(f"{where}.symbol must be a non-empty string")
    elif symbol in symbols:
        err(f"{where}.symbol duplicates {symbol}")
    else:
        symbols.add(symbol)
        where = f"token {symbol}"
    if not is_pubkey(token.get("mint")):
        err(f"{where}.mint must be a base58 public key")
    decimals = token.get("decimals")
    if not isinstance(decimals, int) or isinstance(decimals, bool) or not 0 <= decimals <= 255:
        err(f"{where}.decimals must be an integer in [0, 255]")
        decimals = None
    price = token.get("fixedUsdPrice")
    if price is not None and (isinstance(price, bool) or not isinstance(price, (int, float, str))):
        err(f"{where}.fixedUsdPrice must be a number")

    rewards = token.get("rewards")
    if rewards is not None:
        if not isinstance(rewards, dict):
            err(f"{where}.rewards must be a table")
        else:
            for key in REWARD_KEYS:
                if not _is_uint(rewards.get(key)):
                    err(f"{where}.rewards.{key} must be a u64 integer")
            for key in rewards:
                if key not in REWARD_KEYS:
                    err(f"Unknown {where}.rewards key: {key}")
            if decimals is not None and rewards.get("decimals") != decimals:
                err(f"{where}.rewards.decimals {rewards.get('decimals')} does not match token decimals {decimals}")
    farm = token.get("farmRewards")
    if farm is not None:
        if not isinstance(farm, dict):
            err(f"{where}.farmRewards must be a table")
        else:
            for key in FARM_REWARD_KEYS:
                if not _is_uint(farm.get(key)):
                    err(f"{where}.farmRewards.{key} must be a u64 integer")
            for key in farm:
                if key not in FARM_REWARD_KEYS:
                    err(f"Unknown {where}.farmRewards key: {key}")


def _validate_pool(
    pool: Any,
    where: str,
    stable: bool,
    symbols: Optional[Set[str]],
    seen_pairs: Set[Tuple[str, str]],
    err,
) -> None:
    if not isinstance(pool, dict):
        err(f"{where} must be a table")
        return
    token_a = pool.get("tokenA")
    token_b = pool.get("tokenB")
    if not isinstance(token_a, str) or not isinstance(token_b, str):
        err(f"{where} must name tokenA and tokenB")
    else:
        where = f"{where} ({token_a}-{token_b})"
        if token_a == token_b:
            err(f"{where}: tokenA and tokenB must differ")
        key = pair_key(token_a, token_b)
        if key in seen_pairs:
            err(f"{where}: duplicate pool pair")
        seen_pairs.add(key)
        if symbols is not None:
            for symbol in (token_a, token_b):
                if symbol not in symbols:
                    err(f"{where}: unknown token {symbol}")

    slope = parse_slope(pool.get("slope"))
    if slope is None:
        err(f"{where}: slope must be an integer (or integer string)")
    elif not 0 <= slope < WAD:
        err(f"{where}: slope must be in [0, {WAD})")

    limit = pool.get("swapOutLimitPercentage")
    if not isinstance(limit, int) or isinstance(limit, bool) or not 0 <= limit <= 100:
        err(f"{where}: swapOutLimitPercentage must be an integer in [0, 100]")

    priority = pool.get("oraclePriority")
    if not stable and priority not in ORACLE_PRIORITY_NAMES:
        err(f"{where}: oraclePriority must be one of {', '.join(ORACLE_PRIORITY_NAMES)}")
    elif stable and priority is not None and priority not in ORACLE_PRIORITY_NAMES:
        err(f"{where}: oraclePriority must be one of {', '.join(ORACLE_PRIORITY_NAMES)}")


def raise_on_errors(errors: List[str]) -> None:
    if errors:
        raise ValidationError(errors)
