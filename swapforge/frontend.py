"""Frontend config export built from a deployment's config and checkpoints."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from solders.pubkey import Pubkey

from .accounts import find_authority
from .errors import CheckpointMismatchError
from .manifest import DeployConfig
from .oracle import OraclePriority
from .state import DeploymentStore


def _pyth_entry(config: DeployConfig, product_name: Optional[str]) -> Optional[Dict[str, str]]:
    if not product_name or product_name not in config.prices.pyth_products:
        return None
    product = config.prices.pyth_products[product_name]
    return {"productName": product_name, "product": str(product.product), "price": str(product.price)}


def generate_frontend_config(config: DeployConfig, store: DeploymentStore) -> Optional[Dict[str, Any]]:
    """Project pool and token addresses into the document the web app loads.

    Returns None when the deployment has not produced a shared checkpoint yet.
    """
    shared = store.load_shared()
    if shared is None:
        return None

    market_config = shared["config"]
    market_authority, bump_seed = find_authority(Pubkey.from_string(market_config), config.program_id)
    out: Dict[str, Any] = {
        "network": config.network,
        "swapProgramId": str(config.program_id),
        "marketConfigAddress": market_config,
        "marketAuthority": str(market_authority),
        "bumpSeed": bump_seed,
        "deltafiTokenMint": shared["deltafiMint"],
        "deltafiToken": shared["deltafiToken"],
    }
    if config.network == "mainnet-beta" and config.prices.serum_program_id is not None:
        out["serumProgramId"] = str(config.prices.serum_program_id)

    used = set()
    pool_info: List[Dict[str, Any]] = []
    for pool in config.pools:
        used.update((pool.token_a, pool.token_b))
        if not store.has_result(pool.name):
            continue
        result = store.read_result(pool.name)
        if (
            result.get("config") != market_config
            or result.get("deltafiMint") != shared["deltafiMint"]
            or result.get("network") != config.network
        ):
            raise CheckpointMismatchError(f"{pool.name}: result checkpoint does not match the shared config")
        entry: Dict[str, Any] = {
            "name": pool.name,
            "base": pool.token_a,
            "quote": pool.token_b,
            "swap": result.get(f"pool_{pool.name}_swap"),
            "mint": result.get(f"pool_{pool.name}_mint"),
            "farm": result.get(f"farm_pool_{pool.name}"),
            "token": result.get(f"pool_{pool.name}_token"),
            "decimals": result.get(f"pool_{pool.name}_decimals"),
            "stable": pool.stable,
        }
        if not pool.stable:
            entry["oraclePriority"] = pool.oracle_priority.name
            if pool.oracle_priority == OraclePriority.SERUM_ONLY:
                entry["serumMarket"] = result.get("serumMarket")
                entry["serumBids"] = result.get("serumBids")
                entry["serumAsks"] = result.get("serumAsks")
        pool_info.append(entry)
    out["poolInfo"] = pool_info

    token_info: List[Dict[str, Any]] = []
    for symbol, token in config.tokens.items():
        if symbol not in used:
            continue
        token_info.append(
            {
                "pyth": _pyth_entry(config, token.pyth_product_name),
                "mint": str(token.mint),
                "symbol": symbol,
                "decimals": token.decimals,
                "name": token.name,
                "logoURI": token.logo_uri,
            }
        )
    out["tokenInfo"] = token_info
    return out
