from __future__ import annotations

import argparse
import json
import logging
import os
from pathlib import Path
import sys
from typing import Any, Optional

from solders.pubkey import Pubkey

from .accounts import parse_account
from .cluster import AccountInfo, RpcCluster, cluster_url
from .deploy import DeployContext, run_deployment, set_paused
from .errors import SwapforgeError, ValidationError
from .frontend import generate_frontend_config
from .layouts import LAYOUTS, PROGRAM_ACCOUNT_TYPES, Record
from .manifest import load_config_file, load_deploy_config
from .state import DeploymentStore
from .util import camel_to_snake, deployments_root, load_named_keypair, write_json
from .validate import validate_config

CONFIG_NAMES = ("config.json", "config.toml")


def _deployment_dir(name: str) -> Path:
    return deployments_root() / name


def _config_path(args: argparse.Namespace) -> Path:
    if getattr(args, "config", None):
        return Path(args.config)
    root = _deployment_dir(args.name)
    for candidate in CONFIG_NAMES:
        path = root / candidate
        if path.exists():
            return path
    raise FileNotFoundError(f"No config.json or config.toml in {root}")


def _context(args: argparse.Namespace) -> DeployContext:
    config = load_deploy_config(_config_path(args))
    store = DeploymentStore(_deployment_dir(args.name), name=args.name)
    cluster = RpcCluster(args.rpc_url or cluster_url(config.network), max_retries=args.max_retries)
    return DeployContext(
        cluster=cluster,
        config=config,
        store=store,
        admin=load_named_keypair(config.admin_key_name),
        payer=load_named_keypair(config.payer_key_name),
    )


def _jsonable(value: Any) -> Any:
    if isinstance(value, Record):
        return {k: _jsonable(v) for k, v in value.to_dict().items()}
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, Pubkey):
        return str(value)
    if isinstance(value, (bool, int, str)) or value is None:
        return value
    return str(value)


def _cmd_validate(args: argparse.Namespace) -> int:
    config = load_config_file(args.config)
    errors = validate_config(config)
    if errors:
        if args.json:
            for msg in errors:
                print(f"ERROR: {msg}")
        else:
            print("Config validation failed:\n")
            for msg in errors:
                print(f"- {msg}")
        return 1
    print("Config valid")
    return 0


def _cmd_deploy(args: argparse.Namespace) -> int:
    store = DeploymentStore(_deployment_dir(args.name), name=args.name)
    if args.reset:
        store.reset()
    ctx = _context(args)
    ctx.store.save_combined_config(ctx.config.raw)
    report = run_deployment(ctx)
    print("Config:", report.shared["config"])
    for pool_name, updates in report.updates.items():
        if not updates:
            print(f"{pool_name}: up to date")
        for label in updates:
            print(label)
    print(f"Transactions sent: {len(report.transactions)}")
    return 0


def _cmd_frontend(args: argparse.Namespace) -> int:
    config = load_deploy_config(_config_path(args))
    store = DeploymentStore(_deployment_dir(args.name), name=args.name)
    frontend = generate_frontend_config(config, store)
    if frontend is None:
        print(f"Deployment {args.name} has no output yet")
        return 1
    if args.out:
        write_json(Path(args.out), frontend)
        print("Wrote", args.out)
    else:
        print(json.dumps(frontend, indent=2))
    return 0


def _cmd_show(args: argparse.Namespace) -> int:
    store = DeploymentStore(_deployment_dir(args.name), name=args.name)
    shared = store.load_shared()
    print("config:", shared["config"] if shared else "(not created)")
    pools = set(store.load_state()["pools"]) | set(store.iter_results())
    for pool_name in sorted(pools):
        print(f"{pool_name}: {store.pool_stage(pool_name).label}")
    return 0


def _cmd_decode(args: argparse.Namespace) -> int:
    if args.type == "auto":
        candidates = PROGRAM_ACCOUNT_TYPES
    else:
        wanted = {camel_to_snake(name).replace("_", ""): cls for name, cls in LAYOUTS.items()}
        key = args.type.replace("_", "").replace("-", "").lower()
        if key not in wanted:
            raise ValueError(f"Unknown account type: {args.type} (known: {', '.join(sorted(LAYOUTS))})")
        candidates = (wanted[key],)

    if args.file:
        data = Path(args.file).read_bytes()
        pubkey = Pubkey.default()
        account: Optional[AccountInfo] = AccountInfo(data=data, owner=Pubkey.default())
    else:
        pubkey = Pubkey.from_string(args.address)
        account = RpcCluster(args.rpc_url or cluster_url(args.network)).get_account(pubkey)
    parsed = parse_account(pubkey, account, candidates)
    if parsed is None:
        print("Account is missing, not initialized, or matches no known layout")
        return 1
    print(type(parsed.data).__name__)
    print(json.dumps(_jsonable(parsed.data), indent=2))
    return 0


def _cmd_pause(args: argparse.Namespace) -> int:
    ctx = _context(args)
    signature = set_paused(ctx, args.pool, paused=args.cmd == "pause")
    print(f"{args.cmd}d {args.pool}: {signature}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog=os.path.basename(sys.argv[0]))
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_validate = sub.add_parser("validate", help="Validate a deployment config")
    p_validate.add_argument("config", help="Path to config.json or config.toml")
    p_validate.add_argument("--json", action="store_true", help="Emit errors as lines")
    p_validate.set_defaults(func=_cmd_validate)

    def deployment_args(p: argparse.ArgumentParser) -> None:
        p.add_argument("name", help="Deployment name (directory under $SWAPFORGE_HOME)")
        p.add_argument("--config", help="Deployment config (default: <deployment>/config.json)")
        p.add_argument("--rpc-url", help="Override the cluster endpoint")
        p.add_argument("--max-retries", type=int, default=5, help="Transaction submission attempts")

    p_deploy = sub.add_parser("deploy", help="Create or update a deployment")
    deployment_args(p_deploy)
    p_deploy.add_argument("--reset", action="store_true", help="Discard previous checkpoints (not on mainnet)")
    p_deploy.set_defaults(func=_cmd_deploy)

    p_frontend = sub.add_parser("frontend", help="Export the frontend config")
    p_frontend.add_argument("name", help="Deployment name")
    p_frontend.add_argument("--config", help="Deployment config (default: <deployment>/config.json)")
    p_frontend.add_argument("--out", help="Write to this file instead of stdout")
    p_frontend.set_defaults(func=_cmd_frontend)

    p_show = sub.add_parser("show", help="Print the stage of each pool")
    p_show.add_argument("name", help="Deployment name")
    p_show.set_defaults(func=_cmd_show)

    p_decode = sub.add_parser("decode", help="Decode a program account")
    p_decode.add_argument("type", help="Account type (ConfigInfo, SwapInfo, FarmInfo, ...) or 'auto'")
    source = p_decode.add_mutually_exclusive_group(required=True)
    source.add_argument("--file", help="Raw account data file")
    source.add_argument("--address", help="Account address to fetch")
    p_decode.add_argument("--network", default="devnet", help="Cluster for --address")
    p_decode.add_argument("--rpc-url", help="Override the cluster endpoint")
    p_decode.set_defaults(func=_cmd_decode)

    for cmd in ("pause", "unpause"):
        p = sub.add_parser(cmd, help=f"{cmd.capitalize()} a deployed pool")
        deployment_args(p)
        p.add_argument("pool", help="Pool name, e.g. SOL-USDC")
        p.set_defaults(func=_cmd_pause)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return args.func(args)
    except FileNotFoundError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    except ValidationError as exc:
        for msg in exc.errors:
            print(f"- {msg}", file=sys.stderr)
        return 1
    except (SwapforgeError, ValueError) as exc:
        print(str(exc), file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
