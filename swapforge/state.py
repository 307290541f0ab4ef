"""Deployment state: per-pool stage records and the JSON checkpoint files."""

from __future__ import annotations

from enum import IntEnum
import logging
from pathlib import Path
import re
import shutil
from typing import Any, Dict, Optional

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore[no-redef]

import tomli_w

from .errors import CheckpointMismatchError
from .util import atomic_write_text, read_json, timestamp, write_json

logger = logging.getLogger(__name__)

STATE_FILE = "state.toml"
SHARED_PUBKEYS_FILE = "shared_pubkeys.json"
RESULT_PUBKEYS_FILE = "result_pubkeys.json"
RESULT_SECRETS_FILE = "result_secrets.json"
COMBINED_CONFIG_FILE = "combined-config.json"

# output/<pool>.<timestamp>/ holds results replaced by a later run.
_BACKUP_DIR_RE = re.compile(r"\.\d{8}T\d{6}Z$")


class Stage(IntEnum):
    UNSTARTED = 0
    TOKEN_ACCOUNTS_READY = 1
    POOL_SHELL_READY = 2
    INITIALIZED = 3
    FARM_READY = 4
    RECONCILED = 5

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def from_label(cls, label: str) -> "Stage":
        try:
            return cls[label.upper()]
        except KeyError:
            raise ValueError(f"Unknown stage: {label}") from None


class DeploymentStore:
    """Files of one named deployment under ``root``.

    ``state.toml`` records each pool's stage and public addresses,
    ``secrets/<pool>.json`` the generated keypairs, and ``output/`` the
    checkpoint documents other tooling reads.
    """

    def __init__(self, root: str | Path, name: Optional[str] = None):
        self.root = Path(root)
        self.name = name or self.root.name
        self.state_path = self.root / STATE_FILE
        self.output_dir = self.root / "output"
        self.secrets_dir = self.root / "secrets"
        self.shared_path = self.output_dir / SHARED_PUBKEYS_FILE
        self._state: Optional[Dict[str, Any]] = None

    # state.toml

    def load_state(self) -> Dict[str, Any]:
        if self._state is None:
            if self.state_path.exists():
                self._state = tomllib.loads(self.state_path.read_text())
            else:
                self._state = {"deployment": {"name": self.name}, "pools": {}}
            self._state.setdefault("pools", {})
        return self._state

    def save_state(self) -> None:
        state = self.load_state()
        atomic_write_text(self.state_path, tomli_w.dumps(state))

    def _pool(self, pool_name: str) -> Dict[str, Any]:
        pools = self.load_state()["pools"]
        return pools.setdefault(pool_name, {"stage": Stage.UNSTARTED.label, "pubkeys": {}})

    def pool_stage(self, pool_name: str) -> Stage:
        entry = self.load_state()["pools"].get(pool_name)
        if entry is None:
            return Stage.RECONCILED if self.has_result(pool_name) else Stage.UNSTARTED
        return Stage.from_label(entry.get("stage", Stage.UNSTARTED.label))

    def pool_pubkeys(self, pool_name: str) -> Dict[str, Any]:
        entry = self.load_state()["pools"].get(pool_name)
        if entry is None and self.has_result(pool_name):
            return self.read_result(pool_name)
        return dict((entry or {}).get("pubkeys", {}))

    def pool_secrets(self, pool_name: str) -> Dict[str, Any]:
        path = self.secrets_dir / f"{pool_name}.json"
        return read_json(path) if path.exists() else {}

    def advance(
        self,
        pool_name: str,
        stage: Stage,
        pubkeys: Optional[Dict[str, Any]] = None,
        secrets: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Record that ``stage`` completed for ``pool_name``; call only after confirmation."""
        if secrets:
            merged = self.pool_secrets(pool_name)
            merged.update(secrets)
            write_json(self.secrets_dir / f"{pool_name}.json", merged)
        entry = self._pool(pool_name)
        entry.setdefault("pubkeys", {}).update(pubkeys or {})
        if stage > Stage.from_label(entry.get("stage", Stage.UNSTARTED.label)):
            entry["stage"] = stage.label
        self.save_state()
        logger.info("%s: %s", pool_name, stage.label)

    # output/ checkpoints

    def load_shared(self) -> Optional[Dict[str, Any]]:
        if not self.shared_path.exists():
            return None
        return read_json(self.shared_path)

    def save_shared(self, shared: Dict[str, Any]) -> None:
        write_json(self.shared_path, shared)

    def result_dir(self, pool_name: str) -> Path:
        return self.output_dir / pool_name

    def has_result(self, pool_name: str) -> bool:
        return (self.result_dir(pool_name) / RESULT_PUBKEYS_FILE).exists()

    def read_result(self, pool_name: str) -> Dict[str, Any]:
        return read_json(self.result_dir(pool_name) / RESULT_PUBKEYS_FILE)

    def write_result(self, pool_name: str, pubkeys: Dict[str, Any], secrets: Dict[str, Any]) -> Path:
        out_dir = self.result_dir(pool_name)
        existing = [out_dir / RESULT_PUBKEYS_FILE, out_dir / RESULT_SECRETS_FILE]
        if any(p.exists() for p in existing):
            backup_dir = self.output_dir / f"{pool_name}.{timestamp()}"
            backup_dir.mkdir(parents=True, exist_ok=True)
            for path in existing:
                if path.exists():
                    path.replace(backup_dir / path.name)
            logger.warning("Backed up previous %s results to %s", pool_name, backup_dir)
        write_json(out_dir / RESULT_SECRETS_FILE, secrets)
        pubkeys_path = out_dir / RESULT_PUBKEYS_FILE
        write_json(pubkeys_path, pubkeys)
        return pubkeys_path

    def iter_results(self) -> Dict[str, Dict[str, Any]]:
        results: Dict[str, Dict[str, Any]] = {}
        if not self.output_dir.exists():
            return results
        for path in sorted(self.output_dir.glob(f"*/{RESULT_PUBKEYS_FILE}")):
            if _BACKUP_DIR_RE.search(path.parent.name):
                continue
            results[path.parent.name] = read_json(path)
        return results

    def save_combined_config(self, config: Dict[str, Any]) -> None:
        write_json(self.root / COMBINED_CONFIG_FILE, config)

    def check_shared(self, pubkeys: Dict[str, Any]) -> None:
        shared = self.load_shared() or {}
        for key in ("config", "deltafiMint", "network"):
            if key in shared and key in pubkeys and shared[key] != pubkeys[key]:
                raise CheckpointMismatchError(
                    f"{key} mismatch: shared checkpoint has {shared[key]}, pool result has {pubkeys[key]}"
                )

    def reset(self) -> Optional[Path]:
        """Move existing deployment files aside; refuses mainnet deployments."""
        if self.name.startswith("mainnet"):
            raise ValueError(f"Refusing to reset mainnet deployment {self.name}")
        entries = [
            p
            for p in (self.state_path, self.output_dir, self.secrets_dir, self.root / COMBINED_CONFIG_FILE)
            if p.exists()
        ]
        if not entries:
            return None
        backup = self.root / f"backup-{timestamp()}"
        backup.mkdir(parents=True, exist_ok=True)
        for path in entries:
            shutil.move(str(path), str(backup / path.name))
        self._state = None
        logger.warning("Reset deployment %s; previous files moved to %s", self.name, backup)
        return backup
