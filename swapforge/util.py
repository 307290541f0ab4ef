"""Utility helpers for swapforge."""

from __future__ import annotations

from datetime import datetime, timezone
import json
import os
from pathlib import Path
import re
from typing import Any

from solders.keypair import Keypair

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")

KEY_DIR_ENV = "SWAPFORGE_KEY_DIR"
HOME_ENV = "SWAPFORGE_HOME"


def camel_to_snake(name: str) -> str:
    return _CAMEL_RE.sub("_", name).lower()


def snake_to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def key_dir() -> Path:
    return Path(os.environ.get(KEY_DIR_ENV, "~/.swapforge/keys")).expanduser()


def deployments_root() -> Path:
    return Path(os.environ.get(HOME_ENV, "~/.swapforge/deployments")).expanduser()


def load_keypair(path: str | Path) -> Keypair:
    """Read a Solana CLI keypair file (JSON array of 64 bytes)."""
    key_path = Path(path).expanduser()
    if not key_path.exists():
        raise FileNotFoundError(f"Keypair not found: {key_path}")
    raw = json.loads(key_path.read_text())
    if not isinstance(raw, list) or len(raw) != 64:
        raise ValueError(f"Keypair file must hold 64 bytes: {key_path}")
    return Keypair.from_bytes(bytes(raw))


def load_named_keypair(name: str) -> Keypair:
    return load_keypair(key_dir() / f"{name}.json")


def keypair_secret(keypair: Keypair) -> list:
    return list(bytes(keypair))


def atomic_write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_text(text)
    os.replace(tmp, path)


def write_json(path: Path, data: Any) -> None:
    atomic_write_text(path, json.dumps(data, indent=2, sort_keys=False) + "\n")


def read_json(path: Path) -> Any:
    return json.loads(path.read_text())


def timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
