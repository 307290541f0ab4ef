"""Account parsing and address derivation for the swap program."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Sequence, Tuple, Type

from solders.pubkey import Pubkey

from .cluster import AccountInfo, Cluster
from .codec import U8
from .constants import MINT_DECIMALS_OFFSET, MINT_SIZE, REFERRER_SEED
from .errors import AccountNotFoundError, CodecRangeError
from .layouts import (
    PROGRAM_ACCOUNT_TYPES,
    ConfigInfo,
    FarmInfo,
    FarmUser,
    Record,
    SwapInfo,
    UserReferrerData,
    assert_distinct_spans,
)


@dataclass
class ParsedAccount:
    pubkey: Pubkey
    account: AccountInfo
    data: Any


def parse_account(
    pubkey: Pubkey,
    account: Optional[AccountInfo],
    candidates: Sequence[Type[Record]] = PROGRAM_ACCOUNT_TYPES,
) -> Optional[ParsedAccount]:
    """Decode ``account`` as whichever candidate layout matches its length.

    Returns None when nothing matches the length or the decoded record is
    not initialized.
    """
    if account is None:
        return None
    assert_distinct_spans(*candidates)
    data = bytes(account.data)
    for record_type in candidates:
        if len(data) != record_type.SIZE:
            continue
        record = record_type.decode(data)
        if not record.initialized:
            return None
        return ParsedAccount(pubkey=pubkey, account=account, data=record)
    return None


def _parse_as(record_type: Type[Record], pubkey: Pubkey, account: Optional[AccountInfo]) -> Optional[ParsedAccount]:
    return parse_account(pubkey, account, (record_type,))


def parse_config_info(pubkey: Pubkey, account: Optional[AccountInfo]) -> Optional[ParsedAccount]:
    return _parse_as(ConfigInfo, pubkey, account)


def parse_swap_info(pubkey: Pubkey, account: Optional[AccountInfo]) -> Optional[ParsedAccount]:
    return _parse_as(SwapInfo, pubkey, account)


def parse_farm_info(pubkey: Pubkey, account: Optional[AccountInfo]) -> Optional[ParsedAccount]:
    return _parse_as(FarmInfo, pubkey, account)


def parse_farm_user(pubkey: Pubkey, account: Optional[AccountInfo]) -> Optional[ParsedAccount]:
    return _parse_as(FarmUser, pubkey, account)


def parse_user_referrer_data(pubkey: Pubkey, account: Optional[AccountInfo]) -> Optional[ParsedAccount]:
    return _parse_as(UserReferrerData, pubkey, account)


def _load(
    cluster: Cluster,
    record_type: Type[Record],
    pubkey: Pubkey,
    program_id: Optional[Pubkey],
    label: str,
) -> ParsedAccount:
    account = cluster.get_account(pubkey)
    if account is None:
        raise AccountNotFoundError(f"Failed to load {label} account {pubkey}: not found")
    if program_id is not None and account.owner != program_id:
        raise AccountNotFoundError(
            f"Failed to load {label} account {pubkey}: owned by {account.owner}, expected {program_id}"
        )
    parsed = _parse_as(record_type, pubkey, account)
    if parsed is None:
        raise AccountNotFoundError(f"Failed to load {label} account {pubkey}: not initialized or malformed")
    return parsed


def load_config(cluster: Cluster, pubkey: Pubkey, program_id: Optional[Pubkey] = None) -> ParsedAccount:
    return _load(cluster, ConfigInfo, pubkey, program_id, "config")


def load_swap_info(cluster: Cluster, pubkey: Pubkey, program_id: Optional[Pubkey] = None) -> ParsedAccount:
    return _load(cluster, SwapInfo, pubkey, program_id, "swap")


def load_farm_info(cluster: Cluster, pubkey: Pubkey, program_id: Optional[Pubkey] = None) -> ParsedAccount:
    return _load(cluster, FarmInfo, pubkey, program_id, "farm")


def load_farm_user(cluster: Cluster, pubkey: Pubkey, program_id: Optional[Pubkey] = None) -> ParsedAccount:
    return _load(cluster, FarmUser, pubkey, program_id, "farm user")


def load_user_referrer_data(cluster: Cluster, pubkey: Pubkey, program_id: Optional[Pubkey] = None) -> ParsedAccount:
    return _load(cluster, UserReferrerData, pubkey, program_id, "user referrer")


def find_authority(account: Pubkey, program_id: Pubkey) -> Tuple[Pubkey, int]:
    """Program-derived authority of a swap, config or farm account."""
    return Pubkey.find_program_address([bytes(account)], program_id)


def referrer_data_address(owner: Pubkey, program_id: Pubkey) -> Pubkey:
    return Pubkey.create_with_seed(owner, REFERRER_SEED, program_id)


def decode_mint_decimals(data: bytes) -> int:
    """Decimals of an SPL token mint account."""
    if len(data) != MINT_SIZE:
        raise CodecRangeError(f"mint account expects {MINT_SIZE} bytes, got {len(data)}")
    return U8.decode(data, MINT_DECIMALS_OFFSET)


def load_mint_decimals(cluster: Cluster, mint: Pubkey) -> int:
    account = cluster.get_account(mint)
    if account is None:
        raise AccountNotFoundError(f"Failed to load mint account {mint}: not found")
    return decode_mint_decimals(account.data)
