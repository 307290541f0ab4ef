"""Cluster access: the narrow seam the deployer talks to the chain through."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import os
import time
from typing import List, Optional, Sequence

from solana.exceptions import SolanaRpcException
from solana.rpc.api import Client
from solana.rpc.commitment import Confirmed
from solana.rpc.core import RPCException
from solana.rpc.types import TxOpts
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from .constants import CLUSTER_URLS
from .errors import TransactionError

logger = logging.getLogger(__name__)

RPC_URL_ENV = "SWAPFORGE_RPC_URL"


@dataclass
class AccountInfo:
    data: bytes
    owner: Pubkey
    lamports: int = 0


def cluster_url(network: str) -> str:
    override = os.environ.get(RPC_URL_ENV)
    if override:
        return override
    try:
        return CLUSTER_URLS[network]
    except KeyError:
        raise ValueError(f"Unknown network: {network}") from None


class Cluster:
    """What the deployer needs from a cluster."""

    def get_account(self, pubkey: Pubkey) -> Optional[AccountInfo]:
        raise NotImplementedError

    def get_minimum_balance_for_rent_exemption(self, size: int) -> int:
        raise NotImplementedError

    def send(self, instructions: Sequence[Instruction], signers: Sequence[Keypair], label: str = "") -> str:
        """Submit one transaction paid by ``signers[0]`` and wait for confirmation."""
        raise NotImplementedError


class RpcCluster(Cluster):
    def __init__(self, url: str, max_retries: int = 5, retry_delay: float = 2.0, client: Optional[Client] = None):
        self.url = url
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.client = client or Client(url, commitment=Confirmed)

    def get_account(self, pubkey: Pubkey) -> Optional[AccountInfo]:
        resp = self.client.get_account_info(pubkey, commitment=Confirmed)
        account = resp.value
        if account is None:
            return None
        return AccountInfo(data=bytes(account.data), owner=account.owner, lamports=account.lamports)

    def get_minimum_balance_for_rent_exemption(self, size: int) -> int:
        return self.client.get_minimum_balance_for_rent_exemption(size).value

    def _send_once(self, instructions: Sequence[Instruction], signers: Sequence[Keypair]) -> str:
        blockhash = self.client.get_latest_blockhash(commitment=Confirmed).value.blockhash
        message = Message.new_with_blockhash(list(instructions), signers[0].pubkey(), blockhash)
        tx = Transaction(list(signers), message, blockhash)
        resp = self.client.send_transaction(tx, opts=TxOpts(preflight_commitment=Confirmed))
        signature = resp.value
        self.client.confirm_transaction(signature, commitment=Confirmed)
        return str(signature)

    def send(self, instructions: Sequence[Instruction], signers: Sequence[Keypair], label: str = "") -> str:
        if not signers:
            raise ValueError("at least one signer (the fee payer) is required")
        errors: List[str] = []
        for attempt in range(1, self.max_retries + 1):
            try:
                signature = self._send_once(instructions, signers)
            except (RPCException, SolanaRpcException) as exc:
                errors.append(str(exc))
                logger.warning("%s: attempt %d/%d failed: %s", label or "transaction", attempt, self.max_retries, exc)
                if attempt < self.max_retries:
                    time.sleep(self.retry_delay)
                continue
            logger.info("%s confirmed: %s", label or "transaction", signature)
            return signature
        raise TransactionError(
            f"{label or 'transaction'} failed after {self.max_retries} attempts: {errors[-1] if errors else 'unknown error'}"
        )
