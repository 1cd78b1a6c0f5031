"""
Solana RPC gateway: the only place the relay talks to the network.

RpcGateway is the contract the builder and verifier depend on; SolanaRpcGateway
implements it over solana-py's synchronous Client. Tests inject an in-memory
gateway instead.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any

from solana.rpc.api import Client
from solana.rpc.commitment import Confirmed, Finalized
from solana.rpc.core import TransactionExpiredBlockheightExceededError
from solana.rpc.types import TxOpts
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.signature import Signature

from presale_relay.config.env import mask_rpc_url
from presale_relay.core.exceptions import BroadcastFailed, CheckpointExpired
from presale_relay.logging import get_logger

logger = get_logger(__name__)

DEFAULT_RPC_TIMEOUT_SEC = 30.0
CONFIRM_POLL_INTERVAL_SEC = 0.5


class AccountExistence(str, Enum):
    """Result of an on-chain account lookup. UNKNOWN means the lookup itself failed."""

    CONFIRMED = "confirmed"
    CONFIRMED_ABSENT = "confirmed_absent"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Checkpoint:
    """Recent blockhash and the last block height at which it is still valid."""

    blockhash: Hash
    last_valid_block_height: int


class RpcGateway(ABC):
    """Blockchain operations needed by the relay."""

    @abstractmethod
    def account_existence(self, address: Pubkey) -> AccountExistence:
        """Look up an account. Never raises: lookup failures return UNKNOWN."""

    @abstractmethod
    def latest_checkpoint(self) -> Checkpoint:
        """Latest blockhash at the strongest commitment level."""

    @abstractmethod
    def send_raw_transaction(self, raw: bytes, max_retries: int) -> str:
        """
        Broadcast serialized transaction bytes with preflight enabled.

        Returns:
            Transaction signature (base58)

        Raises:
            BroadcastFailed: If the node refuses the transaction or cannot be reached
        """

    @abstractmethod
    def confirm_transaction(self, signature: str, checkpoint: Checkpoint) -> Any | None:
        """
        Wait for `signature` to reach confirmed commitment.

        Returns:
            None on success, or the on-chain error payload if the transaction failed

        Raises:
            CheckpointExpired: If the checkpoint's block height passed before confirmation
            Exception: Any other error is a transient polling failure
        """


class SolanaRpcGateway(RpcGateway):
    """RpcGateway backed by a solana-py Client."""

    def __init__(self, rpc_url: str, timeout_sec: float = DEFAULT_RPC_TIMEOUT_SEC) -> None:
        self._client = Client(rpc_url, commitment=Confirmed, timeout=timeout_sec)
        logger.info("rpc_gateway_created", rpc_url=mask_rpc_url(rpc_url))

    def account_existence(self, address: Pubkey) -> AccountExistence:
        try:
            resp = self._client.get_account_info(address, commitment=Confirmed)
        except Exception as e:
            logger.warning("rpc_account_lookup_failed", address=str(address), error=str(e))
            return AccountExistence.UNKNOWN
        if resp.value is None:
            return AccountExistence.CONFIRMED_ABSENT
        return AccountExistence.CONFIRMED

    def latest_checkpoint(self) -> Checkpoint:
        resp = self._client.get_latest_blockhash(commitment=Finalized)
        value = resp.value
        if value is None:
            raise RuntimeError("No blockhash")
        return Checkpoint(blockhash=value.blockhash, last_valid_block_height=value.last_valid_block_height)

    def send_raw_transaction(self, raw: bytes, max_retries: int) -> str:
        opts = TxOpts(
            skip_confirmation=True,
            skip_preflight=False,
            preflight_commitment=Confirmed,
            max_retries=max_retries,
        )
        try:
            resp = self._client.send_raw_transaction(raw, opts=opts)
        except Exception as e:
            raise BroadcastFailed(f"Failed to send transaction: {e}") from e
        if resp.value is None:
            raise BroadcastFailed("Failed to send transaction: No response from RPC")
        return str(resp.value)

    def confirm_transaction(self, signature: str, checkpoint: Checkpoint) -> Any | None:
        sig = Signature.from_string(signature)
        last_valid = checkpoint.last_valid_block_height
        # solana-py never polls when the height is already past last_valid
        current = self._client.get_block_height(Confirmed).value
        if current > last_valid:
            raise self._expired(checkpoint, f"current block height {current}")
        try:
            resp = self._client.confirm_transaction(
                sig,
                commitment=Confirmed,
                sleep_seconds=CONFIRM_POLL_INTERVAL_SEC,
                last_valid_block_height=last_valid,
            )
        except TransactionExpiredBlockheightExceededError as e:
            raise self._expired(checkpoint, str(e)) from e
        statuses = resp.value
        status = statuses[0] if statuses else None
        if status is None:
            raise RuntimeError(f"Signature status unavailable for {signature}")
        if status.err is not None:
            # RPC JSON form, e.g. {"InstructionError": [4, {"Custom": 1}]}
            return json.loads(status.to_json())["err"]
        return None

    @staticmethod
    def _expired(checkpoint: Checkpoint, reason: str) -> CheckpointExpired:
        return CheckpointExpired(
            f"Transaction failed: block height exceeded ({checkpoint.last_valid_block_height})",
            error_payload={"blockhash": str(checkpoint.blockhash), "reason": reason},
        )
