"""
Submission verifier: validate a client-completed presale transaction,
broadcast it and wait for confirmation.

Per submission: Validating -> Broadcasting -> Confirming{1..N} ->
Confirmed | Rejected | ConfirmationTimedOut. Validation always runs first and
the broadcast is never repeated here; only confirmation polling is retried.
"""

from __future__ import annotations

import base64
import binascii
import json
import time
from dataclasses import dataclass
from typing import Any, Callable

from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import Transaction

from presale_relay.config.settings import RelayConfig
from presale_relay.core.exceptions import (
    ConfirmationFailed,
    MalformedTransaction,
    MissingBlockhash,
    MissingBlockHeight,
    MissingClientSignature,
    MissingServerSignature,
    MissingTransaction,
    NoSignatures,
    OnChainRejection,
    TransactionRejected,
)
from presale_relay.core.retry import RetryExhausted, retry_with_backoff
from presale_relay.logging import get_logger
from presale_relay.presale.network import Checkpoint, RpcGateway

logger = get_logger(__name__)

STATUS_SUCCESSFUL = "successful"


@dataclass(frozen=True)
class SubmissionResult:
    signature: str
    status: str = STATUS_SUCCESSFUL

    def to_response(self) -> dict[str, Any]:
        return {"status": self.status, "signature": self.signature}


@dataclass(frozen=True)
class ValidatedSubmission:
    transaction: Transaction
    raw: bytes
    checkpoint: Checkpoint


def _has_valid_signature(tx: Transaction, signer: Pubkey, message_bytes: bytes) -> bool:
    """True if any signature slot for `signer` holds a signature that verifies over the message."""
    num_signers = tx.message.header.num_required_signatures
    keys = tx.message.account_keys[:num_signers]
    default = Signature.default()
    for key, sig in zip(keys, tx.signatures):
        if key == signer and sig != default and sig.verify(key, message_bytes):
            return True
    return False


def decode_transaction(encoded: str) -> tuple[Transaction, bytes]:
    try:
        raw = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedTransaction("Transaction is not valid base64") from e
    try:
        tx = Transaction.from_bytes(raw)
    except Exception as e:
        raise MalformedTransaction(f"Transaction could not be decoded: {e}") from e
    return tx, raw


class SubmissionVerifier:
    """Validates, broadcasts and confirms presale transactions."""

    def __init__(
        self,
        config: RelayConfig,
        gateway: RpcGateway,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._config = config
        self._gateway = gateway
        self._sleep = sleep

    def validate(self, transaction: Any, blockhash: Any, last_valid_block_height: Any) -> ValidatedSubmission:
        if not isinstance(transaction, str) or not transaction:
            raise MissingTransaction()
        if not isinstance(blockhash, str) or not blockhash:
            raise MissingBlockhash()
        if isinstance(last_valid_block_height, bool) or not isinstance(last_valid_block_height, (int, float)):
            raise MissingBlockHeight()
        try:
            checkpoint_hash = Hash.from_string(blockhash)
        except Exception as e:
            raise MissingBlockhash() from e
        if isinstance(last_valid_block_height, float) and not last_valid_block_height.is_integer():
            raise MissingBlockHeight()

        tx, raw = decode_transaction(transaction)
        if tx.message.recent_blockhash == Hash.default():
            raise MalformedTransaction("Transaction missing recentBlockhash")
        if not tx.message.account_keys:
            raise MalformedTransaction("Transaction missing feePayer")
        fee_payer = tx.message.account_keys[0]

        if not tx.signatures:
            raise NoSignatures()

        message_bytes = bytes(tx.message)
        if not _has_valid_signature(tx, self._config.server_pubkey, message_bytes):
            raise MissingServerSignature()
        if not _has_valid_signature(tx, fee_payer, message_bytes):
            raise MissingClientSignature()

        return ValidatedSubmission(
            transaction=tx,
            raw=raw,
            checkpoint=Checkpoint(blockhash=checkpoint_hash, last_valid_block_height=int(last_valid_block_height)),
        )

    def submit(
        self,
        transaction: Any,
        blockhash: Any,
        last_valid_block_height: Any,
        user_data: Any = None,
    ) -> SubmissionResult:
        validated = self.validate(transaction, blockhash, last_valid_block_height)
        fee_payer = str(validated.transaction.message.account_keys[0])
        logger.info(
            "presale_tx_validated",
            fee_payer=fee_payer,
            blockhash=str(validated.checkpoint.blockhash),
            has_user_data=user_data is not None,
        )

        signature = self._gateway.send_raw_transaction(validated.raw, max_retries=self._config.send_max_retries)
        logger.info("presale_tx_sent", signature=signature, fee_payer=fee_payer)

        err = self.confirm_with_retry(signature, validated.checkpoint)
        if err is not None:
            logger.warning("presale_tx_rejected", signature=signature, err=str(err))
            raise TransactionRejected("Transaction failed: " + json.dumps(err, default=str), error_payload=err)

        logger.info("presale_tx_confirmed", signature=signature)
        return SubmissionResult(signature=signature)

    def confirm_with_retry(self, signature: str, checkpoint: Checkpoint) -> Any | None:
        """
        Poll confirmation with exponential backoff. Returns the on-chain error
        payload (None on success). OnChainRejection propagates without retry.
        """
        try:
            return retry_with_backoff(
                lambda: self._gateway.confirm_transaction(signature, checkpoint),
                max_attempts=self._config.confirm_max_attempts,
                base_delay_sec=self._config.confirm_base_delay_sec,
                give_up_on=(OnChainRejection,),
                sleep=self._sleep,
                operation="confirm_transaction",
            )
        except RetryExhausted as e:
            raise ConfirmationFailed(str(e.last_error), attempts=e.attempts) from e.last_error
