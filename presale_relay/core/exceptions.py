"""
Application-level exceptions.

Every failure the relay reports is a RelayError subclass carrying a stable
error code and the HTTP status the API layer answers with. Only confirmation
polling is retried: any error raised while polling is retried except an
OnChainRejection, which ends the submission at once.
"""

from __future__ import annotations

from typing import Any


class RelayError(Exception):
    """Base class for relay failures."""

    code = "relay_error"
    status_code = 500
    default_message = "Relay error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class ConfigurationError(RelayError):
    """Missing or invalid server configuration. Fatal per request, never retried."""

    code = "configuration_error"
    default_message = "Server configuration error: Missing environment variables"


# -----------------------------------------------------------------------------
# Client input
# -----------------------------------------------------------------------------


class InputValidationError(RelayError):
    code = "input_validation_error"
    status_code = 400
    default_message = "Invalid request"


class InvalidInput(InputValidationError):
    """Builder input (sender address, amount) is absent or malformed."""

    code = "invalid_input"


class ValidationError(InputValidationError):
    """
    Submitted transaction failed a pre-broadcast check.

    Reported as 500 "Transaction verification failed: ..." like every other
    failure of the submit route.
    """

    code = "validation_error"
    status_code = 500
    default_message = "Transaction validation failed"


class MissingTransaction(ValidationError):
    code = "missing_transaction"
    default_message = "Invalid or missing transaction"


class MissingBlockhash(ValidationError):
    code = "missing_blockhash"
    default_message = "Invalid or missing blockhash"


class MissingBlockHeight(ValidationError):
    code = "missing_block_height"
    default_message = "Invalid or missing lastValidBlockHeight"


class MalformedTransaction(ValidationError):
    code = "malformed_transaction"
    default_message = "Transaction could not be decoded"


class NoSignatures(ValidationError):
    code = "no_signatures"
    default_message = "Transaction has no signatures"


class MissingServerSignature(ValidationError):
    code = "missing_server_signature"
    default_message = "Missing or invalid server signature"


class MissingClientSignature(ValidationError):
    code = "missing_client_signature"
    default_message = "Missing or invalid client signature"


# -----------------------------------------------------------------------------
# Network
# -----------------------------------------------------------------------------


class TransientNetworkError(RelayError):
    """An RPC call failed; the outcome may differ on a later attempt."""

    code = "network_error"
    default_message = "RPC request failed"


class BuildFailed(TransientNetworkError):
    code = "build_failed"
    default_message = "Failed to build transaction"


class BroadcastFailed(TransientNetworkError):
    code = "broadcast_failed"
    default_message = "Failed to send transaction"


class ConfirmationFailed(TransientNetworkError):
    """Confirmation polling gave up after the last allowed attempt."""

    code = "confirmation_failed"
    default_message = "Transaction confirmation failed"

    def __init__(self, message: str | None = None, attempts: int = 0) -> None:
        super().__init__(message)
        self.attempts = attempts


class OnChainRejection(RelayError):
    """The network accepted the broadcast but the transaction failed or expired. Never retried."""

    code = "on_chain_rejection"
    default_message = "Transaction rejected by the network"

    def __init__(self, message: str | None = None, error_payload: Any = None) -> None:
        super().__init__(message)
        self.error_payload = error_payload


class TransactionRejected(OnChainRejection):
    code = "transaction_rejected"
    default_message = "Transaction failed"


class CheckpointExpired(TransactionRejected):
    """The referenced blockhash passed its last valid block height before confirmation."""

    code = "checkpoint_expired"
    default_message = "Transaction failed: block height exceeded"
