"""
Presale transaction logic: building, co-signing, verification and submission.
"""

from presale_relay.presale.builder import BuiltTransaction, TransactionBuilder
from presale_relay.presale.network import AccountExistence, Checkpoint, RpcGateway, SolanaRpcGateway
from presale_relay.presale.verifier import SubmissionResult, SubmissionVerifier

__all__ = [
    "AccountExistence",
    "BuiltTransaction",
    "Checkpoint",
    "RpcGateway",
    "SolanaRpcGateway",
    "SubmissionResult",
    "SubmissionVerifier",
    "TransactionBuilder",
]
