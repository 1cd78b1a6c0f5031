"""
Pytest fixtures for Presale Relay tests.

No network: an in-memory FakeGateway stands in for the Solana RPC node, and
sleeps between confirmation attempts are recorded instead of slept.
"""

from __future__ import annotations

import base64
import json
from typing import Any

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from presale_relay.config.settings import RelayConfig, Settings
from presale_relay.presale.network import AccountExistence, Checkpoint, RpcGateway

LOCAL_RPC_URL = "http://127.0.0.1:8899"
BLOCK_HEIGHT = 250_000_000


class FakeGateway(RpcGateway):
    """
    Scripted RpcGateway.

    existence: ATA address -> AccountExistence (default CONFIRMED_ABSENT).
    confirm_outcomes: consumed one per confirm call; an Exception instance is raised,
    anything else is returned as the on-chain error payload (None = confirmed).
    """

    def __init__(self) -> None:
        self.existence: dict[Pubkey, AccountExistence] = {}
        self.checkpoint_error: Exception | None = None
        self.send_error: Exception | None = None
        self.send_signature = "5VERv8NMvzbJMEkV8xnrLkEaWRtSz9CosKDYjCJjBRnbJLgp8uirBgmQpjKhoR4tjF3ZpRzrFmBV6UjKdiSZkQUW"
        self.confirm_outcomes: list[Any] = []
        self.calls: list[tuple[str, Any]] = []
        self._next_height = BLOCK_HEIGHT
        self.last_checkpoint: Checkpoint | None = None

    def account_existence(self, address: Pubkey) -> AccountExistence:
        self.calls.append(("account_existence", address))
        return self.existence.get(address, AccountExistence.CONFIRMED_ABSENT)

    def latest_checkpoint(self) -> Checkpoint:
        self.calls.append(("latest_checkpoint", None))
        if self.checkpoint_error is not None:
            raise self.checkpoint_error
        self._next_height += 1
        self.last_checkpoint = Checkpoint(blockhash=Hash.new_unique(), last_valid_block_height=self._next_height)
        return self.last_checkpoint

    def send_raw_transaction(self, raw: bytes, max_retries: int) -> str:
        self.calls.append(("send_raw_transaction", raw))
        if self.send_error is not None:
            raise self.send_error
        return self.send_signature

    def confirm_transaction(self, signature: str, checkpoint: Checkpoint) -> Any | None:
        self.calls.append(("confirm_transaction", (signature, checkpoint)))
        outcome = self.confirm_outcomes.pop(0) if self.confirm_outcomes else None
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def count(self, name: str) -> int:
        return sum(1 for call, _ in self.calls if call == name)


def client_sign(serialized: str, signer: Keypair) -> str:
    """Add `signer`'s signature to a base64 transaction, as the client wallet does."""
    tx = Transaction.from_bytes(base64.b64decode(serialized))
    tx.partial_sign([signer], tx.message.recent_blockhash)
    return base64.b64encode(bytes(tx)).decode("ascii")


@pytest.fixture
def server_keypair() -> Keypair:
    return Keypair()


@pytest.fixture
def sender_keypair() -> Keypair:
    return Keypair()


@pytest.fixture
def mint() -> Pubkey:
    return Keypair().pubkey()


@pytest.fixture
def recipient() -> Pubkey:
    return Keypair().pubkey()


@pytest.fixture
def relay_config(server_keypair, mint, recipient) -> RelayConfig:
    return RelayConfig(
        mint=mint,
        recipient=recipient,
        server_keypair=server_keypair,
    )


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def settings(server_keypair, mint, recipient) -> Settings:
    return Settings(
        hash_private_key=json.dumps(list(bytes(server_keypair))),
        presale_mint_address=str(mint),
        presale_recipient_key=str(recipient),
        solana_rpc_url=LOCAL_RPC_URL,
        mint_decimals=6,
        priority_fee_micro_lamports=1_000_000,
        validity_window=150,
        confirm_max_attempts=5,
        confirm_base_delay_sec=1.0,
        send_max_retries=3,
        app_env="test",
        allowed_origins=[],
    )


@pytest.fixture
def client(settings, gateway, sleeps):
    """FastAPI TestClient over an app wired to the fake gateway."""
    from fastapi.testclient import TestClient

    from presale_relay.api_server.server import create_app

    return TestClient(create_app(settings, gateway=gateway, sleep=sleeps.append))
