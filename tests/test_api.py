"""
HTTP tests for the relay API (TestClient over the fake gateway).
"""

from __future__ import annotations

import base64

from fastapi.testclient import TestClient
from solders.transaction import Transaction

from conftest import client_sign
from presale_relay.api_server.server import create_app
from presale_relay.config.settings import Settings
from presale_relay.core.exceptions import ConfirmationFailed

CREATE_URL = "/api/transactions/create-transaction"
VERIFY_URL = "/api/transactions/verify-and-submit-transaction"


def _create(client, sender_keypair, **extra):
    body = {"senderPublicKey": str(sender_keypair.pubkey()), **extra}
    return client.post(CREATE_URL, json=body)


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "OK"
    assert data["env"] == "test"
    assert "timestamp" in data


def test_root_lists_endpoints(client):
    r = client.get("/")
    assert r.status_code == 200
    data = r.json()
    assert data["message"] == "Presale Relay API Server"
    assert data["endpoints"]["health"] == "/health"


def test_unknown_route_is_404(client):
    r = client.get("/api/nope")
    assert r.status_code == 404
    assert r.json() == {"error": "Route not found"}


def test_wrong_method_is_404(client):
    r = client.get(CREATE_URL)
    assert r.status_code == 404
    assert r.json() == {"error": "Route not found"}


def test_create_transaction_ok(client, gateway, sender_keypair):
    r = _create(client, sender_keypair, presaleAmount=5)
    assert r.status_code == 200
    data = r.json()
    assert set(data) == {"transaction", "lastValidBlockHeight", "blockhash"}
    assert data["lastValidBlockHeight"] == gateway.last_checkpoint.last_valid_block_height + 150
    assert data["blockhash"] == str(gateway.last_checkpoint.blockhash)
    tx = Transaction.from_bytes(base64.b64decode(data["transaction"]))
    assert tx.message.account_keys[0] == sender_keypair.pubkey()


def test_create_transaction_default_amount(client, gateway, sender_keypair):
    r = _create(client, sender_keypair)
    assert r.status_code == 200
    tx = Transaction.from_bytes(base64.b64decode(r.json()["transaction"]))
    # transfer_checked data: tag(1) + amount u64 LE + decimals(1)
    data = bytes(tx.message.instructions[-1].data)
    assert int.from_bytes(data[1:9], "little") == 5 * 10**6


def test_create_transaction_missing_sender(client, gateway):
    r = client.post(CREATE_URL, json={"presaleAmount": 5})
    assert r.status_code == 400
    assert "senderPublicKey" in r.json()["error"]
    assert gateway.calls == []


def test_create_transaction_invalid_sender(client, gateway):
    r = client.post(CREATE_URL, json={"senderPublicKey": "not-a-key"})
    assert r.status_code == 400
    assert gateway.calls == []


def test_create_transaction_blockhash_failure(client, gateway, sender_keypair):
    gateway.checkpoint_error = ConnectionError("rpc down")
    r = _create(client, sender_keypair)
    assert r.status_code == 500
    assert "rpc down" in r.json()["error"]


def test_create_transaction_without_config(gateway, sender_keypair):
    settings = Settings(
        hash_private_key="",
        presale_mint_address="",
        presale_recipient_key="",
        solana_rpc_url="http://127.0.0.1:8899",
        app_env="test",
        allowed_origins=[],
    )
    client = TestClient(create_app(settings, gateway=gateway))
    r = _create(client, sender_keypair)
    assert r.status_code == 500
    assert r.json() == {"error": "Server configuration error: Missing environment variables"}
    assert gateway.calls == []

    r = client.post(VERIFY_URL, json={})
    assert r.status_code == 500
    assert gateway.calls == []


def test_verify_and_submit_ok(client, gateway, sender_keypair, sleeps):
    created = _create(client, sender_keypair).json()
    body = {
        "transaction": client_sign(created["transaction"], sender_keypair),
        "blockhash": created["blockhash"],
        "lastValidBlockHeight": created["lastValidBlockHeight"],
        "userData": {"ref": "abc"},
    }
    r = client.post(VERIFY_URL, json=body)
    assert r.status_code == 200
    assert r.json() == {"status": "successful", "signature": gateway.send_signature}
    assert gateway.count("send_raw_transaction") == 1
    assert sleeps == []


def test_verify_missing_transaction(client, gateway):
    r = client.post(VERIFY_URL, json={"blockhash": "x", "lastValidBlockHeight": 1})
    assert r.status_code == 500
    assert r.json() == {"error": "Transaction verification failed: Invalid or missing transaction"}
    assert gateway.count("send_raw_transaction") == 0


def test_verify_without_client_signature(client, gateway, sender_keypair):
    created = _create(client, sender_keypair).json()
    body = {
        "transaction": created["transaction"],
        "blockhash": created["blockhash"],
        "lastValidBlockHeight": created["lastValidBlockHeight"],
    }
    r = client.post(VERIFY_URL, json=body)
    assert r.status_code == 500
    assert r.json() == {"error": "Transaction verification failed: Missing or invalid client signature"}
    assert gateway.count("send_raw_transaction") == 0


def test_verify_confirmation_exhausted(client, gateway, sender_keypair, sleeps):
    created = _create(client, sender_keypair).json()
    gateway.confirm_outcomes = [ConfirmationFailed("timeout")] * 5
    body = {
        "transaction": client_sign(created["transaction"], sender_keypair),
        "blockhash": created["blockhash"],
        "lastValidBlockHeight": created["lastValidBlockHeight"],
    }
    r = client.post(VERIFY_URL, json=body)
    assert r.status_code == 500
    assert r.json()["error"].startswith("Transaction verification failed:")
    assert gateway.count("confirm_transaction") == 5
    assert sleeps == [2.0, 4.0, 8.0, 16.0]


def test_verify_on_chain_error(client, gateway, sender_keypair, sleeps):
    created = _create(client, sender_keypair).json()
    gateway.confirm_outcomes = [{"InstructionError": [3, {"Custom": 1}]}]
    body = {
        "transaction": client_sign(created["transaction"], sender_keypair),
        "blockhash": created["blockhash"],
        "lastValidBlockHeight": created["lastValidBlockHeight"],
    }
    r = client.post(VERIFY_URL, json=body)
    assert r.status_code == 500
    assert "Transaction failed" in r.json()["error"]
    assert gateway.count("confirm_transaction") == 1
    assert sleeps == []


def test_request_id_header(client):
    r = client.get("/health", headers={"x-request-id": "req-123"})
    assert r.headers["x-request-id"] == "req-123"
