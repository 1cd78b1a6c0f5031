"""
FastAPI router: POST /transactions/create-transaction, POST /transactions/verify-and-submit-transaction.

Both routes require a valid presale configuration (mint, recipient, server
key); without it every request answers 500 before any network call.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from presale_relay.config.settings import DEFAULT_PRESALE_AMOUNT, RelayConfig
from presale_relay.core.exceptions import ConfigurationError, InputValidationError, ValidationError
from presale_relay.logging import get_logger
from presale_relay.presale.builder import TransactionBuilder
from presale_relay.presale.verifier import SubmissionVerifier

logger = get_logger(__name__)


def require_relay_config(request: Request) -> RelayConfig:
    """Dependency: validated RelayConfig from app state, or the startup ConfigurationError."""
    state = request.app.state
    config = getattr(state, "relay_config", None)
    if config is None:
        error = getattr(state, "config_error", None) or ConfigurationError()
        logger.error("presale_config_missing", error=str(error), path=request.url.path)
        raise error
    return config


def get_builder(request: Request, config: RelayConfig = Depends(require_relay_config)) -> TransactionBuilder:
    return TransactionBuilder(config, request.app.state.gateway)


def get_verifier(request: Request, config: RelayConfig = Depends(require_relay_config)) -> SubmissionVerifier:
    return SubmissionVerifier(config, request.app.state.gateway, sleep=request.app.state.sleep)


router = APIRouter(
    prefix="/transactions",
    tags=["transactions"],
    dependencies=[Depends(require_relay_config)],
)


# -----------------------------------------------------------------------------
# Request models (fields are checked by the builder/verifier, not by pydantic)
# -----------------------------------------------------------------------------


class CreateTransactionRequest(BaseModel):
    """POST /create-transaction body."""

    model_config = ConfigDict(extra="ignore")

    senderPublicKey: Any = Field(None, description="Sender wallet (base58); pays fees and signs")
    presaleAmount: Any = Field(DEFAULT_PRESALE_AMOUNT, description="Tokens to transfer (default 5)")


class VerifyAndSubmitRequest(BaseModel):
    """POST /verify-and-submit-transaction body."""

    model_config = ConfigDict(extra="ignore")

    transaction: Any = Field(None, description="Fully-signed transaction, base64")
    blockhash: Any = Field(None, description="Blockhash returned by create-transaction")
    lastValidBlockHeight: Any = Field(None, description="Last valid block height returned by create-transaction")
    userData: Any = Field(None, description="Opaque client data; passed through, not interpreted")


# -----------------------------------------------------------------------------
# Routes
# -----------------------------------------------------------------------------


@router.post("/create-transaction")
def create_transaction(
    body: CreateTransactionRequest,
    builder: TransactionBuilder = Depends(get_builder),
):
    """Build the presale transaction, co-signed by the server, for the sender to sign."""
    try:
        built = builder.build(body.senderPublicKey, body.presaleAmount)
    except InputValidationError as e:
        logger.info("presale_create_rejected", reason=e.code, error=str(e))
        return JSONResponse(status_code=400, content={"error": str(e)})
    except Exception as e:
        logger.exception("presale_create_failed", error=str(e))
        return JSONResponse(status_code=500, content={"error": str(e)})
    return built.to_response()


@router.post("/verify-and-submit-transaction")
def verify_and_submit_transaction(
    body: VerifyAndSubmitRequest,
    verifier: SubmissionVerifier = Depends(get_verifier),
):
    """Validate signatures, broadcast and wait for confirmation."""
    try:
        result = verifier.submit(
            body.transaction,
            body.blockhash,
            body.lastValidBlockHeight,
            user_data=body.userData,
        )
    except ValidationError as e:
        logger.warning("presale_verify_rejected", reason=e.code, error=str(e))
        return JSONResponse(status_code=500, content={"error": f"Transaction verification failed: {e}"})
    except Exception as e:
        logger.exception("presale_verify_failed", error=str(e))
        return JSONResponse(status_code=500, content={"error": f"Transaction verification failed: {e}"})
    return result.to_response()
