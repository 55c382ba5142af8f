from fastapi import FastAPI, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel
from typing import Optional
import logging

from ..core.vault import PayoutVault
from ...protocol.types.common import (
    AuthorizationError,
    BadSignature,
    ExpiredRequest,
    InvalidState,
    PausedError,
    ReentrancyError,
    TransferFailure,
    ValidationError,
    VaultError,
)

logger = logging.getLogger(__name__)

app = FastAPI(title="PayVault RPC")

# Set by the hosting process: `api.vault = PayoutVault(...)`
vault: Optional[PayoutVault] = None

# Status code per error kind; order matters only for subclasses (none today)
ERROR_STATUS = [
    (ValidationError, 400),
    (AuthorizationError, 403),
    (BadSignature, 403),
    (ExpiredRequest, 410),
    (PausedError, 409),
    (InvalidState, 409),
    (ReentrancyError, 409),
    (TransferFailure, 502),
]


class RelayedClaim(BaseModel):
    relayer: str
    beneficiary: str
    recipient: str
    deadline: int
    signature: str


class ClaimResponse(BaseModel):
    beneficiary: str
    recipient: str
    amount: str
    status: str


def _require_vault() -> PayoutVault:
    if not vault:
        raise HTTPException(status_code=503, detail="Vault not initialized")
    return vault


def _http_error(e: VaultError) -> HTTPException:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(e, error_type):
            return HTTPException(status_code=status_code, detail=f"{type(e).__name__}: {e}")
    return HTTPException(status_code=500, detail=str(e))


@app.get("/status")
def get_status():
    v = _require_vault()
    status = v.status()
    # Large integers are returned as strings
    for field in ("total_weight", "acc_per_weight", "total_deposited", "total_claimed"):
        status[field] = str(status[field])
    status["domain_separator"] = "0x" + v.domain_separator.hex()
    return status


@app.get("/participant/{address}")
async def get_participant(address: str):
    v = _require_vault()
    try:
        part = v.participant(address)
        claimable = v.claimable(address)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid address: {address}")
    return {
        "address": part.address,
        "weight": str(part.weight),
        "checkpoint": str(part.checkpoint),
        "nonce": part.nonce,
        "claimable": str(claimable),
    }


@app.post("/claim/relay", response_model=ClaimResponse)
def relay_claim(req: RelayedClaim):
    """Submit a beneficiary-signed claim on their behalf."""
    v = _require_vault()
    try:
        amount = v.claim_with_signature(
            req.relayer,
            req.beneficiary,
            req.recipient,
            req.deadline,
            req.signature,
        )
    except VaultError as e:
        logger.warning(f"Relayed claim for {req.beneficiary} rejected: {e}")
        raise _http_error(e)

    return ClaimResponse(
        beneficiary=req.beneficiary,
        recipient=req.recipient,
        amount=str(amount),
        status="claimed",
    )


@app.get("/metrics")
async def get_metrics():
    """
    Prometheus metrics endpoint.

    Returns metrics in Prometheus text format.
    """
    from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
    from ..observability.metrics import metrics_registry, update_metrics

    v = _require_vault()
    update_metrics(v)
    return Response(content=generate_latest(metrics_registry), media_type=CONTENT_TYPE_LATEST)
