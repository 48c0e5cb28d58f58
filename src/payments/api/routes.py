"""FastAPI routes for payments — the provider webhook and fake gateway controls."""

import os

import structlog
from fastapi import APIRouter, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from ordering.checkout.settlement import WebhookSettlementHandler
from protean.exceptions import ConfigurationError

from payments.api.schemas import (
    ConfigureGatewayRequest,
    GatewayConfigResponse,
    SimulatePaymentResponse,
    WebhookPayloadRequest,
    WebhookPayloadResponse,
    WebhookResponse,
)
from payments.gateway import get_gateway
from payments.gateway.fake_adapter import TEST_SIGNATURE, FakeGateway
from payments.gateway.port import InvalidSignature

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.post("/webhook", response_model=WebhookResponse)
async def process_webhook(request: Request, stripe_signature: str = Header(default="")):
    """Receive a checkout session event from the payment provider.

    The raw body is needed for signature verification. Any failure after
    verification is answered with a 500 so the provider redelivers.
    """
    payload = await request.body()
    handler = WebhookSettlementHandler(get_gateway())
    try:
        outcome = handler.handle(payload, stripe_signature)
    except InvalidSignature as exc:
        logger.warning("Webhook signature rejected", error=str(exc))
        raise HTTPException(status_code=401, detail="Invalid webhook signature") from None
    except ConfigurationError:
        raise
    except Exception:
        logger.exception("Webhook handler failed")
        return JSONResponse(status_code=500, content={"error": "Webhook handler failed"})

    return WebhookResponse(action=outcome.action, order_id=outcome.order_id)


# ---------------------------------------------------------------------------
# Fake gateway controls (non-production only)
# ---------------------------------------------------------------------------
def _fake_gateway() -> FakeGateway:
    if os.environ.get("PROTEAN_ENV") == "production":
        raise HTTPException(status_code=403, detail="Gateway controls not available in production")

    gateway = get_gateway()
    if not isinstance(gateway, FakeGateway):
        raise HTTPException(status_code=400, detail="Only FakeGateway can be controlled")
    return gateway


@payment_router.post("/gateway/configure", response_model=GatewayConfigResponse)
async def configure_gateway(body: ConfigureGatewayRequest) -> GatewayConfigResponse:
    """Configure the FakeGateway behavior."""
    gateway = _fake_gateway()
    gateway.configure(should_succeed=body.should_succeed, failure_reason=body.failure_reason)
    return GatewayConfigResponse(
        gateway=type(gateway).__name__,
        should_succeed=gateway.should_succeed,
        failure_reason=gateway.failure_reason,
    )


@payment_router.post("/gateway/sessions/{session_id}/pay", response_model=SimulatePaymentResponse)
async def simulate_payment(session_id: str) -> SimulatePaymentResponse:
    """Mark a fake hosted session as paid, as if the customer completed it."""
    gateway = _fake_gateway()
    if session_id not in gateway.sessions:
        raise HTTPException(status_code=404, detail="Unknown checkout session")
    return SimulatePaymentResponse(session_id=session_id, payment_intent_id=gateway.mark_paid(session_id))


@payment_router.post("/gateway/sessions/{session_id}/webhook", response_model=WebhookPayloadResponse)
async def build_webhook_payload(session_id: str, body: WebhookPayloadRequest) -> WebhookPayloadResponse:
    """Return a signed webhook body for a fake session, ready to post to /payments/webhook."""
    gateway = _fake_gateway()
    if session_id not in gateway.sessions:
        raise HTTPException(status_code=404, detail="Unknown checkout session")
    payload = gateway.webhook_payload(session_id, body.event_type, event_id=body.event_id)
    return WebhookPayloadResponse(payload=payload.decode("utf-8"), signature=TEST_SIGNATURE)
