"""Pydantic request/response schemas for the Payments API.

These are external contracts (anti-corruption layer), separate from the
gateway dataclasses.
"""

from pydantic import BaseModel


# ---------------------------------------------------------------------------
# Webhook
# ---------------------------------------------------------------------------
class WebhookResponse(BaseModel):
    received: bool = True
    action: str
    order_id: str | None = None


# ---------------------------------------------------------------------------
# Gateway Configuration (testing)
# ---------------------------------------------------------------------------
class ConfigureGatewayRequest(BaseModel):
    should_succeed: bool = True
    failure_reason: str = "Checkout session could not be created"

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "should_succeed": False,
                    "failure_reason": "Card declined",
                }
            ]
        }
    }


class GatewayConfigResponse(BaseModel):
    gateway: str
    should_succeed: bool
    failure_reason: str


class SimulatePaymentResponse(BaseModel):
    session_id: str
    payment_intent_id: str


class WebhookPayloadRequest(BaseModel):
    event_type: str = "checkout.session.completed"
    event_id: str | None = None


class WebhookPayloadResponse(BaseModel):
    payload: str
    signature: str
