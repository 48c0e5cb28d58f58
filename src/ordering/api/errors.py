"""Translate domain and gateway errors into API responses.

Bodies are ``{"code", "message"}``. Provider and configuration details are
logged here and never echoed to the client.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from payments.gateway.port import GatewayError, PaymentMethodUnavailable, PaymentNotCompleted
from protean.exceptions import ConfigurationError, ObjectNotFoundError, ValidationError
from sqlalchemy.exc import SQLAlchemyError

from ordering.checkout.orchestrator import CheckoutUnavailable

logger = structlog.get_logger(__name__)

PAYMENT_UNAVAILABLE_MESSAGE = "Payment is currently unavailable. Please try again later."
PAYMENT_NOT_COMPLETED_MESSAGE = (
    "The payment was not completed. If you believe you were charged, contact post@bsclimbing.no."
)
DATABASE_ERROR_MESSAGE = "Something went wrong on our side. Please try again later."


def first_error(messages) -> tuple[str | None, str]:
    """The first (field, message) pair of a ValidationError payload."""
    if isinstance(messages, dict):
        for field, errors in messages.items():
            if isinstance(errors, list | tuple):
                if errors:
                    return field, str(errors[0])
            elif errors:
                return field, str(errors)
    return None, str(messages)


def error_response(status_code: int, code: str, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"code": code, "message": message, **extra})


async def handle_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    field, message = first_error(exc.messages)
    return error_response(400, "INVALID_REQUEST", message, field=field)


async def handle_configuration_error(request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error("Configuration error", path=request.url.path, error=str(exc))
    return error_response(503, "PAYMENT_UNAVAILABLE", PAYMENT_UNAVAILABLE_MESSAGE)


async def handle_gateway_error(request: Request, exc: GatewayError) -> JSONResponse:
    logger.error("Payment provider error", path=request.url.path, error=str(exc))
    if isinstance(exc, PaymentMethodUnavailable):
        return error_response(400, "PAYMENT_METHOD_UNAVAILABLE", "The selected payment method is not available.")
    return error_response(502, "PAYMENT_PROVIDER_ERROR", PAYMENT_UNAVAILABLE_MESSAGE)


async def handle_payment_not_completed(request: Request, exc: PaymentNotCompleted) -> JSONResponse:
    logger.warning("Unpaid session at success callback", session_id=exc.session_id, status=exc.payment_status)
    return error_response(402, "PAYMENT_NOT_COMPLETED", PAYMENT_NOT_COMPLETED_MESSAGE)


async def handle_checkout_unavailable(request: Request, exc: CheckoutUnavailable) -> JSONResponse:
    return error_response(503, "CHECKOUT_DISABLED", exc.message)


async def handle_not_found(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return error_response(404, "NOT_FOUND", "No matching record was found.")


async def handle_database_error(request: Request, exc: Exception) -> JSONResponse:
    """Storage and other unexpected failures: details stay in the logs."""
    logger.error("Unhandled error", path=request.url.path, error_type=type(exc).__name__, exc_info=exc)
    return error_response(503, "DATABASE_ERROR", DATABASE_ERROR_MESSAGE)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationError, handle_validation_error)
    app.add_exception_handler(ConfigurationError, handle_configuration_error)
    app.add_exception_handler(GatewayError, handle_gateway_error)
    app.add_exception_handler(PaymentNotCompleted, handle_payment_not_completed)
    app.add_exception_handler(CheckoutUnavailable, handle_checkout_unavailable)
    app.add_exception_handler(ObjectNotFoundError, handle_not_found)
    app.add_exception_handler(SQLAlchemyError, handle_database_error)
    app.add_exception_handler(Exception, handle_database_error)
