"""BS Climbing storefront API.

Web server that processes checkout, webhooks and order administration
synchronously via HTTP. Every request outside the health check runs inside
the ordering domain context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay from ordering/domain.toml.
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from ordering.domain import ordering  # noqa: E402

ordering.init()

_PASS_THROUGH_PATHS = ("/health", "/docs", "/openapi.json", "/redoc")


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="BS Climbing API",
    description="Crimp block storefront: checkout, payments and print queue",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the ordering domain context for each API request."""
    if request.url.path.startswith(_PASS_THROUGH_PATHS):
        return await call_next(request)
    with ordering.domain_context():
        response = await call_next(request)
    return response


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from ordering.api import (  # noqa: E402
    admin_router,
    checkout_router,
    order_router,
    register_error_handlers,
    shop_router,
)
from payments.api import payment_router  # noqa: E402

app.include_router(shop_router)
app.include_router(checkout_router)
app.include_router(order_router)
app.include_router(admin_router)
app.include_router(payment_router)
register_error_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": {"name": ordering.name}})
