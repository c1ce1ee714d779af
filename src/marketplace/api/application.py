"""Builds the storefront FastAPI application around an initialized domain."""

import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from marketplace.api.errors import register_exception_handlers
from marketplace.api.routes import cart_router, order_router, product_router
from marketplace.domain import marketplace
from marketplace.utils.logging import bind_request_context, clear_request_context, get_logger

logger = get_logger(__name__)


def create_app() -> FastAPI:
    """Assemble the app. The caller is responsible for ``marketplace.init()``."""
    app = FastAPI(
        title="Marketplace API",
        description="Inventory, carts and orders for the marketplace storefront",
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
        """Push the marketplace domain context and tag log lines with the request."""
        clear_request_context()
        bind_request_context(
            request_id=request.headers.get("x-request-id") or uuid.uuid4().hex,
            method=request.method,
            path=request.url.path,
        )
        try:
            with marketplace.domain_context():
                response = await call_next(request)
        finally:
            clear_request_context()
        return response

    register_exception_handlers(app)

    app.include_router(cart_router)
    app.include_router(order_router)
    app.include_router(product_router)

    @app.get("/health")
    async def health():
        return JSONResponse(content={"status": "ok", "domain": marketplace.name})

    return app
