import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from storefront.core.logging import setup_logging

setup_logging()

from storefront.api.middleware.cart_session import CartSessionMiddleware
from storefront.api.middleware.cors import setup_cors
from storefront.api.routes import cart, health, products
from storefront.api.routes.admin import products as admin_products
from storefront.core.config import settings

logger = logging.getLogger(__name__)

try:
    settings.validate_secrets()
except ValueError as e:
    logger.critical("Secret validation failed: %s", e)
    raise SystemExit(f"FATAL: {e}") from e


app = FastAPI(
    title="Storefront API",
    version="1.0.0",
)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )

setup_cors(app)
app.add_middleware(CartSessionMiddleware)

# Storefront routes
app.include_router(health.router, prefix="/api")
app.include_router(products.router, prefix="/api")
app.include_router(cart.router, prefix="/api")

# Admin routes
app.include_router(admin_products.router, prefix="/api/admin")
