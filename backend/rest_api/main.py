"""
REST API main application.
Entry point for the FastAPI REST server.
"""

from fastapi import FastAPI

from shared.config.settings import settings
from shared.utils.schemas import ErrorResponse
from rest_api.core import (
    configure_cors,
    lifespan,
    register_exception_handlers,
    register_middlewares,
)
from rest_api.routers.content import products_router, recipes_router
from rest_api.routers.inventory import router as inventory_router
from rest_api.routers.kitchen import router as kitchen_router
from rest_api.routers.orders import router as orders_router
from rest_api.routers.payments import router as payments_router
from rest_api.routers.public import health_router

# Documented error bodies; every AppException renders as ErrorResponse
ERROR_RESPONSES = {
    code: {"model": ErrorResponse} for code in (400, 401, 403, 404, 409)
}


def create_app() -> FastAPI:
    app = FastAPI(
        title="Order & Inventory API",
        description="Order lifecycle, kitchen progress and ingredient stock",
        version="0.1.0",
        lifespan=lifespan,
    )

    configure_cors(app)
    register_middlewares(app)
    register_exception_handlers(app)

    # =========================================================================
    # Include Routers
    # =========================================================================

    app.include_router(health_router)
    app.include_router(orders_router, responses=ERROR_RESPONSES)
    app.include_router(kitchen_router, responses=ERROR_RESPONSES)
    app.include_router(payments_router, responses=ERROR_RESPONSES)
    app.include_router(inventory_router, responses=ERROR_RESPONSES)
    app.include_router(products_router, responses=ERROR_RESPONSES)
    app.include_router(recipes_router, responses=ERROR_RESPONSES)

    return app


app = create_app()


# =============================================================================
# Development entry point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "rest_api.main:app",
        host="0.0.0.0",
        port=settings.rest_api_port,
        reload=settings.debug,
    )
