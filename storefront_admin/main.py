"""
main.py - Storefront Admin Service

PURPOSE:
    JSON API for administering users, products and orders. Orders are placed,
    edited and removed through the OrderWorkflow so that product stock always
    matches the orders that hold it.

RESPONSIBILITIES:
    - Maintain users (CRUD, bulk import, status toggle)
    - Maintain the product catalogue (CRUD, low-stock listing, categories,
      manual stock corrections)
    - Place, edit, delete and re-status orders with transactional stock control
    - Report order statistics and a dashboard summary

API ENDPOINTS:
    GET    /health                         - Health check
    GET    /dashboard                      - Counts, recent orders, low stock
    GET    /users                          - List users (search, status, page, per_page)
    POST   /users                          - Create user
    POST   /users/bulk                     - Create up to 100 active users at once
    GET    /users/{user_id}                - Get user
    PUT    /users/{user_id}                - Update user
    DELETE /users/{user_id}                - Delete user
    POST   /users/{user_id}/toggle-status  - Toggle active/inactive
    GET    /products                       - List products (search, category, status)
    GET    /products/low-stock             - Active products at/below threshold
    GET    /products/categories            - Distinct categories
    POST   /products                       - Create product
    GET    /products/{product_id}          - Get product
    PUT    /products/{product_id}          - Update product
    DELETE /products/{product_id}          - Delete product (no orders)
    POST   /products/{product_id}/stock    - Add/subtract stock
    GET    /orders                         - List orders (search, user_id, product_id, status)
    GET    /orders/statistics              - Order counts and revenue
    POST   /orders                         - Place order
    GET    /orders/{order_id}              - Get order
    PUT    /orders/{order_id}              - Update order
    DELETE /orders/{order_id}              - Delete order (restores stock unless completed)
    POST   /orders/{order_id}/status       - Change order status

ERRORS:
    404 not_found, 409 insufficient_stock / conflict, 422 validation,
    500 persistence. Body: {"detail": {"error": <kind>, "message": <text>}}

DATABASE:
    PostgreSQL tables users, products, orders (created on startup).
    products.version is bumped on every stock write for compare-and-swap.

USAGE:
    uvicorn storefront_admin.main:app --port 8000
    curl -X POST http://localhost:8000/orders \\
      -H "Content-Type: application/json" \\
      -d '{"user_id": 1, "product_id": 3, "quantity": 2}'
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI  # Web framework

from storefront_admin import __version__
from storefront_admin.config import settings
from storefront_admin.database import init_db
from storefront_admin.logging_config import setup_logging  # Centralized logging
from storefront_admin.routes import dashboard, orders, products, users
from storefront_admin.schemas import HealthResponse

SERVICE_NAME = "storefront-admin"

# Setup logging
setup_logging(SERVICE_NAME, level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage app lifecycle."""
    logger.info("Starting Storefront Admin Service...")

    try:
        init_db()
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise

    yield

    logger.info("Shutting down Storefront Admin Service...")


app = FastAPI(title="Storefront Admin", version=__version__, lifespan=lifespan)
app.include_router(dashboard.router)
app.include_router(users.router)
app.include_router(products.router)
app.include_router(orders.router)


@app.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="ok", service=SERVICE_NAME, version=__version__)


def run() -> None:
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.app_port)


if __name__ == "__main__":
    run()
