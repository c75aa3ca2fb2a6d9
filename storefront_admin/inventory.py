import logging
from enum import Enum
from typing import Optional

from sqlalchemy import and_
from sqlalchemy.orm import Session

from storefront_admin.models import Product
from storefront_admin.results import ErrorKind, Result, insufficient_stock, not_found

logger = logging.getLogger(__name__)


class StockDirection(str, Enum):
    INCREASE = "increase"
    DECREASE = "decrease"


class InventoryLedger:
    """Sole writer of product stock, using version-checked updates.

    The ledger never commits; the caller owns the surrounding transaction.
    """

    MAX_RETRIES = 3

    def __init__(self, db: Session):
        """Initialize with database session."""
        self.db = db

    def get_product(self, product_id: int) -> Optional[Product]:
        """Get product by ID, re-reading its row from the database."""
        return (
            self.db.query(Product)
            .filter(Product.id == product_id)
            .populate_existing()
            .first()
        )

    def adjust_stock(self, product_id: int, quantity: int, direction: StockDirection) -> Result:
        """
        Move stock up or down by ``quantity``.

        Decreases are rejected when ``quantity`` exceeds current stock. The write
        only lands if the product's version is unchanged since it was read;
        otherwise the read-check-write is retried.
        """
        direction = StockDirection(direction)
        if quantity < 0:
            return Result.failure(ErrorKind.VALIDATION, f"Stock adjustment must be non-negative, got {quantity}")

        for attempt in range(self.MAX_RETRIES):
            product = self.get_product(product_id)

            if not product:
                logger.error(f"Product {product_id} not found")
                return not_found("Product", product_id)

            if direction == StockDirection.DECREASE and quantity > product.stock:
                logger.warning(f"Insufficient stock for product {product_id}: need {quantity}, have {product.stock}")
                return insufficient_stock(product_id, quantity, product.stock)

            current_version = product.version
            delta = quantity if direction == StockDirection.INCREASE else -quantity

            updated = (
                self.db.query(Product)
                .filter(
                    and_(
                        Product.id == product_id,
                        Product.version == current_version,
                    )
                )
                .update(
                    {Product.stock: Product.stock + delta, Product.version: current_version + 1},
                    synchronize_session=False,
                )
            )

            if updated == 0:
                if attempt < self.MAX_RETRIES - 1:
                    logger.warning(f"Concurrent conflict for product {product_id}, retry {attempt + 1}/{self.MAX_RETRIES}")
                    continue
                logger.error(f"Failed to adjust stock for product {product_id} after {self.MAX_RETRIES} retries")
                return Result.failure(
                    ErrorKind.PERSISTENCE,
                    f"Product {product_id} was modified concurrently; stock not adjusted",
                )

            self.db.refresh(product)
            logger.info(f"Stock {direction.value} of {quantity} for product {product_id}, now {product.stock}")
            return Result.success(product)

        return Result.failure(ErrorKind.PERSISTENCE, f"Stock for product {product_id} not adjusted")

    def get_stock_level(self, product_id: int) -> Optional[int]:
        """Get current stock level for a product."""
        product = self.get_product(product_id)
        return product.stock if product else None
