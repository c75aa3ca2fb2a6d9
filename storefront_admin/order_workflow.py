"""
order_workflow.py - Order Placement Workflow

PURPOSE:
    Orchestrates order creation, update, deletion and status changes. Each
    operation composes the InventoryLedger and the OrderNumberGenerator inside
    one database transaction, so stock and the order record always move
    together.

OPERATIONS:
    create_order(payload)
        1. Load user and product (not_found if either is missing)
        2. Reject when quantity > product.stock (insufficient_stock)
        3. Snapshot unit_price = product.price, total_price = unit_price * quantity
        4. Generate a unique order number; a clash on insert with a
           concurrent order reruns the whole transaction
        5. Decrease product stock through the ledger
        6. Persist the order as pending with ordered_at = now

    update_order(order_id, changes)
        - Same product, new quantity: apply the net difference to stock
        - New product: give the old product back its units and take the new
          quantity from the new product
        - Product or quantity changed: re-snapshot prices from the product's
          current price
        - Status moving into completed: stamp processed_at

    delete_order(order_id)
        - Non-completed orders give their units back to the product; a
          product that no longer exists is skipped without failing
        - Completed orders leave stock alone

    update_order_status(order_id, status)
        - Sets status; completed stamps processed_at
        - No transition graph is enforced and stock is never touched here,
          including on cancellation

    get_order_statistics()
        - Counts per status and revenue from completed orders (read-only)

TRANSACTIONS:
    Every mutating operation runs inside ``transaction(session)``. The handle
    is committed only when the operation produced a successful Result; a
    failure result or an exception leaves the block uncommitted and the
    session is rolled back. Constraint violations come back as conflict
    failures, other SQLAlchemy errors as persistence failures; anything else
    propagates after the rollback.

STOCK CONCURRENCY:
    All stock writes go through InventoryLedger.adjust_stock, whose update
    is conditional on the product's version counter. Two concurrent orders
    against the same product cannot both pass the stock check and both land.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Optional

from sqlalchemy.orm import Session

from storefront_admin.config import current_time
from storefront_admin.database import run_in_transaction
from storefront_admin.inventory import InventoryLedger, StockDirection
from storefront_admin.models import Order, OrderStatus
from storefront_admin.order_numbers import OrderNumberGenerator
from storefront_admin.repository import OrderRepository, Page, UserRepository
from storefront_admin.results import ErrorKind, Result, insufficient_stock, not_found

logger = logging.getLogger(__name__)

ORDER_FIELDS = ("user_id", "product_id", "quantity", "status", "notes")
NULLABLE_ORDER_FIELDS = ("notes",)

# a concurrent insert can claim a number between the existence check and our flush
ORDER_NUMBER_ATTEMPTS = 3


def _order_number_clash(result: Result) -> bool:
    return (
        not result.ok
        and result.error.kind == ErrorKind.CONFLICT
        and "order_number" in result.error.message
    )


class OrderWorkflow:
    """Transactional order operations over one session."""

    def __init__(
        self,
        db_session: Session,
        clock: Optional[Callable[[], datetime]] = None,
        token_source: Optional[Callable[[int], str]] = None,
    ):
        """Initialize workflow."""
        self.db = db_session
        self.clock = clock or current_time
        self.orders = OrderRepository(db_session)
        self.users = UserRepository(db_session)
        self.ledger = InventoryLedger(db_session)
        self.order_numbers = OrderNumberGenerator(
            exists=self.orders.order_number_exists,
            clock=self.clock,
            token_source=token_source,
        )

    def _reload(self, order_id: int) -> Result:
        order = self.orders.get_order(order_id)
        if not order:
            return not_found("Order", order_id)
        return Result.success(order)

    # Queries

    def get_order(self, order_id: int) -> Result:
        """Get one order with user and product."""
        return self._reload(order_id)

    def list_orders(self, filters: Optional[Dict[str, Any]] = None, page: int = 1, per_page: int = 15) -> Page:
        return self.orders.list_orders(filters, page, per_page)

    def get_order_statistics(self) -> Dict[str, Any]:
        """Counts per status plus revenue from completed orders."""
        return self.orders.get_statistics()

    # Commands

    def create_order(self, payload: Dict[str, Any]) -> Result:
        """Place an order, taking its quantity out of the product's stock."""
        for attempt in range(1, ORDER_NUMBER_ATTEMPTS + 1):
            result = run_in_transaction(self.db, "Create order", self._create, payload)
            if not _order_number_clash(result) or attempt == ORDER_NUMBER_ATTEMPTS:
                break
            logger.warning(f"Order number clashed with a concurrent insert, retrying (attempt {attempt})")
        if not result.ok:
            return result
        return self._reload(result.value)

    def _create(self, payload: Dict[str, Any]) -> Result:
        user_id = payload["user_id"]
        product_id = payload["product_id"]
        quantity = payload["quantity"]

        if quantity <= 0:
            return Result.failure(ErrorKind.VALIDATION, f"Quantity must be positive, got {quantity}")

        if not self.users.get_user(user_id):
            return not_found("User", user_id)

        product = self.ledger.get_product(product_id)
        if not product:
            return not_found("Product", product_id)

        if quantity > product.stock:
            return insufficient_stock(product_id, quantity, product.stock)

        unit_price = Decimal(product.price)
        total_price = unit_price * quantity
        order_number = self.order_numbers.generate()

        adjusted = self.ledger.adjust_stock(product_id, quantity, StockDirection.DECREASE)
        if not adjusted.ok:
            return adjusted

        order = self.orders.create_order(
            user_id=user_id,
            product_id=product_id,
            order_number=order_number,
            quantity=quantity,
            unit_price=unit_price,
            total_price=total_price,
            status=OrderStatus.PENDING.value,
            notes=payload.get("notes"),
            ordered_at=self.clock(),
        )
        return Result.success(order.id)

    def update_order(self, order_id: int, changes: Dict[str, Any]) -> Result:
        """Edit an order, keeping product stock in step with its quantity."""
        result = run_in_transaction(self.db, "Update order", self._update, order_id, changes)
        if not result.ok:
            return result
        return self._reload(order_id)

    def _update(self, order_id: int, changes: Dict[str, Any]) -> Result:
        changes = {
            key: value
            for key, value in changes.items()
            if key in ORDER_FIELDS and (value is not None or key in NULLABLE_ORDER_FIELDS)
        }

        order = self.db.get(Order, order_id)
        if not order:
            return not_found("Order", order_id)

        if "status" in changes:
            try:
                changes["status"] = OrderStatus(changes["status"]).value
            except ValueError:
                return Result.failure(ErrorKind.VALIDATION, f"Unknown order status {changes['status']!r}")

        if "user_id" in changes and not self.users.get_user(changes["user_id"]):
            return not_found("User", changes["user_id"])

        old_product_id = order.product_id
        old_quantity = order.quantity
        new_product_id = changes.get("product_id", old_product_id)
        new_quantity = changes.get("quantity", old_quantity)

        if new_quantity <= 0:
            return Result.failure(ErrorKind.VALIDATION, f"Quantity must be positive, got {new_quantity}")

        product = self.ledger.get_product(new_product_id)
        if not product:
            return not_found("Product", new_product_id)

        product_changed = new_product_id != old_product_id
        quantity_changed = new_quantity != old_quantity

        if product_changed:
            if self.ledger.get_product(old_product_id):
                restored = self.ledger.adjust_stock(old_product_id, old_quantity, StockDirection.INCREASE)
                if not restored.ok:
                    return restored
            taken = self.ledger.adjust_stock(new_product_id, new_quantity, StockDirection.DECREASE)
            if not taken.ok:
                return taken
            product = taken.value
        elif quantity_changed:
            difference = new_quantity - old_quantity
            if difference > 0:
                adjusted = self.ledger.adjust_stock(new_product_id, difference, StockDirection.DECREASE)
            else:
                adjusted = self.ledger.adjust_stock(new_product_id, -difference, StockDirection.INCREASE)
            if not adjusted.ok:
                return adjusted
            product = adjusted.value

        if product_changed or quantity_changed:
            changes["unit_price"] = Decimal(product.price)
            changes["total_price"] = Decimal(product.price) * new_quantity

        if (
            changes.get("status") == OrderStatus.COMPLETED.value
            and order.status != OrderStatus.COMPLETED.value
        ):
            changes["processed_at"] = self.clock()

        for key, value in changes.items():
            setattr(order, key, value)
        self.db.flush()
        logger.info(f"Updated order {order.order_number}: {sorted(changes)}")
        return Result.success(order.id)

    def delete_order(self, order_id: int) -> Result:
        """Delete an order, returning its units to stock unless it was completed."""
        return run_in_transaction(self.db, "Delete order", self._delete, order_id)

    def _delete(self, order_id: int) -> Result:
        order = self.db.get(Order, order_id)
        if not order:
            return not_found("Order", order_id)

        if order.status != OrderStatus.COMPLETED.value:
            if self.ledger.get_product(order.product_id):
                restored = self.ledger.adjust_stock(order.product_id, order.quantity, StockDirection.INCREASE)
                if not restored.ok:
                    return restored
            else:
                logger.warning(
                    f"Product {order.product_id} for order {order.order_number} no longer exists, "
                    f"skipping stock restore"
                )

        self.orders.delete_order(order)
        return Result.success(True)

    def update_order_status(self, order_id: int, status: str) -> Result:
        """Set an order's status without touching stock."""
        result = run_in_transaction(self.db, "Update order status", self._update_status, order_id, status)
        if not result.ok:
            return result
        return self._reload(order_id)

    def _update_status(self, order_id: int, status: str) -> Result:
        try:
            status = OrderStatus(status)
        except ValueError:
            return Result.failure(ErrorKind.VALIDATION, f"Unknown order status {status!r}")

        order = self.db.get(Order, order_id)
        if not order:
            return not_found("Order", order_id)

        order.status = status.value
        if status == OrderStatus.COMPLETED:
            order.processed_at = self.clock()

        self.db.flush()
        logger.info(f"Updated order {order.order_number} status to {status.value}")
        return Result.success(order.id)
