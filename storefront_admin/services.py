import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session
from werkzeug.security import generate_password_hash

from storefront_admin.database import run_in_transaction
from storefront_admin.inventory import InventoryLedger, StockDirection
from storefront_admin.models import Product, UserStatus
from storefront_admin.repository import Page, ProductRepository, UserRepository
from storefront_admin.results import ErrorKind, Result, not_found

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserService:
    """User management."""

    def __init__(self, db: Session):
        self.db = db
        self.repo = UserRepository(db)

    def list_users(self, filters: Optional[Dict[str, Any]] = None, page: int = 1, per_page: int = 15) -> Page:
        return self.repo.list_users(filters, page, per_page)

    def get_user(self, user_id: int) -> Result:
        user = self.repo.get_user(user_id)
        if not user:
            return not_found("User", user_id)
        return Result.success(user)

    def create_user(self, data: Dict[str, Any]) -> Result:
        return run_in_transaction(self.db, "Create user", self._create, dict(data))

    def _create(self, data: Dict[str, Any]) -> Result:
        data.pop("password_confirmation", None)
        data["password_hash"] = generate_password_hash(data.pop("password"))
        data["email"] = normalize_email(data["email"])
        return Result.success(self.repo.create_user(**data))

    def bulk_create_users(self, entries: List[Dict[str, Any]]) -> Result:
        """Create every user or none; new users are always active."""
        return run_in_transaction(self.db, "Bulk create users", self._bulk_create, [dict(e) for e in entries])

    def _bulk_create(self, entries: List[Dict[str, Any]]) -> Result:
        rows = [
            {
                "name": entry["name"],
                "email": normalize_email(entry["email"]),
                "password_hash": generate_password_hash(entry["password"]),
                "status": UserStatus.ACTIVE.value,
            }
            for entry in entries
        ]
        return Result.success(len(self.repo.create_users(rows)))

    def update_user(self, user_id: int, data: Dict[str, Any]) -> Result:
        return run_in_transaction(self.db, "Update user", self._update, user_id, dict(data))

    def _update(self, user_id: int, data: Dict[str, Any]) -> Result:
        user = self.repo.get_user(user_id)
        if not user:
            return not_found("User", user_id)

        data.pop("password_confirmation", None)
        password = data.pop("password", None)
        if password:
            data["password_hash"] = generate_password_hash(password)
        if data.get("email"):
            data["email"] = normalize_email(data["email"])

        return Result.success(self.repo.update_user(user, **data))

    def delete_user(self, user_id: int) -> Result:
        return run_in_transaction(self.db, "Delete user", self._delete, user_id)

    def _delete(self, user_id: int) -> Result:
        user = self.repo.get_user(user_id)
        if not user:
            return not_found("User", user_id)
        if self.repo.has_orders(user_id):
            return Result.failure(ErrorKind.CONFLICT, f"Cannot delete user {user_id} with existing orders")
        self.repo.delete_user(user)
        return Result.success(True)

    def toggle_user_status(self, user_id: int) -> Result:
        return run_in_transaction(self.db, "Toggle user status", self._toggle, user_id)

    def _toggle(self, user_id: int) -> Result:
        user = self.repo.get_user(user_id)
        if not user:
            return not_found("User", user_id)
        return Result.success(self.repo.toggle_status(user))

    def count_users(self) -> int:
        return self.repo.count_users()

    def get_active_users_count(self) -> int:
        return self.repo.count_by_status(UserStatus.ACTIVE.value)


class ProductService:
    """Product catalogue management."""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ProductRepository(db)
        self.ledger = InventoryLedger(db)

    def list_products(self, filters: Optional[Dict[str, Any]] = None, page: int = 1, per_page: int = 15) -> Page:
        return self.repo.list_products(filters, page, per_page)

    def get_product(self, product_id: int) -> Result:
        product = self.repo.get_product(product_id)
        if not product:
            return not_found("Product", product_id)
        return Result.success(product)

    def create_product(self, data: Dict[str, Any]) -> Result:
        return run_in_transaction(self.db, "Create product", self._create, dict(data))

    def _create(self, data: Dict[str, Any]) -> Result:
        return Result.success(self.repo.create_product(**data))

    def update_product(self, product_id: int, data: Dict[str, Any]) -> Result:
        return run_in_transaction(self.db, "Update product", self._update, product_id, dict(data))

    def _update(self, product_id: int, data: Dict[str, Any]) -> Result:
        product = self.repo.get_product(product_id)
        if not product:
            return not_found("Product", product_id)
        if "stock" in data:
            # direct stock edits bump the version like ledger writes do
            data["version"] = product.version + 1
        return Result.success(self.repo.update_product(product, **data))

    def delete_product(self, product_id: int) -> Result:
        return run_in_transaction(self.db, "Delete product", self._delete, product_id)

    def _delete(self, product_id: int) -> Result:
        product = self.repo.get_product(product_id)
        if not product:
            return not_found("Product", product_id)
        if self.repo.has_orders(product_id):
            return Result.failure(ErrorKind.CONFLICT, f"Cannot delete product {product_id} with existing orders")
        self.repo.delete_product(product)
        return Result.success(True)

    def update_stock(self, product_id: int, quantity: int, operation: str = "add") -> Result:
        """Manual stock correction: ``add`` or ``subtract`` units through the ledger."""
        direction = StockDirection.INCREASE if operation == "add" else StockDirection.DECREASE
        logger.info(f"Manual stock {operation} of {quantity} requested for product {product_id}")
        return run_in_transaction(
            self.db, "Update stock", self.ledger.adjust_stock, product_id, quantity, direction
        )

    def get_low_stock_products(self, threshold: int = 10) -> List[Product]:
        return self.repo.get_low_stock(threshold)

    def count_products(self) -> int:
        return self.repo.count_products()

    def get_all_categories(self) -> List[str]:
        return self.repo.get_categories()
