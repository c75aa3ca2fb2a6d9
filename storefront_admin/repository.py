import logging
import math
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict
from sqlalchemy import or_, func
from sqlalchemy.orm import Query, Session, joinedload

from storefront_admin.models import Order, OrderStatus, Product, ProductStatus, User, UserStatus

logger = logging.getLogger(__name__)


class Page(BaseModel):
    """One page of query results."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    items: List[Any]
    total: int
    page: int
    per_page: int

    @property
    def last_page(self) -> int:
        return max(1, math.ceil(self.total / self.per_page))


def paginate(query: Query, page: int = 1, per_page: int = 15) -> Page:
    """Slice ``query`` into a page; ``page`` is 1-based."""
    page = max(page, 1)
    total = query.order_by(None).count()
    items = query.offset((page - 1) * per_page).limit(per_page).all()
    return Page(items=items, total=total, page=page, per_page=per_page)


class UserRepository:
    """Repository for user operations."""

    def __init__(self, db: Session):
        """Initialize with database session."""
        self.db = db

    def list_users(self, filters: Optional[Dict[str, Any]] = None, page: int = 1, per_page: int = 15) -> Page:
        """Get users, newest first, with optional search/status filters."""
        filters = filters or {}
        query = self.db.query(User)

        if filters.get("search"):
            term = f"%{filters['search']}%"
            query = query.filter(or_(User.name.like(term), User.email.like(term)))

        if filters.get("status"):
            query = query.filter(User.status == filters["status"])

        return paginate(query.order_by(User.created_at.desc(), User.id.desc()), page, per_page)

    def get_user(self, user_id: int) -> Optional[User]:
        """Get user by ID."""
        return self.db.get(User, user_id)

    def create_user(self, **fields) -> User:
        """Create a new user."""
        user = User(**fields)
        self.db.add(user)
        self.db.flush()
        logger.info(f"Created user {user.id} <{user.email}>")
        return user

    def create_users(self, rows: List[Dict[str, Any]]) -> List[User]:
        """Insert several users with a single flush."""
        users = [User(**fields) for fields in rows]
        self.db.add_all(users)
        self.db.flush()
        logger.info(f"Created {len(users)} users in bulk")
        return users

    def update_user(self, user: User, **fields) -> User:
        """Apply field changes to an existing user."""
        for key, value in fields.items():
            setattr(user, key, value)
        self.db.flush()
        logger.info(f"Updated user {user.id}: {sorted(fields)}")
        return user

    def delete_user(self, user: User) -> None:
        """Delete a user."""
        self.db.delete(user)
        self.db.flush()
        logger.info(f"Deleted user {user.id}")

    def count_users(self) -> int:
        return self.db.query(User).count()

    def count_by_status(self, status: str) -> int:
        """Count users by status."""
        return self.db.query(User).filter(User.status == status).count()

    def has_orders(self, user_id: int) -> bool:
        return self.db.query(Order.id).filter(Order.user_id == user_id).first() is not None

    def toggle_status(self, user: User) -> User:
        """Flip active users to inactive; anything else becomes active."""
        if user.status == UserStatus.ACTIVE.value:
            user.status = UserStatus.INACTIVE.value
        else:
            user.status = UserStatus.ACTIVE.value
        self.db.flush()
        logger.info(f"Toggled user {user.id} status to {user.status}")
        return user


class ProductRepository:
    """Repository for product catalogue operations."""

    def __init__(self, db: Session):
        """Initialize with database session."""
        self.db = db

    def list_products(self, filters: Optional[Dict[str, Any]] = None, page: int = 1, per_page: int = 15) -> Page:
        """Get products, newest first, filtered by search/category/status."""
        filters = filters or {}
        query = self.db.query(Product)

        if filters.get("search"):
            term = f"%{filters['search']}%"
            query = query.filter(
                or_(
                    Product.name.like(term),
                    Product.sku.like(term),
                    Product.description.like(term),
                )
            )

        if filters.get("category"):
            query = query.filter(Product.category == filters["category"])

        if filters.get("status"):
            query = query.filter(Product.status == filters["status"])

        return paginate(query.order_by(Product.created_at.desc(), Product.id.desc()), page, per_page)

    def get_product(self, product_id: int) -> Optional[Product]:
        """Get product by ID."""
        return self.db.get(Product, product_id)

    def create_product(self, **fields) -> Product:
        """Create a new product."""
        product = Product(**fields)
        self.db.add(product)
        self.db.flush()
        logger.info(f"Created product {product.id} ({product.sku}): {product.name}, stock: {product.stock}")
        return product

    def update_product(self, product: Product, **fields) -> Product:
        """Apply field changes to an existing product."""
        for key, value in fields.items():
            setattr(product, key, value)
        self.db.flush()
        logger.info(f"Updated product {product.id}: {sorted(fields)}")
        return product

    def delete_product(self, product: Product) -> None:
        """Delete a product."""
        self.db.delete(product)
        self.db.flush()
        logger.info(f"Deleted product {product.id}")

    def has_orders(self, product_id: int) -> bool:
        return self.db.query(Order.id).filter(Order.product_id == product_id).first() is not None

    def count_products(self) -> int:
        return self.db.query(Product).count()

    def get_low_stock(self, threshold: int = 10) -> List[Product]:
        """Active products at or below ``threshold`` units."""
        return (
            self.db.query(Product)
            .filter(Product.stock <= threshold, Product.status == ProductStatus.ACTIVE.value)
            .order_by(Product.stock.asc(), Product.id.asc())
            .all()
        )

    def get_categories(self) -> List[str]:
        """Distinct, non-empty product categories."""
        rows = (
            self.db.query(Product.category)
            .filter(Product.category.isnot(None))
            .distinct()
            .order_by(Product.category)
            .all()
        )
        return [row[0] for row in rows]


class OrderRepository:
    """Repository for order operations."""

    def __init__(self, db: Session):
        """Initialize with database session."""
        self.db = db

    def _with_relations(self) -> Query:
        return self.db.query(Order).options(joinedload(Order.user), joinedload(Order.product))

    def list_orders(self, filters: Optional[Dict[str, Any]] = None, page: int = 1, per_page: int = 15) -> Page:
        """Get orders, newest first, filtered by user/product/status/order number."""
        filters = filters or {}
        query = self._with_relations()

        if filters.get("user_id"):
            query = query.filter(Order.user_id == filters["user_id"])

        if filters.get("product_id"):
            query = query.filter(Order.product_id == filters["product_id"])

        if filters.get("status"):
            query = query.filter(Order.status == filters["status"])

        if filters.get("search"):
            query = query.filter(Order.order_number.like(f"%{filters['search']}%"))

        return paginate(query.order_by(Order.created_at.desc(), Order.id.desc()), page, per_page)

    def get_order(self, order_id: int) -> Optional[Order]:
        """Get order by ID with its user and product loaded."""
        return self._with_relations().filter(Order.id == order_id).populate_existing().first()

    def create_order(self, **fields) -> Order:
        """Create a new order."""
        order = Order(**fields)
        self.db.add(order)
        self.db.flush()
        logger.info(f"Created order {order.order_number} for user {order.user_id}")
        return order

    def delete_order(self, order: Order) -> None:
        """Delete an order."""
        self.db.delete(order)
        self.db.flush()
        logger.info(f"Deleted order {order.order_number}")

    def order_number_exists(self, order_number: str) -> bool:
        """Check if order number exists."""
        return self.db.query(Order.id).filter(Order.order_number == order_number).first() is not None

    def count_by_status(self, status: str) -> int:
        """Count orders by status."""
        return self.db.query(Order).filter(Order.status == status).count()

    def get_total_revenue(self) -> Decimal:
        """Sum of total_price over completed orders."""
        total = (
            self.db.query(func.coalesce(func.sum(Order.total_price), 0))
            .filter(Order.status == OrderStatus.COMPLETED.value)
            .scalar()
        )
        return Decimal(str(total))

    def get_statistics(self) -> Dict[str, Any]:
        """Get order statistics."""
        return {
            "total": self.db.query(Order).count(),
            "pending": self.count_by_status(OrderStatus.PENDING.value),
            "processing": self.count_by_status(OrderStatus.PROCESSING.value),
            "completed": self.count_by_status(OrderStatus.COMPLETED.value),
            "cancelled": self.count_by_status(OrderStatus.CANCELLED.value),
            "total_revenue": self.get_total_revenue(),
        }
