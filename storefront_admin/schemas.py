import re
from datetime import datetime
from decimal import Decimal
from typing import Any, ClassVar, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from storefront_admin.models import OrderStatus, ProductStatus, UserStatus

NAME_PATTERN = re.compile(r"^[a-zA-Z\s]+$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PHONE_PATTERN = re.compile(r"^[\+]?[(]?[0-9]{3}[)]?[-\s\.]?[0-9]{3}[-\s\.]?[0-9]{4,6}$")


def check_password_strength(password: str) -> str:
    if len(password) < 8:
        raise ValueError("password must be at least 8 characters")
    if not re.search(r"[a-z]", password) or not re.search(r"[A-Z]", password):
        raise ValueError("password must contain upper and lower case letters")
    if not re.search(r"[0-9]", password):
        raise ValueError("password must contain a number")
    if not re.search(r"[^a-zA-Z0-9]", password):
        raise ValueError("password must contain a symbol")
    return password


class PartialUpdate(BaseModel):
    """Update request where an omitted field means "unchanged".

    Fields listed in ``NOT_NULL`` may be omitted but not sent as null.
    """

    NOT_NULL: ClassVar[Tuple[str, ...]] = ()

    @model_validator(mode="after")
    def reject_nulls(self):
        nulled = [name for name in self.NOT_NULL if name in self.model_fields_set and getattr(self, name) is None]
        if nulled:
            raise ValueError(f"{', '.join(nulled)} may not be null")
        return self


# Users


class UserFields(BaseModel):
    """Validation shared by user create and update requests."""

    model_config = ConfigDict(use_enum_values=True)

    @field_validator("name", check_fields=False)
    @classmethod
    def validate_name(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not NAME_PATTERN.match(value):
            raise ValueError("name may only contain letters and spaces")
        return value

    @field_validator("email", check_fields=False)
    @classmethod
    def validate_email(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip().lower()
        if not EMAIL_PATTERN.match(value):
            raise ValueError("email must be a valid address")
        return value

    @field_validator("phone", check_fields=False)
    @classmethod
    def validate_phone(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not PHONE_PATTERN.match(value):
            raise ValueError("phone format is invalid")
        return value

    @field_validator("password", check_fields=False)
    @classmethod
    def validate_password(cls, value: Optional[str]) -> Optional[str]:
        return check_password_strength(value) if value is not None else value

    @model_validator(mode="after")
    def passwords_match(self):
        password = getattr(self, "password", None)
        if password is not None and password != getattr(self, "password_confirmation", None):
            raise ValueError("password confirmation does not match")
        return self


class CreateUserRequest(UserFields):
    """Request to create a user."""

    name: str = Field(min_length=2, max_length=255)
    email: str = Field(max_length=255)
    password: str
    password_confirmation: str
    age: Optional[int] = Field(default=None, ge=18, le=150)
    phone: Optional[str] = None
    status: UserStatus = UserStatus.ACTIVE


class UpdateUserRequest(UserFields, PartialUpdate):
    """Request to update a user; only fields sent are changed."""

    NOT_NULL = ("name", "email", "status")

    name: Optional[str] = Field(default=None, min_length=2, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = None
    password_confirmation: Optional[str] = None
    age: Optional[int] = Field(default=None, ge=18, le=150)
    phone: Optional[str] = None
    status: Optional[UserStatus] = None


class BulkUserEntry(BaseModel):
    """One user in a bulk import; status is always active."""

    name: str = Field(min_length=2, max_length=255)
    email: str = Field(max_length=255)
    password: str = Field(min_length=8)

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        value = value.strip().lower()
        if not EMAIL_PATTERN.match(value):
            raise ValueError("email must be a valid address")
        return value


class BulkCreateUsersRequest(BaseModel):
    """Request to create up to 100 users in one transaction."""

    users: List[BulkUserEntry] = Field(min_length=1, max_length=100)


class BulkCreateUsersResponse(BaseModel):
    message: str
    count: int


class UserResponse(BaseModel):
    """Response model for user."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    age: Optional[int] = None
    phone: Optional[str] = None
    status: str
    email_verified_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class UserSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str


# Products


class CreateProductRequest(BaseModel):
    """Request to create a product."""

    model_config = ConfigDict(use_enum_values=True)

    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    sku: str = Field(min_length=1, max_length=100)
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    stock: int = Field(default=0, ge=0)
    category: Optional[str] = Field(default=None, max_length=100)
    status: ProductStatus = ProductStatus.ACTIVE
    is_featured: bool = False


class UpdateProductRequest(PartialUpdate):
    """Request to update a product; only fields sent are changed."""

    NOT_NULL = ("name", "sku", "price", "stock", "status", "is_featured")

    model_config = ConfigDict(use_enum_values=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    sku: Optional[str] = Field(default=None, min_length=1, max_length=100)
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    stock: Optional[int] = Field(default=None, ge=0)
    category: Optional[str] = Field(default=None, max_length=100)
    status: Optional[ProductStatus] = None
    is_featured: Optional[bool] = None


class StockUpdateRequest(BaseModel):
    """Manual stock correction."""

    quantity: int = Field(gt=0)
    operation: Literal["add", "subtract"] = "add"


class ProductResponse(BaseModel):
    """Response model for product."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    sku: str
    price: Decimal
    stock: int
    category: Optional[str] = None
    status: str
    is_featured: bool
    created_at: Optional[datetime] = None


class ProductSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    sku: str
    price: Decimal


# Orders


class CreateOrderRequest(BaseModel):
    """Request to create an order."""

    user_id: int
    product_id: int
    quantity: int = Field(gt=0)
    notes: Optional[str] = Field(default=None, max_length=1000)


class UpdateOrderRequest(PartialUpdate):
    """Request to update an order; only fields sent are changed."""

    NOT_NULL = ("user_id", "product_id", "quantity", "status")

    model_config = ConfigDict(use_enum_values=True)

    user_id: Optional[int] = None
    product_id: Optional[int] = None
    quantity: Optional[int] = Field(default=None, gt=0)
    status: Optional[OrderStatus] = None
    notes: Optional[str] = Field(default=None, max_length=1000)


class OrderStatusRequest(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    status: OrderStatus


class OrderResponse(BaseModel):
    """Response model for order."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    order_number: str
    user_id: int
    product_id: int
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    status: str
    notes: Optional[str] = None
    ordered_at: datetime
    processed_at: Optional[datetime] = None
    user: Optional[UserSummary] = None
    product: Optional[ProductSummary] = None


class OrderStatistics(BaseModel):
    total: int
    pending: int
    processing: int
    completed: int
    cancelled: int
    total_revenue: Decimal


# Shared


class PageResponse(BaseModel):
    """Pagination envelope."""

    items: List[Any]
    total: int
    page: int
    per_page: int
    last_page: int


class DashboardResponse(BaseModel):
    users: Dict[str, int]
    products: Dict[str, int]
    orders: OrderStatistics
    recent_orders: List[OrderResponse]
    low_stock_products: List[ProductResponse]


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str
    service: str
    version: str
