from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from storefront_admin.config import settings
from storefront_admin.database import get_db
from storefront_admin.models import OrderStatus
from storefront_admin.order_workflow import OrderWorkflow
from storefront_admin.routes import page_response, unwrap
from storefront_admin.schemas import (
    CreateOrderRequest,
    OrderResponse,
    OrderStatistics,
    OrderStatusRequest,
    PageResponse,
    UpdateOrderRequest,
)

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("", response_model=PageResponse)
def list_orders(
    search: Optional[str] = None,
    user_id: Optional[int] = None,
    product_id: Optional[int] = None,
    status_filter: Optional[OrderStatus] = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=settings.default_per_page, ge=1, le=settings.max_per_page),
    db: Session = Depends(get_db),
) -> PageResponse:
    """List orders, newest first."""
    filters = {
        "search": search,
        "user_id": user_id,
        "product_id": product_id,
        "status": status_filter.value if status_filter else None,
    }
    return page_response(OrderWorkflow(db).list_orders(filters, page, per_page), OrderResponse)


@router.get("/statistics", response_model=OrderStatistics)
def statistics(db: Session = Depends(get_db)) -> OrderStatistics:
    """Order counts per status and completed revenue."""
    return OrderStatistics(**OrderWorkflow(db).get_order_statistics())


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
def create_order(request: CreateOrderRequest, db: Session = Depends(get_db)) -> OrderResponse:
    """Place an order."""
    return OrderResponse.model_validate(unwrap(OrderWorkflow(db).create_order(request.model_dump())))


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(order_id: int, db: Session = Depends(get_db)) -> OrderResponse:
    """Get order details."""
    return OrderResponse.model_validate(unwrap(OrderWorkflow(db).get_order(order_id)))


@router.put("/{order_id}", response_model=OrderResponse)
def update_order(order_id: int, request: UpdateOrderRequest, db: Session = Depends(get_db)) -> OrderResponse:
    """Update an order."""
    order = unwrap(OrderWorkflow(db).update_order(order_id, request.model_dump(exclude_unset=True)))
    return OrderResponse.model_validate(order)


@router.delete("/{order_id}")
def delete_order(order_id: int, db: Session = Depends(get_db)) -> dict:
    """Delete an order."""
    unwrap(OrderWorkflow(db).delete_order(order_id))
    return {"message": f"Order {order_id} deleted"}


@router.post("/{order_id}/status", response_model=OrderResponse)
def update_status(order_id: int, request: OrderStatusRequest, db: Session = Depends(get_db)) -> OrderResponse:
    """Change an order's status."""
    return OrderResponse.model_validate(unwrap(OrderWorkflow(db).update_order_status(order_id, request.status)))
