from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront_admin.config import settings
from storefront_admin.database import get_db
from storefront_admin.order_workflow import OrderWorkflow
from storefront_admin.schemas import DashboardResponse, OrderResponse, OrderStatistics, ProductResponse
from storefront_admin.services import ProductService, UserService

router = APIRouter(tags=["dashboard"])


@router.get("/dashboard", response_model=DashboardResponse)
def dashboard(db: Session = Depends(get_db)) -> DashboardResponse:
    """Headline counts, recent orders and low-stock products."""
    users = UserService(db)
    products = ProductService(db)
    workflow = OrderWorkflow(db)

    low_stock = products.get_low_stock_products(settings.low_stock_threshold)
    recent = workflow.list_orders({}, page=1, per_page=5)

    return DashboardResponse(
        users={"total": users.count_users(), "active": users.get_active_users_count()},
        products={"total": products.count_products(), "low_stock": len(low_stock)},
        orders=OrderStatistics(**workflow.get_order_statistics()),
        recent_orders=[OrderResponse.model_validate(o) for o in recent.items],
        low_stock_products=[ProductResponse.model_validate(p) for p in low_stock],
    )
