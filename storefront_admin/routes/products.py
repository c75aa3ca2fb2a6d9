from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from storefront_admin.config import settings
from storefront_admin.database import get_db
from storefront_admin.models import ProductStatus
from storefront_admin.routes import page_response, unwrap
from storefront_admin.schemas import (
    CreateProductRequest,
    PageResponse,
    ProductResponse,
    StockUpdateRequest,
    UpdateProductRequest,
)
from storefront_admin.services import ProductService

router = APIRouter(prefix="/products", tags=["products"])


@router.get("", response_model=PageResponse)
def list_products(
    search: Optional[str] = None,
    category: Optional[str] = None,
    status_filter: Optional[ProductStatus] = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=settings.default_per_page, ge=1, le=settings.max_per_page),
    db: Session = Depends(get_db),
) -> PageResponse:
    """List products, newest first."""
    filters = {
        "search": search,
        "category": category,
        "status": status_filter.value if status_filter else None,
    }
    return page_response(ProductService(db).list_products(filters, page, per_page), ProductResponse)


@router.get("/low-stock", response_model=List[ProductResponse])
def low_stock(
    threshold: int = Query(default=settings.low_stock_threshold, ge=0),
    db: Session = Depends(get_db),
) -> List[ProductResponse]:
    """Active products at or below the stock threshold."""
    return [ProductResponse.model_validate(p) for p in ProductService(db).get_low_stock_products(threshold)]


@router.get("/categories", response_model=List[str])
def categories(db: Session = Depends(get_db)) -> List[str]:
    return ProductService(db).get_all_categories()


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
def create_product(request: CreateProductRequest, db: Session = Depends(get_db)) -> ProductResponse:
    """Create a product."""
    return ProductResponse.model_validate(unwrap(ProductService(db).create_product(request.model_dump())))


@router.get("/{product_id}", response_model=ProductResponse)
def get_product(product_id: int, db: Session = Depends(get_db)) -> ProductResponse:
    """Get product details."""
    return ProductResponse.model_validate(unwrap(ProductService(db).get_product(product_id)))


@router.put("/{product_id}", response_model=ProductResponse)
def update_product(product_id: int, request: UpdateProductRequest, db: Session = Depends(get_db)) -> ProductResponse:
    """Update a product."""
    product = unwrap(ProductService(db).update_product(product_id, request.model_dump(exclude_unset=True)))
    return ProductResponse.model_validate(product)


@router.delete("/{product_id}")
def delete_product(product_id: int, db: Session = Depends(get_db)) -> dict:
    """Delete a product that no order references."""
    unwrap(ProductService(db).delete_product(product_id))
    return {"message": f"Product {product_id} deleted"}


@router.post("/{product_id}/stock", response_model=ProductResponse)
def update_stock(product_id: int, request: StockUpdateRequest, db: Session = Depends(get_db)) -> ProductResponse:
    """Add or subtract stock by hand."""
    product = unwrap(ProductService(db).update_stock(product_id, request.quantity, request.operation))
    return ProductResponse.model_validate(product)
