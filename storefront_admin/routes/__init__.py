from typing import Any, Type

from fastapi import HTTPException, status
from pydantic import BaseModel

from storefront_admin.repository import Page
from storefront_admin.results import ErrorKind, Result
from storefront_admin.schemas import PageResponse

ERROR_STATUS = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.INSUFFICIENT_STOCK: status.HTTP_409_CONFLICT,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.VALIDATION: 422,
    ErrorKind.PERSISTENCE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def unwrap(result: Result) -> Any:
    """Return the result's value or raise the matching HTTPException."""
    if result.ok:
        return result.value
    raise HTTPException(
        status_code=ERROR_STATUS[result.error.kind],
        detail={"error": result.error.kind.value, "message": result.error.message},
    )


def page_response(page: Page, schema: Type[BaseModel]) -> PageResponse:
    return PageResponse(
        items=[schema.model_validate(item) for item in page.items],
        total=page.total,
        page=page.page,
        per_page=page.per_page,
        last_page=page.last_page,
    )
