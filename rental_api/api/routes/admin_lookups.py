from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request

from rental_api.api.query_config import (
    DEFAULT_LOOKUP_FIELDS,
    build_find_config,
    compact_selector,
    date_filters,
)
from rental_api.core.deps import get_rental_tag_service, get_rental_type_service
from rental_api.core.settings import get_app_settings
from rental_api.schemas.lookup import (
    RentalTagListResponse,
    RentalTagRead,
    RentalTypeListResponse,
    RentalTypeRead,
)
from rental_api.services.rental_tag import RentalTagService
from rental_api.services.rental_type import RentalTypeService

router = APIRouter(tags=["Admin Lookups"])


# PUBLIC_INTERFACE
@router.get(
    "/rental-types",
    response_model=RentalTypeListResponse,
    response_model_exclude_unset=True,
    summary="List rental types",
    description="Paginated rental types. `q` matches the value.",
)
async def list_rental_types(
    request: Request,
    types: RentalTypeService = Depends(get_rental_type_service),
    q: Optional[str] = Query(None),
    id: Optional[List[str]] = Query(None),
    value: Optional[List[str]] = Query(None),
    discount_condition_id: Optional[str] = Query(None),
    offset: int = Query(0, ge=0),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    fields: Optional[str] = Query(None, description="Comma separated columns"),
    order: Optional[str] = Query(None, description="Column to order by; prefix with - for descending"),
) -> RentalTypeListResponse:
    """Return a page of rental types."""
    limit = limit or get_app_settings().ADMIN_LIST_LIMIT
    selector = compact_selector(q=q, id=id, value=value, discount_condition_id=discount_condition_id)
    selector.update(date_filters(request))
    config = build_find_config(
        default_fields=DEFAULT_LOOKUP_FIELDS, fields=fields, order=order, offset=offset, limit=limit
    )
    records, count = await types.list_and_count(selector, config)
    return RentalTypeListResponse(
        rental_types=[RentalTypeRead.model_validate(t) for t in records],
        count=count,
        offset=offset,
        limit=limit,
    )


# PUBLIC_INTERFACE
@router.get(
    "/rental-tags",
    response_model=RentalTagListResponse,
    response_model_exclude_unset=True,
    summary="List rental tags",
    description="Paginated rental tags. `q` matches the value.",
)
async def list_rental_tags(
    request: Request,
    tags: RentalTagService = Depends(get_rental_tag_service),
    q: Optional[str] = Query(None),
    id: Optional[List[str]] = Query(None),
    value: Optional[List[str]] = Query(None),
    discount_condition_id: Optional[str] = Query(None),
    offset: int = Query(0, ge=0),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    fields: Optional[str] = Query(None, description="Comma separated columns"),
    order: Optional[str] = Query(None, description="Column to order by; prefix with - for descending"),
) -> RentalTagListResponse:
    """Return a page of rental tags."""
    limit = limit or get_app_settings().ADMIN_LIST_LIMIT
    selector = compact_selector(q=q, id=id, value=value, discount_condition_id=discount_condition_id)
    selector.update(date_filters(request))
    config = build_find_config(
        default_fields=DEFAULT_LOOKUP_FIELDS, fields=fields, order=order, offset=offset, limit=limit
    )
    records, count = await tags.list_and_count(selector, config)
    return RentalTagListResponse(
        rental_tags=[RentalTagRead.model_validate(t) for t in records],
        count=count,
        offset=offset,
        limit=limit,
    )
