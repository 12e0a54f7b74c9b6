from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Header, Query, Request

from rental_api.api.query_config import (
    DEFAULT_STORE_RENTAL_RELATIONS,
    build_find_config,
    compact_selector,
    date_filters,
    pricing_context,
)
from rental_api.core.deps import get_flag_router, get_pricing_service, get_rental_service, get_search_service
from rental_api.core.errors import NotFoundError
from rental_api.core.flags import SALES_CHANNELS_FLAG, FlagRouter
from rental_api.core.settings import get_app_settings
from rental_api.db.models import RentalStatus
from rental_api.schemas.common import FindConfig
from rental_api.schemas.rental import RentalListResponse, RentalRead, RentalResponse, StoreSearchReq
from rental_api.services.collaborators import PricingService, SearchService
from rental_api.services.rental import RentalService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rentals", tags=["Store Rentals"])


def _scoped_channel(flag_router: FlagRouter, sales_channel_id: Optional[str]) -> Optional[str]:
    """The sales channel a store request is scoped to, when sales channels are enabled."""
    if not flag_router.is_feature_enabled(SALES_CHANNELS_FLAG):
        return None
    return sales_channel_id or None


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=RentalListResponse,
    response_model_exclude_unset=True,
    summary="List published rentals",
    description="List published rentals with variants priced for the given region or currency.",
)
async def list_store_rentals(
    request: Request,
    rentals: RentalService = Depends(get_rental_service),
    pricing: PricingService = Depends(get_pricing_service),
    flag_router: FlagRouter = Depends(get_flag_router),
    x_sales_channel_id: Optional[str] = Header(default=None, alias="X-Sales-Channel-ID"),
    q: Optional[str] = Query(None, description="Free text search"),
    id: Optional[List[str]] = Query(None),
    collection_id: Optional[List[str]] = Query(None),
    tags: Optional[List[str]] = Query(None, description="Tag ids (any match)"),
    type_id: Optional[List[str]] = Query(None),
    title: Optional[str] = Query(None),
    description: Optional[str] = Query(None),
    handle: Optional[str] = Query(None),
    is_giftcard: Optional[bool] = Query(None),
    region_id: Optional[str] = Query(None),
    currency_code: Optional[str] = Query(None),
    offset: int = Query(0, ge=0),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    expand: Optional[str] = Query(None, description="Comma separated relations"),
    fields: Optional[str] = Query(None, description="Comma separated columns"),
    order: Optional[str] = Query(None, description="Column to order by; prefix with - for descending"),
) -> RentalListResponse:
    """
    Return a page of published rentals.

    Only published rentals are visible in the store whatever the query says. With
    sales channels enabled, a request scoped by X-Sales-Channel-ID only sees
    rentals of that channel.
    """
    limit = limit or get_app_settings().STORE_LIST_LIMIT
    selector = compact_selector(
        q=q,
        id=id,
        collection_id=collection_id,
        tags=tags,
        type_id=type_id,
        title=title,
        description=description,
        handle=handle,
        is_giftcard=is_giftcard,
    )
    selector.update(date_filters(request))
    selector["status"] = [RentalStatus.PUBLISHED.value]

    extra_relations = []
    channel = _scoped_channel(flag_router, x_sales_channel_id)
    if channel:
        selector["sales_channel_id"] = [channel]
        extra_relations.append("sales_channels")

    config = build_find_config(
        default_relations=DEFAULT_STORE_RENTAL_RELATIONS,
        expand=expand,
        fields=fields,
        order=order,
        offset=offset,
        limit=limit,
        extra_relations=extra_relations,
    )
    records, count = await rentals.list_and_count(selector, config)
    await pricing.set_rental_prices(
        records, pricing_context(region_id, currency_code, include_discount_prices=True)
    )
    return RentalListResponse(
        rentals=[RentalRead.model_validate(r) for r in records],
        count=count,
        offset=offset,
        limit=limit,
    )


# PUBLIC_INTERFACE
@router.get(
    "/{rental_id}",
    response_model=RentalResponse,
    response_model_exclude_unset=True,
    summary="Get a rental",
    description="Return one rental with the store relations, priced for the given region or currency.",
)
async def get_store_rental(
    rental_id: str,
    rentals: RentalService = Depends(get_rental_service),
    pricing: PricingService = Depends(get_pricing_service),
    flag_router: FlagRouter = Depends(get_flag_router),
    x_sales_channel_id: Optional[str] = Header(default=None, alias="X-Sales-Channel-ID"),
    region_id: Optional[str] = Query(None),
    currency_code: Optional[str] = Query(None),
    quantity: Optional[int] = Query(None, ge=1),
) -> RentalResponse:
    """Return a priced rental."""
    channel = _scoped_channel(flag_router, x_sales_channel_id)
    if channel and not await rentals.is_rental_in_sales_channels(rental_id, [channel]):
        raise NotFoundError(f"Rental with id: {rental_id} is not associated with sales channel {channel}")
    rental = await rentals.retrieve(rental_id, FindConfig(relations=list(DEFAULT_STORE_RENTAL_RELATIONS)))
    await pricing.set_rental_prices(
        [rental], pricing_context(region_id, currency_code, quantity, include_discount_prices=True)
    )
    return RentalResponse(rental=RentalRead.model_validate(rental))


# PUBLIC_INTERFACE
@router.post(
    "/search",
    summary="Search rentals",
    description="Forward a free-text query to the search service and return its hits.",
)
async def search_rentals(
    payload: StoreSearchReq,
    search: SearchService = Depends(get_search_service),
) -> Dict[str, Any]:
    """Search the rental index. Keys beyond q, offset, limit and filter are passed through as options."""
    options: Dict[str, Any] = dict(payload.model_extra or {})
    options.update({"offset": payload.offset, "limit": payload.limit, "filter": payload.filter})
    return await search.search(RentalService.IndexName, payload.q, options)
