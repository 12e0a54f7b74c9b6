from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from rental_api.api.query_config import (
    DEFAULT_ADMIN_VARIANT_FIELDS,
    DEFAULT_ADMIN_VARIANT_RELATIONS,
    build_find_config,
    compact_selector,
    pricing_context,
)
from rental_api.core.deps import get_pricing_service, get_variant_service
from rental_api.core.settings import get_app_settings
from rental_api.schemas.rental import RentalVariantRead, VariantListResponse
from rental_api.services.collaborators import PricingService
from rental_api.services.rental_variant import RentalVariantService

router = APIRouter(prefix="/variants", tags=["Admin Variants"])


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=VariantListResponse,
    response_model_exclude_unset=True,
    summary="List variants",
    description="List variants across rentals. `q` matches variant title or sku and the rental title.",
)
async def list_variants(
    variants: RentalVariantService = Depends(get_variant_service),
    pricing: PricingService = Depends(get_pricing_service),
    q: Optional[str] = Query(None, description="Free text search"),
    id: Optional[List[str]] = Query(None, description="Filter by variant ids"),
    title: Optional[str] = Query(None),
    sku: Optional[str] = Query(None),
    rental_id: Optional[List[str]] = Query(None),
    region_id: Optional[str] = Query(None, description="Region used to price variants"),
    currency_code: Optional[str] = Query(None, description="Currency used to price variants"),
    offset: int = Query(0, ge=0),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    expand: Optional[str] = Query(None, description="Comma separated relations"),
    fields: Optional[str] = Query(None, description="Comma separated columns"),
    order: Optional[str] = Query(None, description="Column to order by; prefix with - for descending"),
) -> VariantListResponse:
    """
    Return a page of variants with the total count.

    Variants carry original_price and calculated_price for the given region or
    currency; without either both are null.
    """
    limit = limit or get_app_settings().ADMIN_LIST_LIMIT
    selector = compact_selector(q=q, id=id, title=title, sku=sku, rental_id=rental_id)
    config = build_find_config(
        default_relations=DEFAULT_ADMIN_VARIANT_RELATIONS,
        default_fields=DEFAULT_ADMIN_VARIANT_FIELDS,
        expand=expand,
        fields=fields,
        order=order,
        offset=offset,
        limit=limit,
    )
    records, count = await variants.list_and_count(selector, config)
    await pricing.set_variant_prices(records, pricing_context(region_id, currency_code))
    return VariantListResponse(
        variants=[RentalVariantRead.model_validate(v) for v in records],
        count=count,
        offset=offset,
        limit=limit,
    )
