from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request

from rental_api.api.query_config import (
    DEFAULT_ADMIN_RENTAL_FIELDS,
    DEFAULT_ADMIN_RENTAL_RELATIONS,
    DEFAULT_ADMIN_RENTAL_VARIANT_FIELDS,
    build_find_config,
    compact_selector,
    date_filters,
    includes_pricing,
    merge_fields,
    pricing_context,
)
from rental_api.core.deps import (
    get_flag_router,
    get_pricing_service,
    get_rental_service,
    get_variant_service,
)
from rental_api.core.flags import SALES_CHANNELS_FLAG, FlagRouter
from rental_api.core.settings import get_app_settings
from rental_api.db.models import Rental, RentalStatus
from rental_api.schemas.common import FindConfig
from rental_api.schemas.rental import (
    CreateRentalInput,
    CreateRentalVariantInput,
    MetadataInput,
    OptionDeleteResponse,
    RentalListResponse,
    RentalOptionInput,
    RentalRead,
    RentalResponse,
    RentalDeleteResponse,
    RentalTagUsageResponse,
    RentalTypesResponse,
    RentalVariantRead,
    UpdateRentalInput,
    UpdateRentalOptionInput,
    UpdateRentalVariantInput,
    VariantDeleteResponse,
    VariantListResponse,
)
from rental_api.schemas.lookup import RentalTagUsage, RentalTypeRead
from rental_api.services.collaborators import PricingService
from rental_api.services.rental import RentalService
from rental_api.services.rental_variant import RentalVariantService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rentals", tags=["Admin Rentals"])


def _admin_relations(flag_router: FlagRouter) -> List[str]:
    relations = list(DEFAULT_ADMIN_RENTAL_RELATIONS)
    if flag_router.is_feature_enabled(SALES_CHANNELS_FLAG):
        relations.append("sales_channels")
    return relations


def _admin_retrieve_config(flag_router: FlagRouter) -> FindConfig:
    return FindConfig(select=list(DEFAULT_ADMIN_RENTAL_FIELDS), relations=_admin_relations(flag_router))


async def _priced_rental(
    rental_id: str,
    rentals: RentalService,
    pricing: PricingService,
    flag_router: FlagRouter,
    region_id: Optional[str] = None,
    currency_code: Optional[str] = None,
) -> RentalRead:
    """Reload a rental with the admin defaults and price its variants."""
    rental = await rentals.retrieve(rental_id, _admin_retrieve_config(flag_router))
    await pricing.set_rental_prices([rental], pricing_context(region_id, currency_code))
    return RentalRead.model_validate(rental)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=RentalListResponse,
    response_model_exclude_unset=True,
    summary="List rentals",
    description="List rentals with filters, free-text search, pagination, expand, fields and order.",
)
async def list_rentals(
    request: Request,
    rentals: RentalService = Depends(get_rental_service),
    pricing: PricingService = Depends(get_pricing_service),
    flag_router: FlagRouter = Depends(get_flag_router),
    q: Optional[str] = Query(None, description="Free text over title, description, variants and collection"),
    id: Optional[List[str]] = Query(None, description="Filter by rental ids"),
    status: Optional[List[RentalStatus]] = Query(None, description="Filter by status"),
    collection_id: Optional[List[str]] = Query(None),
    tags: Optional[List[str]] = Query(None, description="Tag ids (any match)"),
    type_id: Optional[List[str]] = Query(None),
    price_list_id: Optional[List[str]] = Query(None),
    sales_channel_id: Optional[List[str]] = Query(None),
    discount_condition_id: Optional[str] = Query(None),
    title: Optional[str] = Query(None),
    description: Optional[str] = Query(None),
    handle: Optional[str] = Query(None),
    is_giftcard: Optional[bool] = Query(None),
    region_id: Optional[str] = Query(None, description="Region used to price variants"),
    currency_code: Optional[str] = Query(None, description="Currency used to price variants"),
    offset: int = Query(0, ge=0),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    expand: Optional[str] = Query(None, description="Comma separated relations"),
    fields: Optional[str] = Query(None, description="Comma separated columns"),
    order: Optional[str] = Query(None, description="Column to order by; prefix with - for descending"),
) -> RentalListResponse:
    """
    Return a page of rentals with the total count.

    Variants are priced when both `variants` and `variants.prices` are loaded.
    """
    limit = limit or get_app_settings().ADMIN_LIST_LIMIT
    selector = compact_selector(
        q=q,
        id=id,
        status=[s.value for s in status] if status else None,
        collection_id=collection_id,
        tags=tags,
        type_id=type_id,
        price_list_id=price_list_id,
        sales_channel_id=sales_channel_id if flag_router.is_feature_enabled(SALES_CHANNELS_FLAG) else None,
        discount_condition_id=discount_condition_id,
        title=title,
        description=description,
        handle=handle,
        is_giftcard=is_giftcard,
    )
    selector.update(date_filters(request))
    config = build_find_config(
        default_relations=_admin_relations(flag_router),
        expand=expand,
        fields=fields,
        order=order,
        offset=offset,
        limit=limit,
    )
    records, count = await rentals.list_and_count(selector, config)
    if includes_pricing(config):
        await pricing.set_rental_prices(records, pricing_context(region_id, currency_code))
    return RentalListResponse(
        rentals=[RentalRead.model_validate(r) for r in records],
        count=count,
        offset=offset,
        limit=limit,
    )


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=RentalResponse,
    response_model_exclude_unset=True,
    summary="Create a rental",
    description="Create a rental with its options and variants in one transaction.",
)
async def create_rental(
    payload: CreateRentalInput,
    rentals: RentalService = Depends(get_rental_service),
    pricing: PricingService = Depends(get_pricing_service),
    flag_router: FlagRouter = Depends(get_flag_router),
) -> RentalResponse:
    """Create the rental, its options and its variants, then return it with the admin defaults."""
    created = await rentals.create_with_variants(payload)
    rental = await _priced_rental(created.id, rentals, pricing, flag_router)
    return RentalResponse(rental=rental)


# PUBLIC_INTERFACE
@router.get(
    "/types",
    response_model=RentalTypesResponse,
    response_model_exclude_unset=True,
    summary="List rental types",
)
async def list_rental_types(rentals: RentalService = Depends(get_rental_service)) -> RentalTypesResponse:
    """Return every live rental type ordered by value."""
    types = await rentals.list_types()
    return RentalTypesResponse(types=[RentalTypeRead.model_validate(t) for t in types])


# PUBLIC_INTERFACE
@router.get(
    "/tag-usage",
    response_model=RentalTagUsageResponse,
    summary="List tags by usage",
    description="Return the most used rental tags with the number of rentals carrying each.",
)
async def list_tag_usage(rentals: RentalService = Depends(get_rental_service)) -> RentalTagUsageResponse:
    """Return the most used tags."""
    tags = await rentals.list_tags_by_usage()
    return RentalTagUsageResponse(tags=[RentalTagUsage(**t) for t in tags])


# PUBLIC_INTERFACE
@router.get(
    "/{rental_id}",
    response_model=RentalResponse,
    response_model_exclude_unset=True,
    summary="Get a rental",
)
async def get_rental(
    rental_id: str,
    rentals: RentalService = Depends(get_rental_service),
    pricing: PricingService = Depends(get_pricing_service),
    flag_router: FlagRouter = Depends(get_flag_router),
    region_id: Optional[str] = Query(None),
    currency_code: Optional[str] = Query(None),
    expand: Optional[str] = Query(None, description="Comma separated relations"),
    fields: Optional[str] = Query(None, description="Comma separated columns"),
) -> RentalResponse:
    """Return one rental with the admin default relations and fields, priced for the given context."""
    config = build_find_config(
        default_relations=_admin_relations(flag_router),
        default_fields=DEFAULT_ADMIN_RENTAL_FIELDS,
        expand=expand,
        fields=fields,
    )
    rental = await rentals.retrieve(rental_id, config)
    await pricing.set_rental_prices([rental], pricing_context(region_id, currency_code))
    return RentalResponse(rental=RentalRead.model_validate(rental))


# PUBLIC_INTERFACE
@router.post(
    "/{rental_id}",
    response_model=RentalResponse,
    response_model_exclude_unset=True,
    summary="Update a rental",
    description="Apply the keys present in the payload; variants are reconciled against the given list.",
)
async def update_rental(
    rental_id: str,
    payload: UpdateRentalInput,
    rentals: RentalService = Depends(get_rental_service),
    pricing: PricingService = Depends(get_pricing_service),
    flag_router: FlagRouter = Depends(get_flag_router),
) -> RentalResponse:
    """Update a rental and return it with the admin defaults."""
    await rentals.update(rental_id, payload)
    rental = await _priced_rental(rental_id, rentals, pricing, flag_router)
    return RentalResponse(rental=rental)


# PUBLIC_INTERFACE
@router.delete(
    "/{rental_id}",
    response_model=RentalDeleteResponse,
    summary="Delete a rental",
    description="Soft-delete a rental with its variants, options, option values and prices. Idempotent.",
)
async def delete_rental(
    rental_id: str,
    rentals: RentalService = Depends(get_rental_service),
) -> RentalDeleteResponse:
    """Delete a rental."""
    await rentals.delete(rental_id)
    return RentalDeleteResponse(id=rental_id, object="rental", deleted=True)


# PUBLIC_INTERFACE
@router.get(
    "/{rental_id}/variants",
    response_model=VariantListResponse,
    response_model_exclude_unset=True,
    summary="List the variants of a rental",
)
async def list_rental_variants(
    rental_id: str,
    variants: RentalVariantService = Depends(get_variant_service),
    offset: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    expand: Optional[str] = Query(None, description="Comma separated relations"),
    fields: Optional[str] = Query(None, description="Comma separated columns; id and rental_id are always included"),
) -> VariantListResponse:
    """Return a page of variants of one rental."""
    config = build_find_config(
        fields=merge_fields(DEFAULT_ADMIN_RENTAL_VARIANT_FIELDS, fields),
        expand=expand,
        offset=offset,
        limit=limit,
    )
    records, count = await variants.list_and_count({"rental_id": rental_id}, config)
    return VariantListResponse(
        variants=[RentalVariantRead.model_validate(v) for v in records],
        count=count,
        offset=offset,
        limit=limit,
    )


# PUBLIC_INTERFACE
@router.post(
    "/{rental_id}/variants",
    response_model=RentalResponse,
    response_model_exclude_unset=True,
    summary="Create a variant",
    description="Create a variant holding one value per rental option.",
)
async def create_rental_variant(
    rental_id: str,
    payload: CreateRentalVariantInput,
    rentals: RentalService = Depends(get_rental_service),
    variants: RentalVariantService = Depends(get_variant_service),
    pricing: PricingService = Depends(get_pricing_service),
    flag_router: FlagRouter = Depends(get_flag_router),
) -> RentalResponse:
    """Create a variant and return the parent rental."""
    await variants.create(rental_id, payload)
    rental = await _priced_rental(rental_id, rentals, pricing, flag_router)
    return RentalResponse(rental=rental)


# PUBLIC_INTERFACE
@router.post(
    "/{rental_id}/variants/{variant_id}",
    response_model=RentalResponse,
    response_model_exclude_unset=True,
    summary="Update a variant",
)
async def update_rental_variant(
    rental_id: str,
    variant_id: str,
    payload: UpdateRentalVariantInput,
    rentals: RentalService = Depends(get_rental_service),
    variants: RentalVariantService = Depends(get_variant_service),
    pricing: PricingService = Depends(get_pricing_service),
    flag_router: FlagRouter = Depends(get_flag_router),
    region_id: Optional[str] = Query(None),
    currency_code: Optional[str] = Query(None),
) -> RentalResponse:
    """Update a variant and return the parent rental priced for the given context."""
    await variants.update(variant_id, payload)
    rental = await _priced_rental(rental_id, rentals, pricing, flag_router, region_id, currency_code)
    return RentalResponse(rental=rental)


# PUBLIC_INTERFACE
@router.delete(
    "/{rental_id}/variants/{variant_id}",
    response_model=VariantDeleteResponse,
    response_model_exclude_unset=True,
    summary="Delete a variant",
)
async def delete_rental_variant(
    rental_id: str,
    variant_id: str,
    rentals: RentalService = Depends(get_rental_service),
    variants: RentalVariantService = Depends(get_variant_service),
    pricing: PricingService = Depends(get_pricing_service),
    flag_router: FlagRouter = Depends(get_flag_router),
) -> VariantDeleteResponse:
    """Soft-delete a variant and return the parent rental."""
    await variants.delete(variant_id)
    rental = await _priced_rental(rental_id, rentals, pricing, flag_router)
    return VariantDeleteResponse(variant_id=variant_id, object="rental-variant", deleted=True, rental=rental)


# PUBLIC_INTERFACE
@router.post(
    "/{rental_id}/options",
    response_model=RentalResponse,
    response_model_exclude_unset=True,
    summary="Add an option",
    description="Add an option; existing variants get the value 'Default Value' for it.",
)
async def add_rental_option(
    rental_id: str,
    payload: RentalOptionInput,
    rentals: RentalService = Depends(get_rental_service),
    pricing: PricingService = Depends(get_pricing_service),
    flag_router: FlagRouter = Depends(get_flag_router),
) -> RentalResponse:
    """Add an option to a rental."""
    await rentals.add_option(rental_id, payload.title)
    rental = await _priced_rental(rental_id, rentals, pricing, flag_router)
    return RentalResponse(rental=rental)


# PUBLIC_INTERFACE
@router.post(
    "/{rental_id}/options/{option_id}",
    response_model=RentalResponse,
    response_model_exclude_unset=True,
    summary="Update an option",
)
async def update_rental_option(
    rental_id: str,
    option_id: str,
    payload: UpdateRentalOptionInput,
    rentals: RentalService = Depends(get_rental_service),
    pricing: PricingService = Depends(get_pricing_service),
    flag_router: FlagRouter = Depends(get_flag_router),
) -> RentalResponse:
    """Rename an option and update its values."""
    await rentals.update_option(rental_id, option_id, payload)
    rental = await _priced_rental(rental_id, rentals, pricing, flag_router)
    return RentalResponse(rental=rental)


# PUBLIC_INTERFACE
@router.delete(
    "/{rental_id}/options/{option_id}",
    response_model=OptionDeleteResponse,
    response_model_exclude_unset=True,
    summary="Delete an option",
    description="Delete an option. Rejected when variants would no longer be distinguishable.",
)
async def delete_rental_option(
    rental_id: str,
    option_id: str,
    rentals: RentalService = Depends(get_rental_service),
    flag_router: FlagRouter = Depends(get_flag_router),
) -> OptionDeleteResponse:
    """Delete an option and return the rental."""
    await rentals.delete_option(rental_id, option_id)
    rental: Rental = await rentals.retrieve(rental_id, _admin_retrieve_config(flag_router))
    return OptionDeleteResponse(
        option_id=option_id, object="option", deleted=True, rental=RentalRead.model_validate(rental)
    )


# PUBLIC_INTERFACE
@router.post(
    "/{rental_id}/metadata",
    response_model=RentalResponse,
    response_model_exclude_unset=True,
    summary="Set a metadata key",
    description="Set one metadata key; an empty string value removes the key.",
)
async def set_rental_metadata(
    rental_id: str,
    payload: MetadataInput,
    rentals: RentalService = Depends(get_rental_service),
    pricing: PricingService = Depends(get_pricing_service),
    flag_router: FlagRouter = Depends(get_flag_router),
) -> RentalResponse:
    """Set a metadata key on a rental."""
    await rentals.set_metadata(rental_id, payload.key, payload.value)
    rental = await _priced_rental(rental_id, rentals, pricing, flag_router)
    return RentalResponse(rental=rental)
