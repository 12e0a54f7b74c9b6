from __future__ import annotations

import logging

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from rental_api.core.flags import FlagRouter
from rental_api.core.settings import get_app_settings
from rental_api.db.session import get_async_session
from rental_api.services.collaborators import (
    DatabasePriceSelectionStrategy,
    DefaultSearchService,
    PriceSelectionStrategy,
    PricingService,
    RegionService,
    SearchService,
    ShippingProfileService,
)
from rental_api.services.event_bus import EventBusService
from rental_api.services.rental import RentalService
from rental_api.services.rental_tag import RentalTagService
from rental_api.services.rental_type import RentalTypeService
from rental_api.services.rental_variant import RentalVariantService

logger = logging.getLogger(__name__)

# Process-wide collaborators. Subscribers registered on the bus outlive requests.
_event_bus = EventBusService()
_flag_router = FlagRouter.from_settings(get_app_settings())


# PUBLIC_INTERFACE
def get_event_bus() -> EventBusService:
    """Return the process-wide event bus."""
    return _event_bus


# PUBLIC_INTERFACE
def get_flag_router() -> FlagRouter:
    """Return the process-wide feature flag router."""
    return _flag_router


# PUBLIC_INTERFACE
def get_region_service(session: AsyncSession = Depends(get_async_session)) -> RegionService:
    """Region lookups bound to the request session."""
    return RegionService(session)


# PUBLIC_INTERFACE
def get_price_selection_strategy(
    session: AsyncSession = Depends(get_async_session),
) -> PriceSelectionStrategy:
    """Price selection over the money_amount table."""
    return DatabasePriceSelectionStrategy(session)


# PUBLIC_INTERFACE
def get_pricing_service(
    session: AsyncSession = Depends(get_async_session),
    price_selection: PriceSelectionStrategy = Depends(get_price_selection_strategy),
) -> PricingService:
    """Variant pricing for the request session."""
    return PricingService(session, price_selection)


# PUBLIC_INTERFACE
def get_variant_service(
    session: AsyncSession = Depends(get_async_session),
    event_bus: EventBusService = Depends(get_event_bus),
    region_service: RegionService = Depends(get_region_service),
    price_selection: PriceSelectionStrategy = Depends(get_price_selection_strategy),
) -> RentalVariantService:
    """Variant service with its collaborators wired."""
    return RentalVariantService(
        session, event_bus=event_bus, region_service=region_service, price_selection=price_selection
    )


# PUBLIC_INTERFACE
def get_shipping_profile_service(session: AsyncSession = Depends(get_async_session)) -> ShippingProfileService:
    """Shipping profile lookups bound to the request session."""
    return ShippingProfileService(session)


# PUBLIC_INTERFACE
def get_rental_service(
    session: AsyncSession = Depends(get_async_session),
    event_bus: EventBusService = Depends(get_event_bus),
    variant_service: RentalVariantService = Depends(get_variant_service),
    shipping_profile_service: ShippingProfileService = Depends(get_shipping_profile_service),
    flag_router: FlagRouter = Depends(get_flag_router),
) -> RentalService:
    """
    Rental service for one request.

    FastAPI caches dependencies per request, so the rental service and the
    variant service it delegates to share the same session and atomic phase.
    """
    return RentalService(
        session,
        event_bus=event_bus,
        variant_service=variant_service,
        shipping_profile_service=shipping_profile_service,
        flag_router=flag_router,
    )


# PUBLIC_INTERFACE
def get_rental_type_service(session: AsyncSession = Depends(get_async_session)) -> RentalTypeService:
    """Rental type service bound to the request session."""
    return RentalTypeService(session)


# PUBLIC_INTERFACE
def get_rental_tag_service(session: AsyncSession = Depends(get_async_session)) -> RentalTagService:
    """Rental tag service bound to the request session."""
    return RentalTagService(session)


# PUBLIC_INTERFACE
def get_search_service(session: AsyncSession = Depends(get_async_session)) -> SearchService:
    """Search service; the default implementation queries the rental table."""
    return DefaultSearchService(session)
