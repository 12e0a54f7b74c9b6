"""
Collaborator services the catalog depends on.

Each contract is small (a Protocol where more than one implementation is
expected). The default implementations below are table backed so the service
runs standalone; a host platform can pass its own objects to the rental
services instead.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Protocol

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.ext.asyncio import AsyncSession

from rental_api.core.errors import NotFoundError
from rental_api.db.models import MoneyAmount, Region, Rental, RentalVariant, ShippingProfile, ShippingProfileType
from rental_api.repositories.commerce import RegionRepository, ShippingProfileRepository
from rental_api.repositories.rental import RentalRepository
from rental_api.repositories.rental_variant import MoneyAmountRepository
from rental_api.schemas.common import FindConfig
from rental_api.schemas.pricing import PriceSelectionContext, PriceSelectionResult
from rental_api.services.base import BaseService

logger = logging.getLogger(__name__)


class PriceSelectionStrategy(Protocol):
    """Chooses the prices of a variant for a context."""

    async def calculate_variant_price(
        self, variant_id: str, context: PriceSelectionContext
    ) -> PriceSelectionResult: ...


class SearchService(Protocol):
    """Full-text search over an index."""

    async def search(self, index_name: str, q: Optional[str], options: Dict[str, Any]) -> Dict[str, Any]: ...


class RegionService(BaseService):
    """Region lookups."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.regions = RegionRepository(session)

    # PUBLIC_INTERFACE
    async def retrieve(self, region_id: str) -> Region:
        """Return a live region or raise NotFoundError."""
        region = await self.regions.find_one({"id": region_id}) if region_id else None
        if region is None:
            raise NotFoundError(f"Region with id: {region_id} was not found")
        return region


class ShippingProfileService(BaseService):
    """Resolves the shipping profiles assigned to new rentals."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.profiles = ShippingProfileRepository(session)

    async def _by_type(self, profile_type: ShippingProfileType) -> ShippingProfile:
        profile = await self.profiles.find_by_type(profile_type.value)
        if profile is None:
            raise NotFoundError(f"Shipping profile of type {profile_type.value} was not found")
        return profile

    # PUBLIC_INTERFACE
    async def retrieve_default(self) -> ShippingProfile:
        """The default profile (NotFoundError when not seeded)."""
        return await self._by_type(ShippingProfileType.DEFAULT)

    # PUBLIC_INTERFACE
    async def retrieve_gift_card_default(self) -> ShippingProfile:
        """The gift card profile (NotFoundError when not seeded)."""
        return await self._by_type(ShippingProfileType.GIFT_CARD)


class DatabasePriceSelectionStrategy(BaseService):
    """
    Price selection over the money_amount table.

    A price applies when it is scoped to the context region, or to the context
    currency without a region. With a quantity, min/max bounds must contain it;
    without one only unbounded prices apply. Price-list prices are considered
    only when include_discount_prices is set.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.money_amounts = MoneyAmountRepository(session)
        self.regions = RegionRepository(session)

    @staticmethod
    def _in_scope(price: MoneyAmount, region_id: Optional[str], currency_code: Optional[str]) -> bool:
        if region_id and price.region_id == region_id:
            return True
        return bool(currency_code) and price.region_id is None and price.currency_code == currency_code

    @staticmethod
    def _in_quantity(price: MoneyAmount, quantity: Optional[int]) -> bool:
        if quantity is None:
            # unbounded, or capped above with no lower bound
            return not price.min_quantity
        if price.min_quantity is not None and quantity < price.min_quantity:
            return False
        if price.max_quantity is not None and quantity > price.max_quantity:
            return False
        return True

    # PUBLIC_INTERFACE
    async def calculate_variant_price(
        self, variant_id: str, context: PriceSelectionContext
    ) -> PriceSelectionResult:
        """Return the default and the lowest applicable price of a variant."""
        currency_code = context.currency_code.lower() if context.currency_code else None
        if context.region_id and not currency_code:
            region = await self.regions.find_one({"id": context.region_id})
            currency_code = region.currency_code if region is not None else None

        prices = await self.money_amounts.list_variant_prices(variant_id, context.include_discount_prices)
        applicable = [
            p
            for p in prices
            if self._in_scope(p, context.region_id, currency_code) and self._in_quantity(p, context.quantity)
        ]
        if not applicable:
            return PriceSelectionResult()

        defaults = [p for p in applicable if p.price_list_id is None]
        # region-scoped default wins over the currency default
        defaults.sort(key=lambda p: p.region_id is None)
        original = defaults[0].amount if defaults else None
        return PriceSelectionResult(
            original_price=original,
            calculated_price=min(p.amount for p in applicable),
            prices=applicable,
        )


class PricingService(BaseService):
    """Annotates variants with prices for a selection context."""

    def __init__(self, session: AsyncSession, price_selection: PriceSelectionStrategy) -> None:
        super().__init__(session)
        self.price_selection = price_selection

    # PUBLIC_INTERFACE
    async def set_variant_prices(
        self, variants: Iterable[RentalVariant], context: PriceSelectionContext
    ) -> List[RentalVariant]:
        """
        Set `original_price` and `calculated_price` on each variant.

        Without a region or currency in the context nothing can be priced and
        both attributes are None.
        """
        variants = list(variants)
        priceable = bool(context.region_id or context.currency_code)
        for variant in variants:
            if priceable:
                result = await self.price_selection.calculate_variant_price(variant.id, context)
                variant.original_price = result.original_price
                variant.calculated_price = result.calculated_price
            else:
                variant.original_price = None
                variant.calculated_price = None
        return variants

    # PUBLIC_INTERFACE
    async def set_rental_prices(self, rentals: Iterable[Rental], context: PriceSelectionContext) -> List[Rental]:
        """Price the loaded variants of each rental. Rentals without loaded variants are left alone."""
        rentals = list(rentals)
        for rental in rentals:
            loaded = sa_inspect(rental).dict
            if "variants" in loaded:
                await self.set_variant_prices(loaded["variants"], context)
        return rentals


class DefaultSearchService(BaseService):
    """
    Search backed by the rental free-text query.

    Hits carry the indexed attributes of matching rentals. `filter` may hold a
    column selector applied alongside the query.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.rentals = RentalRepository(session)

    # PUBLIC_INTERFACE
    async def search(self, index_name: str, q: Optional[str], options: Dict[str, Any]) -> Dict[str, Any]:
        """Return {"hits", "query", "offset", "limit"} for the query."""
        offset = int(options.get("offset") or 0)
        limit = options.get("limit")
        selector: Dict[str, Any] = {}
        if isinstance(options.get("filter"), dict):
            selector.update(options["filter"])
        if q:
            selector["q"] = q
        config = FindConfig(skip=offset, take=limit)
        rentals = await self.rentals.find(selector, config)
        logger.info("Search on index=%s q=%r returned %d hit(s)", index_name, q, len(rentals))
        hits = [
            {
                "id": r.id,
                "title": r.title,
                "handle": r.handle,
                "description": r.description,
                "thumbnail": r.thumbnail,
            }
            for r in rentals
        ]
        return {"hits": hits, "query": q or "", "offset": offset, "limit": limit}
