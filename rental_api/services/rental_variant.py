from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from sqlalchemy.ext.asyncio import AsyncSession

from rental_api.core.errors import DuplicateError, InvalidDataError, NotFoundError
from rental_api.core.utils import set_metadata, utcnow
from rental_api.db.models import MoneyAmount, RentalOptionValue, RentalVariant
from rental_api.repositories.rental import RentalRepository
from rental_api.repositories.rental_option import RentalOptionValueRepository
from rental_api.repositories.rental_variant import MoneyAmountRepository, RentalVariantRepository
from rental_api.schemas.common import FindConfig
from rental_api.schemas.pricing import GetRegionPriceContext, PriceSelectionContext
from rental_api.schemas.rental import CreateRentalVariantInput, UpdateRentalVariantInput, VariantPriceInput
from rental_api.services.base import BaseService
from rental_api.services.collaborators import DatabasePriceSelectionStrategy, PriceSelectionStrategy, RegionService
from rental_api.services.event_bus import EventBusService

logger = logging.getLogger(__name__)

# Columns that cannot be cleared through an update payload.
_NON_NULLABLE = frozenset({"title", "allow_backorder", "manage_inventory", "inventory_quantity"})
_UPDATE_HANDLED = frozenset({"prices", "options", "metadata", "inventory_quantity"})


class RentalVariantService(BaseService):
    """
    Variants of rentals: option combinations, default prices and option values.

    Every mutating operation runs in an atomic phase and joins the caller's phase
    when invoked from RentalService.
    """

    class Events:
        CREATED = "rental-variant.created"
        UPDATED = "rental-variant.updated"
        DELETED = "rental-variant.deleted"

    def __init__(
        self,
        session: AsyncSession,
        event_bus: Optional[EventBusService] = None,
        region_service: Optional[RegionService] = None,
        price_selection: Optional[PriceSelectionStrategy] = None,
    ) -> None:
        super().__init__(session, event_bus)
        self.variants = RentalVariantRepository(session)
        self.rentals = RentalRepository(session)
        self.option_values = RentalOptionValueRepository(session)
        self.money_amounts = MoneyAmountRepository(session)
        self.region_service = region_service or RegionService(session)
        self.price_selection = price_selection or DatabasePriceSelectionStrategy(session)

    # Reads -----------------------------------------------------------------------

    # PUBLIC_INTERFACE
    async def retrieve(self, variant_id: str, config: Optional[FindConfig] = None) -> RentalVariant:
        """Return a live variant or raise NotFoundError."""
        if not variant_id:
            raise NotFoundError('"variant_id" must be defined')
        variant = await self.variants.find_one({"id": variant_id}, config)
        if variant is None:
            raise NotFoundError(f"Variant with id: {variant_id} was not found")
        return variant

    # PUBLIC_INTERFACE
    async def retrieve_by_sku(self, sku: str, config: Optional[FindConfig] = None) -> RentalVariant:
        """Return the live variant with the given sku or raise NotFoundError."""
        if not sku:
            raise NotFoundError('"sku" must be defined')
        variant = await self.variants.find_one({"sku": sku}, config)
        if variant is None:
            raise NotFoundError(f"Variant with sku: {sku} was not found")
        return variant

    # PUBLIC_INTERFACE
    async def list(
        self, selector: Optional[Dict[str, Any]] = None, config: Optional[FindConfig] = None
    ) -> List[RentalVariant]:
        """List variants. `q` matches variant title/sku and the rental title."""
        return await self.variants.find(selector, config)

    # PUBLIC_INTERFACE
    async def list_and_count(
        self, selector: Optional[Dict[str, Any]] = None, config: Optional[FindConfig] = None
    ) -> Tuple[List[RentalVariant], int]:
        """List a page of variants with the total count of matches."""
        return await self.variants.find_and_count(selector, config)

    # PUBLIC_INTERFACE
    async def get_region_price(self, variant_id: str, context: GetRegionPriceContext) -> Optional[int]:
        """Calculated price of a variant in a region, or None when no price applies."""
        region = await self.region_service.retrieve(context.region_id)
        result = await self.price_selection.calculate_variant_price(
            variant_id,
            PriceSelectionContext(
                region_id=context.region_id,
                currency_code=region.currency_code,
                quantity=context.quantity,
                customer_id=context.customer_id,
                include_discount_prices=context.include_discount_prices,
            ),
        )
        return result.calculated_price

    # Writes ----------------------------------------------------------------------

    # PUBLIC_INTERFACE
    async def create(
        self, rental_or_id: Union[str, Any], data: CreateRentalVariantInput
    ) -> RentalVariant:
        """
        Create a variant for a rental.

        The variant must hold exactly one value per rental option and its option
        combination must differ from every live variant of the rental. Region
        prices take the currency of their region.
        """
        rental_id = rental_or_id if isinstance(rental_or_id, str) else getattr(rental_or_id, "id", None)
        if not rental_id:
            raise InvalidDataError("Rental id missing")

        async with self.atomic():
            rental = await self.rentals.find_one(
                {"id": rental_id}, FindConfig(relations=["variants", "variants.options", "options"])
            )
            if rental is None:
                raise NotFoundError(f"Rental with id: {rental_id} was not found")

            if len(rental.options) != len(data.options):
                raise InvalidDataError(
                    "Rental options length does not match variant options length. "
                    f"Rental has {len(rental.options)} and variant has {len(data.options)}."
                )
            provided = {o.option_id: o.value for o in data.options}
            for option in rental.options:
                if option.id not in provided:
                    raise InvalidDataError(f"Variant options do not contain value for {option.title}")

            for existing in rental.variants:
                if all(provided.get(ov.option_id) == ov.value for ov in existing.options):
                    raise DuplicateError(
                        f"Variant with title {existing.title} with provided options already exists"
                    )

            rank = data.variant_rank if data.variant_rank is not None else len(rental.variants)
            values = data.model_dump(exclude={"prices", "options", "metadata", "variant_rank"}, exclude_none=True)
            variant = RentalVariant(**values, rental_id=rental.id, variant_rank=rank, metadata_=data.metadata)
            await self.variants.add(variant)
            await self.variants.flush()

            await self.option_values.add_all(
                RentalOptionValue(variant_id=variant.id, option_id=o.option_id, value=o.value) for o in data.options
            )
            for price in data.prices:
                await self._set_price(variant.id, price)
            await self.variants.flush()

            logger.info("Created variant %s for rental %s", variant.id, rental.id)
            self.stage_event(self.Events.CREATED, {"id": variant.id, "rental_id": variant.rental_id})
        return variant

    # PUBLIC_INTERFACE
    async def update(
        self, variant_or_id: Union[str, RentalVariant], data: UpdateRentalVariantInput
    ) -> RentalVariant:
        """
        Apply the keys present in the payload.

        prices replaces the default prices, options updates existing option
        values, metadata is merged, inventory_quantity is only taken when it is
        an integer.
        """
        async with self.atomic():
            if isinstance(variant_or_id, str):
                variant = await self.retrieve(variant_or_id)
            else:
                variant = variant_or_id
                if not variant.id:
                    raise InvalidDataError("Variant id missing")

            fields = data.model_fields_set
            if data.prices is not None:
                await self.update_variant_prices(variant.id, data.prices)
            for option in data.options or []:
                await self.update_option_value(variant.id, option.option_id, option.value)
            if data.metadata is not None:
                variant.metadata_ = set_metadata(variant.metadata_, data.metadata)
            if isinstance(data.inventory_quantity, int):
                variant.inventory_quantity = data.inventory_quantity

            for key in fields - _UPDATE_HANDLED:
                value = getattr(data, key)
                if value is None and key in _NON_NULLABLE:
                    continue
                setattr(variant, key, value)
            await self.variants.flush()

            self.stage_event(
                self.Events.UPDATED,
                {"id": variant.id, "rental_id": variant.rental_id, "fields": sorted(fields)},
            )
        return variant

    # PUBLIC_INTERFACE
    async def update_variant_prices(self, variant_id: str, prices: Sequence[VariantPriceInput]) -> None:
        """
        Replace the default prices of a variant.

        Default prices matching no entry of the payload (by id, by region, or by
        currency for prices without region) are removed; the others are upserted.
        Price-list prices are untouched.
        """
        async with self.atomic():
            current = await self.money_amounts.list_default_prices(variant_id)
            obsolete = [p.id for p in current if not any(self._matches(p, price) for price in prices)]
            for price in prices:
                await self._set_price(variant_id, price, current)
            await self.money_amounts.delete_by_ids(obsolete)
            await self.money_amounts.flush()

    @staticmethod
    def _matches(existing: MoneyAmount, price: VariantPriceInput) -> bool:
        if price.id and existing.id == price.id:
            return True
        if price.region_id:
            return existing.region_id == price.region_id
        return (
            price.currency_code is not None
            and existing.region_id is None
            and existing.currency_code == price.currency_code
        )

    async def _set_price(
        self, variant_id: str, price: VariantPriceInput, current: Optional[List[MoneyAmount]] = None
    ) -> MoneyAmount:
        if price.region_id:
            region = await self.region_service.retrieve(price.region_id)
            return await self.set_region_price(
                variant_id, price.model_copy(update={"currency_code": region.currency_code})
            )
        if price.currency_code:
            return await self.set_currency_price(variant_id, price)
        # entry referring to an existing row by id only
        existing = next((p for p in current or [] if p.id == price.id), None)
        if existing is None:
            raise NotFoundError(f"Money amount with id: {price.id} was not found")
        existing.amount = price.amount
        existing.min_quantity = price.min_quantity
        existing.max_quantity = price.max_quantity
        return existing

    # PUBLIC_INTERFACE
    async def set_region_price(self, variant_id: str, price: VariantPriceInput) -> MoneyAmount:
        """Create or update the default price of a variant in a region."""
        if not price.region_id or not price.currency_code:
            raise InvalidDataError("A region price requires region_id and currency_code")
        async with self.atomic():
            money_amount = await self.money_amounts.find_default_region_price(variant_id, price.region_id)
            if money_amount is None:
                money_amount = MoneyAmount(
                    variant_id=variant_id,
                    region_id=price.region_id,
                    currency_code=price.currency_code,
                    amount=price.amount,
                    min_quantity=price.min_quantity,
                    max_quantity=price.max_quantity,
                )
                await self.money_amounts.add(money_amount)
            else:
                money_amount.amount = price.amount
            await self.money_amounts.flush()
        return money_amount

    # PUBLIC_INTERFACE
    async def set_currency_price(self, variant_id: str, price: VariantPriceInput) -> MoneyAmount:
        """Create or update the default price of a variant in a currency."""
        if not price.currency_code:
            raise InvalidDataError("A currency price requires currency_code")
        async with self.atomic():
            money_amount = await self.money_amounts.find_default_currency_price(variant_id, price.currency_code)
            if money_amount is None:
                money_amount = MoneyAmount(
                    variant_id=variant_id,
                    currency_code=price.currency_code,
                    amount=price.amount,
                    min_quantity=price.min_quantity,
                    max_quantity=price.max_quantity,
                )
                await self.money_amounts.add(money_amount)
            else:
                money_amount.amount = price.amount
            await self.money_amounts.flush()
        return money_amount

    # PUBLIC_INTERFACE
    async def add_option_value(self, variant_id: str, option_id: str, value: str) -> RentalOptionValue:
        """Give a variant a value for an option. An existing value for the pair is returned as is."""
        async with self.atomic():
            existing = await self.option_values.find_for_variant(variant_id, option_id)
            if existing is not None:
                return existing
            option_value = RentalOptionValue(variant_id=variant_id, option_id=option_id, value=value)
            await self.option_values.add(option_value)
            await self.option_values.flush()
        return option_value

    # PUBLIC_INTERFACE
    async def update_option_value(self, variant_id: str, option_id: str, value: str) -> RentalOptionValue:
        """Change the value a variant holds for an option."""
        async with self.atomic():
            option_value = await self.option_values.find_for_variant(variant_id, option_id)
            if option_value is None:
                raise NotFoundError("Rental option value not found")
            option_value.value = value
            await self.option_values.flush()
        return option_value

    # PUBLIC_INTERFACE
    async def delete_option_value(self, variant_id: str, option_id: str) -> None:
        """Soft delete the value a variant holds for an option. Missing values are ignored."""
        async with self.atomic():
            option_value = await self.option_values.find_for_variant(variant_id, option_id)
            if option_value is None:
                return
            option_value.deleted_at = utcnow()
            await self.option_values.flush()

    # PUBLIC_INTERFACE
    async def delete(self, variant_id: str) -> None:
        """Soft delete a variant with its prices and option values. Deleting twice is a no-op."""
        async with self.atomic():
            variant = await self.variants.find_one({"id": variant_id})
            if variant is None:
                return
            await self.money_amounts.soft_delete_where(MoneyAmount.variant_id == variant.id)
            await self.option_values.soft_delete_where(RentalOptionValue.variant_id == variant.id)
            variant.deleted_at = utcnow()
            await self.variants.flush()

            logger.info("Deleted variant %s of rental %s", variant.id, variant.rental_id)
            self.stage_event(
                self.Events.DELETED,
                {"id": variant.id, "rental_id": variant.rental_id, "metadata": variant.metadata_},
            )
