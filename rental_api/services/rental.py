from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rental_api.core.errors import DuplicateError, InvalidDataError, NotFoundError
from rental_api.core.flags import SALES_CHANNELS_FLAG, FlagRouter
from rental_api.core.utils import set_metadata, to_kebab_case, utcnow
from rental_api.db.models import (
    MoneyAmount,
    Rental,
    RentalOption,
    RentalOptionValue,
    RentalStatus,
    RentalType,
    RentalVariant,
    SalesChannel,
)
from rental_api.repositories.commerce import ImageRepository, SalesChannelRepository
from rental_api.repositories.lookup import RentalTagRepository, RentalTypeRepository
from rental_api.repositories.rental import RentalRepository
from rental_api.repositories.rental_option import RentalOptionRepository, RentalOptionValueRepository
from rental_api.repositories.rental_variant import MoneyAmountRepository, RentalVariantRepository
from rental_api.schemas.common import FindConfig
from rental_api.schemas.rental import (
    CreateRentalInput,
    CreateRentalVariantInput,
    RentalVariantUpsertInput,
    SalesChannelInput,
    UpdateRentalInput,
    UpdateRentalOptionInput,
    VariantOptionValueInput,
)
from rental_api.services.base import BaseService
from rental_api.services.collaborators import ShippingProfileService
from rental_api.services.event_bus import EventBusService
from rental_api.services.rental_variant import RentalVariantService

logger = logging.getLogger(__name__)

# Keys of CreateRentalInput/UpdateRentalInput that are not plain Rental columns.
_RELATION_KEYS = frozenset({"options", "tags", "type", "images", "sales_channels", "variants", "metadata"})
_NON_NULLABLE = frozenset({"title", "status", "discountable"})


class RentalService(BaseService):
    """
    Rentals and everything hanging off them: options, variants (through
    RentalVariantService), images, tags, type and sales channels.

    Writes run in atomic phases; nested service calls join the outermost phase so
    an operation such as create_with_variants commits or rolls back as a whole.
    """

    IndexName = "rentals"

    class Events:
        CREATED = "rental.created"
        UPDATED = "rental.updated"
        DELETED = "rental.deleted"

    def __init__(
        self,
        session: AsyncSession,
        event_bus: Optional[EventBusService] = None,
        variant_service: Optional[RentalVariantService] = None,
        shipping_profile_service: Optional[ShippingProfileService] = None,
        flag_router: Optional[FlagRouter] = None,
    ) -> None:
        super().__init__(session, event_bus)
        self.rentals = RentalRepository(session)
        self.variants = RentalVariantRepository(session)
        self.options = RentalOptionRepository(session)
        self.option_values = RentalOptionValueRepository(session)
        self.money_amounts = MoneyAmountRepository(session)
        self.images = ImageRepository(session)
        self.tags = RentalTagRepository(session)
        self.types = RentalTypeRepository(session)
        self.sales_channels = SalesChannelRepository(session)
        self.variant_service = variant_service or RentalVariantService(session, event_bus)
        self.shipping_profile_service = shipping_profile_service or ShippingProfileService(session)
        self.flag_router = flag_router or FlagRouter()

    def _sales_channels_enabled(self) -> bool:
        return self.flag_router.is_feature_enabled(SALES_CHANNELS_FLAG)

    # Reads -----------------------------------------------------------------------

    # PUBLIC_INTERFACE
    async def list(self, selector: Optional[Dict[str, Any]] = None, config: Optional[FindConfig] = None) -> List[Rental]:
        """List rentals matching the selector (see RentalRepository for special keys)."""
        rentals, _ = await self.list_and_count(selector, config)
        return rentals

    # PUBLIC_INTERFACE
    async def list_and_count(
        self, selector: Optional[Dict[str, Any]] = None, config: Optional[FindConfig] = None
    ) -> Tuple[List[Rental], int]:
        """List a page of rentals with the total count of matches."""
        return await self.rentals.find_and_count(selector, config)

    # PUBLIC_INTERFACE
    async def count(self, selector: Optional[Dict[str, Any]] = None) -> int:
        """Number of live rentals matching the selector."""
        return await self.rentals.count(selector)

    # PUBLIC_INTERFACE
    async def retrieve(self, rental_id: str, config: Optional[FindConfig] = None) -> Rental:
        """Return a rental by id or raise NotFoundError."""
        if not rental_id:
            raise NotFoundError('"rental_id" must be defined')
        return await self._retrieve({"id": rental_id}, config)

    # PUBLIC_INTERFACE
    async def retrieve_by_handle(self, handle: str, config: Optional[FindConfig] = None) -> Rental:
        """Return a rental by handle or raise NotFoundError."""
        if not handle:
            raise NotFoundError('"handle" must be defined')
        return await self._retrieve({"handle": handle}, config)

    # PUBLIC_INTERFACE
    async def retrieve_by_external_id(self, external_id: str, config: Optional[FindConfig] = None) -> Rental:
        """Return a rental by external id or raise NotFoundError."""
        if not external_id:
            raise NotFoundError('"external_id" must be defined')
        return await self._retrieve({"external_id": external_id}, config)

    async def _retrieve(self, selector: Dict[str, Any], config: Optional[FindConfig]) -> Rental:
        rental = await self.rentals.find_one(selector, config)
        if rental is None:
            constraints = ", ".join(f"{key}: {value}" for key, value in selector.items())
            raise NotFoundError(f"Rental with {constraints} was not found")
        return rental

    # PUBLIC_INTERFACE
    async def retrieve_variants(self, rental_id: str, config: Optional[FindConfig] = None) -> List[RentalVariant]:
        """Live variants of a rental in rank order."""
        config = config or FindConfig()
        relations = list(dict.fromkeys([*(config.relations or []), "variants"]))
        rental = await self.retrieve(rental_id, config.model_copy(update={"relations": relations}))
        return list(rental.variants)

    # PUBLIC_INTERFACE
    async def filter_rentals_by_sales_channel(
        self, rental_ids: Sequence[str], sales_channel_id: str, config: Optional[FindConfig] = None
    ) -> List[Rental]:
        """Keep the given rentals that are assigned to the sales channel."""
        config = config or FindConfig()
        relations = list(dict.fromkeys([*(config.relations or []), "sales_channels"]))
        rentals = await self.list({"id": list(rental_ids)}, config.model_copy(update={"relations": relations}))
        return [r for r in rentals if any(sc.id == sales_channel_id for sc in r.sales_channels)]

    # PUBLIC_INTERFACE
    async def is_rental_in_sales_channels(self, rental_id: str, sales_channel_ids: Sequence[str]) -> bool:
        """True when the rental is assigned to at least one of the sales channels."""
        rental = await self.retrieve(rental_id)
        return await self.rentals.is_in_sales_channels(rental.id, list(sales_channel_ids))

    # PUBLIC_INTERFACE
    async def list_types(self) -> List[RentalType]:
        """All live rental types."""
        return await self.types.find({}, FindConfig(order={"value": "ASC"}))

    # PUBLIC_INTERFACE
    async def list_tags_by_usage(self, count: int = 10) -> List[Dict[str, Any]]:
        """The most used tags with their usage count."""
        return await self.tags.list_tags_by_usage(count)

    # PUBLIC_INTERFACE
    async def retrieve_option_by_title(self, title: str, rental_id: str) -> Optional[RentalOption]:
        """Live option of a rental with exactly this title, or None."""
        return await self.options.find_one({"title": title, "rental_id": rental_id})

    # Writes ----------------------------------------------------------------------

    async def _resolve_sales_channels(self, channels: Sequence[SalesChannelInput]) -> List[SalesChannel]:
        ids = [c.id for c in channels]
        found = await self.sales_channels.find_by_ids(ids)
        missing = sorted(set(ids) - {sc.id for sc in found})
        if missing:
            raise NotFoundError(f"Sales channels with ids: {', '.join(missing)} were not found")
        return found

    # PUBLIC_INTERFACE
    async def create(self, data: CreateRentalInput) -> Rental:
        """
        Create a rental with its images, tags, type, sales channels and options.

        The thumbnail defaults to the first image, the handle to the kebab-cased
        title, and gift cards are never discountable.
        """
        async with self.atomic():
            values = data.model_dump(mode="json", exclude=set(_RELATION_KEYS))
            if not values.get("thumbnail") and data.images:
                values["thumbnail"] = data.images[0]
            if values.get("is_giftcard"):
                values["discountable"] = False
            if not values.get("handle"):
                values["handle"] = to_kebab_case(data.title)

            rental = Rental(**values, metadata_=data.metadata)
            if data.images:
                rental.images = await self.images.upsert_images(data.images)
            if data.tags:
                rental.tags = await self.tags.upsert_tags(data.tags)
            if "type" in data.model_fields_set:
                rental_type = await self.types.upsert_type(data.type)
                rental.type_id = rental_type.id if rental_type is not None else None
            if self._sales_channels_enabled() and data.sales_channels is not None:
                rental.sales_channels = await self._resolve_sales_channels(data.sales_channels)

            await self.rentals.add(rental)
            await self.rentals.flush()

            await self.options.add_all(RentalOption(title=o.title, rental_id=rental.id) for o in data.options or [])
            await self.options.flush()

            result = await self.retrieve(rental.id, FindConfig(relations=["options"]))
            logger.info("Created rental %s (handle=%s)", result.id, result.handle)
            self.stage_event(self.Events.CREATED, {"id": result.id})
        return result

    # PUBLIC_INTERFACE
    async def create_with_variants(self, data: CreateRentalInput) -> Rental:
        """
        Create a rental together with its variants in one transaction.

        The shipping profile defaults to the default (or gift card) profile.
        Variant option values are positional: the n-th value belongs to the n-th
        declared option. Variant ranks follow the request order.
        """
        async with self.atomic():
            update: Dict[str, Any] = {"variants": None}
            if not data.profile_id:
                if data.is_giftcard:
                    profile = await self.shipping_profile_service.retrieve_gift_card_default()
                else:
                    profile = await self.shipping_profile_service.retrieve_default()
                update["profile_id"] = profile.id
            rental = await self.create(data.model_copy(update=update))

            option_ids_by_title: Dict[str, List[str]] = {}
            for option in rental.options:
                option_ids_by_title.setdefault(option.title, []).append(option.id)
            option_ids = [option_ids_by_title[o.title].pop(0) for o in data.options or []]

            for rank, variant in enumerate(data.variants or []):
                if len(variant.options) > len(option_ids):
                    raise InvalidDataError(
                        "Rental options length does not match variant options length. "
                        f"Rental has {len(option_ids)} and variant has {len(variant.options)}."
                    )
                options = [
                    VariantOptionValueInput(option_id=option_ids[i], value=o.value)
                    for i, o in enumerate(variant.options)
                ]
                await self.variant_service.create(
                    rental.id,
                    CreateRentalVariantInput(
                        **variant.model_dump(exclude={"options"}), options=options, variant_rank=rank
                    ),
                )
            result = await self.retrieve(rental.id, FindConfig(relations=["options", "variants"]))
        return result

    # PUBLIC_INTERFACE
    async def update(self, rental_id: str, data: UpdateRentalInput) -> Rental:
        """
        Apply the keys present in the payload to a rental.

        images, tags, type and sales channels are replaced, metadata is merged and
        variants are reconciled: variants absent from the list are deleted, entries
        with an id are updated, entries without one are created, and each entry's
        position becomes its rank.
        """
        fields = data.model_fields_set
        async with self.atomic():
            relations = ["variants", "tags", "images"]
            if self._sales_channels_enabled():
                if data.sales_channels is not None:
                    relations.append("sales_channels")
            elif data.sales_channels is not None:
                raise InvalidDataError("the property sales_channels should not appear as part of the payload")

            rental = await self.retrieve(rental_id, FindConfig(relations=relations))

            if not rental.thumbnail and not data.thumbnail and data.images:
                rental.thumbnail = data.images[0]
            if data.images is not None:
                rental.images = await self.images.upsert_images(data.images)
            if data.metadata is not None:
                rental.metadata_ = set_metadata(rental.metadata_, data.metadata)
            if "type" in fields:
                rental_type = await self.types.upsert_type(data.type)
                rental.type_id = rental_type.id if rental_type is not None else None
            if data.tags is not None:
                rental.tags = await self.tags.upsert_tags(data.tags)
            if self._sales_channels_enabled() and data.sales_channels is not None:
                rental.sales_channels = await self._resolve_sales_channels(data.sales_channels)

            for key in fields - _RELATION_KEYS:
                value = getattr(data, key)
                if value is None and key in _NON_NULLABLE:
                    continue
                setattr(rental, key, value.value if isinstance(value, RentalStatus) else value)
            await self.rentals.flush()

            if data.variants is not None:
                await self._reconcile_variants(rental.id, list(rental.variants), data.variants)

            logger.info("Updated rental %s fields=%s", rental.id, sorted(fields))
            self.stage_event(self.Events.UPDATED, {"id": rental.id, "fields": sorted(fields)})
        return rental

    async def _reconcile_variants(
        self, rental_id: str, current: List[RentalVariant], entries: Sequence[RentalVariantUpsertInput]
    ) -> None:
        keep = {e.id for e in entries if e.id}
        for variant in current:
            if variant.id not in keep:
                await self.variant_service.delete(variant.id)

        by_id = {v.id: v for v in current}
        for rank, entry in enumerate(entries):
            if entry.id:
                variant = by_id.get(entry.id)
                if variant is None:
                    raise NotFoundError(f"Variant with id: {entry.id} is not associated with this rental")
                await self.variant_service.update(variant, entry.to_update(rank))
            else:
                await self.variant_service.create(rental_id, entry.to_create(rank))

    # PUBLIC_INTERFACE
    async def delete(self, rental_id: str) -> None:
        """Soft delete a rental with its variants, prices, options and option values. Idempotent."""
        async with self.atomic():
            rental = await self.rentals.find_one({"id": rental_id})
            if rental is None:
                return
            variant_ids = select(RentalVariant.id).where(RentalVariant.rental_id == rental.id)
            option_ids = select(RentalOption.id).where(RentalOption.rental_id == rental.id)
            await self.money_amounts.soft_delete_where(MoneyAmount.variant_id.in_(variant_ids))
            await self.option_values.soft_delete_where(RentalOptionValue.option_id.in_(option_ids))
            await self.variants.soft_delete_where(RentalVariant.rental_id == rental.id)
            await self.options.soft_delete_where(RentalOption.rental_id == rental.id)
            rental.deleted_at = utcnow()
            await self.rentals.flush()

            logger.info("Deleted rental %s", rental.id)
            self.stage_event(self.Events.DELETED, {"id": rental.id})

    # PUBLIC_INTERFACE
    async def add_option(self, rental_id: str, title: str) -> Rental:
        """
        Add an option to a rental and give every live variant the value
        "Default Value" for it. Titles must not repeat.
        """
        async with self.atomic():
            rental = await self.retrieve(rental_id, FindConfig(relations=["options", "variants"]))
            if any(o.title == title for o in rental.options):
                raise DuplicateError(f"An option with the title: {title} already exists")

            option = RentalOption(title=title, rental_id=rental.id)
            await self.options.add(option)
            await self.options.flush()
            for variant in rental.variants:
                await self.variant_service.add_option_value(variant.id, option.id, "Default Value")

            result = await self.retrieve(rental.id, FindConfig(relations=["options", "options.values"]))
            self.stage_event(self.Events.UPDATED, {"id": rental.id, "fields": ["options"]})
        return result

    # PUBLIC_INTERFACE
    async def update_option(self, rental_id: str, option_id: str, data: UpdateRentalOptionInput) -> Rental:
        """Rename an option of the rental and optionally change some of its values."""
        async with self.atomic():
            rental = await self.retrieve(rental_id, FindConfig(relations=["options"]))
            if any(o.title.upper() == data.title.upper() and o.id != option_id for o in rental.options):
                raise NotFoundError(f"An option with title {data.title} already exists")

            option = next((o for o in rental.options if o.id == option_id), None)
            if option is None:
                raise NotFoundError(f"Option with id: {option_id} does not exist")
            option.title = data.title

            for value_update in data.values or []:
                option_value = await self.option_values.find_one({"id": value_update.id, "option_id": option.id})
                if option_value is None:
                    raise NotFoundError(f"Option value with id: {value_update.id} was not found")
                option_value.value = value_update.value
            await self.options.flush()

            self.stage_event(self.Events.UPDATED, {"id": rental.id, "fields": ["options"]})
        return rental

    # PUBLIC_INTERFACE
    async def delete_option(self, rental_id: str, option_id: str) -> Optional[Rental]:
        """
        Remove an option and its values from a rental.

        Refused while variants differ in their value for the option, since
        dropping it would leave duplicate variants behind. A missing option is a
        no-op.
        """
        async with self.atomic():
            rental = await self.retrieve(rental_id, FindConfig(relations=["variants", "variants.options"]))
            option = await self.options.find_one({"id": option_id, "rental_id": rental.id})
            if option is None:
                return None

            if rental.variants:
                values = [
                    next((ov.value for ov in v.options if ov.option_id == option_id), None) for v in rental.variants
                ]
                if any(value != values[0] for value in values):
                    raise InvalidDataError(
                        "To delete an option, first delete all variants, such that when an option is "
                        "deleted, no duplicate variants will exist."
                    )

            await self.option_values.soft_delete_where(RentalOptionValue.option_id == option.id)
            option.deleted_at = utcnow()
            await self.options.flush()

            self.stage_event(self.Events.UPDATED, {"id": rental.id, "fields": ["options"]})
        return rental

    # PUBLIC_INTERFACE
    async def reorder_variants(self, rental_id: str, variant_ids: Sequence[str]) -> Rental:
        """Persist a new variant order; every live variant must appear exactly once."""
        async with self.atomic():
            rental = await self.retrieve(rental_id, FindConfig(relations=["variants"]))
            if len(rental.variants) != len(variant_ids):
                raise InvalidDataError("Rental variants and new variant order differ in length.")
            if len(set(variant_ids)) != len(variant_ids):
                raise InvalidDataError("New variant order lists a variant more than once.")
            by_id = {v.id: v for v in rental.variants}
            ordered = []
            for variant_id in variant_ids:
                if variant_id not in by_id:
                    raise InvalidDataError(f"Rental has no variant with id: {variant_id}")
                ordered.append(by_id[variant_id])
            for rank, variant in enumerate(ordered):
                variant.variant_rank = rank
            await self.variants.flush()

            result = await self.retrieve(rental.id, FindConfig(relations=["variants"]))
            self.stage_event(self.Events.UPDATED, {"id": rental.id, "fields": ["variants"]})
        return result

    # PUBLIC_INTERFACE
    async def set_metadata(self, rental_id: str, key: str, value: Any) -> Rental:
        """Set (or, with an empty value, delete) one metadata key of a rental."""
        return await self.update(rental_id, UpdateRentalInput(metadata={key: value}))

