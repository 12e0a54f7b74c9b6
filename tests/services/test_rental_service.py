"""Tests for RentalService: creation, update reconciliation, options and deletion."""

import pytest

from rental_api.core.errors import DuplicateError, InvalidDataError, NotFoundError
from rental_api.schemas.common import FindConfig
from rental_api.schemas.rental import (
    CreateRentalInput,
    RentalOptionInput,
    RentalTagInput,
    RentalTypeInput,
    RentalVariantCreateReq,
    RentalVariantUpsertInput,
    SalesChannelInput,
    UpdateRentalInput,
    UpdateRentalOptionInput,
    VariantOptionValueInput,
    VariantOrdinalOptionInput,
    VariantPriceInput,
)


def _sized_rental(title="Camping Tent", sizes=("S", "M")):
    return CreateRentalInput(
        title=title,
        options=[RentalOptionInput(title="Size")],
        variants=[
            RentalVariantCreateReq(
                title=size,
                options=[VariantOrdinalOptionInput(value=size)],
                prices=[VariantPriceInput(currency_code="EUR", amount=1000 + i)],
            )
            for i, size in enumerate(sizes)
        ],
    )


class TestCreate:
    """Rental creation defaults and relations."""

    @pytest.mark.asyncio
    async def test_create_derives_handle_and_thumbnail(self, rental_service, full_config):
        rental = await rental_service.create(
            CreateRentalInput(
                title="Camping Tent XL",
                images=["http://img/1.png", "http://img/2.png"],
                tags=[RentalTagInput(value="outdoor")],
                type=RentalTypeInput(value="tents"),
                options=[RentalOptionInput(title="Size")],
            )
        )

        assert rental.handle == "camping-tent-xl"
        assert rental.thumbnail == "http://img/1.png"
        assert rental.status == "draft"
        assert rental.type_id is not None
        assert [o.title for o in rental.options] == ["Size"]

        loaded = await rental_service.retrieve(rental.id, full_config)
        assert [t.value for t in loaded.tags] == ["outdoor"]
        assert sorted(i.url for i in loaded.images) == ["http://img/1.png", "http://img/2.png"]

    @pytest.mark.asyncio
    async def test_explicit_handle_is_kept(self, rental_service):
        rental = await rental_service.create(CreateRentalInput(title="Tent", handle="my-tent"))
        assert rental.handle == "my-tent"

    @pytest.mark.asyncio
    async def test_gift_cards_are_not_discountable(self, rental_service):
        rental = await rental_service.create(CreateRentalInput(title="Gift Card", is_giftcard=True, discountable=True))
        assert rental.discountable is False

    @pytest.mark.asyncio
    async def test_existing_type_is_reused(self, rental_service):
        first = await rental_service.create(CreateRentalInput(title="A", type=RentalTypeInput(value="bikes")))
        second = await rental_service.create(CreateRentalInput(title="B", type=RentalTypeInput(value="bikes")))
        assert first.type_id == second.type_id

    @pytest.mark.asyncio
    async def test_sales_channels_ignored_when_flag_disabled(self, rental_service, seeded):
        rental = await rental_service.create(
            CreateRentalInput(title="Kayak", sales_channels=[SalesChannelInput(id=seeded["sales_channel_id"])])
        )
        assert not await rental_service.is_rental_in_sales_channels(rental.id, [seeded["sales_channel_id"]])

    @pytest.mark.asyncio
    async def test_created_event_published_after_commit(self, rental_service, event_bus):
        rental = await rental_service.create(CreateRentalInput(title="Canoe"))
        assert event_bus.collector.events == [("rental.created", {"id": rental.id})]


class TestCreateWithVariants:
    """Rental plus variants in one transaction."""

    @pytest.mark.asyncio
    async def test_variants_follow_request_order(self, rental_service, seeded, full_config):
        rental = await rental_service.create_with_variants(
            CreateRentalInput(
                title="Bike",
                options=[RentalOptionInput(title="Size"), RentalOptionInput(title="Color")],
                variants=[
                    RentalVariantCreateReq(
                        title="S / Red",
                        options=[VariantOrdinalOptionInput(value="S"), VariantOrdinalOptionInput(value="Red")],
                    ),
                    RentalVariantCreateReq(
                        title="M / Blue",
                        options=[VariantOrdinalOptionInput(value="M"), VariantOrdinalOptionInput(value="Blue")],
                    ),
                ],
            )
        )

        assert rental.profile_id == seeded["default_profile_id"]
        loaded = await rental_service.retrieve(rental.id, full_config)
        assert [v.title for v in loaded.variants] == ["S / Red", "M / Blue"]
        assert [v.variant_rank for v in loaded.variants] == [0, 1]

        option_ids = {o.title: o.id for o in loaded.options}
        first = {ov.option_id: ov.value for ov in loaded.variants[0].options}
        assert first == {option_ids["Size"]: "S", option_ids["Color"]: "Red"}

    @pytest.mark.asyncio
    async def test_gift_card_gets_gift_card_profile(self, rental_service, seeded):
        rental = await rental_service.create_with_variants(CreateRentalInput(title="Voucher", is_giftcard=True))
        assert rental.profile_id == seeded["gift_card_profile_id"]

    @pytest.mark.asyncio
    async def test_requires_seeded_profile(self, rental_service):
        with pytest.raises(NotFoundError):
            await rental_service.create_with_variants(CreateRentalInput(title="Orphan"))

    @pytest.mark.asyncio
    async def test_failing_variant_rolls_back_everything(self, rental_service, seeded, event_bus):
        with pytest.raises(DuplicateError):
            await rental_service.create_with_variants(_sized_rental(sizes=("S", "S")))

        assert await rental_service.count() == 0
        assert event_bus.collector.events == []

    @pytest.mark.asyncio
    async def test_too_many_variant_options(self, rental_service, seeded):
        data = CreateRentalInput(
            title="Board",
            options=[RentalOptionInput(title="Size")],
            variants=[
                RentalVariantCreateReq(
                    title="x",
                    options=[VariantOrdinalOptionInput(value="S"), VariantOrdinalOptionInput(value="Red")],
                )
            ],
        )
        with pytest.raises(InvalidDataError):
            await rental_service.create_with_variants(data)
        assert await rental_service.count() == 0


class TestUpdate:
    """Key-presence updates and variant reconciliation."""

    @pytest.mark.asyncio
    async def test_scalar_fields_and_metadata_merge(self, rental_service):
        rental = await rental_service.create(CreateRentalInput(title="Tent", metadata={"a": 1, "b": 2}))
        updated = await rental_service.update(
            rental.id, UpdateRentalInput(subtitle="Sleeps four", metadata={"b": "", "c": 3})
        )
        assert updated.subtitle == "Sleeps four"
        assert updated.title == "Tent"
        assert updated.metadata_ == {"a": 1, "c": 3}

    @pytest.mark.asyncio
    async def test_null_title_is_ignored(self, rental_service):
        rental = await rental_service.create(CreateRentalInput(title="Tent", subtitle="x"))
        updated = await rental_service.update(rental.id, UpdateRentalInput(title=None, subtitle=None))
        assert updated.title == "Tent"
        assert updated.subtitle is None

    @pytest.mark.asyncio
    async def test_variants_are_reconciled(self, rental_service, seeded, full_config, event_bus):
        rental = await rental_service.create_with_variants(_sized_rental())
        loaded = await rental_service.retrieve(rental.id, full_config)
        size_id = loaded.options[0].id
        small, medium = loaded.variants
        event_bus.collector.events.clear()

        await rental_service.update(
            rental.id,
            UpdateRentalInput(
                variants=[
                    RentalVariantUpsertInput(id=medium.id, title="Medium"),
                    RentalVariantUpsertInput(
                        title="L", options=[VariantOptionValueInput(option_id=size_id, value="L")]
                    ),
                ]
            ),
        )

        reloaded = await rental_service.retrieve(rental.id, full_config)
        assert [v.title for v in reloaded.variants] == ["Medium", "L"]
        assert [v.variant_rank for v in reloaded.variants] == [0, 1]
        assert small.id not in {v.id for v in reloaded.variants}

        names = event_bus.collector.names()
        assert {"rental-variant.deleted", "rental-variant.updated", "rental-variant.created"} <= set(names)
        assert names[-1] == "rental.updated"

    @pytest.mark.asyncio
    async def test_unknown_variant_id_rejected(self, rental_service, seeded):
        rental = await rental_service.create_with_variants(_sized_rental())
        with pytest.raises(NotFoundError):
            await rental_service.update(
                rental.id, UpdateRentalInput(variants=[RentalVariantUpsertInput(id="variant_missing", title="x")])
            )

    @pytest.mark.asyncio
    async def test_sales_channels_rejected_when_flag_disabled(self, rental_service, seeded):
        rental = await rental_service.create(CreateRentalInput(title="Tent"))
        with pytest.raises(InvalidDataError):
            await rental_service.update(
                rental.id, UpdateRentalInput(sales_channels=[SalesChannelInput(id=seeded["sales_channel_id"])])
            )

    @pytest.mark.asyncio
    async def test_update_missing_rental(self, rental_service):
        with pytest.raises(NotFoundError):
            await rental_service.update("rental_missing", UpdateRentalInput(title="x"))

    @pytest.mark.asyncio
    async def test_set_metadata_empty_value_deletes(self, rental_service):
        rental = await rental_service.create(CreateRentalInput(title="Tent", metadata={"color": "green"}))
        updated = await rental_service.set_metadata(rental.id, "size", "XL")
        assert updated.metadata_ == {"color": "green", "size": "XL"}
        updated = await rental_service.set_metadata(rental.id, "color", "")
        assert updated.metadata_ == {"size": "XL"}


class TestList:
    """Listing and free text."""

    @pytest.mark.asyncio
    async def test_q_overrides_title_and_description(self, rental_service):
        tent = await rental_service.create(CreateRentalInput(title="Tent Alpha", description="waterproof shell"))
        await rental_service.create(CreateRentalInput(title="Bag"))

        found = await rental_service.list({"q": "waterproof", "title": "Bag"})
        assert [r.id for r in found] == [tent.id]

    @pytest.mark.asyncio
    async def test_q_matches_variant_sku(self, rental_service, seeded):
        data = _sized_rental(sizes=("S",))
        data.variants[0].sku = "TENT-SKU-1"
        rental = await rental_service.create_with_variants(data)
        found = await rental_service.list({"q": "SKU-1"})
        assert [r.id for r in found] == [rental.id]

    @pytest.mark.asyncio
    async def test_list_and_count_paginates(self, rental_service):
        for i in range(3):
            await rental_service.create(CreateRentalInput(title=f"Item {i}"))
        rentals, count = await rental_service.list_and_count({}, FindConfig(skip=1, take=1))
        assert count == 3
        assert len(rentals) == 1

    @pytest.mark.asyncio
    async def test_unknown_relation_rejected(self, rental_service):
        with pytest.raises(InvalidDataError):
            await rental_service.list({}, FindConfig(relations=["owner"]))

    @pytest.mark.asyncio
    async def test_tags_by_usage(self, rental_service):
        await rental_service.create(CreateRentalInput(title="A", tags=[RentalTagInput(value="hot")]))
        await rental_service.create(
            CreateRentalInput(title="B", tags=[RentalTagInput(value="hot"), RentalTagInput(value="new")])
        )
        usage = await rental_service.list_tags_by_usage()
        assert usage[0]["value"] == "hot"
        assert usage[0]["usage_count"] == 2


class TestOptions:
    """Adding, renaming and removing options."""

    @pytest.mark.asyncio
    async def test_add_option_backfills_default_value(self, rental_service, seeded):
        rental = await rental_service.create_with_variants(_sized_rental())
        result = await rental_service.add_option(rental.id, "Color")

        color = next(o for o in result.options if o.title == "Color")
        assert len(color.values) == 2
        assert {v.value for v in color.values} == {"Default Value"}

    @pytest.mark.asyncio
    async def test_add_option_duplicate_title(self, rental_service, seeded):
        rental = await rental_service.create_with_variants(_sized_rental())
        with pytest.raises(DuplicateError):
            await rental_service.add_option(rental.id, "Size")

    @pytest.mark.asyncio
    async def test_update_option_title_collision_is_case_insensitive(self, rental_service):
        rental = await rental_service.create(
            CreateRentalInput(title="Bike", options=[RentalOptionInput(title="Size"), RentalOptionInput(title="Color")])
        )
        color = next(o for o in rental.options if o.title == "Color")
        with pytest.raises(NotFoundError):
            await rental_service.update_option(rental.id, color.id, UpdateRentalOptionInput(title="SIZE"))

    @pytest.mark.asyncio
    async def test_update_option_renames(self, rental_service):
        rental = await rental_service.create(CreateRentalInput(title="Bike", options=[RentalOptionInput(title="Size")]))
        option_id = rental.options[0].id
        updated = await rental_service.update_option(rental.id, option_id, UpdateRentalOptionInput(title="Frame"))
        assert [o.title for o in updated.options] == ["Frame"]

    @pytest.mark.asyncio
    async def test_update_missing_option(self, rental_service):
        rental = await rental_service.create(CreateRentalInput(title="Bike"))
        with pytest.raises(NotFoundError):
            await rental_service.update_option(rental.id, "opt_missing", UpdateRentalOptionInput(title="X"))

    @pytest.mark.asyncio
    async def test_delete_option_refused_when_values_differ(self, rental_service, seeded):
        rental = await rental_service.create_with_variants(_sized_rental())
        with pytest.raises(InvalidDataError):
            await rental_service.delete_option(rental.id, rental.options[0].id)

    @pytest.mark.asyncio
    async def test_delete_option_with_uniform_values(self, rental_service, seeded, full_config):
        rental = await rental_service.create_with_variants(_sized_rental(sizes=("S",)))
        await rental_service.delete_option(rental.id, rental.options[0].id)

        loaded = await rental_service.retrieve(rental.id, full_config)
        assert loaded.options == []
        assert loaded.variants[0].options == []

    @pytest.mark.asyncio
    async def test_delete_missing_option_is_noop(self, rental_service):
        rental = await rental_service.create(CreateRentalInput(title="Bike"))
        assert await rental_service.delete_option(rental.id, "opt_missing") is None


class TestReorderAndDelete:
    """Variant ordering and soft deletion."""

    @pytest.mark.asyncio
    async def test_reorder_variants(self, rental_service, seeded):
        rental = await rental_service.create_with_variants(_sized_rental(sizes=("S", "M", "L")))
        ids = [v.id for v in rental.variants]

        result = await rental_service.reorder_variants(rental.id, list(reversed(ids)))
        assert [v.id for v in result.variants] == list(reversed(ids))

    @pytest.mark.asyncio
    async def test_reorder_requires_every_variant(self, rental_service, seeded):
        rental = await rental_service.create_with_variants(_sized_rental())
        with pytest.raises(InvalidDataError):
            await rental_service.reorder_variants(rental.id, [rental.variants[0].id])
        with pytest.raises(InvalidDataError):
            await rental_service.reorder_variants(rental.id, [rental.variants[0].id, "variant_other"])

    @pytest.mark.asyncio
    async def test_reorder_rejects_repeated_ids(self, rental_service, seeded):
        rental = await rental_service.create_with_variants(_sized_rental())
        first = rental.variants[0].id
        with pytest.raises(InvalidDataError):
            await rental_service.reorder_variants(rental.id, [first, first])

        reloaded = await rental_service.retrieve_variants(rental.id)
        assert [v.variant_rank for v in reloaded] == [0, 1]

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, rental_service, variant_service, seeded, event_bus):
        rental = await rental_service.create_with_variants(_sized_rental())
        event_bus.collector.events.clear()

        await rental_service.delete(rental.id)
        await rental_service.delete(rental.id)

        with pytest.raises(NotFoundError):
            await rental_service.retrieve(rental.id)
        assert await variant_service.list({"rental_id": rental.id}) == []
        assert event_bus.collector.names() == ["rental.deleted"]

    @pytest.mark.asyncio
    async def test_handle_reusable_after_delete(self, rental_service):
        rental = await rental_service.create(CreateRentalInput(title="Tent"))
        await rental_service.delete(rental.id)
        again = await rental_service.create(CreateRentalInput(title="Tent"))
        assert again.handle == "tent"
        assert (await rental_service.retrieve_by_handle("tent")).id == again.id
