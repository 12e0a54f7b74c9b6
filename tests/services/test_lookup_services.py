"""Tests for types, tags, collections and tax rate lookups."""

import pytest

from rental_api.core.errors import NotFoundError
from rental_api.db.models import RentalTaxRate, RentalTypeTaxRate, TaxRate
from rental_api.schemas.common import FindConfig
from rental_api.schemas.lookup import RentalCollectionCreate, RentalCollectionUpdate, RentalTagCreate
from rental_api.schemas.rental import CreateRentalInput, RentalTagInput, RentalTypeInput
from rental_api.services.rental_collection import RentalCollectionService
from rental_api.services.rental_tag import RentalTagService
from rental_api.services.rental_tax_rate import RentalTaxRateService
from rental_api.services.rental_type import RentalTypeService


class TestRentalTypes:
    """Type upsert and listing."""

    @pytest.mark.asyncio
    async def test_upsert_reuses_value(self, db_session):
        service = RentalTypeService(db_session)
        first = await service.upsert(RentalTypeInput(value="tents"))
        second = await service.upsert(RentalTypeInput(value="tents"))
        assert first.id == second.id

    @pytest.mark.asyncio
    async def test_list_with_free_text(self, db_session):
        service = RentalTypeService(db_session)
        await service.upsert(RentalTypeInput(value="tents"))
        await service.upsert(RentalTypeInput(value="bikes"))

        types, count = await service.list_and_count({"q": "ten"})
        assert count == 1
        assert types[0].value == "tents"

    @pytest.mark.asyncio
    async def test_retrieve_missing(self, db_session):
        with pytest.raises(NotFoundError):
            await RentalTypeService(db_session).retrieve("ptyp_missing")

    @pytest.mark.asyncio
    async def test_rental_service_lists_types(self, rental_service):
        await rental_service.create(CreateRentalInput(title="A", type=RentalTypeInput(value="boats")))
        assert [t.value for t in await rental_service.list_types()] == ["boats"]


class TestRentalTags:
    """Tags and their usage."""

    @pytest.mark.asyncio
    async def test_create_and_retrieve(self, db_session):
        service = RentalTagService(db_session)
        tag = await service.create(RentalTagCreate(value="summer"))
        assert (await service.retrieve(tag.id)).value == "summer"

    @pytest.mark.asyncio
    async def test_usage_counts_unused_tags_as_zero(self, db_session, rental_service):
        service = RentalTagService(db_session)
        await service.create(RentalTagCreate(value="unused"))
        await rental_service.create(CreateRentalInput(title="A", tags=[RentalTagInput(value="used")]))

        usage = {row["value"]: row["usage_count"] for row in await service.list_by_usage()}
        assert usage == {"used": 1, "unused": 0}

    @pytest.mark.asyncio
    async def test_usage_limit(self, db_session, rental_service):
        await rental_service.create(
            CreateRentalInput(title="A", tags=[RentalTagInput(value="a"), RentalTagInput(value="b")])
        )
        assert len(await RentalTagService(db_session).list_by_usage(count=1)) == 1


class TestRentalCollections:
    """Collection lifecycle and membership."""

    @pytest.mark.asyncio
    async def test_handle_defaults_to_title(self, db_session):
        collection = await RentalCollectionService(db_session).create(RentalCollectionCreate(title="Summer Gear"))
        assert collection.handle == "summer-gear"

    @pytest.mark.asyncio
    async def test_update_and_delete(self, db_session):
        service = RentalCollectionService(db_session)
        collection = await service.create(RentalCollectionCreate(title="Winter", metadata={"a": 1}))

        updated = await service.update(collection.id, RentalCollectionUpdate(title="Winter Gear", metadata={"b": 2}))
        assert updated.title == "Winter Gear"
        assert updated.metadata_ == {"a": 1, "b": 2}

        await service.delete(collection.id)
        await service.delete(collection.id)
        with pytest.raises(NotFoundError):
            await service.retrieve(collection.id)

    @pytest.mark.asyncio
    async def test_add_and_remove_rentals(self, db_session, rental_service):
        service = RentalCollectionService(db_session)
        collection = await service.create(RentalCollectionCreate(title="Water"))
        kayak = await rental_service.create(CreateRentalInput(title="Kayak"))

        result = await service.add_rentals(collection.id, [kayak.id])
        assert [r.id for r in result.rentals] == [kayak.id]
        assert [r.id for r in await rental_service.list({"collection_id": collection.id})] == [kayak.id]

        await service.remove_rentals(collection.id, [kayak.id])
        assert await rental_service.list({"collection_id": collection.id}) == []

    @pytest.mark.asyncio
    async def test_list_q_matches_handle(self, db_session):
        service = RentalCollectionService(db_session)
        await service.create(RentalCollectionCreate(title="Water", handle="wet-stuff"))
        await service.create(RentalCollectionCreate(title="Snow"))
        found = await service.list({"q": "wet"})
        assert [c.title for c in found] == ["Water"]


class TestRentalTaxRates:
    """Tax rate links."""

    @pytest.mark.asyncio
    async def test_list_links_with_rates(self, db_session, rental_service, seeded):
        rental = await rental_service.create(CreateRentalInput(title="Kayak", type=RentalTypeInput(value="boats")))
        rate = TaxRate(name="VAT", rate=21.0, code="VAT21", region_id=seeded["region_id"])
        db_session.add(rate)
        await db_session.flush()
        db_session.add_all(
            [
                RentalTaxRate(rental_id=rental.id, rate_id=rate.id),
                RentalTypeTaxRate(rental_type_id=rental.type_id, rate_id=rate.id),
            ]
        )
        await db_session.commit()

        service = RentalTaxRateService(db_session)
        links = await service.list({"rental_id": [rental.id]}, FindConfig(relations=["tax_rate"]))
        assert [(link.rate_id, link.tax_rate.code) for link in links] == [(rate.id, "VAT21")]

        type_links = await service.list_by_type({"rental_type_id": rental.type_id})
        assert [link.rate_id for link in type_links] == [rate.id]
