"""Tests for selector translation, ordering and join plans."""

import pytest
from sqlalchemy import select

from rental_api.core.errors import InvalidDataError
from rental_api.db.models import Rental, RentalVariant
from rental_api.repositories.query import (
    apply_order,
    apply_selector,
    build_join_plan,
    foreign_keys_for,
    group_relations,
    resolve_column,
)
from rental_api.repositories.rental import RentalRepository
from rental_api.schemas.common import FindConfig
from rental_api.schemas.rental import CreateRentalInput


def _sql(stmt):
    return str(stmt.compile(compile_kwargs={"literal_binds": True}))


class TestSelectors:
    """Selector values become WHERE clauses."""

    def test_equality_membership_and_null(self):
        stmt = apply_selector(
            select(Rental.id), Rental, {"status": "published", "type_id": ["a", "b"], "collection_id": None}
        )
        sql = _sql(stmt)
        assert "rental.status = 'published'" in sql
        assert "rental.type_id IN ('a', 'b')" in sql
        assert "rental.collection_id IS NULL" in sql

    def test_operator_map(self):
        sql = _sql(apply_selector(select(Rental.id), Rental, {"weight": {"gte": 1.5, "lt": 5.5}}))
        assert "rental.weight >= 1.5" in sql
        assert "rental.weight < 5.5" in sql

    def test_metadata_column_uses_public_name(self):
        assert resolve_column(Rental, "metadata") is Rental.metadata_

    def test_unknown_field(self):
        with pytest.raises(InvalidDataError):
            apply_selector(select(Rental.id), Rental, {"owner": "x"})

    def test_unknown_operator(self):
        with pytest.raises(InvalidDataError):
            apply_selector(select(Rental.id), Rental, {"weight": {"between": 1}})


class TestOrderAndRelations:
    """Ordering and eager-load planning."""

    def test_order_ends_with_id(self):
        sql = _sql(apply_order(select(Rental.id), Rental, {"created_at": "DESC"}))
        assert sql.endswith("ORDER BY rental.created_at DESC, rental.id ASC")

    def test_group_relations_by_top_level(self):
        groups = group_relations(["variants", "images", "variants.prices", "variants.options"])
        assert groups == {"variants": ["variants", "variants.prices", "variants.options"], "images": ["images"]}

    def test_one_loader_per_top_level_relation(self):
        plan = build_join_plan(Rental, ["variants", "variants.prices", "variants.options", "tags"])
        assert len(plan) == 2

    def test_unknown_relation(self):
        with pytest.raises(InvalidDataError):
            build_join_plan(Rental, ["variants.owner"])

    def test_foreign_keys_for_many_to_one(self):
        assert foreign_keys_for(Rental, ["type", "collection", "variants"]) == ["type_id", "collection_id"]
        assert foreign_keys_for(RentalVariant, ["rental"]) == ["rental_id"]


class TestRepositoryReads:
    """Two-step reads through RentalRepository."""

    @pytest.mark.asyncio
    async def test_projection_keeps_id_and_requested_fields(self, db_session, rental_service):
        rental = await rental_service.create(CreateRentalInput(title="Tent", subtitle="Two person"))
        db_session.expunge_all()

        repo = RentalRepository(db_session)
        found = await repo.find({"id": rental.id}, FindConfig(select=["title"]))

        loaded = found[0].__dict__
        assert loaded["id"] == rental.id
        assert loaded["title"] == "Tent"
        assert "subtitle" not in loaded

    @pytest.mark.asyncio
    async def test_projection_rejects_unknown_field(self, db_session):
        repo = RentalRepository(db_session)
        with pytest.raises(InvalidDataError):
            await repo.load(["rental_x"], FindConfig(select=["owner"]))

    @pytest.mark.asyncio
    async def test_relation_must_be_exposed(self, db_session):
        with pytest.raises(InvalidDataError):
            await RentalRepository(db_session).find({}, FindConfig(relations=["variants.rental"]))

    @pytest.mark.asyncio
    async def test_with_deleted(self, db_session, rental_service):
        rental = await rental_service.create(CreateRentalInput(title="Tent"))
        await rental_service.delete(rental.id)

        repo = RentalRepository(db_session)
        assert await repo.find({"id": rental.id}) == []
        assert [r.id for r in await repo.find({"id": rental.id}, FindConfig(with_deleted=True))] == [rental.id]
