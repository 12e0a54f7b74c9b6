from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import Select, desc, func, or_, select

from rental_api.db.models import (
    RentalCollection,
    RentalTag,
    RentalType,
    discount_condition_rental_collection,
    discount_condition_rental_tag,
    discount_condition_rental_type,
    rental_tags,
)
from rental_api.repositories.base import BaseRepository
from rental_api.schemas.rental import RentalTagInput, RentalTypeInput


class RentalTypeRepository(BaseRepository[RentalType]):
    """Repository for rental types. `q` matches the value; `discount_condition_id` joins conditions."""

    model = RentalType

    def filtered_ids(self, selector: Optional[Dict[str, Any]], with_deleted: bool = False) -> Select:
        selector = dict(selector or {})
        q = selector.pop("q", None)
        discount_condition_id = selector.pop("discount_condition_id", None)
        stmt = super().filtered_ids(selector, with_deleted)
        if q:
            stmt = stmt.where(RentalType.value.ilike(f"%{q}%"))
        if discount_condition_id:
            stmt = stmt.where(
                RentalType.id.in_(
                    select(discount_condition_rental_type.c.rental_type_id).where(
                        discount_condition_rental_type.c.condition_id == discount_condition_id
                    )
                )
            )
        return stmt

    async def upsert_type(self, type_input: Optional[RentalTypeInput]) -> Optional[RentalType]:
        """Return the live type with the given value, creating it when missing."""
        if type_input is None:
            return None
        stmt = self.live(select(RentalType).where(RentalType.value == type_input.value)).limit(1)
        existing = await self.scalar_one_or_none(stmt)
        if existing is not None:
            return existing
        created = RentalType(value=type_input.value)
        await self.add(created)
        await self.flush()
        return created


class RentalTagRepository(BaseRepository[RentalTag]):
    """Repository for rental tags. `q` matches the value; `discount_condition_id` joins conditions."""

    model = RentalTag

    def filtered_ids(self, selector: Optional[Dict[str, Any]], with_deleted: bool = False) -> Select:
        selector = dict(selector or {})
        q = selector.pop("q", None)
        discount_condition_id = selector.pop("discount_condition_id", None)
        stmt = super().filtered_ids(selector, with_deleted)
        if q:
            stmt = stmt.where(RentalTag.value.ilike(f"%{q}%"))
        if discount_condition_id:
            stmt = stmt.where(
                RentalTag.id.in_(
                    select(discount_condition_rental_tag.c.rental_tag_id).where(
                        discount_condition_rental_tag.c.condition_id == discount_condition_id
                    )
                )
            )
        return stmt

    async def upsert_tags(self, tags: Sequence[RentalTagInput]) -> List[RentalTag]:
        """Return live tags for the given values, creating the missing ones. Duplicates collapse."""
        values = list(dict.fromkeys(t.value for t in tags))
        if not values:
            return []
        stmt = self.live(select(RentalTag).where(RentalTag.value.in_(values)))
        existing: Dict[str, RentalTag] = {}
        for tag in await self.scalars(stmt):
            existing.setdefault(tag.value, tag)
        for value in values:
            if value not in existing:
                existing[value] = RentalTag(value=value)
                await self.add(existing[value])
        await self.flush()
        return [existing[v] for v in values]

    async def list_tags_by_usage(self, count: int = 10) -> List[Dict[str, Any]]:
        """Most used live tags with the number of rentals carrying them."""
        usage = func.count(rental_tags.c.rental_id).label("usage_count")
        stmt = (
            select(RentalTag.id, RentalTag.value, usage)
            .outerjoin(rental_tags, rental_tags.c.rental_tag_id == RentalTag.id)
            .where(RentalTag.deleted_at.is_(None))
            .group_by(RentalTag.id, RentalTag.value)
            .order_by(desc("usage_count"), RentalTag.value)
            .limit(count)
        )
        result = await self.execute(stmt)
        return [{"id": row.id, "value": row.value, "usage_count": int(row.usage_count)} for row in result]


class RentalCollectionRepository(BaseRepository[RentalCollection]):
    """Repository for collections. `q` matches title or handle; `discount_condition_id` joins conditions."""

    model = RentalCollection
    relations = frozenset({"rentals"})

    def filtered_ids(self, selector: Optional[Dict[str, Any]], with_deleted: bool = False) -> Select:
        selector = dict(selector or {})
        q = selector.pop("q", None)
        discount_condition_id = selector.pop("discount_condition_id", None)
        if q:
            for key in ("title", "handle", "created_at", "updated_at"):
                selector.pop(key, None)
        stmt = super().filtered_ids(selector, with_deleted)
        if q:
            like = f"%{q}%"
            stmt = stmt.where(or_(RentalCollection.title.ilike(like), RentalCollection.handle.ilike(like)))
        if discount_condition_id:
            stmt = stmt.where(
                RentalCollection.id.in_(
                    select(discount_condition_rental_collection.c.rental_collection_id).where(
                        discount_condition_rental_collection.c.condition_id == discount_condition_id
                    )
                )
            )
        return stmt
