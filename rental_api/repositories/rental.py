from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import Select, and_, func, or_, select, update
from sqlalchemy.orm import aliased

from rental_api.db.models import (
    MoneyAmount,
    Rental,
    RentalCollection,
    RentalVariant,
    discount_condition_rental,
    rental_sales_channel,
    rental_tags,
)
from rental_api.repositories.base import BaseRepository

RENTAL_RELATIONS = frozenset(
    {
        "variants",
        "variants.prices",
        "variants.options",
        "options",
        "options.values",
        "images",
        "tags",
        "type",
        "collection",
        "sales_channels",
    }
)


def _as_list(value: Any) -> List[Any]:
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return [value]


class RentalRepository(BaseRepository[Rental]):
    """
    Repository for rentals.

    Besides plain column selectors, the id query understands:
      q                      free text over rental title/description, variant title/sku
                             and collection title
      tags                   tag ids (any match)
      price_list_id          rentals with a live variant priced in the given price lists
      sales_channel_id       rentals assigned to the given sales channels
      discount_condition_id  rentals linked to a discount condition
    """

    model = Rental
    relations = RENTAL_RELATIONS

    def filtered_ids(self, selector: Optional[Dict[str, Any]], with_deleted: bool = False) -> Select:
        selector = dict(selector or {})
        q = selector.pop("q", None)
        tags = selector.pop("tags", None)
        price_list_ids = selector.pop("price_list_id", None)
        sales_channel_ids = selector.pop("sales_channel_id", None)
        discount_condition_id = selector.pop("discount_condition_id", None)
        if q:
            # the free-text match covers title and description
            selector.pop("title", None)
            selector.pop("description", None)

        stmt = super().filtered_ids(selector, with_deleted)
        if q:
            stmt = stmt.where(Rental.id.in_(self._free_text_match(q)))
        if tags:
            stmt = stmt.where(
                Rental.id.in_(
                    select(rental_tags.c.rental_id).where(rental_tags.c.rental_tag_id.in_(_as_list(tags)))
                )
            )
        if price_list_ids:
            stmt = stmt.where(
                Rental.id.in_(
                    select(RentalVariant.rental_id)
                    .join(MoneyAmount, MoneyAmount.variant_id == RentalVariant.id)
                    .where(
                        MoneyAmount.price_list_id.in_(_as_list(price_list_ids)),
                        MoneyAmount.deleted_at.is_(None),
                        RentalVariant.deleted_at.is_(None),
                    )
                )
            )
        if sales_channel_ids:
            stmt = stmt.where(
                Rental.id.in_(
                    select(rental_sales_channel.c.rental_id).where(
                        rental_sales_channel.c.sales_channel_id.in_(_as_list(sales_channel_ids))
                    )
                )
            )
        if discount_condition_id:
            stmt = stmt.where(
                Rental.id.in_(
                    select(discount_condition_rental.c.rental_id).where(
                        discount_condition_rental.c.condition_id == discount_condition_id
                    )
                )
            )
        return stmt

    def _free_text_match(self, q: str) -> Select:
        """Ids of rentals matching q through their own, variant or collection text."""
        like = f"%{q}%"
        matched = aliased(Rental)
        return (
            select(matched.id)
            .outerjoin(
                RentalVariant,
                and_(RentalVariant.rental_id == matched.id, RentalVariant.deleted_at.is_(None)),
            )
            .outerjoin(RentalCollection, RentalCollection.id == matched.collection_id)
            .where(
                or_(
                    matched.title.ilike(like),
                    matched.description.ilike(like),
                    RentalVariant.title.ilike(like),
                    RentalVariant.sku.ilike(like),
                    RentalCollection.title.ilike(like),
                )
            )
        )

    async def is_in_sales_channels(self, rental_id: str, sales_channel_ids: List[str]) -> bool:
        """True when the rental is assigned to at least one of the sales channels."""
        if not sales_channel_ids:
            return False
        stmt = select(func.count()).select_from(rental_sales_channel).where(
            rental_sales_channel.c.rental_id == rental_id,
            rental_sales_channel.c.sales_channel_id.in_(sales_channel_ids),
        )
        result = await self.execute(stmt)
        return int(result.scalar_one()) > 0

    async def bulk_add_to_collection(self, rental_ids: List[str], collection_id: str) -> None:
        """Point the given live rentals at a collection."""
        if not rental_ids:
            return
        stmt = (
            update(Rental)
            .where(Rental.id.in_(rental_ids), Rental.deleted_at.is_(None))
            .values(collection_id=collection_id)
            .execution_options(synchronize_session=False)
        )
        await self.execute(stmt)

    async def bulk_remove_from_collection(self, rental_ids: List[str], collection_id: str) -> None:
        """Detach the given rentals from a collection when they belong to it."""
        if not rental_ids:
            return
        stmt = (
            update(Rental)
            .where(Rental.id.in_(rental_ids), Rental.collection_id == collection_id)
            .values(collection_id=None)
            .execution_options(synchronize_session=False)
        )
        await self.execute(stmt)
