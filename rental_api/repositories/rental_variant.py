from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import Select, delete, or_, select
from sqlalchemy.orm import aliased

from rental_api.db.models import MoneyAmount, Rental, RentalVariant
from rental_api.repositories.base import BaseRepository

RENTAL_VARIANT_RELATIONS = frozenset({"rental", "prices", "options"})


class RentalVariantRepository(BaseRepository[RentalVariant]):
    """Repository for rental variants. `q` matches variant title/sku and the parent rental title."""

    model = RentalVariant
    relations = RENTAL_VARIANT_RELATIONS
    default_order = {"variant_rank": "ASC", "created_at": "ASC"}

    def filtered_ids(self, selector: Optional[Dict[str, Any]], with_deleted: bool = False) -> Select:
        selector = dict(selector or {})
        q = selector.pop("q", None)
        if q:
            selector.pop("title", None)
        stmt = super().filtered_ids(selector, with_deleted)
        if q:
            like = f"%{q}%"
            matched = aliased(RentalVariant)
            stmt = stmt.where(
                RentalVariant.id.in_(
                    select(matched.id)
                    .join(Rental, Rental.id == matched.rental_id)
                    .where(or_(matched.title.ilike(like), matched.sku.ilike(like), Rental.title.ilike(like)))
                )
            )
        return stmt


class MoneyAmountRepository(BaseRepository[MoneyAmount]):
    """Repository for variant prices."""

    model = MoneyAmount
    default_order = {"created_at": "ASC"}

    async def find_default_region_price(self, variant_id: str, region_id: str) -> Optional[MoneyAmount]:
        """Live default price of a variant in a region."""
        stmt = self.live(
            select(MoneyAmount).where(
                MoneyAmount.variant_id == variant_id,
                MoneyAmount.region_id == region_id,
                MoneyAmount.price_list_id.is_(None),
            )
        ).limit(1)
        return await self.scalar_one_or_none(stmt)

    async def find_default_currency_price(self, variant_id: str, currency_code: str) -> Optional[MoneyAmount]:
        """Live default price of a variant in a currency, not scoped to a region."""
        stmt = self.live(
            select(MoneyAmount).where(
                MoneyAmount.variant_id == variant_id,
                MoneyAmount.currency_code == currency_code,
                MoneyAmount.region_id.is_(None),
                MoneyAmount.price_list_id.is_(None),
            )
        ).limit(1)
        return await self.scalar_one_or_none(stmt)

    async def list_default_prices(self, variant_id: str) -> List[MoneyAmount]:
        """All live default prices of a variant."""
        stmt = self.live(
            select(MoneyAmount).where(MoneyAmount.variant_id == variant_id, MoneyAmount.price_list_id.is_(None))
        ).order_by(MoneyAmount.created_at, MoneyAmount.id)
        return list(await self.scalars(stmt))

    async def list_variant_prices(self, variant_id: str, include_price_lists: bool) -> List[MoneyAmount]:
        """Live prices of a variant, optionally including price-list prices."""
        stmt = self.live(select(MoneyAmount).where(MoneyAmount.variant_id == variant_id))
        if not include_price_lists:
            stmt = stmt.where(MoneyAmount.price_list_id.is_(None))
        stmt = stmt.order_by(MoneyAmount.created_at, MoneyAmount.id)
        return list(await self.scalars(stmt))

    async def delete_by_ids(self, ids: List[str]) -> None:
        """Hard delete price rows."""
        if not ids:
            return
        stmt = delete(MoneyAmount).where(MoneyAmount.id.in_(ids)).execution_options(synchronize_session=False)
        await self.execute(stmt)
