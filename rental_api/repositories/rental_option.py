from __future__ import annotations

from typing import Optional

from sqlalchemy import func, select

from rental_api.db.models import RentalOption, RentalOptionValue
from rental_api.repositories.base import BaseRepository


class RentalOptionRepository(BaseRepository[RentalOption]):
    """Repository for rental options."""

    model = RentalOption
    relations = frozenset({"values", "rental"})
    default_order = {"created_at": "ASC"}

    async def find_by_title(self, rental_id: str, title: str) -> Optional[RentalOption]:
        """Live option of a rental by title, compared case-insensitively."""
        stmt = self.live(
            select(RentalOption).where(
                RentalOption.rental_id == rental_id,
                func.upper(RentalOption.title) == title.upper(),
            )
        ).limit(1)
        return await self.scalar_one_or_none(stmt)


class RentalOptionValueRepository(BaseRepository[RentalOptionValue]):
    """Repository for option values."""

    model = RentalOptionValue
    default_order = {"created_at": "ASC"}

    async def find_for_variant(self, variant_id: str, option_id: str) -> Optional[RentalOptionValue]:
        """Live value a variant holds for an option."""
        stmt = self.live(
            select(RentalOptionValue).where(
                RentalOptionValue.variant_id == variant_id,
                RentalOptionValue.option_id == option_id,
            )
        ).limit(1)
        return await self.scalar_one_or_none(stmt)
