from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import select

from rental_api.db.models import RentalTaxRate, RentalTypeTaxRate
from rental_api.repositories.base import BaseRepository
from rental_api.repositories.query import apply_selector, build_join_plan
from rental_api.schemas.common import FindConfig


class _TaxRateLinkRepository(BaseRepository):
    """
    Association rows keyed by a composite primary key. They have no id column, so
    reads select entities directly instead of going through the id step.
    """

    relations = frozenset({"tax_rate"})
    key_column = "rate_id"

    async def find(self, selector: Optional[Dict[str, Any]] = None, config: Optional[FindConfig] = None) -> List[Any]:
        config = config or FindConfig()
        relations = self.validate_relations(config.relations)
        stmt = apply_selector(select(self.model), self.model, selector)
        stmt = stmt.options(*build_join_plan(self.model, relations))
        stmt = stmt.order_by(getattr(self.model, self.key_column), self.model.rate_id)
        if config.skip:
            stmt = stmt.offset(config.skip)
        if config.take is not None:
            stmt = stmt.limit(config.take)
        return list(await self.scalars(stmt))


class RentalTaxRateRepository(_TaxRateLinkRepository):
    """Repository for rental to tax rate links."""

    model = RentalTaxRate
    key_column = "rental_id"


class RentalTypeTaxRateRepository(_TaxRateLinkRepository):
    """Repository for rental type to tax rate links."""

    model = RentalTypeTaxRate
    key_column = "rental_type_id"
