from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from rental_api.db.models import RentalTaxRate, RentalTypeTaxRate
from rental_api.repositories.tax import RentalTaxRateRepository, RentalTypeTaxRateRepository
from rental_api.schemas.common import FindConfig
from rental_api.services.base import BaseService


class RentalTaxRateService(BaseService):
    """Read access to the tax rates attached to rentals and rental types."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.rental_rates = RentalTaxRateRepository(session)
        self.type_rates = RentalTypeTaxRateRepository(session)

    # PUBLIC_INTERFACE
    async def list(
        self, selector: Optional[Dict[str, Any]] = None, config: Optional[FindConfig] = None
    ) -> List[RentalTaxRate]:
        """Rental tax rate links matching the selector (e.g. {"rental_id": [...]})."""
        return await self.rental_rates.find(selector, config)

    # PUBLIC_INTERFACE
    async def list_by_type(
        self, selector: Optional[Dict[str, Any]] = None, config: Optional[FindConfig] = None
    ) -> List[RentalTypeTaxRate]:
        """Rental type tax rate links matching the selector (e.g. {"rental_type_id": "ptyp_..."})."""
        return await self.type_rates.find(selector, config)
