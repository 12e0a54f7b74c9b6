from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from rental_api.core.errors import NotFoundError
from rental_api.db.models import RentalType
from rental_api.repositories.lookup import RentalTypeRepository
from rental_api.schemas.common import FindConfig
from rental_api.schemas.rental import RentalTypeInput
from rental_api.services.base import BaseService


class RentalTypeService(BaseService):
    """Rental types: lookups, listing with free text, upsert by value."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.types = RentalTypeRepository(session)

    # PUBLIC_INTERFACE
    async def retrieve(self, type_id: str, config: Optional[FindConfig] = None) -> RentalType:
        """Return a live rental type or raise NotFoundError."""
        if not type_id:
            raise NotFoundError('"type_id" must be defined')
        rental_type = await self.types.find_one({"id": type_id}, config)
        if rental_type is None:
            raise NotFoundError(f"Rental type with id: {type_id} was not found")
        return rental_type

    # PUBLIC_INTERFACE
    async def list(self, selector: Optional[Dict[str, Any]] = None, config: Optional[FindConfig] = None) -> List[RentalType]:
        """List types; `q` matches the value, `discount_condition_id` keeps linked types."""
        return await self.types.find(selector, config)

    # PUBLIC_INTERFACE
    async def list_and_count(
        self, selector: Optional[Dict[str, Any]] = None, config: Optional[FindConfig] = None
    ) -> Tuple[List[RentalType], int]:
        """List a page of types with the total count of matches."""
        return await self.types.find_and_count(selector, config)

    # PUBLIC_INTERFACE
    async def upsert(self, data: RentalTypeInput) -> RentalType:
        """Return the type with this value, creating it when missing."""
        async with self.atomic():
            rental_type = await self.types.upsert_type(data)
        return rental_type
