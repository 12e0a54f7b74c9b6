from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from rental_api.core.errors import NotFoundError
from rental_api.db.models import RentalTag
from rental_api.repositories.lookup import RentalTagRepository
from rental_api.schemas.common import FindConfig
from rental_api.schemas.lookup import RentalTagCreate
from rental_api.services.base import BaseService


class RentalTagService(BaseService):
    """Rental tags."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.tags = RentalTagRepository(session)

    # PUBLIC_INTERFACE
    async def retrieve(self, tag_id: str, config: Optional[FindConfig] = None) -> RentalTag:
        """Return a live tag or raise NotFoundError."""
        if not tag_id:
            raise NotFoundError('"tag_id" must be defined')
        tag = await self.tags.find_one({"id": tag_id}, config)
        if tag is None:
            raise NotFoundError(f"Rental tag with id: {tag_id} was not found")
        return tag

    # PUBLIC_INTERFACE
    async def create(self, data: RentalTagCreate) -> RentalTag:
        """Create a tag."""
        async with self.atomic():
            tag = RentalTag(value=data.value, metadata_=data.metadata)
            await self.tags.add(tag)
            await self.tags.flush()
        return tag

    # PUBLIC_INTERFACE
    async def list(self, selector: Optional[Dict[str, Any]] = None, config: Optional[FindConfig] = None) -> List[RentalTag]:
        """List tags; `q` matches the value, `discount_condition_id` keeps linked tags."""
        return await self.tags.find(selector, config)

    # PUBLIC_INTERFACE
    async def list_and_count(
        self, selector: Optional[Dict[str, Any]] = None, config: Optional[FindConfig] = None
    ) -> Tuple[List[RentalTag], int]:
        """List a page of tags with the total count of matches."""
        return await self.tags.find_and_count(selector, config)

    # PUBLIC_INTERFACE
    async def list_by_usage(self, count: int = 10) -> List[Dict[str, Any]]:
        """The most used tags with their usage count."""
        return await self.tags.list_tags_by_usage(count)
