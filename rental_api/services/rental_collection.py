from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from rental_api.core.errors import NotFoundError
from rental_api.core.utils import set_metadata, to_kebab_case, utcnow
from rental_api.db.models import RentalCollection
from rental_api.repositories.lookup import RentalCollectionRepository
from rental_api.repositories.rental import RentalRepository
from rental_api.schemas.common import FindConfig
from rental_api.schemas.lookup import RentalCollectionCreate, RentalCollectionUpdate
from rental_api.services.base import BaseService

logger = logging.getLogger(__name__)


class RentalCollectionService(BaseService):
    """
    Rental collections.

    Handles default to the kebab-cased title and are unique among live
    collections. Deleting is soft and idempotent.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.collections = RentalCollectionRepository(session)
        self.rentals = RentalRepository(session)

    # PUBLIC_INTERFACE
    async def retrieve(self, collection_id: str, config: Optional[FindConfig] = None) -> RentalCollection:
        """Return a live collection or raise NotFoundError."""
        if not collection_id:
            raise NotFoundError('"collection_id" must be defined')
        collection = await self.collections.find_one({"id": collection_id}, config)
        if collection is None:
            raise NotFoundError(f"Rental collection with id: {collection_id} was not found")
        return collection

    # PUBLIC_INTERFACE
    async def retrieve_by_handle(self, handle: str, config: Optional[FindConfig] = None) -> RentalCollection:
        """Return a live collection by handle or raise NotFoundError."""
        collection = await self.collections.find_one({"handle": handle}, config) if handle else None
        if collection is None:
            raise NotFoundError(f"Rental collection with handle: {handle} was not found")
        return collection

    # PUBLIC_INTERFACE
    async def create(self, data: RentalCollectionCreate) -> RentalCollection:
        """Create a collection."""
        async with self.atomic():
            collection = RentalCollection(
                title=data.title,
                handle=data.handle or to_kebab_case(data.title),
                metadata_=data.metadata,
            )
            await self.collections.add(collection)
            await self.collections.flush()
            logger.info("Created collection %s (handle=%s)", collection.id, collection.handle)
        return collection

    # PUBLIC_INTERFACE
    async def update(self, collection_id: str, data: RentalCollectionUpdate) -> RentalCollection:
        """Apply the keys present in the payload; metadata is merged."""
        async with self.atomic():
            collection = await self.retrieve(collection_id)
            fields = data.model_fields_set
            if data.metadata is not None:
                collection.metadata_ = set_metadata(collection.metadata_, data.metadata)
            if "title" in fields and data.title is not None:
                collection.title = data.title
            if "handle" in fields:
                collection.handle = data.handle
            await self.collections.flush()
        return collection

    # PUBLIC_INTERFACE
    async def delete(self, collection_id: str) -> None:
        """Soft delete a collection. Missing collections are ignored."""
        async with self.atomic():
            collection = await self.collections.find_one({"id": collection_id})
            if collection is None:
                return
            collection.deleted_at = utcnow()
            await self.collections.flush()

    # PUBLIC_INTERFACE
    async def add_rentals(self, collection_id: str, rental_ids: Sequence[str]) -> RentalCollection:
        """Move rentals into the collection and return it with its rentals."""
        async with self.atomic():
            collection = await self.retrieve(collection_id)
            await self.rentals.bulk_add_to_collection(list(rental_ids), collection.id)
            result = await self.retrieve(collection.id, FindConfig(relations=["rentals"]))
        return result

    # PUBLIC_INTERFACE
    async def remove_rentals(self, collection_id: str, rental_ids: Sequence[str]) -> None:
        """Detach rentals from the collection."""
        async with self.atomic():
            collection = await self.retrieve(collection_id)
            await self.rentals.bulk_remove_from_collection(list(rental_ids), collection.id)

    # PUBLIC_INTERFACE
    async def list(
        self, selector: Optional[Dict[str, Any]] = None, config: Optional[FindConfig] = None
    ) -> List[RentalCollection]:
        """List collections; `q` matches title or handle."""
        return await self.collections.find(selector, config)

    # PUBLIC_INTERFACE
    async def list_and_count(
        self, selector: Optional[Dict[str, Any]] = None, config: Optional[FindConfig] = None
    ) -> Tuple[List[RentalCollection], int]:
        """List a page of collections with the total count of matches."""
        return await self.collections.find_and_count(selector, config)
