from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from sqlalchemy import select

from rental_api.db.models import Image, Region, SalesChannel, ShippingProfile
from rental_api.repositories.base import BaseRepository


class ImageRepository(BaseRepository[Image]):
    """Repository for images."""

    model = Image

    async def upsert_images(self, urls: Sequence[str]) -> List[Image]:
        """Return live images for the given urls in input order, creating the missing ones."""
        unique_urls = list(dict.fromkeys(urls))
        if not unique_urls:
            return []
        stmt = self.live(select(Image).where(Image.url.in_(unique_urls)))
        existing: Dict[str, Image] = {}
        for image in await self.scalars(stmt):
            existing.setdefault(image.url, image)
        for url in unique_urls:
            if url not in existing:
                existing[url] = Image(url=url)
                await self.add(existing[url])
        await self.flush()
        return [existing[u] for u in unique_urls]


class SalesChannelRepository(BaseRepository[SalesChannel]):
    """Repository for sales channels."""

    model = SalesChannel

    async def find_by_ids(self, ids: Sequence[str]) -> List[SalesChannel]:
        """Live sales channels for the given ids, in input order."""
        unique_ids = list(dict.fromkeys(ids))
        if not unique_ids:
            return []
        stmt = self.live(select(SalesChannel).where(SalesChannel.id.in_(unique_ids)))
        by_id = {sc.id: sc for sc in await self.scalars(stmt)}
        return [by_id[i] for i in unique_ids if i in by_id]


class RegionRepository(BaseRepository[Region]):
    """Repository for regions."""

    model = Region


class ShippingProfileRepository(BaseRepository[ShippingProfile]):
    """Repository for shipping profiles."""

    model = ShippingProfile

    async def find_by_type(self, profile_type: str) -> Optional[ShippingProfile]:
        """Oldest live profile of the given type."""
        stmt = (
            self.live(select(ShippingProfile).where(ShippingProfile.type == profile_type))
            .order_by(ShippingProfile.created_at, ShippingProfile.id)
            .limit(1)
        )
        return await self.scalar_one_or_none(stmt)
