"""
Database seeding utilities for minimal reference data.

Seeds:
- Default and gift card shipping profiles (required by rental creation)
- A default region (EUR)
- A default sales channel

Every step is idempotent: rows are looked up by their natural key first.

Usage:
  python -m rental_api.db.run_migrations upgrade head
  python -m rental_api.db.seed
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rental_api.db.models import Region, SalesChannel, ShippingProfile, ShippingProfileType
from rental_api.db.session import get_session_maker

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
async def seed_all(session: Optional[AsyncSession] = None) -> None:
    """
    Seed the database with minimal reference data.

    Uses the given session when provided (tests), otherwise opens one from the
    global session factory. Commits once at the end.
    """
    if session is not None:
        await _seed(session)
        return
    async with get_session_maker()() as own_session:
        await _seed(own_session)


async def _seed(session: AsyncSession) -> None:
    await _ensure_shipping_profile(session, "Default Shipping Profile", ShippingProfileType.DEFAULT)
    await _ensure_shipping_profile(session, "Gift Card Profile", ShippingProfileType.GIFT_CARD)
    await _ensure_region(session, name="EU", currency_code="eur")
    await _ensure_sales_channel(session, name="Default Sales Channel", description="Created by default")
    await session.commit()


async def _ensure_shipping_profile(session: AsyncSession, name: str, profile_type: ShippingProfileType) -> ShippingProfile:
    """Return the live profile of this type, creating it when missing."""
    res = await session.execute(
        select(ShippingProfile)
        .where(ShippingProfile.type == profile_type.value, ShippingProfile.deleted_at.is_(None))
        .limit(1)
    )
    profile = res.scalar_one_or_none()
    if profile is None:
        profile = ShippingProfile(name=name, type=profile_type.value)
        session.add(profile)
        await session.flush()
        logger.info("Seeded shipping profile %s (%s)", profile.id, profile_type.value)
    return profile


async def _ensure_region(session: AsyncSession, name: str, currency_code: str) -> Region:
    """Return the live region with this name, creating it when missing."""
    res = await session.execute(
        select(Region).where(Region.name == name, Region.deleted_at.is_(None)).limit(1)
    )
    region = res.scalar_one_or_none()
    if region is None:
        region = Region(name=name, currency_code=currency_code)
        session.add(region)
        await session.flush()
        logger.info("Seeded region %s (%s)", region.id, currency_code)
    return region


async def _ensure_sales_channel(session: AsyncSession, name: str, description: str) -> SalesChannel:
    """Return the live sales channel with this name, creating it when missing."""
    res = await session.execute(
        select(SalesChannel).where(SalesChannel.name == name, SalesChannel.deleted_at.is_(None)).limit(1)
    )
    channel = res.scalar_one_or_none()
    if channel is None:
        channel = SalesChannel(name=name, description=description)
        session.add(channel)
        await session.flush()
        logger.info("Seeded sales channel %s", channel.id)
    return channel


# PUBLIC_INTERFACE
def main() -> None:
    """Entrypoint to run the asynchronous seeding."""
    asyncio.run(seed_all())


if __name__ == "__main__":
    main()
