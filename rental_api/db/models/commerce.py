from __future__ import annotations

from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, Float, ForeignKey, Index, Integer, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from rental_api.db.base import Base, MetadataMixin, PrefixedIdMixin, SoftDeleteMixin, TimestampMixin


class ShippingProfileType(str, Enum):
    """Kinds of shipping profile a rental can reference."""
    DEFAULT = "default"
    GIFT_CARD = "gift_card"
    CUSTOM = "custom"


class Image(PrefixedIdMixin, TimestampMixin, SoftDeleteMixin, MetadataMixin, Base):
    """Image referenced by URL. Reused across rentals (upsert by url)."""
    __tablename__ = "image"
    id_prefix = "img"

    url: Mapped[str] = mapped_column(Text, nullable=False)


class SalesChannel(PrefixedIdMixin, TimestampMixin, SoftDeleteMixin, Base):
    """Sales channel a rental can be published to."""
    __tablename__ = "sales_channel"
    id_prefix = "sc"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_disabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=text("false"))


class Region(PrefixedIdMixin, TimestampMixin, SoftDeleteMixin, MetadataMixin, Base):
    """Region with a single currency. Region-scoped prices resolve their currency here."""
    __tablename__ = "region"
    id_prefix = "reg"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    currency_code: Mapped[str] = mapped_column(Text, nullable=False)
    tax_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0, server_default=text("0"))


class ShippingProfile(PrefixedIdMixin, TimestampMixin, SoftDeleteMixin, MetadataMixin, Base):
    """Shipping profile. Rentals are assigned the default (or gift card) profile on creation."""
    __tablename__ = "shipping_profile"
    id_prefix = "sp"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(Text, nullable=False)  # default/gift_card/custom


class TaxRate(PrefixedIdMixin, TimestampMixin, MetadataMixin, Base):
    """Tax rate defined for a region."""
    __tablename__ = "tax_rate"
    id_prefix = "txr"

    rate: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    code: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    region_id: Mapped[str] = mapped_column(Text, ForeignKey("region.id", ondelete="CASCADE"), nullable=False)


class MoneyAmount(PrefixedIdMixin, TimestampMixin, SoftDeleteMixin, Base):
    """
    A variant price in minor units.

    Scoped by region (region_id set) or by currency (region_id NULL). Rows with
    price_list_id NULL are default prices: at most one per variant and region,
    and one per variant and currency.
    """
    __tablename__ = "money_amount"
    __table_args__ = (
        Index("ix_money_amount_variant_id", "variant_id"),
        Index("ix_money_amount_region_id", "region_id"),
    )
    id_prefix = "ma"

    currency_code: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    min_quantity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    max_quantity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    price_list_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    variant_id: Mapped[str] = mapped_column(
        Text, ForeignKey("rental_variant.id", ondelete="CASCADE"), nullable=False
    )
    region_id: Mapped[Optional[str]] = mapped_column(
        Text, ForeignKey("region.id", ondelete="SET NULL"), nullable=True
    )
