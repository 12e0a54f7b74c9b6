from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, Float, ForeignKey, Index, Integer, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rental_api.db.base import Base, MetadataMixin, PrefixedIdMixin, SoftDeleteMixin, TimestampMixin

if TYPE_CHECKING:
    from rental_api.db.models.commerce import MoneyAmount
    from rental_api.db.models.rental import Rental
    from rental_api.db.models.rental_option import RentalOptionValue


def _live_unique_index(column: str) -> Index:
    return Index(
        f"ix_rental_variant_{column}_live",
        column,
        unique=True,
        postgresql_where=text(f"deleted_at IS NULL AND {column} IS NOT NULL"),
        sqlite_where=text(f"deleted_at IS NULL AND {column} IS NOT NULL"),
    )


class RentalVariant(PrefixedIdMixin, TimestampMixin, SoftDeleteMixin, MetadataMixin, Base):
    """
    A purchasable variation of a rental.

    Holds exactly one option value per option of the parent rental; sku, barcode,
    ean and upc are unique among live variants when present.
    """
    __tablename__ = "rental_variant"
    __table_args__ = (
        _live_unique_index("sku"),
        _live_unique_index("barcode"),
        _live_unique_index("ean"),
        _live_unique_index("upc"),
        Index("ix_rental_variant_rental_id", "rental_id"),
    )
    id_prefix = "variant"

    title: Mapped[str] = mapped_column(Text, nullable=False)
    rental_id: Mapped[str] = mapped_column(Text, ForeignKey("rental.id", ondelete="CASCADE"), nullable=False)
    sku: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    barcode: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ean: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    upc: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    variant_rank: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, default=0)
    inventory_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    allow_backorder: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=text("false"))
    manage_inventory: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=text("true"))
    hs_code: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    origin_country: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    mid_code: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    material: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    weight: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    length: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    height: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    width: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    rental: Mapped["Rental"] = relationship("Rental", viewonly=True)
    prices: Mapped[List["MoneyAmount"]] = relationship(
        "MoneyAmount",
        primaryjoin="and_(RentalVariant.id == MoneyAmount.variant_id, MoneyAmount.deleted_at.is_(None))",
        order_by="[MoneyAmount.created_at, MoneyAmount.id]",
        viewonly=True,
    )
    options: Mapped[List["RentalOptionValue"]] = relationship(
        "RentalOptionValue",
        primaryjoin="and_(RentalVariant.id == RentalOptionValue.variant_id, RentalOptionValue.deleted_at.is_(None))",
        order_by="[RentalOptionValue.created_at, RentalOptionValue.id]",
        viewonly=True,
    )
