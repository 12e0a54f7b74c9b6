from __future__ import annotations

from typing import TYPE_CHECKING, List

from sqlalchemy import ForeignKey, Index, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rental_api.db.base import Base, MetadataMixin, PrefixedIdMixin, SoftDeleteMixin, TimestampMixin

if TYPE_CHECKING:
    from rental_api.db.models.rental import Rental


class RentalOption(PrefixedIdMixin, TimestampMixin, SoftDeleteMixin, MetadataMixin, Base):
    """Option axis of a rental (e.g. Size). Titles are unique per rental, case-insensitively."""
    __tablename__ = "rental_option"
    __table_args__ = (Index("ix_rental_option_rental_id", "rental_id"),)
    id_prefix = "opt"

    title: Mapped[str] = mapped_column(Text, nullable=False)
    rental_id: Mapped[str] = mapped_column(Text, ForeignKey("rental.id", ondelete="CASCADE"), nullable=False)

    rental: Mapped["Rental"] = relationship("Rental", viewonly=True)
    values: Mapped[List["RentalOptionValue"]] = relationship(
        "RentalOptionValue",
        primaryjoin="and_(RentalOption.id == RentalOptionValue.option_id, RentalOptionValue.deleted_at.is_(None))",
        order_by="[RentalOptionValue.created_at, RentalOptionValue.id]",
        viewonly=True,
    )


class RentalOptionValue(PrefixedIdMixin, TimestampMixin, SoftDeleteMixin, MetadataMixin, Base):
    """Value a variant holds for one option. (variant_id, option_id) is unique among live rows."""
    __tablename__ = "rental_option_value"
    __table_args__ = (
        Index(
            "ix_rental_option_value_variant_option_live",
            "variant_id",
            "option_id",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
        Index("ix_rental_option_value_option_id", "option_id"),
    )
    id_prefix = "optval"

    value: Mapped[str] = mapped_column(Text, nullable=False)
    option_id: Mapped[str] = mapped_column(
        Text, ForeignKey("rental_option.id", ondelete="CASCADE"), nullable=False
    )
    variant_id: Mapped[str] = mapped_column(
        Text, ForeignKey("rental_variant.id", ondelete="CASCADE"), nullable=False
    )
