from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Index, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rental_api.db.base import Base, MetadataMixin, PrefixedIdMixin, SoftDeleteMixin, TimestampMixin

if TYPE_CHECKING:
    from rental_api.db.models.rental import Rental


class RentalType(PrefixedIdMixin, TimestampMixin, SoftDeleteMixin, MetadataMixin, Base):
    """Rental type referenced by value (upsert by value)."""
    __tablename__ = "rental_type"
    id_prefix = "ptyp"

    value: Mapped[str] = mapped_column(Text, nullable=False)


class RentalTag(PrefixedIdMixin, TimestampMixin, SoftDeleteMixin, MetadataMixin, Base):
    """Rental tag referenced by value (upsert by value)."""
    __tablename__ = "rental_tag"
    id_prefix = "ptag"

    value: Mapped[str] = mapped_column(Text, nullable=False)


class RentalCollection(PrefixedIdMixin, TimestampMixin, SoftDeleteMixin, MetadataMixin, Base):
    """Group of rentals. The handle is unique among live collections."""
    __tablename__ = "rental_collection"
    __table_args__ = (
        Index(
            "ix_rental_collection_handle_live",
            "handle",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
    )
    id_prefix = "pcol"

    title: Mapped[str] = mapped_column(Text, nullable=False)
    handle: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    rentals: Mapped[List["Rental"]] = relationship(
        "Rental",
        primaryjoin="and_(RentalCollection.id == Rental.collection_id, Rental.deleted_at.is_(None))",
        order_by="Rental.created_at",
        viewonly=True,
    )
