from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, Column, Float, ForeignKey, Index, Table, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rental_api.db.base import Base, MetadataMixin, PrefixedIdMixin, SoftDeleteMixin, TimestampMixin

if TYPE_CHECKING:
    from rental_api.db.models.commerce import Image, SalesChannel
    from rental_api.db.models.lookup import RentalCollection, RentalTag, RentalType
    from rental_api.db.models.rental_option import RentalOption
    from rental_api.db.models.rental_variant import RentalVariant


class RentalStatus(str, Enum):
    """Publication status of a rental."""
    DRAFT = "draft"
    PROPOSED = "proposed"
    PUBLISHED = "published"
    REJECTED = "rejected"


rental_images = Table(
    "rental_images",
    Base.metadata,
    Column("rental_id", Text, ForeignKey("rental.id", ondelete="CASCADE"), primary_key=True),
    Column("image_id", Text, ForeignKey("image.id", ondelete="CASCADE"), primary_key=True),
)

rental_tags = Table(
    "rental_tags",
    Base.metadata,
    Column("rental_id", Text, ForeignKey("rental.id", ondelete="CASCADE"), primary_key=True),
    Column("rental_tag_id", Text, ForeignKey("rental_tag.id", ondelete="CASCADE"), primary_key=True),
)

rental_sales_channel = Table(
    "rental_sales_channel",
    Base.metadata,
    Column("rental_id", Text, ForeignKey("rental.id", ondelete="CASCADE"), primary_key=True),
    Column("sales_channel_id", Text, ForeignKey("sales_channel.id", ondelete="CASCADE"), primary_key=True),
)

# Associative tables linking discount conditions (owned by the host platform) to catalog rows.
discount_condition_rental = Table(
    "discount_condition_rental",
    Base.metadata,
    Column("rental_id", Text, ForeignKey("rental.id", ondelete="CASCADE"), primary_key=True),
    Column("condition_id", Text, primary_key=True),
)

discount_condition_rental_type = Table(
    "discount_condition_rental_type",
    Base.metadata,
    Column("rental_type_id", Text, ForeignKey("rental_type.id", ondelete="CASCADE"), primary_key=True),
    Column("condition_id", Text, primary_key=True),
)

discount_condition_rental_tag = Table(
    "discount_condition_rental_tag",
    Base.metadata,
    Column("rental_tag_id", Text, ForeignKey("rental_tag.id", ondelete="CASCADE"), primary_key=True),
    Column("condition_id", Text, primary_key=True),
)

discount_condition_rental_collection = Table(
    "discount_condition_rental_collection",
    Base.metadata,
    Column(
        "rental_collection_id", Text, ForeignKey("rental_collection.id", ondelete="CASCADE"), primary_key=True
    ),
    Column("condition_id", Text, primary_key=True),
)


class Rental(PrefixedIdMixin, TimestampMixin, SoftDeleteMixin, MetadataMixin, Base):
    """Aggregate root of the catalog: a rentable item with variants, options and prices."""
    __tablename__ = "rental"
    __table_args__ = (
        Index(
            "ix_rental_handle_live",
            "handle",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
        Index("ix_rental_type_id", "type_id"),
        Index("ix_rental_collection_id", "collection_id"),
        Index("ix_rental_external_id", "external_id"),
    )
    id_prefix = "rental"

    title: Mapped[str] = mapped_column(Text, nullable=False)
    subtitle: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    handle: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_giftcard: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=text("false"))
    status: Mapped[str] = mapped_column(
        Text, nullable=False, default=RentalStatus.DRAFT.value, server_default=text("'draft'")
    )
    thumbnail: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    profile_id: Mapped[Optional[str]] = mapped_column(
        Text, ForeignKey("shipping_profile.id", ondelete="SET NULL"), nullable=True
    )
    weight: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    length: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    height: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    width: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    hs_code: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    origin_country: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    mid_code: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    material: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    collection_id: Mapped[Optional[str]] = mapped_column(
        Text, ForeignKey("rental_collection.id", ondelete="SET NULL"), nullable=True
    )
    type_id: Mapped[Optional[str]] = mapped_column(
        Text, ForeignKey("rental_type.id", ondelete="SET NULL"), nullable=True
    )
    discountable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=text("true"))
    external_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Child collections only expose live rows and are written through their own tables.
    variants: Mapped[List["RentalVariant"]] = relationship(
        "RentalVariant",
        primaryjoin="and_(Rental.id == RentalVariant.rental_id, RentalVariant.deleted_at.is_(None))",
        order_by="[RentalVariant.variant_rank, RentalVariant.created_at]",
        viewonly=True,
    )
    options: Mapped[List["RentalOption"]] = relationship(
        "RentalOption",
        primaryjoin="and_(Rental.id == RentalOption.rental_id, RentalOption.deleted_at.is_(None))",
        order_by="[RentalOption.created_at, RentalOption.id]",
        viewonly=True,
    )

    images: Mapped[List["Image"]] = relationship(
        "Image", secondary=rental_images, order_by="[Image.created_at, Image.id]"
    )
    tags: Mapped[List["RentalTag"]] = relationship(
        "RentalTag", secondary=rental_tags, order_by="RentalTag.value"
    )
    sales_channels: Mapped[List["SalesChannel"]] = relationship(
        "SalesChannel", secondary=rental_sales_channel, order_by="SalesChannel.name"
    )
    type: Mapped[Optional["RentalType"]] = relationship("RentalType")
    collection: Mapped[Optional["RentalCollection"]] = relationship("RentalCollection")
