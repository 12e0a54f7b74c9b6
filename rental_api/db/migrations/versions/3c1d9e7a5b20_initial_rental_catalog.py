"""Initial rental catalog schema.

- host platform references: image, sales_channel, region, shipping_profile, tax_rate
- catalog: rental_type, rental_tag, rental_collection, rental, rental_option,
  rental_variant, rental_option_value, money_amount
- associations: rental_images, rental_tags, rental_sales_channel, tax rate links
  and discount condition links

Handles, skus, barcodes, eans, upcs and (variant, option) pairs are unique among
live rows only, through partial unique indexes.
"""

from typing import List, Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "3c1d9e7a5b20"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _timestamps(soft_delete: bool = True) -> List[sa.Column]:
    columns = [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    ]
    if soft_delete:
        columns.append(sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True))
    return columns


def _metadata() -> sa.Column:
    return sa.Column("metadata", JSON_TYPE, nullable=True)


def _live_unique(name: str, table: str, columns: List[str], extra: str = "") -> None:
    where = sa.text(f"deleted_at IS NULL{extra}")
    op.create_index(name, table, columns, unique=True, postgresql_where=where, sqlite_where=where)


def upgrade() -> None:
    # Host platform references
    op.create_table(
        "image",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("url", sa.Text(), nullable=False),
        *_timestamps(),
        _metadata(),
    )
    op.create_table(
        "sales_channel",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_disabled", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        *_timestamps(),
    )
    op.create_table(
        "region",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("currency_code", sa.Text(), nullable=False),
        sa.Column("tax_rate", sa.Float(), server_default=sa.text("0"), nullable=False),
        *_timestamps(),
        _metadata(),
    )
    op.create_table(
        "shipping_profile",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("type", sa.Text(), nullable=False),
        *_timestamps(),
        _metadata(),
    )
    op.create_table(
        "tax_rate",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("rate", sa.Float(), nullable=True),
        sa.Column("code", sa.Text(), nullable=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("region_id", sa.Text(), nullable=False),
        *_timestamps(soft_delete=False),
        _metadata(),
        sa.ForeignKeyConstraint(["region_id"], ["region.id"], ondelete="CASCADE"),
    )

    # Lookups
    op.create_table(
        "rental_type",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("value", sa.Text(), nullable=False),
        *_timestamps(),
        _metadata(),
    )
    op.create_table(
        "rental_tag",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("value", sa.Text(), nullable=False),
        *_timestamps(),
        _metadata(),
    )
    op.create_table(
        "rental_collection",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("handle", sa.Text(), nullable=True),
        *_timestamps(),
        _metadata(),
    )
    _live_unique("ix_rental_collection_handle_live", "rental_collection", ["handle"])

    # Rentals
    op.create_table(
        "rental",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("subtitle", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("handle", sa.Text(), nullable=True),
        sa.Column("is_giftcard", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("status", sa.Text(), server_default=sa.text("'draft'"), nullable=False),
        sa.Column("thumbnail", sa.Text(), nullable=True),
        sa.Column("profile_id", sa.Text(), nullable=True),
        sa.Column("weight", sa.Float(), nullable=True),
        sa.Column("length", sa.Float(), nullable=True),
        sa.Column("height", sa.Float(), nullable=True),
        sa.Column("width", sa.Float(), nullable=True),
        sa.Column("hs_code", sa.Text(), nullable=True),
        sa.Column("origin_country", sa.Text(), nullable=True),
        sa.Column("mid_code", sa.Text(), nullable=True),
        sa.Column("material", sa.Text(), nullable=True),
        sa.Column("collection_id", sa.Text(), nullable=True),
        sa.Column("type_id", sa.Text(), nullable=True),
        sa.Column("discountable", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("external_id", sa.Text(), nullable=True),
        *_timestamps(),
        _metadata(),
        sa.ForeignKeyConstraint(["profile_id"], ["shipping_profile.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["collection_id"], ["rental_collection.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["type_id"], ["rental_type.id"], ondelete="SET NULL"),
    )
    _live_unique("ix_rental_handle_live", "rental", ["handle"])
    op.create_index("ix_rental_type_id", "rental", ["type_id"])
    op.create_index("ix_rental_collection_id", "rental", ["collection_id"])
    op.create_index("ix_rental_external_id", "rental", ["external_id"])

    op.create_table(
        "rental_option",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("rental_id", sa.Text(), nullable=False),
        *_timestamps(),
        _metadata(),
        sa.ForeignKeyConstraint(["rental_id"], ["rental.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_rental_option_rental_id", "rental_option", ["rental_id"])

    op.create_table(
        "rental_variant",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("rental_id", sa.Text(), nullable=False),
        sa.Column("sku", sa.Text(), nullable=True),
        sa.Column("barcode", sa.Text(), nullable=True),
        sa.Column("ean", sa.Text(), nullable=True),
        sa.Column("upc", sa.Text(), nullable=True),
        sa.Column("variant_rank", sa.Integer(), nullable=True),
        sa.Column("inventory_quantity", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("allow_backorder", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("manage_inventory", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("hs_code", sa.Text(), nullable=True),
        sa.Column("origin_country", sa.Text(), nullable=True),
        sa.Column("mid_code", sa.Text(), nullable=True),
        sa.Column("material", sa.Text(), nullable=True),
        sa.Column("weight", sa.Float(), nullable=True),
        sa.Column("length", sa.Float(), nullable=True),
        sa.Column("height", sa.Float(), nullable=True),
        sa.Column("width", sa.Float(), nullable=True),
        *_timestamps(),
        _metadata(),
        sa.ForeignKeyConstraint(["rental_id"], ["rental.id"], ondelete="CASCADE"),
    )
    for column in ("sku", "barcode", "ean", "upc"):
        _live_unique(f"ix_rental_variant_{column}_live", "rental_variant", [column], f" AND {column} IS NOT NULL")
    op.create_index("ix_rental_variant_rental_id", "rental_variant", ["rental_id"])

    op.create_table(
        "rental_option_value",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("option_id", sa.Text(), nullable=False),
        sa.Column("variant_id", sa.Text(), nullable=False),
        *_timestamps(),
        _metadata(),
        sa.ForeignKeyConstraint(["option_id"], ["rental_option.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["variant_id"], ["rental_variant.id"], ondelete="CASCADE"),
    )
    _live_unique("ix_rental_option_value_variant_option_live", "rental_option_value", ["variant_id", "option_id"])
    op.create_index("ix_rental_option_value_option_id", "rental_option_value", ["option_id"])

    op.create_table(
        "money_amount",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("currency_code", sa.Text(), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("min_quantity", sa.Integer(), nullable=True),
        sa.Column("max_quantity", sa.Integer(), nullable=True),
        sa.Column("price_list_id", sa.Text(), nullable=True),
        sa.Column("variant_id", sa.Text(), nullable=False),
        sa.Column("region_id", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["variant_id"], ["rental_variant.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["region_id"], ["region.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_money_amount_variant_id", "money_amount", ["variant_id"])
    op.create_index("ix_money_amount_region_id", "money_amount", ["region_id"])

    # Associations
    op.create_table(
        "rental_images",
        sa.Column("rental_id", sa.Text(), primary_key=True),
        sa.Column("image_id", sa.Text(), primary_key=True),
        sa.ForeignKeyConstraint(["rental_id"], ["rental.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["image_id"], ["image.id"], ondelete="CASCADE"),
    )
    op.create_table(
        "rental_tags",
        sa.Column("rental_id", sa.Text(), primary_key=True),
        sa.Column("rental_tag_id", sa.Text(), primary_key=True),
        sa.ForeignKeyConstraint(["rental_id"], ["rental.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["rental_tag_id"], ["rental_tag.id"], ondelete="CASCADE"),
    )
    op.create_table(
        "rental_sales_channel",
        sa.Column("rental_id", sa.Text(), primary_key=True),
        sa.Column("sales_channel_id", sa.Text(), primary_key=True),
        sa.ForeignKeyConstraint(["rental_id"], ["rental.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["sales_channel_id"], ["sales_channel.id"], ondelete="CASCADE"),
    )
    op.create_table(
        "rental_tax_rate",
        sa.Column("rental_id", sa.Text(), primary_key=True),
        sa.Column("rate_id", sa.Text(), primary_key=True),
        *_timestamps(soft_delete=False),
        _metadata(),
        sa.ForeignKeyConstraint(["rental_id"], ["rental.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["rate_id"], ["tax_rate.id"], ondelete="CASCADE"),
    )
    op.create_table(
        "rental_type_tax_rate",
        sa.Column("rental_type_id", sa.Text(), primary_key=True),
        sa.Column("rate_id", sa.Text(), primary_key=True),
        *_timestamps(soft_delete=False),
        _metadata(),
        sa.ForeignKeyConstraint(["rental_type_id"], ["rental_type.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["rate_id"], ["tax_rate.id"], ondelete="CASCADE"),
    )

    # Discount conditions are owned by the host platform; only the link rows live here.
    for table, column, target in (
        ("discount_condition_rental", "rental_id", "rental.id"),
        ("discount_condition_rental_type", "rental_type_id", "rental_type.id"),
        ("discount_condition_rental_tag", "rental_tag_id", "rental_tag.id"),
        ("discount_condition_rental_collection", "rental_collection_id", "rental_collection.id"),
    ):
        op.create_table(
            table,
            sa.Column(column, sa.Text(), primary_key=True),
            sa.Column("condition_id", sa.Text(), primary_key=True),
            sa.ForeignKeyConstraint([column], [target], ondelete="CASCADE"),
        )


def downgrade() -> None:
    # Drop tables in reverse dependency order
    for table in (
        "discount_condition_rental_collection",
        "discount_condition_rental_tag",
        "discount_condition_rental_type",
        "discount_condition_rental",
        "rental_type_tax_rate",
        "rental_tax_rate",
        "rental_sales_channel",
        "rental_tags",
        "rental_images",
        "money_amount",
        "rental_option_value",
        "rental_variant",
        "rental_option",
        "rental",
        "rental_collection",
        "rental_tag",
        "rental_type",
        "tax_rate",
        "shipping_profile",
        "region",
        "sales_channel",
        "image",
    ):
        op.drop_table(table)
