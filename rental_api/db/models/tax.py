from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rental_api.db.base import Base, MetadataMixin, TimestampMixin

if TYPE_CHECKING:
    from rental_api.db.models.commerce import TaxRate


class RentalTaxRate(TimestampMixin, MetadataMixin, Base):
    """Associates a rental with a tax rate. Composite primary key (rental_id, rate_id)."""
    __tablename__ = "rental_tax_rate"

    rental_id: Mapped[str] = mapped_column(
        Text, ForeignKey("rental.id", ondelete="CASCADE"), primary_key=True
    )
    rate_id: Mapped[str] = mapped_column(
        Text, ForeignKey("tax_rate.id", ondelete="CASCADE"), primary_key=True
    )

    tax_rate: Mapped["TaxRate"] = relationship("TaxRate", viewonly=True)


class RentalTypeTaxRate(TimestampMixin, MetadataMixin, Base):
    """Associates a rental type with a tax rate. Composite primary key (rental_type_id, rate_id)."""
    __tablename__ = "rental_type_tax_rate"

    rental_type_id: Mapped[str] = mapped_column(
        Text, ForeignKey("rental_type.id", ondelete="CASCADE"), primary_key=True
    )
    rate_id: Mapped[str] = mapped_column(
        Text, ForeignKey("tax_rate.id", ondelete="CASCADE"), primary_key=True
    )

    tax_rate: Mapped["TaxRate"] = relationship("TaxRate", viewonly=True)
