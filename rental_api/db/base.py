from __future__ import annotations

from datetime import datetime
from typing import Any, ClassVar, Dict, Optional
from uuid import uuid4

from sqlalchemy import JSON, DateTime, MetaData, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column

from rental_api.core.utils import utcnow


# Standardized naming convention for alembic-friendly constraints/indexes.
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests).
JSONType = JSON().with_variant(JSONB(), "postgresql")


# PUBLIC_INTERFACE
def generate_entity_id(prefix: str) -> str:
    """Return a new prefixed identifier, e.g. 'rental_5F0C...'."""
    return f"{prefix}_{uuid4().hex.upper()}"


class Base(DeclarativeBase):
    """Declarative base class with metadata naming conventions."""
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


class PrefixedIdMixin:
    """Mixin that provides a string primary key generated as '<prefix>_<uuid>'."""

    id_prefix: ClassVar[str] = "id"

    @declared_attr
    def id(cls) -> Mapped[str]:
        prefix = cls.id_prefix
        return mapped_column(Text, primary_key=True, default=lambda: generate_entity_id(prefix))


class TimestampMixin:
    """Mixin that provides created_at and updated_at timestamp columns."""
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )


class SoftDeleteMixin:
    """Mixin that provides the deleted_at marker. NULL means the row is live."""
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class MetadataMixin:
    """Mixin that provides an opaque key-value `metadata` column (attribute metadata_)."""
    metadata_: Mapped[Optional[Dict[str, Any]]] = mapped_column("metadata", JSONType, nullable=True)
