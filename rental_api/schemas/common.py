from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from sqlalchemy import inspect as sa_inspect


class FindConfig(BaseModel):
    """
    Query configuration for service reads.

    Attributes:
        select: column names to load (projection). None loads all columns.
        relations: dotted relation paths to hydrate, e.g. "variants.prices".
        skip/take: pagination window.
        order: mapping of column name to "ASC" or "DESC".
        with_deleted: include soft-deleted rows.
    """
    select: Optional[List[str]] = Field(default=None, description="Columns to load")
    relations: Optional[List[str]] = Field(default=None, description="Relations to hydrate")
    skip: int = Field(0, ge=0, description="Number of records to skip")
    take: Optional[int] = Field(default=None, ge=1, description="Max number of records to return")
    order: Optional[Dict[str, Literal["ASC", "DESC"]]] = Field(default=None, description="Ordering")
    with_deleted: bool = Field(False, description="Include soft-deleted rows")


class LoadedModel(BaseModel):
    """
    Base for read models built from ORM entities.

    Only attributes already loaded on the entity are read, so the `fields` and
    `expand` of a request shape the output and serialization never triggers
    lazy loads. The ORM attribute `metadata_` is exposed as `metadata`.
    """
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _loaded_attributes(cls, data: Any) -> Any:
        state = sa_inspect(data, raiseerr=False)
        if state is None or not hasattr(state, "dict"):
            return data
        values = {k: v for k, v in state.dict.items() if not k.startswith("_")}
        if "metadata_" in values:
            values["metadata"] = values.pop("metadata_")
        return values


class EntityRead(LoadedModel):
    """Identity, timestamps and soft-delete marker shared by read models."""
    id: Optional[str] = Field(default=None, description="Unique identifier")
    created_at: Optional[datetime] = Field(default=None, description="Creation timestamp (UTC)")
    updated_at: Optional[datetime] = Field(default=None, description="Last update timestamp (UTC)")
    deleted_at: Optional[datetime] = Field(default=None, description="Soft-delete timestamp")


class MessageResponse(BaseModel):
    """Standard message response."""
    message: str = Field(..., description="Human readable message")
    details: Optional[dict] = Field(default=None, description="Optional extra data")


class ErrorInfo(BaseModel):
    """Structured error description."""
    type: str = Field(..., description="Machine-readable error type code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Any] = Field(default=None, description="Optional error details (e.g., validation issues)")


# PUBLIC_INTERFACE
class ErrorResponse(BaseModel):
    """Standardized API error envelope returned by exception handlers."""
    status: int = Field(..., description="HTTP status code")
    error: ErrorInfo = Field(..., description="Error details")
    correlation_id: Optional[str] = Field(default=None, description="Request correlation ID")
    path: Optional[str] = Field(default=None, description="Request path")
    method: Optional[str] = Field(default=None, description="HTTP method")
    timestamp: datetime = Field(..., description="Error timestamp (UTC)")
