from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from rental_api.schemas.common import EntityRead, LoadedModel


class RentalTypeRead(EntityRead):
    """Rental type read model."""
    value: Optional[str] = Field(default=None, description="Type value")
    metadata: Optional[Dict[str, Any]] = Field(default=None)


class RentalTagRead(EntityRead):
    """Rental tag read model."""
    value: Optional[str] = Field(default=None, description="Tag value")
    metadata: Optional[Dict[str, Any]] = Field(default=None)


class RentalTagUsage(BaseModel):
    """Tag together with the number of rentals using it."""
    id: str = Field(..., description="Tag ID")
    value: str = Field(..., description="Tag value")
    usage_count: int = Field(..., description="Number of rentals carrying the tag")


class RentalCollectionRead(EntityRead):
    """Rental collection read model."""
    title: Optional[str] = Field(default=None)
    handle: Optional[str] = Field(default=None)
    metadata: Optional[Dict[str, Any]] = Field(default=None)


class TaxRateRead(EntityRead):
    """Tax rate read model."""
    rate: Optional[float] = Field(default=None)
    code: Optional[str] = Field(default=None)
    name: Optional[str] = Field(default=None)
    region_id: Optional[str] = Field(default=None)


class RentalTaxRateRead(LoadedModel):
    """Rental to tax rate association."""
    rental_id: Optional[str] = Field(default=None)
    rate_id: Optional[str] = Field(default=None)
    tax_rate: Optional[TaxRateRead] = Field(default=None)
    metadata: Optional[Dict[str, Any]] = Field(default=None)
    created_at: Optional[datetime] = Field(default=None)
    updated_at: Optional[datetime] = Field(default=None)


class RentalTypeTaxRateRead(LoadedModel):
    """Rental type to tax rate association."""
    rental_type_id: Optional[str] = Field(default=None)
    rate_id: Optional[str] = Field(default=None)
    tax_rate: Optional[TaxRateRead] = Field(default=None)
    metadata: Optional[Dict[str, Any]] = Field(default=None)
    created_at: Optional[datetime] = Field(default=None)
    updated_at: Optional[datetime] = Field(default=None)


class RentalTagCreate(BaseModel):
    """Create tag payload."""
    value: str = Field(..., min_length=1, description="Tag value")
    metadata: Optional[Dict[str, Any]] = Field(default=None)


class RentalCollectionCreate(BaseModel):
    """Create collection payload. The handle defaults to the kebab-cased title."""
    title: str = Field(..., min_length=1)
    handle: Optional[str] = Field(default=None)
    metadata: Optional[Dict[str, Any]] = Field(default=None)


class RentalCollectionUpdate(BaseModel):
    """Update collection payload. Only keys present in the payload are applied."""
    title: Optional[str] = Field(default=None)
    handle: Optional[str] = Field(default=None)
    metadata: Optional[Dict[str, Any]] = Field(default=None)


class RentalTypeListResponse(BaseModel):
    """Paginated rental types."""
    rental_types: List[RentalTypeRead]
    count: int
    offset: int
    limit: int


class RentalTagListResponse(BaseModel):
    """Paginated rental tags."""
    rental_tags: List[RentalTagRead]
    count: int
    offset: int
    limit: int
