from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PriceSelectionContext(BaseModel):
    """Inputs for choosing a variant price."""
    region_id: Optional[str] = Field(default=None)
    currency_code: Optional[str] = Field(default=None)
    quantity: Optional[int] = Field(default=None, ge=1)
    customer_id: Optional[str] = Field(default=None)
    include_discount_prices: bool = Field(default=False)


class PriceSelectionResult(BaseModel):
    """
    Result of price selection for one variant.

    original_price is the default price for the context; calculated_price is
    the lowest applicable price (which may come from a price list).
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    original_price: Optional[int] = Field(default=None)
    calculated_price: Optional[int] = Field(default=None)
    prices: List[object] = Field(default_factory=list, description="Applicable MoneyAmount rows")


class GetRegionPriceContext(BaseModel):
    """Context of a region price lookup for a variant."""
    region_id: str = Field(..., description="Region to price in")
    quantity: Optional[int] = Field(default=None, ge=1)
    customer_id: Optional[str] = Field(default=None)
    include_discount_prices: bool = Field(default=False)
