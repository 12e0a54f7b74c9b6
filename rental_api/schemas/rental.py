from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from rental_api.core.errors import InvalidDataError
from rental_api.db.models.rental import RentalStatus
from rental_api.schemas.common import EntityRead
from rental_api.schemas.lookup import RentalCollectionRead, RentalTagRead, RentalTagUsage, RentalTypeRead


# ---------------------------------------------------------------------------
# Read models
# ---------------------------------------------------------------------------


class ImageRead(EntityRead):
    """Image read model."""
    url: Optional[str] = Field(default=None)
    metadata: Optional[Dict[str, Any]] = Field(default=None)


class SalesChannelRead(EntityRead):
    """Sales channel read model."""
    name: Optional[str] = Field(default=None)
    description: Optional[str] = Field(default=None)
    is_disabled: Optional[bool] = Field(default=None)


class MoneyAmountRead(EntityRead):
    """Variant price read model (amount in minor units)."""
    currency_code: Optional[str] = Field(default=None)
    amount: Optional[int] = Field(default=None)
    min_quantity: Optional[int] = Field(default=None)
    max_quantity: Optional[int] = Field(default=None)
    price_list_id: Optional[str] = Field(default=None)
    variant_id: Optional[str] = Field(default=None)
    region_id: Optional[str] = Field(default=None)


class RentalOptionValueRead(EntityRead):
    """Option value read model."""
    value: Optional[str] = Field(default=None)
    option_id: Optional[str] = Field(default=None)
    variant_id: Optional[str] = Field(default=None)
    metadata: Optional[Dict[str, Any]] = Field(default=None)


class RentalOptionRead(EntityRead):
    """Rental option read model."""
    title: Optional[str] = Field(default=None)
    rental_id: Optional[str] = Field(default=None)
    values: Optional[List[RentalOptionValueRead]] = Field(default=None)
    metadata: Optional[Dict[str, Any]] = Field(default=None)


class RentalVariantRead(EntityRead):
    """Rental variant read model. Priced fields are present when a pricing context was applied."""
    title: Optional[str] = Field(default=None)
    rental_id: Optional[str] = Field(default=None)
    rental: Optional["RentalFieldsRead"] = Field(default=None)
    sku: Optional[str] = Field(default=None)
    barcode: Optional[str] = Field(default=None)
    ean: Optional[str] = Field(default=None)
    upc: Optional[str] = Field(default=None)
    variant_rank: Optional[int] = Field(default=None)
    inventory_quantity: Optional[int] = Field(default=None)
    allow_backorder: Optional[bool] = Field(default=None)
    manage_inventory: Optional[bool] = Field(default=None)
    hs_code: Optional[str] = Field(default=None)
    origin_country: Optional[str] = Field(default=None)
    mid_code: Optional[str] = Field(default=None)
    material: Optional[str] = Field(default=None)
    weight: Optional[float] = Field(default=None)
    length: Optional[float] = Field(default=None)
    height: Optional[float] = Field(default=None)
    width: Optional[float] = Field(default=None)
    prices: Optional[List[MoneyAmountRead]] = Field(default=None)
    options: Optional[List[RentalOptionValueRead]] = Field(default=None)
    original_price: Optional[int] = Field(default=None)
    calculated_price: Optional[int] = Field(default=None)
    metadata: Optional[Dict[str, Any]] = Field(default=None)


class RentalFieldsRead(EntityRead):
    """Rental columns without relations, used where a rental is nested under its own children."""
    title: Optional[str] = Field(default=None)
    subtitle: Optional[str] = Field(default=None)
    description: Optional[str] = Field(default=None)
    handle: Optional[str] = Field(default=None)
    is_giftcard: Optional[bool] = Field(default=None)
    status: Optional[RentalStatus] = Field(default=None)
    thumbnail: Optional[str] = Field(default=None)
    profile_id: Optional[str] = Field(default=None)
    weight: Optional[float] = Field(default=None)
    length: Optional[float] = Field(default=None)
    height: Optional[float] = Field(default=None)
    width: Optional[float] = Field(default=None)
    hs_code: Optional[str] = Field(default=None)
    origin_country: Optional[str] = Field(default=None)
    mid_code: Optional[str] = Field(default=None)
    material: Optional[str] = Field(default=None)
    collection_id: Optional[str] = Field(default=None)
    type_id: Optional[str] = Field(default=None)
    discountable: Optional[bool] = Field(default=None)
    external_id: Optional[str] = Field(default=None)
    metadata: Optional[Dict[str, Any]] = Field(default=None)


class RentalRead(RentalFieldsRead):
    """Rental read model. Only loaded columns and relations are rendered."""
    variants: Optional[List[RentalVariantRead]] = Field(default=None)
    options: Optional[List[RentalOptionRead]] = Field(default=None)
    images: Optional[List[ImageRead]] = Field(default=None)
    tags: Optional[List[RentalTagRead]] = Field(default=None)
    sales_channels: Optional[List[SalesChannelRead]] = Field(default=None)
    type: Optional[RentalTypeRead] = Field(default=None)
    collection: Optional[RentalCollectionRead] = Field(default=None)


class RentalCollectionWithRentalsRead(RentalCollectionRead):
    """Collection read model including its live rentals."""
    rentals: Optional[List[RentalRead]] = Field(default=None)


RentalVariantRead.model_rebuild()


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


class RentalTagInput(BaseModel):
    """Tag reference by value (upserted)."""
    id: Optional[str] = Field(default=None)
    value: str = Field(..., min_length=1)


class RentalTypeInput(BaseModel):
    """Type reference by value (upserted)."""
    id: Optional[str] = Field(default=None)
    value: str = Field(..., min_length=1)


class SalesChannelInput(BaseModel):
    """Sales channel reference by id."""
    id: str = Field(..., min_length=1)


class RentalOptionInput(BaseModel):
    """Option declared on rental creation."""
    title: str = Field(..., min_length=1)


class VariantOptionValueInput(BaseModel):
    """Value for one option of the parent rental."""
    option_id: str = Field(..., min_length=1)
    value: str = Field(...)


class VariantOrdinalOptionInput(BaseModel):
    """Value for the option at the same position in the rental's declared options."""
    value: str = Field(...)


class VariantPriceInput(BaseModel):
    """
    A default price for a variant.

    Either region_id or currency_code identifies the price scope; an id refers to
    an existing price row.
    """
    id: Optional[str] = Field(default=None)
    region_id: Optional[str] = Field(default=None)
    currency_code: Optional[str] = Field(default=None)
    amount: int = Field(..., ge=0, description="Amount in minor units")
    min_quantity: Optional[int] = Field(default=None, ge=0)
    max_quantity: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _require_scope(self) -> "VariantPriceInput":
        if not self.id and not self.region_id and not self.currency_code:
            raise ValueError("a price requires either region_id or currency_code")
        if self.currency_code:
            self.currency_code = self.currency_code.lower()
        return self


class CreateRentalVariantInput(BaseModel):
    """Variant creation input. Options must cover every option of the rental exactly once."""
    title: str = Field(..., min_length=1)
    sku: Optional[str] = Field(default=None)
    barcode: Optional[str] = Field(default=None)
    ean: Optional[str] = Field(default=None)
    upc: Optional[str] = Field(default=None)
    variant_rank: Optional[int] = Field(default=None, ge=0)
    inventory_quantity: int = Field(default=0)
    allow_backorder: Optional[bool] = Field(default=None)
    manage_inventory: Optional[bool] = Field(default=None)
    hs_code: Optional[str] = Field(default=None)
    origin_country: Optional[str] = Field(default=None)
    mid_code: Optional[str] = Field(default=None)
    material: Optional[str] = Field(default=None)
    weight: Optional[float] = Field(default=None)
    length: Optional[float] = Field(default=None)
    height: Optional[float] = Field(default=None)
    width: Optional[float] = Field(default=None)
    metadata: Optional[Dict[str, Any]] = Field(default=None)
    prices: List[VariantPriceInput] = Field(default_factory=list)
    options: List[VariantOptionValueInput] = Field(default_factory=list)


class UpdateRentalVariantInput(BaseModel):
    """
    Variant update input with key-presence semantics.

    Keys absent from the payload are left unchanged. prices replaces all default
    prices, options updates values per option, metadata is merged key-wise.
    """
    title: Optional[str] = Field(default=None)
    sku: Optional[str] = Field(default=None)
    barcode: Optional[str] = Field(default=None)
    ean: Optional[str] = Field(default=None)
    upc: Optional[str] = Field(default=None)
    variant_rank: Optional[int] = Field(default=None, ge=0)
    inventory_quantity: Optional[int] = Field(default=None)
    allow_backorder: Optional[bool] = Field(default=None)
    manage_inventory: Optional[bool] = Field(default=None)
    hs_code: Optional[str] = Field(default=None)
    origin_country: Optional[str] = Field(default=None)
    mid_code: Optional[str] = Field(default=None)
    material: Optional[str] = Field(default=None)
    weight: Optional[float] = Field(default=None)
    length: Optional[float] = Field(default=None)
    height: Optional[float] = Field(default=None)
    width: Optional[float] = Field(default=None)
    metadata: Optional[Dict[str, Any]] = Field(default=None)
    prices: Optional[List[VariantPriceInput]] = Field(default=None)
    options: Optional[List[VariantOptionValueInput]] = Field(default=None)


class RentalVariantUpsertInput(UpdateRentalVariantInput):
    """Variant entry of a rental update. Entries without id are created."""
    id: Optional[str] = Field(default=None)

    def to_update(self, variant_rank: int) -> UpdateRentalVariantInput:
        values = self.model_dump(exclude_unset=True, exclude={"id"})
        values["variant_rank"] = variant_rank
        return UpdateRentalVariantInput(**values)

    def to_create(self, variant_rank: int) -> CreateRentalVariantInput:
        if not self.title:
            raise InvalidDataError("A title is required to create a variant")
        values = self.model_dump(exclude_unset=True, exclude={"id"})
        values["variant_rank"] = variant_rank
        values["prices"] = values.get("prices") or []
        values["options"] = values.get("options") or []
        if values.get("inventory_quantity") is None:
            values.pop("inventory_quantity", None)
        return CreateRentalVariantInput(**values)


class RentalVariantCreateReq(BaseModel):
    """Variant declared in a rental creation request; option values are positional."""
    title: str = Field(..., min_length=1)
    sku: Optional[str] = Field(default=None)
    barcode: Optional[str] = Field(default=None)
    ean: Optional[str] = Field(default=None)
    upc: Optional[str] = Field(default=None)
    inventory_quantity: int = Field(default=0)
    allow_backorder: Optional[bool] = Field(default=None)
    manage_inventory: Optional[bool] = Field(default=None)
    hs_code: Optional[str] = Field(default=None)
    origin_country: Optional[str] = Field(default=None)
    mid_code: Optional[str] = Field(default=None)
    material: Optional[str] = Field(default=None)
    weight: Optional[float] = Field(default=None)
    length: Optional[float] = Field(default=None)
    height: Optional[float] = Field(default=None)
    width: Optional[float] = Field(default=None)
    metadata: Optional[Dict[str, Any]] = Field(default=None)
    prices: List[VariantPriceInput] = Field(default_factory=list)
    options: List[VariantOrdinalOptionInput] = Field(default_factory=list)


class CreateRentalInput(BaseModel):
    """Rental creation input."""
    title: str = Field(..., min_length=1)
    subtitle: Optional[str] = Field(default=None)
    description: Optional[str] = Field(default=None)
    is_giftcard: bool = Field(default=False)
    discountable: bool = Field(default=True)
    images: Optional[List[str]] = Field(default=None)
    thumbnail: Optional[str] = Field(default=None)
    handle: Optional[str] = Field(default=None)
    status: RentalStatus = Field(default=RentalStatus.DRAFT)
    type: Optional[RentalTypeInput] = Field(default=None)
    collection_id: Optional[str] = Field(default=None)
    tags: Optional[List[RentalTagInput]] = Field(default=None)
    sales_channels: Optional[List[SalesChannelInput]] = Field(default=None)
    options: Optional[List[RentalOptionInput]] = Field(default=None)
    variants: Optional[List[RentalVariantCreateReq]] = Field(default=None)
    profile_id: Optional[str] = Field(default=None)
    weight: Optional[float] = Field(default=None)
    length: Optional[float] = Field(default=None)
    height: Optional[float] = Field(default=None)
    width: Optional[float] = Field(default=None)
    hs_code: Optional[str] = Field(default=None)
    origin_country: Optional[str] = Field(default=None)
    mid_code: Optional[str] = Field(default=None)
    material: Optional[str] = Field(default=None)
    external_id: Optional[str] = Field(default=None)
    metadata: Optional[Dict[str, Any]] = Field(default=None)


class UpdateRentalInput(BaseModel):
    """
    Rental update input with key-presence semantics.

    Scalar keys present in the payload overwrite the stored value (null included);
    images, tags, type and sales_channels are replaced wholesale; metadata is merged;
    variants are reconciled against the current variants.
    """
    title: Optional[str] = Field(default=None)
    subtitle: Optional[str] = Field(default=None)
    description: Optional[str] = Field(default=None)
    discountable: Optional[bool] = Field(default=None)
    images: Optional[List[str]] = Field(default=None)
    thumbnail: Optional[str] = Field(default=None)
    handle: Optional[str] = Field(default=None)
    status: Optional[RentalStatus] = Field(default=None)
    type: Optional[RentalTypeInput] = Field(default=None)
    collection_id: Optional[str] = Field(default=None)
    tags: Optional[List[RentalTagInput]] = Field(default=None)
    sales_channels: Optional[List[SalesChannelInput]] = Field(default=None)
    variants: Optional[List[RentalVariantUpsertInput]] = Field(default=None)
    profile_id: Optional[str] = Field(default=None)
    weight: Optional[float] = Field(default=None)
    length: Optional[float] = Field(default=None)
    height: Optional[float] = Field(default=None)
    width: Optional[float] = Field(default=None)
    hs_code: Optional[str] = Field(default=None)
    origin_country: Optional[str] = Field(default=None)
    mid_code: Optional[str] = Field(default=None)
    material: Optional[str] = Field(default=None)
    external_id: Optional[str] = Field(default=None)
    metadata: Optional[Dict[str, Any]] = Field(default=None)


class OptionValueUpdateInput(BaseModel):
    """New value for an existing option value row."""
    id: str = Field(..., min_length=1)
    value: str = Field(...)


class UpdateRentalOptionInput(BaseModel):
    """Option rename, optionally updating existing values."""
    title: str = Field(..., min_length=1)
    values: Optional[List[OptionValueUpdateInput]] = Field(default=None)


class VariantsReorderInput(BaseModel):
    """New order of a rental's variants."""
    variant_ids: List[str] = Field(default_factory=list)


class MetadataInput(BaseModel):
    """Single metadata key assignment. An empty value deletes the key."""
    key: str = Field(..., min_length=1)
    value: Any = Field(...)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class RentalResponse(BaseModel):
    """Single rental envelope."""
    rental: RentalRead


class RentalListResponse(BaseModel):
    """Paginated rentals."""
    rentals: List[RentalRead]
    count: int
    offset: int
    limit: int


class RentalDeleteResponse(BaseModel):
    """Rental deletion envelope."""
    id: str
    object: Literal["rental"] = "rental"
    deleted: bool = True


class OptionDeleteResponse(BaseModel):
    """Option deletion envelope including the updated rental."""
    option_id: str
    object: Literal["option"] = "option"
    deleted: bool = True
    rental: RentalRead


class VariantDeleteResponse(BaseModel):
    """Variant deletion envelope including the updated rental."""
    variant_id: str
    object: Literal["rental-variant"] = "rental-variant"
    deleted: bool = True
    rental: RentalRead


class VariantListResponse(BaseModel):
    """Paginated variants."""
    variants: List[RentalVariantRead]
    count: int
    offset: int
    limit: int


class RentalTypesResponse(BaseModel):
    """All rental types."""
    types: List[RentalTypeRead]


class RentalTagUsageResponse(BaseModel):
    """Most used tags."""
    tags: List[RentalTagUsage]


class StoreSearchReq(BaseModel):
    """Store search request forwarded to the search service. Unknown keys are passed through as options."""
    model_config = ConfigDict(extra="allow")

    q: Optional[str] = Field(default=None)
    offset: Optional[int] = Field(default=None, ge=0)
    limit: Optional[int] = Field(default=None, ge=1)
    filter: Optional[Any] = Field(default=None)

