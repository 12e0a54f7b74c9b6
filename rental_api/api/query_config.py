"""
Request query helpers shared by list and retrieve endpoints.

`expand`, `fields` and `order` arrive as comma separated strings and are turned
into a FindConfig on top of per-resource defaults. Date comparisons use the
bracket form `created_at[gte]=2024-01-01T00:00:00Z`.
"""
from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from fastapi import Request
from pydantic import TypeAdapter, ValidationError

from rental_api.core.errors import InvalidDataError
from rental_api.schemas.common import FindConfig
from rental_api.schemas.pricing import PriceSelectionContext

DEFAULT_ADMIN_RENTAL_RELATIONS: List[str] = [
    "variants",
    "variants.prices",
    "variants.options",
    "images",
    "options",
    "tags",
    "type",
    "collection",
]

DEFAULT_ADMIN_RENTAL_FIELDS: List[str] = [
    "id",
    "title",
    "subtitle",
    "status",
    "external_id",
    "description",
    "handle",
    "is_giftcard",
    "discountable",
    "thumbnail",
    "profile_id",
    "collection_id",
    "type_id",
    "weight",
    "length",
    "height",
    "width",
    "hs_code",
    "origin_country",
    "mid_code",
    "material",
    "created_at",
    "updated_at",
    "deleted_at",
    "metadata",
]

DEFAULT_ADMIN_RENTAL_VARIANT_FIELDS: List[str] = ["id", "rental_id"]

DEFAULT_ADMIN_VARIANT_RELATIONS: List[str] = ["rental", "prices", "options"]

DEFAULT_ADMIN_VARIANT_FIELDS: List[str] = [
    "id",
    "title",
    "rental_id",
    "sku",
    "barcode",
    "ean",
    "upc",
    "inventory_quantity",
    "allow_backorder",
    "weight",
    "length",
    "height",
    "width",
    "hs_code",
    "origin_country",
    "mid_code",
    "material",
    "created_at",
    "updated_at",
    "metadata",
]

DEFAULT_LOOKUP_FIELDS: List[str] = ["id", "value", "created_at", "updated_at"]

DEFAULT_STORE_RENTAL_RELATIONS: List[str] = [
    "variants",
    "variants.prices",
    "variants.options",
    "options",
    "options.values",
    "images",
    "tags",
    "collection",
    "type",
]

_DATE_FILTER = re.compile(r"^(created_at|updated_at|deleted_at)\[(lt|lte|gt|gte)\]$")
_DATETIME = TypeAdapter(datetime)


def split_csv(value: Optional[str]) -> Optional[List[str]]:
    """Split a comma separated query value, dropping blanks. None when nothing remains."""
    if value is None:
        return None
    parts = [p.strip() for p in value.split(",") if p.strip()]
    return parts or None


# PUBLIC_INTERFACE
def parse_order(order: Optional[str]) -> Optional[Dict[str, str]]:
    """`-created_at,title` -> {"created_at": "DESC", "title": "ASC"}."""
    parsed: Dict[str, str] = {}
    for part in split_csv(order) or []:
        if part.startswith("-"):
            parsed[part[1:]] = "DESC"
        else:
            parsed[part] = "ASC"
    return parsed or None


# PUBLIC_INTERFACE
def build_find_config(
    *,
    default_relations: Sequence[str] = (),
    default_fields: Optional[Sequence[str]] = None,
    expand: Optional[str] = None,
    fields: Optional[str] = None,
    order: Optional[str] = None,
    offset: int = 0,
    limit: Optional[int] = None,
    extra_relations: Sequence[str] = (),
) -> FindConfig:
    """
    Build a FindConfig from request parameters.

    `expand` replaces the default relations and `fields` replaces the default
    projection. `extra_relations` are always loaded, e.g. the option values the
    store needs to render variants.
    """
    relations = split_csv(expand) or list(default_relations)
    relations = list(dict.fromkeys([*relations, *extra_relations]))
    select = split_csv(fields) or (list(default_fields) if default_fields else None)
    return FindConfig(
        select=select,
        relations=relations or None,
        skip=offset,
        take=limit,
        order=parse_order(order),
    )


# PUBLIC_INTERFACE
def merge_fields(default_fields: Sequence[str], fields: Optional[str]) -> str:
    """Union of default fields and requested fields, as a comma separated string."""
    return ",".join(dict.fromkeys([*default_fields, *(split_csv(fields) or [])]))


# PUBLIC_INTERFACE
def date_filters(request: Request) -> Dict[str, Any]:
    """Collect `created_at[gte]` style comparisons from the query string."""
    filters: Dict[str, Dict[str, datetime]] = {}
    for key, raw in request.query_params.multi_items():
        match = _DATE_FILTER.match(key)
        if not match:
            continue
        try:
            value = _DATETIME.validate_python(raw)
        except ValidationError as exc:
            raise InvalidDataError(f"Invalid date for {key}: {raw}") from exc
        filters.setdefault(match.group(1), {})[match.group(2)] = value
    return filters


# PUBLIC_INTERFACE
def compact_selector(**values: Any) -> Dict[str, Any]:
    """Drop unset filters so they do not turn into IS NULL conditions."""
    return {k: v for k, v in values.items() if v is not None and v != []}


# PUBLIC_INTERFACE
def pricing_context(
    region_id: Optional[str],
    currency_code: Optional[str],
    quantity: Optional[int] = None,
    include_discount_prices: bool = False,
) -> PriceSelectionContext:
    """Price selection context from the store/admin pricing parameters."""
    return PriceSelectionContext(
        region_id=region_id,
        currency_code=currency_code,
        quantity=quantity,
        include_discount_prices=include_discount_prices,
    )


# PUBLIC_INTERFACE
def includes_pricing(config: FindConfig) -> bool:
    """True when variants and their prices are loaded, so prices can be calculated."""
    relations = set(config.relations or [])
    return {"variants", "variants.prices"} <= relations
