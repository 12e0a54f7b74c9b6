from __future__ import annotations

import re
import unicodedata
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from rental_api.core.errors import InvalidDataError

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_CAMEL_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")


def utcnow() -> datetime:
    """Timezone-aware current UTC timestamp."""
    return datetime.now(tz=timezone.utc)


# PUBLIC_INTERFACE
def to_kebab_case(value: str) -> str:
    """
    Convert an arbitrary title into a URL-friendly kebab-case handle.

    Examples:
        "Tent" -> "tent"
        "Camping Tent XL" -> "camping-tent-xl"
        "sleepingBag 2000" -> "sleeping-bag-2000"
    """
    normalized = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    normalized = _CAMEL_BOUNDARY.sub(r"\1-\2", normalized).lower()
    return _NON_ALNUM.sub("-", normalized).strip("-")


# PUBLIC_INTERFACE
def set_metadata(current: Optional[Dict[str, Any]], new_data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge new metadata into the existing metadata map.

    Keys are merged one by one rather than replacing the whole map. An empty
    string value deletes the key. Keys must be non-empty strings.
    """
    merged = dict(current or {})
    for key, value in new_data.items():
        if not isinstance(key, str) or not key:
            raise InvalidDataError("Key type is invalid. Metadata keys must be non-empty strings")
        if value == "":
            merged.pop(key, None)
            continue
        merged[key] = value
    return merged
