from __future__ import annotations

import logging
from typing import Dict, Mapping, Optional

from rental_api.core.settings import AppSettings

logger = logging.getLogger(__name__)

SALES_CHANNELS_FLAG = "sales_channels"


class FlagRouter:
    """Answers whether a named feature flag is enabled."""

    def __init__(self, flags: Optional[Mapping[str, bool]] = None) -> None:
        self._flags: Dict[str, bool] = dict(flags or {})

    # PUBLIC_INTERFACE
    def is_feature_enabled(self, key: str) -> bool:
        """Return True when the flag is known and switched on."""
        return bool(self._flags.get(key, False))

    # PUBLIC_INTERFACE
    def set_flag(self, key: str, value: bool) -> None:
        """Override a flag at runtime."""
        logger.info("Feature flag %s set to %s", key, value)
        self._flags[key] = value

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "FlagRouter":
        """Build the router from FEATURE_* settings."""
        return cls({SALES_CHANNELS_FLAG: settings.FEATURE_SALES_CHANNELS})
