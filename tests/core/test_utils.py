"""Tests for handle generation, metadata merging, flags and settings."""

import pytest

from rental_api.core.errors import DuplicateError, InvalidDataError, NotFoundError, RentalApiError
from rental_api.core.flags import SALES_CHANNELS_FLAG, FlagRouter
from rental_api.core.settings import AppSettings
from rental_api.core.utils import set_metadata, to_kebab_case


class TestKebabCase:
    """Handles derived from titles."""

    @pytest.mark.parametrize(
        "title,expected",
        [
            ("Tent", "tent"),
            ("Camping Tent XL", "camping-tent-xl"),
            ("sleepingBag 2000", "sleeping-bag-2000"),
            ("  Ski & Snowboard!  ", "ski-snowboard"),
            ("Café Crème", "cafe-creme"),
        ],
    )
    def test_to_kebab_case(self, title, expected):
        assert to_kebab_case(title) == expected


class TestSetMetadata:
    """Key-wise metadata merge."""

    def test_merges_keys(self):
        assert set_metadata({"a": 1}, {"b": 2}) == {"a": 1, "b": 2}

    def test_overwrites_existing_key(self):
        assert set_metadata({"a": 1}, {"a": 3}) == {"a": 3}

    def test_empty_string_deletes_key(self):
        assert set_metadata({"a": 1, "b": 2}, {"a": ""}) == {"b": 2}

    def test_deleting_missing_key_is_noop(self):
        assert set_metadata(None, {"a": ""}) == {}

    def test_does_not_mutate_input(self):
        current = {"a": 1}
        set_metadata(current, {"b": 2})
        assert current == {"a": 1}

    def test_rejects_empty_key(self):
        with pytest.raises(InvalidDataError):
            set_metadata({}, {"": "x"})


class TestErrors:
    """Domain error types."""

    def test_error_types(self):
        assert NotFoundError("x").type == "not_found"
        assert InvalidDataError("x").type == "invalid_data"
        assert DuplicateError("x").type == "duplicate_error"

    def test_error_carries_message_and_details(self):
        err = InvalidDataError("bad", details={"field": "title"})
        assert isinstance(err, RentalApiError)
        assert err.message == "bad"
        assert err.details == {"field": "title"}


class TestFlags:
    """Feature flags."""

    def test_unknown_flag_is_disabled(self):
        assert FlagRouter().is_feature_enabled(SALES_CHANNELS_FLAG) is False

    def test_set_flag(self):
        router = FlagRouter()
        router.set_flag(SALES_CHANNELS_FLAG, True)
        assert router.is_feature_enabled(SALES_CHANNELS_FLAG) is True

    def test_from_settings(self, monkeypatch):
        monkeypatch.setenv("FEATURE_SALES_CHANNELS", "true")
        router = FlagRouter.from_settings(AppSettings())
        assert router.is_feature_enabled(SALES_CHANNELS_FLAG) is True


class TestAppSettings:
    """Environment driven settings."""

    def test_list_limits_default(self, monkeypatch):
        monkeypatch.delenv("ADMIN_LIST_LIMIT", raising=False)
        monkeypatch.delenv("STORE_LIST_LIMIT", raising=False)
        settings = AppSettings()
        assert (settings.ADMIN_LIST_LIMIT, settings.STORE_LIST_LIMIT) == (50, 100)

    def test_cors_origins_from_json(self, monkeypatch):
        monkeypatch.setenv("CORS_ORIGINS", '["http://a.test", "http://b.test"]')
        assert AppSettings().CORS_ORIGINS == ["http://a.test", "http://b.test"]
