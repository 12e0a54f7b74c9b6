"""HTTP tests for the admin rental endpoints and the error envelope."""

import pytest


def _rental_payload(title="Camping Tent", **extra):
    payload = {
        "title": title,
        "description": "Waterproof two person tent",
        "options": [{"title": "Size"}],
        "variants": [
            {"title": "S", "options": [{"value": "S"}], "prices": [{"currency_code": "EUR", "amount": 1000}]},
            {"title": "M", "options": [{"value": "M"}], "prices": [{"currency_code": "EUR", "amount": 1500}]},
        ],
        "tags": [{"value": "outdoor"}],
        "type": {"value": "tents"},
    }
    payload.update(extra)
    return payload


async def _create(client, **kwargs):
    res = await client.post("/admin/rentals", json=_rental_payload(**kwargs))
    assert res.status_code == 200, res.text
    return res.json()["rental"]


class TestHealthAndErrors:
    """Liveness and the standard error envelope."""

    @pytest.mark.asyncio
    async def test_health(self, client):
        res = await client.get("/health")
        assert res.status_code == 200
        assert res.json()["message"] == "Healthy"
        assert res.headers["X-Correlation-ID"]

    @pytest.mark.asyncio
    async def test_correlation_id_is_echoed(self, client):
        res = await client.get("/admin/rentals/rental_missing", headers={"X-Correlation-ID": "abc-123"})
        assert res.headers["X-Correlation-ID"] == "abc-123"
        assert res.json()["correlation_id"] == "abc-123"

    @pytest.mark.asyncio
    async def test_not_found_envelope(self, client):
        res = await client.get("/admin/rentals/rental_missing")
        assert res.status_code == 404
        body = res.json()
        assert body["status"] == 404
        assert body["error"]["type"] == "not_found"
        assert body["path"] == "/admin/rentals/rental_missing"
        assert body["method"] == "GET"

    @pytest.mark.asyncio
    async def test_validation_envelope(self, client):
        res = await client.post("/admin/rentals", json={"description": "no title"})
        assert res.status_code == 422
        body = res.json()
        assert body["error"]["type"] == "validation_error"
        assert any(err["loc"][-1] == "title" for err in body["error"]["details"])

    @pytest.mark.asyncio
    async def test_unknown_route_uses_envelope(self, client):
        res = await client.get("/admin/nowhere")
        assert res.status_code == 404
        assert res.json()["error"]["type"] == "http_error"


class TestCreateAndRetrieve:
    """Create with variants, retrieve with defaults and projections."""

    @pytest.mark.asyncio
    async def test_create_returns_rental_with_defaults(self, client, seeded):
        rental = await _create(client)

        assert rental["handle"] == "camping-tent"
        assert rental["status"] == "draft"
        assert rental["profile_id"] == seeded["default_profile_id"]
        assert [v["title"] for v in rental["variants"]] == ["S", "M"]
        assert [t["value"] for t in rental["tags"]] == ["outdoor"]
        assert rental["type"]["value"] == "tents"
        assert rental["variants"][0]["prices"][0]["currency_code"] == "eur"

    @pytest.mark.asyncio
    async def test_create_publishes_events(self, client, seeded, event_bus):
        await _create(client)
        names = event_bus.collector.names()
        assert names.count("rental-variant.created") == 2
        assert "rental.created" in names

    @pytest.mark.asyncio
    async def test_duplicate_handle_conflicts(self, client, seeded):
        await _create(client)
        res = await client.post("/admin/rentals", json=_rental_payload())
        assert res.status_code == 409
        assert res.json()["error"]["type"] == "duplicate_error"

    @pytest.mark.asyncio
    async def test_duplicate_variant_options_conflict(self, client, seeded):
        payload = _rental_payload()
        payload["variants"][1]["options"] = [{"value": "S"}]
        res = await client.post("/admin/rentals", json=payload)
        assert res.status_code == 409

        listing = await client.get("/admin/rentals")
        assert listing.json()["count"] == 0

    @pytest.mark.asyncio
    async def test_retrieve_priced_for_currency(self, client, seeded):
        rental = await _create(client)
        res = await client.get(f"/admin/rentals/{rental['id']}", params={"currency_code": "eur"})
        assert res.status_code == 200
        prices = [v["calculated_price"] for v in res.json()["rental"]["variants"]]
        assert prices == [1000, 1500]

    @pytest.mark.asyncio
    async def test_retrieve_with_fields_and_expand(self, client, seeded):
        rental = await _create(client)
        res = await client.get(f"/admin/rentals/{rental['id']}", params={"fields": "title", "expand": "tags"})
        body = res.json()["rental"]
        assert body["title"] == "Camping Tent"
        assert "subtitle" not in body
        assert "variants" not in body
        assert [t["value"] for t in body["tags"]] == ["outdoor"]

    @pytest.mark.asyncio
    async def test_unknown_expand_is_invalid(self, client, seeded):
        rental = await _create(client)
        res = await client.get(f"/admin/rentals/{rental['id']}", params={"expand": "owner"})
        assert res.status_code == 400
        assert res.json()["error"]["type"] == "invalid_data"


class TestList:
    """Listing with filters."""

    @pytest.mark.asyncio
    async def test_filters_and_paging(self, client, seeded):
        await _create(client, title="Tent", status="published")
        await _create(client, title="Kayak", description="For lakes")

        res = await client.get("/admin/rentals", params={"status": "published"})
        body = res.json()
        assert body["count"] == 1
        assert body["rentals"][0]["title"] == "Tent"
        assert body["limit"] == 50

        res = await client.get("/admin/rentals", params={"q": "lakes", "limit": 1})
        assert [r["title"] for r in res.json()["rentals"]] == ["Kayak"]

    @pytest.mark.asyncio
    async def test_order(self, client, seeded):
        await _create(client, title="B")
        await _create(client, title="A")
        res = await client.get("/admin/rentals", params={"order": "title", "expand": "tags"})
        assert [r["title"] for r in res.json()["rentals"]] == ["A", "B"]

    @pytest.mark.asyncio
    async def test_date_filters(self, client, seeded):
        await _create(client)
        res = await client.get("/admin/rentals", params={"created_at[gte]": "2000-01-01T00:00:00Z"})
        assert res.json()["count"] == 1
        res = await client.get("/admin/rentals", params={"created_at[lt]": "2000-01-01T00:00:00Z"})
        assert res.json()["count"] == 0

    @pytest.mark.asyncio
    async def test_bad_date_filter(self, client, seeded):
        res = await client.get("/admin/rentals", params={"created_at[gte]": "yesterday-ish"})
        assert res.status_code == 400

    @pytest.mark.asyncio
    async def test_types_and_tag_usage(self, client, seeded):
        await _create(client)
        types = await client.get("/admin/rentals/types")
        assert [t["value"] for t in types.json()["types"]] == ["tents"]

        usage = await client.get("/admin/rentals/tag-usage")
        assert usage.json()["tags"][0]["value"] == "outdoor"
        assert usage.json()["tags"][0]["usage_count"] == 1


class TestUpdateAndDelete:
    """Updates, variants, options, metadata and deletion."""

    @pytest.mark.asyncio
    async def test_update_reconciles_variants(self, client, seeded):
        rental = await _create(client)
        medium = rental["variants"][1]
        res = await client.post(
            f"/admin/rentals/{rental['id']}",
            json={"title": "Big Tent", "variants": [{"id": medium["id"], "title": "Medium"}]},
        )
        assert res.status_code == 200
        body = res.json()["rental"]
        assert body["title"] == "Big Tent"
        assert [v["title"] for v in body["variants"]] == ["Medium"]

    @pytest.mark.asyncio
    async def test_sales_channels_rejected_without_flag(self, client, seeded):
        rental = await _create(client)
        res = await client.post(
            f"/admin/rentals/{rental['id']}", json={"sales_channels": [{"id": seeded["sales_channel_id"]}]}
        )
        assert res.status_code == 400

    @pytest.mark.asyncio
    async def test_variant_routes(self, client, seeded):
        rental = await _create(client)
        size_id = rental["options"][0]["id"]

        res = await client.post(
            f"/admin/rentals/{rental['id']}/variants",
            json={"title": "L", "options": [{"option_id": size_id, "value": "L"}]},
        )
        assert [v["title"] for v in res.json()["rental"]["variants"]] == ["S", "M", "L"]
        large = res.json()["rental"]["variants"][2]

        res = await client.post(
            f"/admin/rentals/{rental['id']}/variants/{large['id']}",
            params={"currency_code": "usd"},
            json={"prices": [{"currency_code": "usd", "amount": 2500}]},
        )
        variants = res.json()["rental"]["variants"]
        assert variants[2]["calculated_price"] == 2500

        listing = await client.get(f"/admin/rentals/{rental['id']}/variants", params={"fields": "title"})
        assert listing.json()["count"] == 3
        assert set(listing.json()["variants"][0]) >= {"id", "rental_id", "title"}

        res = await client.delete(f"/admin/rentals/{rental['id']}/variants/{large['id']}")
        body = res.json()
        assert (body["variant_id"], body["object"], body["deleted"]) == (large["id"], "rental-variant", True)
        assert len(body["rental"]["variants"]) == 2

    @pytest.mark.asyncio
    async def test_duplicate_variant_route(self, client, seeded):
        rental = await _create(client)
        size_id = rental["options"][0]["id"]
        res = await client.post(
            f"/admin/rentals/{rental['id']}/variants",
            json={"title": "S again", "options": [{"option_id": size_id, "value": "S"}]},
        )
        assert res.status_code == 409

    @pytest.mark.asyncio
    async def test_option_routes(self, client, seeded):
        rental = await _create(client)

        res = await client.post(f"/admin/rentals/{rental['id']}/options", json={"title": "Color"})
        options = res.json()["rental"]["options"]
        color = next(o for o in options if o["title"] == "Color")

        res = await client.post(f"/admin/rentals/{rental['id']}/options", json={"title": "Color"})
        assert res.status_code == 409

        res = await client.post(f"/admin/rentals/{rental['id']}/options/{color['id']}", json={"title": "Colour"})
        assert "Colour" in [o["title"] for o in res.json()["rental"]["options"]]

        res = await client.delete(f"/admin/rentals/{rental['id']}/options/{color['id']}")
        body = res.json()
        assert (body["option_id"], body["object"], body["deleted"]) == (color["id"], "option", True)
        assert [o["title"] for o in body["rental"]["options"]] == ["Size"]

        size_id = rental["options"][0]["id"]
        res = await client.delete(f"/admin/rentals/{rental['id']}/options/{size_id}")
        assert res.status_code == 400

    @pytest.mark.asyncio
    async def test_metadata_route(self, client, seeded):
        rental = await _create(client)
        res = await client.post(f"/admin/rentals/{rental['id']}/metadata", json={"key": "color", "value": "green"})
        assert res.json()["rental"]["metadata"] == {"color": "green"}

        res = await client.post(f"/admin/rentals/{rental['id']}/metadata", json={"key": "color", "value": ""})
        assert res.json()["rental"]["metadata"] == {}

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, client, seeded):
        rental = await _create(client)
        for _ in range(2):
            res = await client.delete(f"/admin/rentals/{rental['id']}")
            assert res.status_code == 200
            assert res.json() == {"id": rental["id"], "object": "rental", "deleted": True}

        res = await client.get(f"/admin/rentals/{rental['id']}")
        assert res.status_code == 404
