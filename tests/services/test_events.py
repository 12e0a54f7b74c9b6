"""Tests for atomic phases: events are published only after the outermost commit."""

import asyncio

import pytest

from rental_api.core.errors import InvalidDataError
from rental_api.schemas.rental import CreateRentalInput
from rental_api.services.base import BaseService
from rental_api.services.event_bus import EventBusService


class TestAtomicPhases:
    """Commit, rollback and event publication of BaseService.atomic."""

    @pytest.mark.asyncio
    async def test_nested_phases_publish_once_after_outer_commit(self, rental_service, event_bus):
        async with rental_service.atomic():
            first = await rental_service.create(CreateRentalInput(title="First"))
            second = await rental_service.create(CreateRentalInput(title="Second"))
            assert event_bus.collector.events == []

        assert event_bus.collector.events == [
            ("rental.created", {"id": first.id}),
            ("rental.created", {"id": second.id}),
        ]

    @pytest.mark.asyncio
    async def test_rollback_drops_events_and_writes(self, rental_service, event_bus):
        with pytest.raises(InvalidDataError):
            async with rental_service.atomic():
                await rental_service.create(CreateRentalInput(title="Doomed"))
                raise InvalidDataError("abort")

        assert event_bus.collector.events == []
        assert await rental_service.count() == 0

    @pytest.mark.asyncio
    async def test_next_phase_after_rollback_starts_clean(self, rental_service, event_bus):
        with pytest.raises(InvalidDataError):
            async with rental_service.atomic():
                await rental_service.create(CreateRentalInput(title="Doomed"))
                raise InvalidDataError("abort")

        rental = await rental_service.create(CreateRentalInput(title="Kept"))
        assert event_bus.collector.events == [("rental.created", {"id": rental.id})]

    @pytest.mark.asyncio
    async def test_service_without_bus_drops_events(self, db_session):
        service = BaseService(db_session)
        async with service.atomic():
            service.stage_event("rental.created", {"id": "rental_1"})
        assert "rental_api.staged_events" not in db_session.info


class TestEventBus:
    """In-process delivery."""

    @pytest.mark.asyncio
    async def test_named_and_wildcard_handlers(self):
        bus = EventBusService()
        received = []

        async def named(name, payload):
            received.append(("named", name, payload))

        async def wildcard(name, payload):
            received.append(("wildcard", name, payload))

        bus.subscribe("rental.created", named)
        bus.subscribe("*", wildcard)
        await bus.emit("rental.created", {"id": "r1"})
        await bus.emit("rental.deleted", {"id": "r1"})

        assert received == [
            ("named", "rental.created", {"id": "r1"}),
            ("wildcard", "rental.created", {"id": "r1"}),
            ("wildcard", "rental.deleted", {"id": "r1"}),
        ]

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_stop_delivery(self, caplog):
        bus = EventBusService()
        received = []

        async def broken(name, payload):
            raise RuntimeError("boom")

        async def healthy(name, payload):
            received.append(payload)

        bus.subscribe("rental.updated", broken)
        bus.subscribe("rental.updated", healthy)
        await bus.emit("rental.updated", {"id": "r1"})

        assert received == [{"id": "r1"}]
        assert "Event handler failed" in caplog.text

    @pytest.mark.asyncio
    async def test_unsubscribe(self):
        bus = EventBusService()
        received = []

        async def handler(name, payload):
            received.append(name)

        bus.subscribe("rental.created", handler)
        bus.unsubscribe("rental.created", handler)
        bus.unsubscribe("rental.created", handler)
        await bus.emit("rental.created", {})
        assert received == []

    @pytest.mark.asyncio
    async def test_handler_can_emit_its_own_event(self):
        bus = EventBusService()
        depths = []

        async def cascade(name, payload):
            depths.append(payload["depth"])
            if payload["depth"] == 0:
                await bus.emit("rental.updated", {"depth": 1})

        bus.subscribe("rental.updated", cascade)
        await asyncio.wait_for(bus.emit("rental.updated", {"depth": 0}), timeout=2)

        assert depths == [0, 1]
