from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta

from scheduling_pool.core.config import Settings, get_settings
from scheduling_pool.schemas.scheduling import (
    BookingRequest,
    BookingResponse,
    SchedulingSlotsResponse,
    SlotsMeta,
)
from scheduling_pool.services.availability_service import AvailabilityAggregator
from scheduling_pool.services.booking_service import BookingAssignor
from scheduling_pool.services.event_type_resolver import (
    EventTypeResolver,
    build_client_factory,
    get_event_type_cache,
)
from scheduling_pool.services.host_roster import Host, get_host_roster
from scheduling_pool.services.slot_verifier import ExactSlotVerifier
from scheduling_pool.services.window_normalizer import normalize_timezone, normalize_window


class SchedulingService:
    def __init__(
        self,
        settings: Settings | None = None,
        hosts: Sequence[Host] | None = None,
        resolver: EventTypeResolver | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.hosts = tuple(hosts) if hosts is not None else get_host_roster(self.settings)
        self.resolver = resolver or EventTypeResolver(
            cache=get_event_type_cache(),
            client_factory=build_client_factory(self.settings),
        )
        self.aggregator = AvailabilityAggregator(
            hosts=self.hosts,
            resolver=self.resolver,
            slot_duration_minutes=self.settings.slot_duration_minutes,
        )
        self.verifier = ExactSlotVerifier(
            resolver=self.resolver,
            slot_duration_minutes=self.settings.slot_duration_minutes,
        )
        self.assignor = BookingAssignor(
            hosts=self.hosts,
            resolver=self.resolver,
            verifier=self.verifier,
            fallback_status_codes=self.settings.fallback_status_codes,
        )

    async def list_slots(
        self,
        *,
        start: str | None,
        end: str | None,
        timezone: str | None = None,
        now: datetime | None = None,
    ) -> SchedulingSlotsResponse:
        resolved_timezone = normalize_timezone(timezone, self.settings.default_timezone)
        window = normalize_window(
            start,
            end,
            now=now,
            min_start_buffer=timedelta(seconds=self.settings.min_start_buffer_seconds),
            max_window=timedelta(days=self.settings.max_window_days),
        )
        slots = await self.aggregator.aggregate(window, resolved_timezone)
        return SchedulingSlotsResponse(
            slots=slots,
            meta=SlotsMeta(start=window.start_iso, end=window.end_iso, timezone=resolved_timezone),
        )

    async def book(self, payload: BookingRequest) -> BookingResponse:
        outcome = await self.assignor.book(payload)
        return BookingResponse(
            booking=outcome.booking,
            redirect=outcome.redirect,
            host_assigned=outcome.host_assigned,
        )
