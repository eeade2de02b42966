from __future__ import annotations

import logging
from datetime import timedelta
from http.client import HTTPException

from scheduling_pool.services.availability_service import DEFAULT_SLOT_DURATION_MINUTES
from scheduling_pool.services.event_type_resolver import EventTypeResolver
from scheduling_pool.services.host_roster import Host
from scheduling_pool.services.scheduling_errors import SchedulingError
from scheduling_pool.services.window_normalizer import format_instant, parse_instant

logger = logging.getLogger(__name__)


class ExactSlotVerifier:
    def __init__(
        self,
        *,
        resolver: EventTypeResolver,
        slot_duration_minutes: int = DEFAULT_SLOT_DURATION_MINUTES,
    ) -> None:
        self.resolver = resolver
        self.slot_duration = timedelta(minutes=slot_duration_minutes)

    def has_exact_slot(self, host: Host, start_time: str, end_time: str) -> bool:
        """Whether ``host`` still offers exactly [start_time, end_time].

        Calendly may answer with neighbouring or overlapping slots, so only an
        entry whose own start and end match the requested instants counts.
        Any failure along the way counts as "not available".
        """
        try:
            requested_start = parse_instant(start_time)
            requested_end = parse_instant(end_time)
            event_type = self.resolver.resolve(host)
            client = self.resolver.client_for(host)
            available_times = client.list_available_times(
                event_type=event_type,
                start_time=format_instant(requested_start),
                end_time=format_instant(requested_end),
                timezone="UTC",
            )
            for entry in available_times:
                raw_start = entry.get("start_time")
                if not isinstance(raw_start, str):
                    continue
                entry_start = parse_instant(raw_start)
                raw_end = entry.get("end_time")
                if isinstance(raw_end, str):
                    entry_end = parse_instant(raw_end)
                else:
                    entry_end = entry_start + self.slot_duration
                if entry_start == requested_start and entry_end == requested_end:
                    return True
        except (SchedulingError, OSError, HTTPException) as exc:
            logger.warning(
                "Exact slot check failed host_id=%s start=%s end=%s error=%s",
                host.host_id,
                start_time,
                end_time,
                exc,
            )
        return False
