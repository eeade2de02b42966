from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import timedelta

from scheduling_pool.schemas.scheduling import SlotHost, UnionSlot
from scheduling_pool.services.event_type_resolver import EventTypeResolver
from scheduling_pool.services.host_roster import Host
from scheduling_pool.services.scheduling_errors import InvalidRequestError
from scheduling_pool.services.window_normalizer import TimeWindow, format_instant, parse_instant

logger = logging.getLogger(__name__)

DEFAULT_SLOT_DURATION_MINUTES = 30


@dataclass(frozen=True)
class HostSlot:
    start_time: str
    end_time: str
    host: Host


class AvailabilityAggregator:
    def __init__(
        self,
        *,
        hosts: Sequence[Host],
        resolver: EventTypeResolver,
        slot_duration_minutes: int = DEFAULT_SLOT_DURATION_MINUTES,
    ) -> None:
        self.hosts = tuple(hosts)
        self.resolver = resolver
        self.slot_duration = timedelta(minutes=slot_duration_minutes)

    async def aggregate(self, window: TimeWindow, timezone: str) -> list[UnionSlot]:
        results = await asyncio.gather(
            *(
                asyncio.to_thread(self.fetch_host_slots, host, window, timezone)
                for host in self.hosts
            ),
            return_exceptions=True,
        )

        host_slots: list[HostSlot] = []
        for host, result in zip(self.hosts, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.warning(
                    "Availability fetch failed host_id=%s error=%s",
                    host.host_id,
                    result,
                )
                continue
            host_slots.extend(result)

        return merge_host_slots(host_slots)

    def fetch_host_slots(self, host: Host, window: TimeWindow, timezone: str) -> list[HostSlot]:
        event_type = self.resolver.resolve(host)
        client = self.resolver.client_for(host)
        available_times = client.list_available_times(
            event_type=event_type,
            start_time=window.start_iso,
            end_time=window.end_iso,
            timezone=timezone,
        )

        host_slots: list[HostSlot] = []
        for entry in available_times:
            raw_start = entry.get("start_time")
            if not isinstance(raw_start, str):
                continue
            try:
                start = parse_instant(raw_start)
            except InvalidRequestError:
                logger.warning(
                    "Skipping unparseable availability entry host_id=%s start_time=%s",
                    host.host_id,
                    raw_start,
                )
                continue
            host_slots.append(
                HostSlot(
                    start_time=format_instant(start),
                    end_time=format_instant(start + self.slot_duration),
                    host=host,
                ),
            )
        return host_slots


def merge_host_slots(host_slots: Sequence[HostSlot]) -> list[UnionSlot]:
    """Union per-host slots keyed by exact (start, end), sorted by start."""
    buckets: dict[tuple[str, str], UnionSlot] = {}
    for host_slot in host_slots:
        key = (host_slot.start_time, host_slot.end_time)
        union_slot = buckets.get(key)
        if union_slot is None:
            union_slot = UnionSlot(start_time=host_slot.start_time, end_time=host_slot.end_time)
            buckets[key] = union_slot
        if any(existing.id == host_slot.host.host_id for existing in union_slot.hosts):
            continue
        union_slot.hosts.append(
            SlotHost(id=host_slot.host.host_id, name=host_slot.host.display_name),
        )
    # Every key is in the same fixed-precision UTC form, so string order is time order.
    return sorted(buckets.values(), key=lambda slot: slot.start_time)
