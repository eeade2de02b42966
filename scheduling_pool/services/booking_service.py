from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from scheduling_pool.schemas.scheduling import BookingRequest
from scheduling_pool.services.calendly_client import CalendlyError
from scheduling_pool.services.event_type_resolver import EventTypeResolver
from scheduling_pool.services.host_roster import Host
from scheduling_pool.services.scheduling_errors import (
    InvalidRequestError,
    NoAvailabilityError,
    UpstreamError,
)
from scheduling_pool.services.slot_verifier import ExactSlotVerifier
from scheduling_pool.services.window_normalizer import format_instant, parse_instant

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_STATUS_CODES = frozenset({403, 404, 422})


@dataclass(frozen=True)
class BookingOutcome:
    host_assigned: str
    booking: dict[str, Any] | None = None
    redirect: str | None = None


class BookingAssignor:
    def __init__(
        self,
        *,
        hosts: Sequence[Host],
        resolver: EventTypeResolver,
        verifier: ExactSlotVerifier,
        fallback_status_codes: Iterable[int] = DEFAULT_FALLBACK_STATUS_CODES,
    ) -> None:
        self.hosts = tuple(hosts)
        self.resolver = resolver
        self.verifier = verifier
        self.fallback_status_codes = frozenset(fallback_status_codes)

    async def book(self, request: BookingRequest) -> BookingOutcome:
        invitee = request.invitee
        invitee_name = (invitee.name or "").strip() if invitee else ""
        invitee_email = (invitee.email or "").strip() if invitee else ""
        if not request.start_time or not request.end_time or not invitee_name or not invitee_email:
            raise InvalidRequestError("start_time, end_time, invitee{name,email} are required")

        start = parse_instant(request.start_time)
        end = parse_instant(request.end_time)
        if end <= start:
            raise InvalidRequestError("end_time must be after start_time")
        start_iso = format_instant(start)
        end_iso = format_instant(end)

        eligible_hosts = await self.find_eligible_hosts(start_iso, end_iso)
        if not eligible_hosts:
            raise NoAvailabilityError("Slot no longer available")

        chosen = select_host(eligible_hosts)
        logger.info(
            "Assigning booking host_id=%s start=%s end=%s eligible=%s",
            chosen.host_id,
            start_iso,
            end_iso,
            [host.host_id for host in eligible_hosts],
        )
        return await asyncio.to_thread(
            self.reserve,
            chosen,
            start_iso,
            end_iso,
            invitee_name,
            invitee_email,
        )

    async def find_eligible_hosts(self, start_iso: str, end_iso: str) -> list[Host]:
        checks = await asyncio.gather(
            *(
                asyncio.to_thread(self.verifier.has_exact_slot, host, start_iso, end_iso)
                for host in self.hosts
            ),
        )
        return [host for host, available in zip(self.hosts, checks) if available]

    def reserve(
        self,
        host: Host,
        start_iso: str,
        end_iso: str,
        invitee_name: str,
        invitee_email: str,
    ) -> BookingOutcome:
        event_type = self.resolver.resolve(host)
        client = self.resolver.client_for(host)
        try:
            booking = client.create_invitee(
                event_type=event_type,
                start_time=start_iso,
                end_time=end_iso,
                name=invitee_name,
                email=invitee_email,
            )
        except CalendlyError as exc:
            if exc.status_code not in self.fallback_status_codes:
                raise UpstreamError(
                    f"Scheduling API failed: {exc.status_code} {exc.body}",
                    status_code=exc.status_code,
                    body=exc.body,
                ) from exc
            logger.info(
                "Direct booking rejected host_id=%s status=%s, creating single-use link",
                host.host_id,
                exc.status_code,
            )
        else:
            return BookingOutcome(booking=booking, host_assigned=host.display_name)

        return self._create_fallback_link(host, event_type)

    def _create_fallback_link(self, host: Host, event_type: str) -> BookingOutcome:
        client = self.resolver.client_for(host)
        try:
            link = client.create_scheduling_link(owner=event_type, max_event_count=1)
        except CalendlyError as exc:
            raise UpstreamError(
                f"Fallback link failed: {exc.status_code} {exc.body}",
                status_code=exc.status_code,
                body=exc.body,
            ) from exc

        resource = link.get("resource")
        booking_url = resource.get("booking_url") if isinstance(resource, dict) else None
        if not isinstance(booking_url, str) or not booking_url:
            raise UpstreamError("Fallback link failed: response missing booking_url")
        return BookingOutcome(redirect=booking_url, host_assigned=host.display_name)


def select_host(eligible_hosts: Sequence[Host]) -> Host:
    """Highest priority_weight wins; equal weights fall back to host_id order."""
    return min(eligible_hosts, key=lambda host: (-host.priority_weight, host.host_id))
