"""Maps each host's public scheduling URL to its Calendly API event type URI.

Calendly's availability and booking endpoints want the API URI
(``https://api.calendly.com/event_types/<uuid>``), while the host roster
carries the public ``scheduling_url`` operators copy from the Calendly UI.
The lookup costs two round trips, so results are kept for the lifetime of
the process.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from functools import lru_cache

from scheduling_pool.core.config import Settings
from scheduling_pool.services.calendly_client import CalendlyClient
from scheduling_pool.services.host_roster import Host, resolve_host_token
from scheduling_pool.services.scheduling_errors import EventTypeNotFoundError

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str], CalendlyClient]
TokenLookup = Callable[[Host], str]


class EventTypeCache:
    """host_id -> event type URI. Entries are never replaced once written."""

    def __init__(self) -> None:
        self._uris_by_host_id: dict[str, str] = {}

    def get(self, host_id: str) -> str | None:
        return self._uris_by_host_id.get(host_id)

    def set(self, host_id: str, event_type_uri: str) -> str:
        return self._uris_by_host_id.setdefault(host_id, event_type_uri)


class EventTypeResolver:
    def __init__(
        self,
        *,
        cache: EventTypeCache,
        client_factory: ClientFactory,
        token_lookup: TokenLookup = resolve_host_token,
    ) -> None:
        self.cache = cache
        self.client_factory = client_factory
        self.token_lookup = token_lookup

    def client_for(self, host: Host) -> CalendlyClient:
        return self.client_factory(self.token_lookup(host))

    def resolve(self, host: Host) -> str:
        cached_uri = self.cache.get(host.host_id)
        if cached_uri:
            return cached_uri

        client = self.client_for(host)
        current_user = client.get_current_user()
        resource = current_user.get("resource")
        user_uri = resource.get("uri") if isinstance(resource, dict) else None
        if not isinstance(user_uri, str) or not user_uri.strip():
            raise EventTypeNotFoundError(f"users/me returned no resource.uri for {host.host_id}")

        event_types = client.list_event_types(user_uri)
        for event_type in event_types:
            if event_type.get("scheduling_url") != host.event_type_uri:
                continue
            event_type_uri = event_type.get("uri")
            if not isinstance(event_type_uri, str) or not event_type_uri:
                continue
            logger.info(
                "Resolved event type host_id=%s event_type=%s",
                host.host_id,
                event_type_uri,
            )
            return self.cache.set(host.host_id, event_type_uri)

        seen_urls = [str(event_type.get("scheduling_url")) for event_type in event_types]
        raise EventTypeNotFoundError(
            f"No event_type with scheduling_url={host.event_type_uri} for {host.host_id}. "
            f"Seen: [{', '.join(seen_urls)}]",
            seen_scheduling_urls=seen_urls,
        )


def build_client_factory(settings: Settings) -> ClientFactory:
    def _create_client(access_token: str) -> CalendlyClient:
        return CalendlyClient(
            access_token=access_token,
            timeout_seconds=settings.calendly_api_timeout_seconds,
            api_base_url=settings.calendly_api_url,
        )

    return _create_client


@lru_cache
def get_event_type_cache() -> EventTypeCache:
    return EventTypeCache()