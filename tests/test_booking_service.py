import asyncio

import pytest

from scheduling_pool.schemas.scheduling import BookingRequest, Invitee
from scheduling_pool.services.booking_service import BookingAssignor, select_host
from scheduling_pool.services.calendly_client import CalendlyError
from scheduling_pool.services.event_type_resolver import EventTypeCache, EventTypeResolver
from scheduling_pool.services.host_roster import Host
from scheduling_pool.services.scheduling_errors import (
    InvalidRequestError,
    NoAvailabilityError,
    UpstreamError,
)
from scheduling_pool.services.slot_verifier import ExactSlotVerifier

SLOT_START = "2026-03-02T10:00:00Z"
SLOT_END = "2026-03-02T10:30:00Z"
HOST_A = Host("host-a", "Asha", "A_PAT", "https://calendly.com/asha/intro", 10)
HOST_B = Host("host-b", "Bruno", "B_PAT", "https://calendly.com/bruno/intro", 20)


class _FakeCalendlyClient:
    def __init__(
        self,
        *,
        start_times: list[str] | None = None,
        invitee_error: CalendlyError | None = None,
        link_error: CalendlyError | None = None,
        link_payload: dict[str, object] | None = None,
    ) -> None:
        self.start_times = start_times or []
        self.invitee_error = invitee_error
        self.link_error = link_error
        self.link_payload = link_payload or {
            "resource": {"booking_url": "https://calendly.com/d/single-use"},
        }
        self.invitee_calls: list[dict[str, str]] = []
        self.link_calls: list[dict[str, object]] = []

    def list_available_times(
        self,
        *,
        event_type: str,
        start_time: str,
        end_time: str,
        timezone: str = "UTC",
    ) -> list[dict[str, object]]:
        return [{"start_time": value, "status": "available"} for value in self.start_times]

    def create_invitee(
        self,
        *,
        event_type: str,
        start_time: str,
        end_time: str,
        name: str,
        email: str,
    ) -> dict[str, object]:
        self.invitee_calls.append(
            {
                "event_type": event_type,
                "start_time": start_time,
                "end_time": end_time,
                "name": name,
                "email": email,
            },
        )
        if self.invitee_error:
            raise self.invitee_error
        return {"resource": {"uri": "https://api.calendly.com/invitees/I1"}}

    def create_scheduling_link(self, *, owner: str, max_event_count: int = 1) -> dict[str, object]:
        self.link_calls.append({"owner": owner, "max_event_count": max_event_count})
        if self.link_error:
            raise self.link_error
        return self.link_payload


def _assignor(clients_by_token: dict[str, _FakeCalendlyClient], hosts: list[Host]) -> BookingAssignor:
    cache = EventTypeCache()
    for host in hosts:
        cache.set(host.host_id, f"https://api.calendly.com/event_types/{host.host_id}")
    resolver = EventTypeResolver(
        cache=cache,
        client_factory=lambda access_token: clients_by_token[access_token],  # type: ignore[return-value]
        token_lookup=lambda host: host.pat_env,
    )
    return BookingAssignor(
        hosts=hosts,
        resolver=resolver,
        verifier=ExactSlotVerifier(resolver=resolver),
    )


def _request(**overrides: object) -> BookingRequest:
    values: dict[str, object] = {
        "start_time": SLOT_START,
        "end_time": SLOT_END,
        "invitee": Invitee(name="Ravi", email="ravi@example.com"),
    }
    values.update(overrides)
    return BookingRequest(**values)  # type: ignore[arg-type]


def test_book_assigns_highest_priority_eligible_host() -> None:
    clients = {
        "A_PAT": _FakeCalendlyClient(start_times=[SLOT_START]),
        "B_PAT": _FakeCalendlyClient(start_times=[SLOT_START]),
    }

    outcome = asyncio.run(_assignor(clients, [HOST_A, HOST_B]).book(_request()))

    assert outcome.host_assigned == "Bruno"
    assert outcome.booking == {"resource": {"uri": "https://api.calendly.com/invitees/I1"}}
    assert outcome.redirect is None
    assert clients["A_PAT"].invitee_calls == []
    assert clients["B_PAT"].invitee_calls == [
        {
            "event_type": "https://api.calendly.com/event_types/host-b",
            "start_time": "2026-03-02T10:00:00.000Z",
            "end_time": "2026-03-02T10:30:00.000Z",
            "name": "Ravi",
            "email": "ravi@example.com",
        },
    ]


def test_book_skips_higher_priority_host_without_exact_slot() -> None:
    clients = {
        "A_PAT": _FakeCalendlyClient(start_times=[SLOT_START]),
        "B_PAT": _FakeCalendlyClient(start_times=["2026-03-02T10:15:00Z"]),
    }

    outcome = asyncio.run(_assignor(clients, [HOST_A, HOST_B]).book(_request()))

    assert outcome.host_assigned == "Asha"
    assert clients["B_PAT"].invitee_calls == []


@pytest.mark.parametrize("status_code", [403, 404, 422])
def test_book_falls_back_to_single_use_link_on_designated_rejections(status_code: int) -> None:
    clients = {
        "A_PAT": _FakeCalendlyClient(start_times=[SLOT_START]),
        "B_PAT": _FakeCalendlyClient(
            start_times=[SLOT_START],
            invitee_error=CalendlyError("rejected", status_code=status_code, body="{}"),
        ),
    }

    outcome = asyncio.run(_assignor(clients, [HOST_A, HOST_B]).book(_request()))

    assert outcome.host_assigned == "Bruno"
    assert outcome.redirect == "https://calendly.com/d/single-use"
    assert outcome.booking is None
    assert clients["B_PAT"].link_calls == [
        {"owner": "https://api.calendly.com/event_types/host-b", "max_event_count": 1},
    ]
    assert clients["A_PAT"].invitee_calls == []


@pytest.mark.parametrize("status_code", [400, 401, 409, 500])
def test_book_does_not_fall_back_on_other_rejections(status_code: int) -> None:
    clients = {
        "B_PAT": _FakeCalendlyClient(
            start_times=[SLOT_START],
            invitee_error=CalendlyError("rejected", status_code=status_code, body="nope"),
        ),
    }

    with pytest.raises(UpstreamError, match="Scheduling API failed") as exc_info:
        asyncio.run(_assignor(clients, [HOST_B]).book(_request()))

    assert exc_info.value.status_code == status_code
    assert clients["B_PAT"].link_calls == []


def test_book_reports_failed_fallback_link() -> None:
    clients = {
        "B_PAT": _FakeCalendlyClient(
            start_times=[SLOT_START],
            invitee_error=CalendlyError("rejected", status_code=403),
            link_error=CalendlyError("link failed", status_code=500, body="boom"),
        ),
    }

    with pytest.raises(UpstreamError, match="Fallback link failed: 500 boom"):
        asyncio.run(_assignor(clients, [HOST_B]).book(_request()))

    assert len(clients["B_PAT"].link_calls) == 1


def test_book_reports_fallback_link_without_booking_url() -> None:
    clients = {
        "B_PAT": _FakeCalendlyClient(
            start_times=[SLOT_START],
            invitee_error=CalendlyError("rejected", status_code=422),
            link_payload={"resource": {}},
        ),
    }

    with pytest.raises(UpstreamError, match="booking_url"):
        asyncio.run(_assignor(clients, [HOST_B]).book(_request()))


def test_book_without_eligible_hosts_makes_no_reservation() -> None:
    clients = {
        "A_PAT": _FakeCalendlyClient(start_times=["2026-03-02T11:00:00Z"]),
        "B_PAT": _FakeCalendlyClient(),
    }

    with pytest.raises(NoAvailabilityError):
        asyncio.run(_assignor(clients, [HOST_A, HOST_B]).book(_request()))

    assert clients["A_PAT"].invitee_calls == []
    assert clients["B_PAT"].invitee_calls == []


@pytest.mark.parametrize(
    "overrides",
    [
        {"start_time": None},
        {"end_time": ""},
        {"invitee": None},
        {"invitee": Invitee(name="Ravi")},
        {"invitee": Invitee(name="  ", email="ravi@example.com")},
    ],
)
def test_book_requires_all_fields(overrides: dict[str, object]) -> None:
    clients = {"B_PAT": _FakeCalendlyClient(start_times=[SLOT_START])}

    with pytest.raises(InvalidRequestError, match="required"):
        asyncio.run(_assignor(clients, [HOST_B]).book(_request(**overrides)))

    assert clients["B_PAT"].invitee_calls == []


def test_book_rejects_inverted_slot() -> None:
    clients = {"B_PAT": _FakeCalendlyClient(start_times=[SLOT_START])}

    with pytest.raises(InvalidRequestError, match="after start_time"):
        asyncio.run(
            _assignor(clients, [HOST_B]).book(_request(start_time=SLOT_END, end_time=SLOT_START)),
        )


def test_select_host_breaks_weight_ties_by_host_id() -> None:
    first = Host("zeta", "Zeta", "Z_PAT", "https://calendly.com/zeta/intro", 10)
    second = Host("alpha", "Alpha", "A_PAT", "https://calendly.com/alpha/intro", 10)
    lower = Host("beta", "Beta", "B_PAT", "https://calendly.com/beta/intro", 5)

    assert select_host([first, lower, second]).host_id == "alpha"


class _DisconnectingCalendlyClient(_FakeCalendlyClient):
    def list_available_times(
        self,
        *,
        event_type: str,
        start_time: str,
        end_time: str,
        timezone: str = "UTC",
    ) -> list[dict[str, object]]:
        raise ConnectionResetError("connection reset by peer")


def test_book_drops_host_whose_availability_check_loses_connection() -> None:
    clients = {
        "A_PAT": _FakeCalendlyClient(start_times=[SLOT_START]),
        "B_PAT": _DisconnectingCalendlyClient(start_times=[SLOT_START]),
    }

    outcome = asyncio.run(_assignor(clients, [HOST_A, HOST_B]).book(_request()))

    assert outcome.host_assigned == "Asha"
    assert clients["B_PAT"].invitee_calls == []
