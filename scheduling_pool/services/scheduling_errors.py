from __future__ import annotations


class SchedulingError(Exception):
    pass


class InvalidRequestError(SchedulingError):
    pass


class HostConfigError(SchedulingError):
    pass


class EventTypeNotFoundError(SchedulingError):
    def __init__(self, message: str, seen_scheduling_urls: list[str] | None = None) -> None:
        super().__init__(message)
        self.seen_scheduling_urls = list(seen_scheduling_urls or [])


class NoAvailabilityError(SchedulingError):
    pass


class UpstreamError(SchedulingError):
    def __init__(self, message: str, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body
