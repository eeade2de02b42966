import json
from http.client import HTTPException, RemoteDisconnected
from typing import Any
from urllib import error, parse, request

from scheduling_pool.services.scheduling_errors import UpstreamError


class CalendlyError(UpstreamError):
    pass


class CalendlyClient:
    def __init__(
        self,
        *,
        access_token: str,
        timeout_seconds: float = 10.0,
        api_base_url: str = "https://api.calendly.com",
    ) -> None:
        self.access_token = access_token.strip()
        self.timeout_seconds = timeout_seconds
        self.api_base_url = api_base_url.rstrip("/")

    def get_current_user(self) -> dict[str, Any]:
        return self.request_json("GET", "/users/me")

    def list_event_types(self, user_uri: str) -> list[dict[str, Any]]:
        response_payload = self.request_json("GET", "/event_types", query={"user": user_uri})
        return _collection(response_payload)

    def list_available_times(
        self,
        *,
        event_type: str,
        start_time: str,
        end_time: str,
        timezone: str = "UTC",
    ) -> list[dict[str, Any]]:
        response_payload = self.request_json(
            "GET",
            "/event_type_available_times",
            query={
                "event_type": event_type,
                "start_time": start_time,
                "end_time": end_time,
                "timezone": timezone,
            },
        )
        return _collection(response_payload)

    def create_invitee(
        self,
        *,
        event_type: str,
        start_time: str,
        end_time: str,
        name: str,
        email: str,
    ) -> dict[str, Any]:
        return self.request_json(
            "POST",
            "/event_invitees",
            payload={
                "event_type": event_type,
                "start_time": start_time,
                "end_time": end_time,
                "invitee": {"name": name, "email": email},
            },
        )

    def create_scheduling_link(self, *, owner: str, max_event_count: int = 1) -> dict[str, Any]:
        return self.request_json(
            "POST",
            "/scheduling_links",
            payload={
                "owner": owner,
                "owner_type": "EventType",
                "max_event_count": max_event_count,
            },
        )

    def request_json(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
        query: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        target = f"{self.api_base_url}{path}"
        if query:
            target = f"{target}?{parse.urlencode(query)}"
        raw_payload: bytes | None = None
        if payload is not None:
            raw_payload = json.dumps(payload).encode("utf-8")

        req = request.Request(
            target,
            data=raw_payload,
            method=method,
            headers={
                "Authorization": f"Bearer {self.access_token}",
                "Content-Type": "application/json",
            },
        )

        try:
            with request.urlopen(req, timeout=self.timeout_seconds) as response:
                response_body = response.read()
        except TimeoutError as exc:
            raise CalendlyError(f"Calendly {path} request timed out.") from exc
        except error.HTTPError as exc:
            body = exc.read().decode("utf-8", errors="ignore")
            raise CalendlyError(
                f"Calendly {path} -> HTTP {exc.code}: {body or 'empty response body'}",
                status_code=exc.code,
                body=body,
            ) from exc
        except error.URLError as exc:
            raise CalendlyError(f"Calendly {path} connection error: {exc.reason}") from exc
        except RemoteDisconnected as exc:
            raise CalendlyError(
                f"Calendly {path} connection was closed before sending a response.",
            ) from exc
        except (OSError, HTTPException) as exc:
            raise CalendlyError(f"Calendly {path} transport error: {exc!r}") from exc

        try:
            parsed_body = json.loads(response_body.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise CalendlyError(f"Calendly {path} returned invalid JSON.") from exc

        if not isinstance(parsed_body, dict):
            raise CalendlyError(f"Calendly {path} response is not a JSON object.")
        return parsed_body


def _collection(payload: dict[str, Any]) -> list[dict[str, Any]]:
    collection = payload.get("collection")
    if not isinstance(collection, list):
        return []
    return [entry for entry in collection if isinstance(entry, dict)]
