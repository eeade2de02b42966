from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

from scheduling_pool.core.config import Settings
from scheduling_pool.services.scheduling_errors import HostConfigError

logger = logging.getLogger(__name__)

_REQUIRED_HOST_FIELDS = ("host_id", "display_name", "pat_env", "event_type_uri")


@dataclass(frozen=True)
class Host:
    host_id: str
    display_name: str
    pat_env: str
    event_type_uri: str
    priority_weight: int = 0

    @classmethod
    def from_dict(cls, raw_host: Mapping[str, Any]) -> Host:
        missing_fields = [
            field_name
            for field_name in _REQUIRED_HOST_FIELDS
            if not isinstance(raw_host.get(field_name), str) or not raw_host[field_name].strip()
        ]
        if missing_fields:
            raise HostConfigError(
                f"Host entry is missing required fields: {', '.join(missing_fields)}",
            )
        raw_weight = raw_host.get("priority_weight", 0)
        try:
            priority_weight = int(raw_weight)
        except (TypeError, ValueError) as exc:
            raise HostConfigError(
                f"Host {raw_host['host_id']} has a non-integer priority_weight: {raw_weight!r}",
            ) from exc
        return cls(
            host_id=raw_host["host_id"].strip(),
            display_name=raw_host["display_name"].strip(),
            pat_env=raw_host["pat_env"].strip(),
            event_type_uri=raw_host["event_type_uri"].strip(),
            priority_weight=priority_weight,
        )


def load_host_roster(hosts_file_path: Path) -> tuple[Host, ...]:
    try:
        raw_text = hosts_file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise HostConfigError(f"Could not read hosts file {hosts_file_path}: {exc}") from exc

    try:
        raw_hosts = json.loads(raw_text)
    except json.JSONDecodeError as exc:
        raise HostConfigError(f"Hosts file {hosts_file_path} is not valid JSON.") from exc

    if not isinstance(raw_hosts, list):
        raise HostConfigError(f"Hosts file {hosts_file_path} must contain a JSON list.")

    hosts: list[Host] = []
    seen_host_ids: set[str] = set()
    for raw_host in raw_hosts:
        if not isinstance(raw_host, dict):
            raise HostConfigError("Each host entry must be a JSON object.")
        host = Host.from_dict(raw_host)
        if host.host_id in seen_host_ids:
            raise HostConfigError(f"Duplicate host_id in hosts file: {host.host_id}")
        seen_host_ids.add(host.host_id)
        hosts.append(host)
    return tuple(hosts)


def resolve_host_token(host: Host, environ: Mapping[str, str] | None = None) -> str:
    source = os.environ if environ is None else environ
    token = (source.get(host.pat_env) or "").strip()
    if not token:
        raise HostConfigError(f"Missing PAT env var for {host.host_id}: {host.pat_env}")
    return token


def get_host_roster(settings: Settings) -> tuple[Host, ...]:
    return _load_host_roster_cached(settings.hosts_file)


@lru_cache
def _load_host_roster_cached(hosts_file: str) -> tuple[Host, ...]:
    hosts_file_path = Path(hosts_file)
    if not hosts_file_path.exists():
        logger.warning("Hosts file %s not found, serving an empty host pool", hosts_file_path)
        return ()
    hosts = load_host_roster(hosts_file_path)
    logger.info("Loaded %s hosts from %s", len(hosts), hosts_file_path)
    return hosts


def clear_host_roster_cache() -> None:
    _load_host_roster_cached.cache_clear()
