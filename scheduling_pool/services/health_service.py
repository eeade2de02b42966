import logging
from datetime import UTC, datetime

from scheduling_pool.core.config import Settings
from scheduling_pool.schemas.health import HealthResponse
from scheduling_pool.services.host_roster import get_host_roster, resolve_host_token
from scheduling_pool.services.scheduling_errors import HostConfigError

logger = logging.getLogger(__name__)


class HealthService:
    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def get_status(self) -> HealthResponse:
        try:
            hosts = get_host_roster(self.settings)
        except HostConfigError as exc:
            logger.warning("Host roster unavailable for health check: %s", exc)
            return HealthResponse(
                status="degraded",
                service=self.settings.app_name,
                timestamp=datetime.now(UTC),
            )

        hosts_with_credentials = 0
        for host in hosts:
            try:
                resolve_host_token(host)
            except HostConfigError:
                continue
            hosts_with_credentials += 1

        return HealthResponse(
            status="ok" if hosts_with_credentials == len(hosts) else "degraded",
            service=self.settings.app_name,
            timestamp=datetime.now(UTC),
            hosts_configured=len(hosts),
            hosts_with_credentials=hosts_with_credentials,
        )
