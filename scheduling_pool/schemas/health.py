from datetime import datetime

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str = "ok"
    service: str
    timestamp: datetime
    hosts_configured: int = 0
    hosts_with_credentials: int = 0
