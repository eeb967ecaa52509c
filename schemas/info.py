from pydantic import BaseModel


class ServerInfoResponse(BaseModel):
    name: str
    version: str
    clients: int
    rooms: int
    heartbeat_interval: float
    started_at: str
    uptime_seconds: float


class HealthResponse(BaseModel):
    status: str
    clients: int
    rooms: int
