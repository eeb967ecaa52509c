from pathlib import Path

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import FileResponse

from constants import SERVER_NAME, SERVER_VERSION
from schemas.info import HealthResponse, ServerInfoResponse
from logging_config import get_logger

logger = get_logger(__name__)

STATIC_DIR = Path(__file__).resolve().parent.parent / "static"

info_router = APIRouter(tags=["info"])


@info_router.get("/", include_in_schema=False)
async def index():
    index_file = STATIC_DIR / "index.html"
    if not index_file.is_file():
        logger.error(f"Static page missing: {index_file}")
        raise HTTPException(status_code=404, detail="Not found")
    return FileResponse(index_file)


@info_router.get("/info", response_model=ServerInfoResponse)
async def server_info(request: Request):
    backend = request.app.state.backend
    return ServerInfoResponse(
        name=SERVER_NAME,
        version=SERVER_VERSION,
        clients=len(backend.registry),
        rooms=len(backend.rooms),
        heartbeat_interval=backend.heartbeat.interval,
        started_at=backend.started_at.isoformat(),
        uptime_seconds=backend.uptime_seconds(),
    )


@info_router.get("/health", response_model=HealthResponse)
async def health(request: Request):
    backend = request.app.state.backend
    return HealthResponse(status="ok", clients=len(backend.registry), rooms=len(backend.rooms))
