import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from backend import SignalingBackend
from constants import LOG_FILE, LOG_LEVEL, SERVER_NAME, SERVER_VERSION
from logging_config import get_logger, setup_logging
from registry import Connection
from routers.info import info_router
from routers.rooms import rooms_router

setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)


def create_app(backend: Optional[SignalingBackend] = None) -> FastAPI:
    backend = backend or SignalingBackend()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        backend.heartbeat.start()
        logger.info(f"{SERVER_NAME} {SERVER_VERSION} started")
        try:
            yield
        finally:
            await backend.shutdown_coordinator.shutdown()

    app = FastAPI(title=SERVER_NAME, version=SERVER_VERSION, lifespan=lifespan)
    app.state.backend = backend

    # Configure CORS to allow all origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(info_router)
    app.include_router(rooms_router)

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """Signaling socket: one connection per peer, JSON text frames in both directions."""
        if backend.shutdown_coordinator.started:
            await websocket.close(code=1001, reason="Server is shutting down")
            return

        await websocket.accept()
        remote_address = f"{websocket.client.host}:{websocket.client.port}" if websocket.client else "unknown"
        connection = Connection(websocket, remote_address=remote_address)
        client_id = backend.connect(connection)
        writer = connection.start_writer()

        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(message.get("code", 1000))
                data = message.get("text")
                if data is None and message.get("bytes") is not None:
                    # Binary frames carry the same JSON; undecodable ones fail validation
                    data = message["bytes"].decode("utf-8", errors="replace")
                if data is not None:
                    backend.receive(client_id, data)
        except WebSocketDisconnect as e:
            logger.info(f"WebSocket disconnected for client {client_id} (code {e.code})")
        except Exception as e:
            logger.error(f"WebSocket error for client {client_id}: {e}", exc_info=True)
        finally:
            backend.disconnect(client_id)
            await asyncio.wait({writer})

    logger.info("FastAPI application initialized")
    return app


app = create_app()
