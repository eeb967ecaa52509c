import asyncio

import uvicorn

from constants import HOST, LOG_FILE, LOG_LEVEL, PORT
from logging_config import get_logger, setup_logging

# Setup logging before importing app
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)

from app import app
from shutdown import ShutdownCoordinator

logger = get_logger(__name__)


class SignalingServer(uvicorn.Server):
    """uvicorn server whose first termination signal goes through the shutdown coordinator.

    Clients get ``server-shutdown`` and a clean close before uvicorn
    starts tearing connections down. A second signal falls through to
    uvicorn's own handling (forced exit).
    """

    def __init__(self, config: uvicorn.Config, coordinator: ShutdownCoordinator):
        super().__init__(config)
        self.coordinator = coordinator
        self._loop = None
        self._pending_exit = None
        self._shutdown_task = None
        coordinator.subscribe(self._exit_after_drain)

    async def serve(self, sockets=None):
        self._loop = asyncio.get_running_loop()
        await super().serve(sockets=sockets)

    def handle_exit(self, sig, frame):
        if self._loop is None or self._pending_exit is not None or self.coordinator.started:
            super().handle_exit(sig, frame)
            return
        logger.info(f"Received signal {sig}, starting graceful shutdown")
        self._pending_exit = (sig, frame)
        self._loop.call_soon_threadsafe(self._start_shutdown)

    def _start_shutdown(self):
        # Keep a reference; the coordinator task finishes on its own
        self._shutdown_task = asyncio.ensure_future(self.coordinator.shutdown())

    def _exit_after_drain(self):
        if self._pending_exit is not None:
            sig, frame = self._pending_exit
            super().handle_exit(sig, frame)


if __name__ == "__main__":
    logger.info(f"Starting signaling server on {HOST}:{PORT}")
    config = uvicorn.Config(app, host=HOST, port=PORT, log_config=None)
    server = SignalingServer(config, app.state.backend.shutdown_coordinator)
    server.run()
