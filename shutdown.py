import asyncio
import inspect
from typing import Any, Callable, List, Optional

from constants import SHUTDOWN_TIMEOUT
from heartbeat import HeartbeatMonitor
from logging_config import get_logger
from registry import ConnectionRegistry

logger = get_logger(__name__)

SHUTDOWN_CLOSE_CODE = 1001
SHUTDOWN_MESSAGE = "Server is shutting down"


class ShutdownCoordinator:
    """Notifies every connection and drains the registry, exactly once per process.

    Subscribers registered with ``subscribe`` run after the drain; the
    entrypoint uses one to let uvicorn exit.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        heartbeat: Optional[HeartbeatMonitor] = None,
        close_timeout: float = SHUTDOWN_TIMEOUT,
    ):
        self.registry = registry
        self.heartbeat = heartbeat
        self.close_timeout = close_timeout
        self._subscribers: List[Callable[[], Any]] = []
        self._task: Optional[asyncio.Task] = None

    @property
    def started(self) -> bool:
        return self._task is not None

    @property
    def completed(self) -> bool:
        return self._task is not None and self._task.done()

    def subscribe(self, callback: Callable[[], Any]):
        self._subscribers.append(callback)

    async def shutdown(self):
        if self._task is None:
            self._task = asyncio.create_task(self._run())
        # Shield so a cancelled caller does not abort the drain for everyone else
        await asyncio.shield(self._task)

    async def _run(self):
        logger.info(f"Shutting down server... notifying {len(self.registry)} client(s)")
        if self.heartbeat is not None:
            await self.heartbeat.stop()

        connections = list(self.registry)
        for connection in connections:
            connection.send({"type": "server-shutdown", "message": SHUTDOWN_MESSAGE})
            connection.close(code=SHUTDOWN_CLOSE_CODE, reason=SHUTDOWN_MESSAGE)

        writers = [connection.writer for connection in connections if connection.writer is not None]
        if writers:
            done, pending = await asyncio.wait(writers, timeout=self.close_timeout)
            if pending:
                logger.warning(f"{len(pending)} connection(s) did not confirm close within {self.close_timeout}s")
                for connection in connections:
                    if connection.writer in pending:
                        connection.terminate(code=SHUTDOWN_CLOSE_CODE, reason=SHUTDOWN_MESSAGE)

        for connection in connections:
            self.registry.unregister(connection.id)
        logger.info("Server closed")

        for callback in self._subscribers:
            try:
                result = callback()
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Error in shutdown subscriber {callback!r}: {e}", exc_info=True)
