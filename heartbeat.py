"""
Liveness probing for signaling connections.

Each tick clears every connection's liveness flag and sends a
``heartbeat`` probe; a ``pong`` from the client sets the flag again. A
connection whose flag is still clear at the next tick has missed a
whole period and is evicted exactly as if its transport had closed.
This is the only way half-open connections are detected.
"""

import asyncio
from datetime import datetime
from typing import List, Optional

from constants import HEARTBEAT_INTERVAL
from logging_config import get_logger
from registry import ConnectionRegistry

logger = get_logger(__name__)

EVICTION_CLOSE_CODE = 1001


class HeartbeatMonitor:
    def __init__(self, registry: ConnectionRegistry, interval: float = HEARTBEAT_INTERVAL):
        self.registry = registry
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def tick(self) -> List[str]:
        """Run one probe round. Returns the ids evicted in this round."""
        evicted = []
        for connection in self.registry:
            if not connection.is_alive:
                logger.info(f"Client {connection.id} missed heartbeat, evicting")
                self.registry.unregister(connection.id)
                connection.terminate(code=EVICTION_CLOSE_CODE, reason="Heartbeat timeout")
                evicted.append(connection.id)
                continue
            connection.is_alive = False
            connection.send({"type": "heartbeat", "timestamp": datetime.now().isoformat()})
        if evicted:
            logger.info(f"Heartbeat evicted {len(evicted)} connection(s). Total clients: {len(self.registry)}")
        return evicted

    async def _run(self):
        logger.info(f"Heartbeat monitor started (interval {self.interval}s)")
        try:
            while True:
                await asyncio.sleep(self.interval)
                self.tick()
        except asyncio.CancelledError:
            logger.info("Heartbeat monitor stopped")
            raise

    def start(self):
        if self.running:
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self):
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
