import asyncio
import json
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, NamedTuple, Optional, Protocol

from logging_config import get_logger

logger = get_logger(__name__)


class Transport(Protocol):
    """What a connection needs from the socket layer. Starlette's WebSocket satisfies it."""

    async def send_text(self, data: str) -> None: ...

    async def close(self, code: int = 1000, reason: Optional[str] = None) -> None: ...


class Role(str, Enum):
    NONE = "none"
    CALLER = "caller"
    CALLEE = "callee"


class CloseFrame(NamedTuple):
    code: int
    reason: Optional[str]


class Connection:
    """One live transport connection plus its signaling state.

    Outbound messages are queued and written by ``run_writer`` so that
    registry and room mutations never await in the middle of a change.
    """

    def __init__(self, transport: Transport, remote_address: str = "unknown"):
        self.transport = transport
        self.remote_address = remote_address
        self.id: Optional[str] = None
        self.room_id: Optional[str] = None
        self.role = Role.NONE
        self.is_alive = True
        self.connected_at = datetime.now().isoformat()
        self.outbox: asyncio.Queue = asyncio.Queue()
        self.closing = False
        self.transport_closed = False
        self.writer: Optional[asyncio.Task] = None
        self.closer: Optional[asyncio.Task] = None

    def start_writer(self) -> asyncio.Task:
        if self.writer is None:
            self.writer = asyncio.create_task(self.run_writer())
        return self.writer

    def send(self, message: dict) -> bool:
        if self.closing:
            logger.debug(f"Dropping {message.get('type')} for closing connection {self.id}")
            return False
        self.outbox.put_nowait(message)
        return True

    def close(self, code: int = 1000, reason: Optional[str] = None):
        if self.closing:
            return
        self.closing = True
        self.outbox.put_nowait(CloseFrame(code, reason))

    def terminate(self, code: int = 1000, reason: Optional[str] = None):
        """Close the transport now, abandoning anything still queued.

        A half-open socket can block the writer forever, so a close frame
        queued behind it would never be reached.
        """
        if self.writer is None:
            self.close(code, reason)
            return
        self.closing = True
        if not self.writer.done():
            self.writer.cancel()
        if self.closer is None:
            self.closer = asyncio.create_task(self._close_transport(code, reason))

    async def _close_transport(self, code: int, reason: Optional[str]):
        if self.transport_closed:
            return
        self.transport_closed = True
        try:
            await self.transport.close(code=code, reason=reason)
        except Exception as e:
            # Peer already gone; closing is best effort
            logger.debug(f"Error closing transport for connection {self.id}: {e}")

    async def run_writer(self):
        """Drain the outbox onto the transport until a close frame or a send failure."""
        while True:
            item = await self.outbox.get()
            if isinstance(item, CloseFrame):
                await self._close_transport(item.code, item.reason)
                logger.debug(f"Writer for connection {self.id} finished")
                return
            try:
                await self.transport.send_text(json.dumps(item))
            except Exception as e:
                logger.warning(f"Error sending to connection {self.id}: {e}")
                self.closing = True
                return


class ConnectionRegistry:
    def __init__(self):
        self._connections: Dict[str, Connection] = {}
        self._removal_hooks: List[Callable[[str], Any]] = []

    def __len__(self) -> int:
        return len(self._connections)

    def __iter__(self) -> Iterator[Connection]:
        # Snapshot so callers may unregister while iterating
        return iter(list(self._connections.values()))

    def __contains__(self, connection_id: str) -> bool:
        return connection_id in self._connections

    def subscribe_removal(self, hook: Callable[[str], Any]):
        """Run ``hook(connection_id)`` before a connection leaves the registry."""
        self._removal_hooks.append(hook)

    def register(self, connection: Connection) -> str:
        connection_id = str(uuid.uuid4())
        connection.id = connection_id
        connection.room_id = None
        connection.role = Role.NONE
        connection.is_alive = True
        self._connections[connection_id] = connection
        logger.info(f"Client {connection_id} connected from {connection.remote_address}. Total clients: {len(self._connections)}")
        return connection_id

    def unregister(self, connection_id: str) -> Optional[Connection]:
        connection = self._connections.get(connection_id)
        if connection is None:
            return None
        for hook in self._removal_hooks:
            hook(connection_id)
        del self._connections[connection_id]
        logger.info(f"Client {connection_id} disconnected. Total clients: {len(self._connections)}")
        return connection

    def get(self, connection_id: str) -> Optional[Connection]:
        return self._connections.get(connection_id)

    def for_each(self, predicate: Optional[Callable[[Connection], bool]] = None) -> Iterator[Connection]:
        for connection in self:
            if predicate is None or predicate(connection):
                yield connection
