from datetime import datetime

from constants import HEARTBEAT_INTERVAL, SHUTDOWN_TIMEOUT
from heartbeat import HeartbeatMonitor
from logging_config import get_logger
from message_router import MessageRouter
from registry import Connection, ConnectionRegistry
from room_manager import RoomManager
from shutdown import ShutdownCoordinator

logger = get_logger(__name__)


class SignalingBackend:
    """All signaling state for one server process.

    The application holds one instance on ``app.state``; every handler
    reaches the registry and room table through it.
    """

    def __init__(self, heartbeat_interval: float = HEARTBEAT_INTERVAL, shutdown_timeout: float = SHUTDOWN_TIMEOUT):
        self.started_at = datetime.now()
        self.registry = ConnectionRegistry()
        self.rooms = RoomManager(self.registry)
        self.router = MessageRouter(self.registry, self.rooms)
        self.heartbeat = HeartbeatMonitor(self.registry, interval=heartbeat_interval)
        self.shutdown_coordinator = ShutdownCoordinator(self.registry, self.heartbeat, close_timeout=shutdown_timeout)
        logger.info(f"Initializing SignalingBackend (heartbeat every {heartbeat_interval}s)")

    def connect(self, connection: Connection) -> str:
        client_id = self.registry.register(connection)
        connection.send({
            "type": "welcome",
            "clientId": client_id,
            "timestamp": datetime.now().isoformat(),
        })
        return client_id

    def receive(self, client_id: str, raw: str):
        self.router.dispatch(client_id, raw)

    def disconnect(self, client_id: str):
        connection = self.registry.unregister(client_id)
        if connection is not None:
            connection.close()

    def room_list(self) -> dict:
        return self.rooms.snapshot()

    def uptime_seconds(self) -> float:
        return (datetime.now() - self.started_at).total_seconds()
