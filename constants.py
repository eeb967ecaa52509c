import os

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 8080))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", None)

SERVER_NAME = os.getenv("SERVER_NAME", "webrtc-signaling-relay")
SERVER_VERSION = "1.0.0"

# Seconds between liveness probes; two missed probes evict a connection
HEARTBEAT_INTERVAL = float(os.getenv("HEARTBEAT_INTERVAL", 30))
# Upper bound on waiting for transports to confirm closure during shutdown
SHUTDOWN_TIMEOUT = float(os.getenv("SHUTDOWN_TIMEOUT", 5))

ROOM_ID_LENGTH = int(os.getenv("ROOM_ID_LENGTH", 6))
MAX_ROOM_MEMBERS = 2
