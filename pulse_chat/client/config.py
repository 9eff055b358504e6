"""Client configuration values."""
import os
from pathlib import Path

SERVER_URL = os.environ.get("PULSE_CHAT_SERVER_URL", "http://localhost:3001")
STATE_FILE = Path(os.environ.get("PULSE_CHAT_STATE_FILE", Path.home() / ".pulse_chat_client.json"))
LOG_FILE = Path(os.environ.get("PULSE_CHAT_LOG_FILE", Path.home() / ".pulse_chat_client.log"))
REQUEST_TIMEOUT = float(os.environ.get("PULSE_CHAT_REQUEST_TIMEOUT", "10"))

# Push channel reconnection, handled by the Socket.IO transport itself
RECONNECT_ATTEMPTS = int(os.environ.get("PULSE_CHAT_RECONNECT_ATTEMPTS", "10"))
RECONNECT_DELAY = float(os.environ.get("PULSE_CHAT_RECONNECT_DELAY", "1.0"))
RECONNECT_DELAY_MAX = float(os.environ.get("PULSE_CHAT_RECONNECT_DELAY_MAX", "5.0"))
RECONNECT_RANDOMIZATION = 0.5
