# -----------------------------------------------------------------------------
# Network Configuration Constants
# -----------------------------------------------------------------------------

import os
import sys

# Station endpoint
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 20500

# Timeouts (seconds)
API_TIMEOUT_S = 1.0  # raise this value for slow computers
LONG_TIMEOUT_S = 3600.0  # pop-ups, path updates, collision checks
STARTUP_TIMEOUT_S = 60.0
STARTUP_LINE_TIMEOUT_S = 5.0

# Handshake
START_MARKER = "CMD_START"
PROTOCOL_VERSION = "1 0"
READY_MARKER = "READY"
RUNNING_MARKER = "running"
LINE_TERMINATOR = b"\n"

# Wire limits
MAX_ARRAY_LEN = 50
RECV_CHUNK_SIZE = 8192

# Default station binary per platform
if sys.platform.startswith("win"):
    DEFAULT_STATION_BIN = "C:/RoboDK/bin/RoboDK.exe"
elif sys.platform == "darwin":
    DEFAULT_STATION_BIN = os.path.expanduser("~/RoboDK/Applications/RoboDK.app/Contents/MacOS/RoboDK")
else:
    DEFAULT_STATION_BIN = os.path.expanduser("~/RoboDK/bin/RoboDK")
