"""Shared constants for MCP Conduit."""

SERVER_NAME = "frappe-mcp-server"
SERVER_TITLE = "MCP Conduit"
SERVER_VERSION = "0.6.0"
PROTOCOL_VERSION = "2025-06-18"
TRANSPORT_NAME = "streamable-http"

# Network defaults
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 0xCAF1  # 51953

# HTTP surface
RPC_PATH = "/"
SESSION_HEADER = "x-session-id"
MAX_BODY_BYTES = 4 * 1024 * 1024

# Sessions
SESSION_TIMEOUT = 30 * 60  # seconds of inactivity before eviction
SESSION_SWEEP_INTERVAL = 60.0

# Rate limiting
RATE_LIMIT_WINDOW = 60  # seconds
RATE_LIMIT_MAX_REQUESTS = 100
RATE_LIMIT_SWEEP_INTERVAL = 60.0

# Streaming
HEARTBEAT_INTERVAL = 30.0
DEFAULT_STREAM_METHODS = ("tools/call", "resources/read", "prompts/get")
DEFAULT_STREAM_DENYLIST = ("Cursor",)

# Metrics
RESPONSE_SAMPLE_CAP = 1000
RESPONSE_SAMPLE_KEEP = 500
METRICS_COMPACT_INTERVAL = 5 * 60.0

# Logging defaults
LOG_DIR = "logs"
DEFAULT_LOG_LEVEL = "INFO"
LOG_BODY_PREVIEW = 200
