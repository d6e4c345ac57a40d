"""Constants and default values for the Consul exporter."""

# Metric namespace
NAMESPACE = "consul"

# Label names
SERVICE_LABEL_NAMES = ("service", "node")
CHECK_LABEL_NAMES = ("check", "node")
KEY_LABEL_NAMES = ("key",)

# CLI / settings defaults
DEFAULT_LISTEN_ADDRESS = ":9107"
DEFAULT_METRICS_PATH = "/metrics"
DEFAULT_CONSUL_SERVER = "localhost:8500"
DEFAULT_KV_FILTER = ".*"
DEFAULT_REQUEST_TIMEOUT_SECONDS = 10.0

# Result stream buffering (1 = hand-off per batch)
DEFAULT_STREAM_MAXSIZE = 1

# Health check state query covering every check
HEALTH_STATE_ANY = "any"

# Logging defaults
DEFAULT_LOG_LEVEL = "INFO"
