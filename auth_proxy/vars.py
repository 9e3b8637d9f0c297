import os

SERVICE_NAME = os.getenv("SERVICE_NAME", "auth-proxy")
HOST = os.environ.get("HOST", "0.0.0.0")
PORT = int(os.environ.get("PORT", "8989"))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "info").lower()

# Header carrying the proxy-observed client host to the upstream
CLIENT_ADDRESS_HEADER = os.environ.get("CLIENT_ADDRESS_HEADER", "X-Forward-For")

OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT")
OTLP_HEADERS = os.getenv("OTLP_HEADERS", "")

METRICS_PORT = int(os.getenv("METRICS_PORT")) if os.getenv("METRICS_PORT") else None
