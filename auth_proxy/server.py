import argparse
import logging
import sys
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import REGISTRY, CollectorRegistry, Info, start_http_server
from prometheus_fastapi_instrumentator import Instrumentator

from auth_proxy.config import load_proxy_config
from auth_proxy.errors import ConfigurationError
from auth_proxy.models import ProxyConfig
from auth_proxy.proxy.route import router
from auth_proxy.vars import (
    HOST,
    LOG_LEVEL,
    METRICS_PORT,
    OTLP_ENDPOINT,
    OTLP_HEADERS,
    PORT,
    SERVICE_NAME,
)

logger = logging.getLogger("uvicorn.error")


def create_app(
    config: ProxyConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Build the proxy application around an immutable ProxyConfig.

    ``transport`` replaces the network transport used for upstream calls,
    which lets tests plug in an ``httpx.MockTransport``.
    """
    # Every path belongs to the upstream, so no docs or schema routes
    app = FastAPI(docs_url=None, redoc_url=None, openapi_url=None)
    app.state.proxy_config = config
    app.state.upstream_transport = transport
    app.include_router(router)
    return app


def configure_tracing() -> None:
    trace.set_tracer_provider(
        TracerProvider(resource=Resource.create({"service.name": SERVICE_NAME}))
    )
    tracer_provider = trace.get_tracer_provider()
    if OTLP_ENDPOINT:
        otlp_exporter = OTLPSpanExporter(
            endpoint=OTLP_ENDPOINT,
            headers=((OTLP_HEADERS).split(",") if OTLP_HEADERS else None),
        )
        tracer_provider.add_span_processor(BatchSpanProcessor(otlp_exporter))
        logger.info(f"Exporting traces to {OTLP_ENDPOINT}")


def instrument_app(app: FastAPI, registry: CollectorRegistry = REGISTRY) -> FastAPI:
    """Attach OpenTelemetry and Prometheus instrumentation to ``app``."""
    FastAPIInstrumentor.instrument_app(app)
    Instrumentator(registry=registry).instrument(app)

    app_info = Info("auth_proxy_app_info", "Application Info", registry=registry)
    app_info.info({"app_name": SERVICE_NAME})
    return app


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Reverse proxy that injects static Basic credentials"
    )
    parser.add_argument("--host", default=HOST, help=f"Listen address (default: {HOST})")
    parser.add_argument(
        "--port", type=int, default=PORT, help=f"Listen port (default: {PORT})"
    )
    parser.add_argument(
        "--log-level", default=LOG_LEVEL, help=f"Log level (default: {LOG_LEVEL})"
    )
    return parser.parse_args(argv)


def main(argv=None) -> None:
    args = parse_args(argv)
    logging.basicConfig(level=args.log_level.upper())

    try:
        config = load_proxy_config()
    except ConfigurationError as e:
        logger.error(f"ERROR: {e}")
        sys.exit(1)

    configure_tracing()
    app = instrument_app(create_app(config))

    if METRICS_PORT:
        start_http_server(METRICS_PORT)
        logger.info(f"Serving metrics on port {METRICS_PORT}")

    # uvicorn exits with status 1 when the port cannot be bound
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level)


if __name__ == "__main__":
    main()
