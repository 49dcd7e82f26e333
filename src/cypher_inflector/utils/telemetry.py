import sentry_sdk
from fastapi import FastAPI
from loguru import logger as log
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from cypher_inflector.config.general import CONFIG


def configure_telemetry(app: FastAPI | None = None) -> None:
    """Set up both sentry and OTel as configured."""
    if CONFIG.telemetry.sentry_enabled:
        sentry_sdk.init(
            dsn=CONFIG.telemetry.sentry_dsn.get_secret_value()
            if CONFIG.telemetry.sentry_dsn
            else None,
            traces_sample_rate=CONFIG.telemetry.traces_sample_rate,
            environment=CONFIG.instance_env,
        )

    if not CONFIG.telemetry.otel_enabled:
        return

    collector_address = ""
    if CONFIG.telemetry.otel_host:
        collector_address = f"http://{CONFIG.telemetry.otel_host.get_secret_value()}:{CONFIG.telemetry.otel_port}"
    log.info(f"Telemetry enabled, setting up service for {collector_address}")

    # Service name is required for most backends
    resource = Resource(attributes={SERVICE_NAME: "cypher-inflector"})
    trace_provider = TracerProvider(resource=resource)
    trace_provider.add_span_processor(
        BatchSpanProcessor(
            OTLPSpanExporter(
                endpoint=f"{collector_address}{CONFIG.telemetry.otel_trace_endpoint}"
            )
        )
    )
    trace.set_tracer_provider(trace_provider)

    if app:
        FastAPIInstrumentor.instrument_app(
            app,
            http_capture_headers_server_request=["User-Agent"],
            tracer_provider=trace_provider,
        )
