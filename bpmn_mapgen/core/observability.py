"""
Observability Infrastructure

Structured logging, tracing and metrics for the BPMN compiler.
Logging goes through loguru; the library modules use the standard
``logging`` module and are routed into loguru by an intercept handler.
Tracing and metrics use the OpenTelemetry SDK.
"""

import contextlib
import json
import logging
import sys
import time
import traceback
from enum import Enum
from typing import Any, Dict, Optional, Union

from loguru import logger
from opentelemetry import trace
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import InMemoryMetricReader
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider


class LogLevel(str, Enum):
    """Log level enumeration."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ObservabilityConfig:
    """Configuration for observability."""

    def __init__(
        self,
        service_name: str = "bpmn-mapgen",
        log_level: Union[str, LogLevel] = LogLevel.INFO,
        json_logs: bool = False,
        enable_tracing: bool = True,
        enable_metrics: bool = True,
        sink: Any = None,
    ):
        self.service_name = service_name
        self.log_level = log_level if isinstance(log_level, str) else log_level.value
        self.json_logs = json_logs
        self.enable_tracing = enable_tracing
        self.enable_metrics = enable_metrics
        self.sink = sink if sink is not None else sys.stderr


class JSONFormatter:
    """Custom JSON formatter for loguru."""

    def __call__(self, record: Dict[str, Any]) -> str:
        log_data = {
            "timestamp": record["time"].isoformat(),
            "level": record["level"].name,
            "logger": record["name"],
            "function": record["function"],
            "line": record["line"],
            "message": record["message"],
        }

        if record["extra"]:
            log_data["extra"] = record["extra"]

        if record["exception"]:
            log_data["exception"] = {
                "type": record["exception"].type.__name__,
                "value": str(record["exception"].value),
                "traceback": "".join(
                    traceback.format_exception(
                        record["exception"].type,
                        record["exception"].value,
                        record["exception"].tb,
                    )
                ),
            }

        # loguru treats the returned string as a format template
        return json.dumps(log_data, default=str).replace("{", "{{").replace("}", "}}") + "\n"


class InterceptHandler(logging.Handler):
    """Forward standard library log records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: Union[str, int] = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


class ObservabilityManager:
    """Centralized observability management."""

    _instance: Optional["ObservabilityManager"] = None

    def __init__(self, config: ObservabilityConfig):
        self.config = config
        self._setup_logging()

        if config.enable_tracing:
            self._setup_tracing()

        if config.enable_metrics:
            self._setup_metrics()

        logger.info(
            f"Observability initialized: service={config.service_name}, "
            f"log_level={config.log_level}"
        )

    def _setup_logging(self) -> None:
        """Set up loguru and route stdlib logging into it."""
        logger.remove()

        log_format = (
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        )

        if self.config.json_logs:
            self._sink_id = logger.add(
                self.config.sink,
                format=JSONFormatter(),
                level=self.config.log_level,
                colorize=False,
            )
        else:
            self._sink_id = logger.add(
                self.config.sink,
                format=log_format,
                level=self.config.log_level,
                colorize=True,
                backtrace=True,
                diagnose=False,
            )

        logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    def _setup_tracing(self) -> None:
        """Set up OpenTelemetry tracing."""
        resource = Resource(attributes={SERVICE_NAME: self.config.service_name})
        tracer_provider = TracerProvider(resource=resource)
        self.tracer = tracer_provider.get_tracer(__name__)
        logger.debug("OpenTelemetry tracing initialized")

    def _setup_metrics(self) -> None:
        """Set up OpenTelemetry metrics with an in-memory reader."""
        self.metric_reader = InMemoryMetricReader()
        resource = Resource(attributes={SERVICE_NAME: self.config.service_name})
        meter_provider = MeterProvider(resource=resource, metric_readers=[self.metric_reader])
        self.meter = meter_provider.get_meter(__name__)

        self.counter = self.meter.create_counter(
            "compilations_total",
            description="Total number of BPMN compilations",
            unit="1",
        )
        self.histogram = self.meter.create_histogram(
            "stage_duration_ms",
            description="Compiler stage duration in milliseconds",
            unit="ms",
        )
        logger.debug("OpenTelemetry metrics initialized")

    @classmethod
    def initialize(cls, config: Optional[ObservabilityConfig] = None) -> "ObservabilityManager":
        """Initialize or get singleton instance."""
        if cls._instance is None:
            cls._instance = cls(config or ObservabilityConfig())
        return cls._instance

    @classmethod
    def get_instance(cls) -> Optional["ObservabilityManager"]:
        """Return the singleton if one was initialized."""
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Drop the singleton and detach its log sink (used by the CLI and tests)."""
        instance = cls._instance
        cls._instance = None
        if instance is None:
            return
        with contextlib.suppress(ValueError):
            logger.remove(instance._sink_id)
        root = logging.getLogger()
        for handler in list(root.handlers):
            if isinstance(handler, InterceptHandler):
                root.removeHandler(handler)


@contextlib.contextmanager
def span(name: str, attributes: Optional[Dict[str, Any]] = None):
    """Context manager for creating spans.

    Falls back to the global OpenTelemetry tracer, which is a no-op until a
    provider is configured.
    """
    manager = ObservabilityManager.get_instance()
    tracer = getattr(manager, "tracer", None) or trace.get_tracer(__name__)

    with tracer.start_as_current_span(name) as span_obj:
        if attributes:
            for key, value in attributes.items():
                span_obj.set_attribute(key, value)
        yield span_obj


def record_metric(
    metric_name: str,
    value: Union[int, float],
    attributes: Optional[Dict[str, str]] = None,
) -> None:
    """
    Record a metric value with OpenTelemetry.

    Integer values and names ending in ``_total`` go to the counter,
    everything else to the duration histogram.
    """
    manager = ObservabilityManager.get_instance()
    attrs = dict(attributes or {})
    attrs.setdefault("metric", metric_name)

    if manager is not None and hasattr(manager, "counter"):
        if metric_name.endswith("_total") or isinstance(value, int):
            manager.counter.add(value, attributes=attrs)
        else:
            manager.histogram.record(value, attributes=attrs)

    logger.debug(f"Metric recorded: {metric_name}={value}")


class Timer:
    """Context manager for timing operations."""

    def __init__(self, name: str, log: bool = True):
        self.name = name
        self.log = log
        self.start_time: float = 0
        self.elapsed: float = 0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, *args: Any) -> None:
        self.elapsed = time.perf_counter() - self.start_time
        if self.log:
            logger.debug(f"Timer '{self.name}': {self.elapsed:.3f}s")
            record_metric(f"{self.name}_duration", self.elapsed * 1000)


__all__ = [
    "InterceptHandler",
    "JSONFormatter",
    "LogLevel",
    "ObservabilityConfig",
    "ObservabilityManager",
    "Timer",
    "record_metric",
    "span",
]
