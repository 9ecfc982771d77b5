"""
Compiler Configuration Schema

Defines configuration for the BPMNCompiler: document metadata, layout
selection, graph-building options and observability flags.
"""

import logging
import os
from dataclasses import dataclass
from typing import Callable, Mapping, Optional, TypeVar

from bpmn_mapgen.core.observability import LogLevel, ObservabilityConfig
from bpmn_mapgen.models.layout import LayoutStrategy
from bpmn_mapgen.stages.xml_generation import DEFAULT_EXPORTER, DEFAULT_TARGET_NAMESPACE

logger = logging.getLogger(__name__)

ENV_PREFIX = "BPMN_MAPGEN_"

T = TypeVar("T")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"not a boolean: {value!r}")


@dataclass
class CompilerConfig:
    """Complete compiler configuration."""

    # Document metadata
    target_namespace: str = DEFAULT_TARGET_NAMESPACE
    exporter: str = DEFAULT_EXPORTER
    exporter_version: str = "1.0"

    # Layout
    layout_strategy: LayoutStrategy = LayoutStrategy.AUTO

    # Graph construction
    honor_gateways: bool = False

    # Output
    validate_output: bool = True
    include_documentation: bool = True

    # Observability
    log_level: LogLevel = LogLevel.INFO
    json_logs: bool = False
    enable_tracing: bool = False

    def __post_init__(self) -> None:
        self.layout_strategy = LayoutStrategy(self.layout_strategy)
        if not isinstance(self.log_level, LogLevel):
            self.log_level = LogLevel(str(self.log_level).upper())

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "CompilerConfig":
        """Create compiler config from ``BPMN_MAPGEN_*`` environment variables.

        Unparseable values are logged and replaced by the default.

        Args:
            environ: Mapping to read instead of ``os.environ``

        Returns:
            CompilerConfig instance
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        def read(name: str, parse: Callable[[str], T], default: T) -> T:
            raw = env.get(ENV_PREFIX + name)
            if raw is None or raw == "":
                return default
            try:
                return parse(raw)
            except ValueError:
                logger.warning(f"Ignoring invalid {ENV_PREFIX}{name}={raw!r}")
                return default

        return cls(
            target_namespace=read("TARGET_NAMESPACE", str, defaults.target_namespace),
            exporter=read("EXPORTER", str, defaults.exporter),
            exporter_version=read("EXPORTER_VERSION", str, defaults.exporter_version),
            layout_strategy=read(
                "LAYOUT_STRATEGY",
                lambda v: LayoutStrategy(v.strip().lower()),
                defaults.layout_strategy,
            ),
            honor_gateways=read("HONOR_GATEWAYS", _parse_bool, defaults.honor_gateways),
            validate_output=read("VALIDATE_OUTPUT", _parse_bool, defaults.validate_output),
            include_documentation=read(
                "INCLUDE_DOCUMENTATION", _parse_bool, defaults.include_documentation
            ),
            log_level=read("LOG_LEVEL", lambda v: LogLevel(v.strip().upper()), defaults.log_level),
            json_logs=read("JSON_LOGS", _parse_bool, defaults.json_logs),
            enable_tracing=read("ENABLE_TRACING", _parse_bool, defaults.enable_tracing),
        )

    def observability_config(self) -> ObservabilityConfig:
        return ObservabilityConfig(
            log_level=self.log_level,
            json_logs=self.json_logs,
            enable_tracing=self.enable_tracing,
        )


__all__ = ["CompilerConfig", "ENV_PREFIX"]
