"""Configuration models using Pydantic for validation."""
import logging
import os
from typing import Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from promsnap.naming import METRIC_NAME_PATTERN, validate_label_name

LOG_FORMATS = {
    "text": "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    "json": '{"time": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}',
}


class GlobalConfig(BaseModel):
    """Global configuration settings."""
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "text"


class PrometheusExporterConfig(BaseModel):
    """Prometheus exposition via a prometheus_client registry."""
    enabled: bool = True
    prefix: str = ""


class OTELExporterConfig(BaseModel):
    """OpenTelemetry observable instruments on a Meter."""
    enabled: bool = False
    prefix: str = ""
    meter_name: str = "promsnap"
    resource: Dict[str, str] = Field(default_factory=dict)


class ExportersConfig(BaseModel):
    """Configuration for all exporters."""
    prometheus: PrometheusExporterConfig = Field(default_factory=PrometheusExporterConfig)
    otel: OTELExporterConfig = Field(default_factory=OTELExporterConfig)


class PipelineConfig(BaseModel):
    """What happens to snapshots between collection and export."""
    name_prefix: Optional[str] = None
    constant_labels: Dict[str, str] = Field(default_factory=dict)

    @field_validator('name_prefix')
    @classmethod
    def validate_name_prefix(cls, v):
        """The prefix must start a valid metric name."""
        if v is not None and v != "" and not METRIC_NAME_PATTERN.match(v):
            raise ValueError(f"'{v}' is not a valid metric name prefix")
        return v

    @field_validator('constant_labels')
    @classmethod
    def validate_constant_labels(cls, v):
        for name in v:
            error = validate_label_name(name)
            if error is not None:
                raise ValueError(f"'{name}': Illegal label name. {error}")
        return v


class Config(BaseModel):
    """Root configuration model."""
    model_config = ConfigDict(populate_by_name=True)

    global_: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    exporters: ExportersConfig = Field(default_factory=ExportersConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)

    @model_validator(mode='after')
    def validate_exporter_prefixes(self):
        """Exporter prefixes are prepended to metric names, so they follow the same grammar."""
        for exporter_name, prefix in (
            ("prometheus", self.exporters.prometheus.prefix),
            ("otel", self.exporters.otel.prefix),
        ):
            if prefix and not METRIC_NAME_PATTERN.match(prefix):
                raise ValueError(f"Exporter '{exporter_name}' has an invalid prefix '{prefix}'")
        return self


def load_config(config_path: str) -> Config:
    """Load and validate configuration from YAML file."""
    import yaml

    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r') as f:
        raw_config = yaml.safe_load(f) or {}

    # Apply environment variable overrides
    if env_log_level := os.getenv('LOG_LEVEL'):
        raw_config.setdefault('global', {})
        raw_config['global']['log_level'] = env_log_level

    if env_prefix := os.getenv('PROMSNAP_NAME_PREFIX'):
        raw_config.setdefault('pipeline', {})
        raw_config['pipeline']['name_prefix'] = env_prefix

    try:
        return Config(**raw_config)
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {e}")


def setup_logging(log_level: str = "INFO", log_format: str = "text"):
    """Install a root handler and set the level of the promsnap loggers."""
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(format=LOG_FORMATS.get(log_format, LOG_FORMATS["text"]), datefmt="%Y-%m-%d %H:%M:%S")
    logging.getLogger("promsnap").setLevel(level)
    # OpenTelemetry SDK stays at WARNING or above
    logging.getLogger("opentelemetry").setLevel(max(level, logging.WARNING))
