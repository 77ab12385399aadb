"""Native ingester configuration from YAML file.

Loads from config/config.yaml with all settings in one place:
- Read queue (queue proxy consumer) settings
- Native writer settings
- Optional write queue (forwarder) settings
- HTTP client, health and logging settings

Environment variables ARE supported using ${VAR_NAME} and ${VAR_NAME:-default}
syntax in YAML files.
"""

import logging
import os
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from core.errors import ConfigurationError

# Configure module logger
logger = logging.getLogger(__name__)

_ENV_PATTERN = re.compile(r"\$\{([^}:]+)(?::-(([^}]*))?)?\}")
_UNEXPANDED_PATTERN = re.compile(r"\$\{[^}]+\}")

COMMIT_FAILURE_POLICIES = ("reset", "best_effort")
OFFSET_RESETS = ("largest", "smallest")


def load_yaml(path: Path) -> Dict[str, Any]:
    """Load YAML file and return dict."""
    if not path.exists():
        return {}
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def _expand_env_vars(data: Any) -> Any:
    """Recursively expand ${VAR_NAME} and ${VAR_NAME:-default} environment variables in config data."""
    if isinstance(data, dict):
        return {key: _expand_env_vars(value) for key, value in data.items()}
    elif isinstance(data, list):
        return [_expand_env_vars(item) for item in data]
    elif isinstance(data, str):

        def replacer(match):
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else match.group(0)
            return os.getenv(var_name, default_value)

        return _ENV_PATTERN.sub(replacer, data)
    else:
        return data


def _as_tuple(value: Any) -> Tuple[str, ...]:
    """Accept a YAML list or a comma-separated string."""
    if value is None:
        return ()
    if isinstance(value, str):
        items = value.split(",")
    else:
        items = [str(item) for item in value]
    return tuple(item.strip() for item in items if item and item.strip())


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _is_unset(value: str) -> bool:
    return not value or bool(_UNEXPANDED_PATTERN.search(value))


# Default config file: config/config.yaml in src/ directory
DEFAULT_CONFIG_FILE = Path(__file__).parent / "config.yaml"


@dataclass(frozen=True)
class QueueConfig:
    """Queue proxy consumer settings.

    ``queue`` overrides the Host header sent to the proxy, ``offset`` is the
    proxy's ``auto.offset.reset`` value for new consumer instances.
    """

    addresses: Tuple[str, ...] = ()
    group: str = ""
    topic: str = ""
    queue: str = ""
    offset: str = "largest"
    backoff_period_seconds: float = 8.0
    stream_count: int = 1
    concurrent_processing: bool = False
    processors: int = 100
    auto_commit_enable: bool = False
    authorization_key: str = ""
    commit_failure_policy: str = "reset"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QueueConfig":
        return cls(
            addresses=_as_tuple(data.get("addresses")),
            group=str(data.get("group", "")),
            topic=str(data.get("topic", "")),
            queue=str(data.get("queue", "") or ""),
            offset=str(data.get("offset", "largest")),
            backoff_period_seconds=float(data.get("backoff_period_seconds", 8)),
            stream_count=int(data.get("stream_count", 1)),
            concurrent_processing=_as_bool(data.get("concurrent_processing", False)),
            processors=int(data.get("processors", 100)),
            auto_commit_enable=_as_bool(data.get("auto_commit_enable", False)),
            authorization_key=str(data.get("authorization_key", "") or ""),
            commit_failure_policy=str(data.get("commit_failure_policy", "reset")),
        )


@dataclass(frozen=True)
class ProducerConfig:
    """Write queue settings; forwarding is enabled only when ``address`` is set."""

    address: str = ""
    topic: str = ""
    queue: str = ""
    authorization_key: str = ""

    @property
    def enabled(self) -> bool:
        return not _is_unset(self.address)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProducerConfig":
        return cls(
            address=str(data.get("address", "") or ""),
            topic=str(data.get("topic", "") or ""),
            queue=str(data.get("queue", "") or ""),
            authorization_key=str(data.get("authorization_key", "") or ""),
        )


@dataclass(frozen=True)
class WriterConfig:
    address: str = ""
    host_header: str = ""
    collections_config: str = ""
    content_uuid_fields: Tuple[str, ...] = ("uuid", "post.uuid", "data.uuidv3", "id")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WriterConfig":
        fields = _as_tuple(data.get("content_uuid_fields")) or cls.content_uuid_fields
        return cls(
            address=str(data.get("address", "") or ""),
            host_header=str(data.get("host_header", "") or ""),
            collections_config=str(data.get("collections_config", "") or ""),
            content_uuid_fields=fields,
        )


@dataclass(frozen=True)
class HttpConfig:
    timeout_seconds: float = 60.0
    max_connections_per_host: int = 20
    ageing_seconds: float = 60.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HttpConfig":
        return cls(
            timeout_seconds=float(data.get("timeout_seconds", 60)),
            max_connections_per_host=int(data.get("max_connections_per_host", 20)),
            ageing_seconds=float(data.get("ageing_seconds", 60)),
        )


@dataclass(frozen=True)
class HealthConfig:
    timeout_seconds: float = 10.0
    panic_guide: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HealthConfig":
        return cls(
            timeout_seconds=float(data.get("timeout_seconds", 10)),
            panic_guide=str(data.get("panic_guide", "") or ""),
        )


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    json_format: bool = True
    log_dir: str = "logs"
    log_to_stdout: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingConfig":
        return cls(
            level=str(data.get("level", "INFO")).upper(),
            json_format=_as_bool(data.get("json_format", True)),
            log_dir=str(data.get("log_dir", "logs")),
            log_to_stdout=_as_bool(data.get("log_to_stdout", True)),
        )


@dataclass(frozen=True)
class AppConfig:
    name: str = "native-ingester"
    system_code: str = "native-ingester"
    description: str = "Ingests native content publication events into the native store"
    port: int = 8080
    metrics_port: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AppConfig":
        defaults = cls()
        return cls(
            name=str(data.get("name", defaults.name)),
            system_code=str(data.get("system_code", defaults.system_code)),
            description=str(data.get("description", defaults.description)),
            port=int(data.get("port", defaults.port)),
            metrics_port=int(data.get("metrics_port", defaults.metrics_port) or 0),
        )


@dataclass(frozen=True)
class IngesterConfig:
    """Complete native ingester configuration.

    Configuration structure:
        app: {...}             # Service identity and ports
        read_queue: {...}      # Queue proxy consumer
        native_writer: {...}   # Native store and routing file
        write_queue: {...}     # Optional forwarding target
        http: {...}            # Shared HTTP client settings
        health: {...}
        logging: {...}
    """

    app: AppConfig = field(default_factory=AppConfig)
    read_queue: QueueConfig = field(default_factory=QueueConfig)
    native_writer: WriterConfig = field(default_factory=WriterConfig)
    write_queue: ProducerConfig = field(default_factory=ProducerConfig)
    http: HttpConfig = field(default_factory=HttpConfig)
    health: HealthConfig = field(default_factory=HealthConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IngesterConfig":
        return cls(
            app=AppConfig.from_dict(data.get("app") or {}),
            read_queue=QueueConfig.from_dict(data.get("read_queue") or {}),
            native_writer=WriterConfig.from_dict(data.get("native_writer") or {}),
            write_queue=ProducerConfig.from_dict(data.get("write_queue") or {}),
            http=HttpConfig.from_dict(data.get("http") or {}),
            health=HealthConfig.from_dict(data.get("health") or {}),
            logging=LoggingConfig.from_dict(data.get("logging") or {}),
        )

    def with_overrides(self, **sections: Any) -> "IngesterConfig":
        """Return a copy with whole sections replaced (CLI overrides)."""
        return replace(self, **sections)

    def validate(self) -> None:
        """Validate required settings and numeric ranges.

        Raises:
            ConfigurationError: on the first problem found
        """
        rq = self.read_queue
        if not rq.addresses or any(_is_unset(a) for a in rq.addresses):
            raise ConfigurationError("read_queue.addresses is required")
        self._require("read_queue.group", rq.group)
        self._require("read_queue.topic", rq.topic)
        self._require("native_writer.address", self.native_writer.address)

        if not self.native_writer.content_uuid_fields:
            raise ConfigurationError("native_writer.content_uuid_fields must not be empty")

        if rq.commit_failure_policy not in COMMIT_FAILURE_POLICIES:
            raise ConfigurationError(
                f"read_queue.commit_failure_policy must be one of {list(COMMIT_FAILURE_POLICIES)}, "
                f"got '{rq.commit_failure_policy}'"
            )
        if rq.offset not in OFFSET_RESETS:
            raise ConfigurationError(
                f"read_queue.offset must be one of {list(OFFSET_RESETS)}, got '{rq.offset}'"
            )

        self._validate_min("read_queue.stream_count", rq.stream_count, 1)
        self._validate_min("read_queue.processors", rq.processors, 1)
        self._validate_min("read_queue.backoff_period_seconds", rq.backoff_period_seconds, 0, inclusive=False)
        self._validate_min("http.timeout_seconds", self.http.timeout_seconds, 0, inclusive=False)
        self._validate_min("http.max_connections_per_host", self.http.max_connections_per_host, 1)
        self._validate_min("http.ageing_seconds", self.http.ageing_seconds, 0)
        self._validate_min("health.timeout_seconds", self.health.timeout_seconds, 0, inclusive=False)

        if self.write_queue.enabled:
            self._require("write_queue.topic", self.write_queue.topic)

    @staticmethod
    def _require(key: str, value: str) -> None:
        if _is_unset(value):
            raise ConfigurationError(f"{key} is required")

    @staticmethod
    def _validate_min(key: str, value: float, min_value: float, inclusive: bool = True) -> None:
        """Validate that a setting's value meets a minimum threshold."""
        if inclusive and value < min_value:
            raise ConfigurationError(f"{key} must be >= {min_value}, got {value}")
        if not inclusive and value <= min_value:
            raise ConfigurationError(f"{key} must be > {min_value}, got {value}")


def load_config(config_path: Optional[Path] = None) -> IngesterConfig:
    """Load and validate the ingester configuration from a YAML file.

    Raises:
        ConfigurationError: if the file is missing, malformed or invalid
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_FILE

    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    logger.info("Loading configuration from file: %s", config_path)
    try:
        yaml_data = load_yaml(config_path)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}", cause=e) from e

    if not isinstance(yaml_data, dict):
        raise ConfigurationError(f"Invalid config file {config_path}: expected a mapping")

    try:
        config = IngesterConfig.from_dict(_expand_env_vars(yaml_data))
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid value in {config_path}: {e}", cause=e) from e

    logger.debug(
        "Configuration loaded",
        extra={
            "addresses": ",".join(config.read_queue.addresses),
            "topic": config.read_queue.topic,
            "group": config.read_queue.group,
        },
    )
    config.validate()
    return config
