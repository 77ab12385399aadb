"""Configuration loading for the native ingester.

Two files are read once at startup:

    config/config.yaml        # Service settings (queues, writer, http, health, logging)
    config/collections.json   # Origin system -> collection routing rules

Usage Examples
--------------

    >>> from config import load_config, load_collections_config
    >>> config = load_config()
    >>> routing = load_collections_config(Path(config.native_writer.collections_config))
    >>> routing.get_collection("http://cmdb.ft.com/systems/methode-web-pub", "application/json")
    'methode'
"""

from config.collections import CollectionsConfig, OriginRule, load_collections_config
from config.config import (
    DEFAULT_CONFIG_FILE,
    AppConfig,
    HealthConfig,
    HttpConfig,
    IngesterConfig,
    LoggingConfig,
    ProducerConfig,
    QueueConfig,
    WriterConfig,
    load_config,
)

__all__ = [
    "DEFAULT_CONFIG_FILE",
    "AppConfig",
    "CollectionsConfig",
    "HealthConfig",
    "HttpConfig",
    "IngesterConfig",
    "LoggingConfig",
    "OriginRule",
    "ProducerConfig",
    "QueueConfig",
    "WriterConfig",
    "load_collections_config",
    "load_config",
]
