"""
pytest configuration for the native ingester tests.

Adds src directory to Python path for imports and provides shared fixtures.
"""

import sys
from pathlib import Path

import pytest

# Add src directory to Python path
src_dir = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_dir))

from config.collections import CollectionsConfig  # noqa: E402
from config.config import QueueConfig, WriterConfig  # noqa: E402

METHODE_ORIGIN = "http://cmdb.ft.com/systems/methode-web-pub"


@pytest.fixture
def collections_config() -> CollectionsConfig:
    return CollectionsConfig.model_validate(
        {
            METHODE_ORIGIN: [{"content_type": "(application/json).*", "collection": "methode"}],
            "http://cmdb.ft.com/systems/next-video-editor": [
                {"content_type": "^(application/vnd.ft-upp-video\\+json).*$", "collection": "video"},
                {"content_type": ".*", "collection": "video-fallback"},
            ],
        }
    )


@pytest.fixture
def queue_config() -> QueueConfig:
    return QueueConfig(
        addresses=("http://proxy-1", "http://proxy-2"),
        group="native-ingester",
        topic="NativeCmsPublicationEvents",
        backoff_period_seconds=0.01,
    )


@pytest.fixture
def writer_config() -> WriterConfig:
    return WriterConfig(
        address="http://nativerw",
        content_uuid_fields=("uuid", "post.uuid", "data.uuidv3"),
    )
