"""Core utility functions."""

from core.utils.json_paths import get_string_at_path
from core.utils.json_serializers import json_serializer
from core.utils.worker_id import generate_worker_id

__all__ = ["json_serializer", "generate_worker_id", "get_string_at_path"]
