"""
Origin system to collection routing.

The routing file maps each origin system id to an ordered list of rules:

    {
      "http://cmdb.ft.com/systems/methode-web-pub": [
        {"content_type": "(application/json).*", "collection": "methode"}
      ]
    }

Rules are tried in file order and the first rule whose content type pattern
matches wins. Patterns are compiled once, when the file is loaded.
"""

import logging
import re
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, RootModel, ValidationError, field_validator

from core.errors import ConfigurationError, NoRuleMatchedError, OriginNotFoundError

logger = logging.getLogger(__name__)


class OriginRule(BaseModel):
    """A content type pattern and the collection it routes to."""

    model_config = ConfigDict(frozen=True)

    content_type: re.Pattern = Field(..., description="Regular expression searched in the Content-Type header")
    collection: str = Field(..., description="Destination collection in the native store", min_length=1)

    @field_validator("content_type", mode="before")
    @classmethod
    def compile_content_type(cls, v):
        if isinstance(v, re.Pattern):
            return v
        if not isinstance(v, str) or not v:
            raise ValueError("content_type must be a non-empty regular expression")
        try:
            return re.compile(v)
        except re.error as e:
            raise ValueError(f"invalid content_type pattern {v!r}: {e}") from e

    @field_validator("collection")
    @classmethod
    def collection_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("collection must not be blank")
        return v

    def matches(self, content_type: str) -> bool:
        return self.content_type.search(content_type) is not None


class CollectionsConfig(RootModel[dict[str, list[OriginRule]]]):
    """Read-only routing table keyed by origin system id."""

    def get_collection(self, origin_id: str, content_type: str) -> str:
        """
        Resolve the destination collection for an origin and content type.

        Raises:
            OriginNotFoundError: origin system is not configured
            NoRuleMatchedError: no rule of the origin matches the content type
        """
        rules = self.root.get(origin_id)
        if not rules:
            raise OriginNotFoundError(origin_id)
        for rule in rules:
            if rule.matches(content_type or ""):
                return rule.collection
        raise NoRuleMatchedError(origin_id, content_type)

    @classmethod
    def from_json(cls, raw: str | bytes) -> "CollectionsConfig":
        """Parse and validate a routing document.

        Raises:
            ConfigurationError: malformed JSON, empty fields or a bad pattern
        """
        try:
            return cls.model_validate_json(raw)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid collections configuration: {e}", cause=e) from e


def load_collections_config(path: Path) -> CollectionsConfig:
    """Load the routing file once at startup."""
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read collections configuration {path}", cause=e) from e

    config = CollectionsConfig.from_json(raw)
    logger.info(
        "Loaded collections configuration",
        extra={"check_output": f"{len(config.root)} origin systems", "operation": "load_collections"},
    )
    return config
