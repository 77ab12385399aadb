"""Tests for origin system to collection routing."""

import json

import pytest

from config.collections import CollectionsConfig, OriginRule, load_collections_config
from core.errors import ConfigurationError, NoRuleMatchedError, OriginNotFoundError, RoutingSkip

METHODE = "http://cmdb.ft.com/systems/methode-web-pub"


class TestOriginRule:

    def test_pattern_is_compiled_on_construction(self):
        rule = OriginRule(content_type="(application/json).*", collection="methode")

        assert rule.content_type.pattern == "(application/json).*"
        assert rule.matches("application/json; version=1.0")

    def test_match_is_a_search_not_anchored(self):
        rule = OriginRule(content_type="json", collection="c")

        assert rule.matches("application/json")

    @pytest.mark.parametrize(
        "data",
        [
            {"content_type": "", "collection": "methode"},
            {"content_type": ".*", "collection": ""},
            {"content_type": ".*", "collection": "   "},
            {"content_type": "([unclosed", "collection": "methode"},
            {"collection": "methode"},
        ],
    )
    def test_invalid_rules_fail_whole_file(self, data):
        with pytest.raises(ConfigurationError):
            CollectionsConfig.from_json(json.dumps({METHODE: [data]}))


class TestGetCollection:

    def test_methode_json_resolves_to_methode(self, collections_config):
        assert collections_config.get_collection(METHODE, "application/json; version=1.0") == "methode"

    def test_methode_text_plain_has_no_rule(self, collections_config):
        with pytest.raises(NoRuleMatchedError) as exc_info:
            collections_config.get_collection(METHODE, "text/plain")

        assert exc_info.value.origin_id == METHODE
        assert exc_info.value.content_type == "text/plain"
        assert isinstance(exc_info.value, RoutingSkip)

    def test_unknown_origin(self, collections_config):
        with pytest.raises(OriginNotFoundError) as exc_info:
            collections_config.get_collection("http://cmdb.ft.com/systems/unknown", "application/json")

        assert str(exc_info.value) == "Origin system not found"

    def test_origin_with_no_rules_is_not_found(self):
        config = CollectionsConfig.from_json(json.dumps({METHODE: []}))

        with pytest.raises(OriginNotFoundError, match="Origin system not found"):
            config.get_collection(METHODE, "application/json")

    def test_first_declared_rule_wins(self):
        config = CollectionsConfig.from_json(
            json.dumps(
                {
                    METHODE: [
                        {"content_type": "application/json", "collection": "first"},
                        {"content_type": ".*", "collection": "second"},
                    ]
                }
            )
        )

        assert config.get_collection(METHODE, "application/json") == "first"
        assert config.get_collection(METHODE, "text/html") == "second"

    def test_empty_content_type_matches_catch_all_rule(self, collections_config):
        origin = "http://cmdb.ft.com/systems/next-video-editor"

        assert collections_config.get_collection(origin, "") == "video-fallback"

    def test_empty_content_type_does_not_match_specific_rule(self, collections_config):
        with pytest.raises(NoRuleMatchedError):
            collections_config.get_collection(METHODE, "")

    def test_repeated_lookups_are_identical(self, collections_config):
        results = {collections_config.get_collection(METHODE, "application/json") for _ in range(5)}

        assert results == {"methode"}

    def test_patterns_are_not_recompiled_per_lookup(self, collections_config):
        rule = collections_config.root[METHODE][0]
        pattern = rule.content_type

        collections_config.get_collection(METHODE, "application/json")

        assert collections_config.root[METHODE][0].content_type is pattern


class TestLoadCollectionsConfig:

    def test_loads_file(self, tmp_path):
        path = tmp_path / "collections.json"
        path.write_text(json.dumps({METHODE: [{"content_type": ".*", "collection": "methode"}]}))

        config = load_collections_config(path)

        assert list(config.root) == [METHODE]

    def test_preserves_rule_order_from_file(self, tmp_path):
        path = tmp_path / "collections.json"
        path.write_text(
            '{"o": [{"content_type": "a", "collection": "1"},'
            ' {"content_type": "b", "collection": "2"},'
            ' {"content_type": "c", "collection": "3"}]}'
        )

        config = load_collections_config(path)

        assert [r.collection for r in config.root["o"]] == ["1", "2", "3"]

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "collections.json"
        path.write_text("{not json")

        with pytest.raises(ConfigurationError):
            load_collections_config(path)

    def test_top_level_must_be_a_mapping(self, tmp_path):
        path = tmp_path / "collections.json"
        path.write_text("[]")

        with pytest.raises(ConfigurationError):
            load_collections_config(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_collections_config(tmp_path / "absent.json")

    def test_shipped_routing_file_is_valid(self):
        from pathlib import Path

        path = Path(__file__).parent.parent.parent / "src" / "config" / "collections.json"

        config = load_collections_config(path)

        assert config.get_collection(METHODE, "application/json") == "methode"
