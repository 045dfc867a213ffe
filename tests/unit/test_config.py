"""Unit tests for YAML test configuration loading and ComparisonConfig."""

import textwrap

import pytest

from synapse_compare.config import settings
from synapse_compare.config.settings import (
    DEFAULT_ITERATIONS,
    ConfigurationError,
    load_test_config,
    parse_config,
)
from synapse_compare.domain.config import (
    DEFAULT_PIXEL_THRESHOLD,
    DEFAULT_TIMEOUT_MS,
    ComparisonConfig,
    ComparisonKind,
)

FULL_CONFIG = """
name: Thumbnail regression
baseUrl: https://prod.example.com/thumb
execution:
  mode: construct
  iterations: 25
parameters:
  - name: id
    type: integer
    min: 1
    max: 9999
  - name: size
    type: array
    values: [s, m, l]
comparison:
  enabled: true
  type: image
  baseUrl2: https://stage.example.com/thumb
  threshold: 0.05
  timeout: 8000
  maxWorkers: 4
"""


def _write(tmp_path, text, name="test.yaml"):
    path = tmp_path / name
    path.write_text(textwrap.dedent(text), encoding="utf-8")
    return path


class TestComparisonConfig:
    def test_defaults(self):
        config = ComparisonConfig(kind=ComparisonKind.IMAGE)

        assert config.timeout_ms == DEFAULT_TIMEOUT_MS
        assert config.pixel_threshold == DEFAULT_PIXEL_THRESHOLD
        assert config.timeout_seconds == 30.0
        assert config.is_image

    @pytest.mark.parametrize("timeout", [0, -5])
    def test_timeout_must_be_positive(self, timeout):
        with pytest.raises(ValueError):
            ComparisonConfig(kind=ComparisonKind.TEXT, timeout_ms=timeout)

    @pytest.mark.parametrize("threshold", [-0.1, 1.5])
    def test_threshold_must_be_in_unit_range(self, threshold):
        with pytest.raises(ValueError):
            ComparisonConfig(kind=ComparisonKind.IMAGE, pixel_threshold=threshold)

    def test_kind_parsing(self):
        assert ComparisonKind.parse("TEXT") is ComparisonKind.TEXT
        with pytest.raises(ValueError):
            ComparisonKind.parse("video")

    def test_config_is_immutable(self):
        config = ComparisonConfig(kind=ComparisonKind.TEXT)
        with pytest.raises(AttributeError):
            config.timeout_ms = 1


class TestLoadTestConfig:
    def test_full_configuration(self, tmp_path):
        config = load_test_config(_write(tmp_path, FULL_CONFIG))

        assert config.name == "Thumbnail regression"
        assert config.base_url == "https://prod.example.com/thumb"
        assert config.iterations == 25
        assert [p["name"] for p in config.parameters] == ["id", "size"]
        assert config.comparison.enabled is True
        assert config.comparison.base_url2 == "https://stage.example.com/thumb"
        assert config.comparison.max_workers == 4

        comparison = config.comparison_config()
        assert comparison.kind is ComparisonKind.IMAGE
        assert comparison.timeout_ms == 8000
        assert comparison.pixel_threshold == 0.05

    def test_minimal_configuration_uses_defaults(self, tmp_path, monkeypatch):
        monkeypatch.setattr(settings, "TIMEOUT_MS_ENV", None)

        config = load_test_config(_write(tmp_path, "baseUrl: http://localhost:8080/api\n"))

        assert config.name == "Unnamed Test"
        assert config.iterations == DEFAULT_ITERATIONS
        assert config.comparison.enabled is False
        assert config.comparison.timeout_ms == DEFAULT_TIMEOUT_MS

    def test_environment_timeout_applies_when_config_is_silent(self, tmp_path, monkeypatch):
        monkeypatch.setattr(settings, "TIMEOUT_MS_ENV", "1500")

        config = load_test_config(_write(tmp_path, "baseUrl: http://localhost/api\n"))

        assert config.comparison.timeout_ms == 1500

    def test_invalid_environment_timeout_is_ignored(self, tmp_path, monkeypatch):
        monkeypatch.setattr(settings, "TIMEOUT_MS_ENV", "soon")

        config = load_test_config(_write(tmp_path, "baseUrl: http://localhost/api\n"))

        assert config.comparison.timeout_ms == DEFAULT_TIMEOUT_MS

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_test_config(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_test_config(_write(tmp_path, "baseUrl: [unclosed\n"))

    def test_empty_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Empty configuration"):
            load_test_config(_write(tmp_path, ""))


class TestSchemaValidation:
    def test_base_url_is_required(self):
        with pytest.raises(ConfigurationError, match="baseUrl"):
            parse_config({"name": "x"})

    def test_base_url_must_be_http(self):
        with pytest.raises(ConfigurationError, match="baseUrl"):
            parse_config({"baseUrl": "ftp://files.example.com"})

    def test_enabled_comparison_needs_second_base_url(self):
        with pytest.raises(ConfigurationError, match="baseUrl2"):
            parse_config({"baseUrl": "http://a", "comparison": {"enabled": True}})

    def test_disabled_comparison_does_not_need_second_base_url(self):
        config = parse_config({"baseUrl": "http://a", "comparison": {"enabled": False}})

        assert config.comparison.base_url2 is None

    def test_threshold_out_of_range(self):
        raw = {
            "baseUrl": "http://a",
            "comparison": {"enabled": True, "baseUrl2": "http://b", "threshold": 2},
        }
        with pytest.raises(ConfigurationError, match="comparison/threshold"):
            parse_config(raw)

    def test_unknown_comparison_type(self):
        raw = {"baseUrl": "http://a", "comparison": {"type": "audio"}}
        with pytest.raises(ConfigurationError, match="comparison/type"):
            parse_config(raw)

    def test_unknown_parameter_type(self):
        raw = {"baseUrl": "http://a", "parameters": [{"name": "q", "type": "uuid"}]}
        with pytest.raises(ConfigurationError, match="parameters/0/type"):
            parse_config(raw)
