"""
Configuration loader for synapse-compare.

Loads a YAML test configuration, validates it against a JSON schema and
exposes the comparison settings as a ComparisonConfig.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import jsonschema
import yaml

from synapse_compare.domain.config import (
    DEFAULT_PIXEL_THRESHOLD,
    DEFAULT_TIMEOUT_MS,
    ComparisonConfig,
    ComparisonKind,
)

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Exception raised for configuration-related errors."""

    pass


# Environment override for the per-fetch timeout when the config omits one
TIMEOUT_MS_ENV = os.getenv("SYNAPSE_TIMEOUT_MS")

DEFAULT_ITERATIONS = 10

_PARAMETER_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["name", "type"],
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "type": {"enum": ["static", "integer", "string", "array"]},
        "value": {},
        "min": {"type": "integer"},
        "max": {"type": "integer"},
        "length": {"type": "integer", "minimum": 1},
        "charset": {"type": "string"},
        "customChars": {"type": "string", "minLength": 1},
        "values": {"type": "array", "minItems": 1},
    },
}

CONFIG_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["baseUrl"],
    "properties": {
        "name": {"type": "string"},
        "baseUrl": {"type": "string", "pattern": "^https?://"},
        "execution": {
            "type": "object",
            "properties": {
                "mode": {"enum": ["construct", "batch"]},
                "iterations": {"type": "integer", "minimum": 1},
                "concurrent": {"type": "integer", "minimum": 1},
                "duration": {"type": "string"},
            },
        },
        "parameters": {"type": "array", "items": _PARAMETER_SCHEMA},
        "comparison": {
            "type": "object",
            "properties": {
                "enabled": {"type": "boolean"},
                "type": {"enum": ["image", "text"]},
                "baseUrl2": {"type": "string", "pattern": "^https?://"},
                "threshold": {"type": "number", "minimum": 0, "maximum": 1},
                "timeout": {"type": "integer", "minimum": 1},
                "maxWorkers": {"type": "integer", "minimum": 1},
            },
            "if": {"properties": {"enabled": {"const": True}}, "required": ["enabled"]},
            "then": {"required": ["baseUrl2"]},
        },
    },
}


@dataclass
class ComparisonSettings:
    """The `comparison` block of a test configuration."""

    enabled: bool = False
    kind: ComparisonKind = ComparisonKind.IMAGE
    base_url2: Optional[str] = None
    threshold: float = DEFAULT_PIXEL_THRESHOLD
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    max_workers: int = 1


@dataclass
class TestConfig:
    """Validated test configuration."""

    __test__ = False  # not a pytest test class

    name: str
    base_url: str
    iterations: int = DEFAULT_ITERATIONS
    parameters: List[Dict[str, Any]] = field(default_factory=list)
    comparison: ComparisonSettings = field(default_factory=ComparisonSettings)
    source_path: Optional[Path] = None

    def comparison_config(self) -> ComparisonConfig:
        """Immutable settings shared by every comparison in a batch."""
        return ComparisonConfig(
            kind=self.comparison.kind,
            timeout_ms=self.comparison.timeout_ms,
            pixel_threshold=self.comparison.threshold,
        )


def _default_timeout_ms() -> int:
    if not TIMEOUT_MS_ENV:
        return DEFAULT_TIMEOUT_MS
    try:
        value = int(TIMEOUT_MS_ENV)
    except ValueError:
        logger.warning(f"Ignoring non-integer SYNAPSE_TIMEOUT_MS={TIMEOUT_MS_ENV!r}")
        return DEFAULT_TIMEOUT_MS
    if value <= 0:
        logger.warning(f"Ignoring non-positive SYNAPSE_TIMEOUT_MS={value}")
        return DEFAULT_TIMEOUT_MS
    return value


def parse_config(raw: Any, source_path: Optional[Path] = None) -> TestConfig:
    """
    Validate a parsed configuration mapping and build a TestConfig.

    Raises:
        ConfigurationError: If the mapping does not match CONFIG_SCHEMA
    """
    if not raw:
        raise ConfigurationError(f"Empty configuration: {source_path or '<memory>'}")

    try:
        jsonschema.validate(instance=raw, schema=CONFIG_SCHEMA)
    except jsonschema.ValidationError as e:
        location = "/".join(str(p) for p in e.absolute_path) or "<root>"
        logger.error(f"Configuration failed schema validation at {location}: {e.message}")
        raise ConfigurationError(
            f"Configuration validation failed at {location}: {e.message}"
        ) from e

    execution = raw.get("execution") or {}
    comparison_raw = raw.get("comparison") or {}

    comparison = ComparisonSettings(
        enabled=bool(comparison_raw.get("enabled", False)),
        kind=ComparisonKind.parse(comparison_raw.get("type", "image")),
        base_url2=comparison_raw.get("baseUrl2"),
        threshold=float(comparison_raw.get("threshold", DEFAULT_PIXEL_THRESHOLD)),
        timeout_ms=int(comparison_raw.get("timeout", _default_timeout_ms())),
        max_workers=int(comparison_raw.get("maxWorkers", 1)),
    )

    return TestConfig(
        name=raw.get("name", "Unnamed Test"),
        base_url=raw["baseUrl"],
        iterations=int(execution.get("iterations", DEFAULT_ITERATIONS)),
        parameters=list(raw.get("parameters") or []),
        comparison=comparison,
        source_path=source_path,
    )


def load_test_config(config_path: Union[str, Path]) -> TestConfig:
    """
    Load and validate a YAML test configuration.

    Args:
        config_path: Path to the YAML configuration file

    Raises:
        ConfigurationError: File missing, invalid YAML, or schema violation
    """
    path = Path(config_path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except FileNotFoundError as e:
        logger.error(f"Configuration file not found: {path}")
        raise ConfigurationError(f"Configuration file not found: {path}") from e
    except yaml.YAMLError as e:
        logger.error(f"Invalid YAML in configuration: {e}")
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    config = parse_config(raw, source_path=path)
    logger.info(f"Loaded configuration '{config.name}' from {path}")
    return config
