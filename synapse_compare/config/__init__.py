"""Configuration loading and validation."""

from .settings import ConfigurationError, TestConfig, load_test_config, parse_config

__all__ = ["ConfigurationError", "TestConfig", "load_test_config", "parse_config"]
