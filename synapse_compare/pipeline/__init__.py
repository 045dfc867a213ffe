"""Batch pipeline and pair sources."""

from .batch import BatchPipeline, round_half_up, summarize
from .sources import (
    CsvPairSource,
    ExternalLogSource,
    ParameterUrlBuilder,
    SourceError,
    SynthesizedPairSource,
    parse_console_log,
    swap_base_url,
)

__all__ = [
    "BatchPipeline",
    "CsvPairSource",
    "ExternalLogSource",
    "ParameterUrlBuilder",
    "SourceError",
    "SynthesizedPairSource",
    "parse_console_log",
    "round_half_up",
    "summarize",
    "swap_base_url",
]
