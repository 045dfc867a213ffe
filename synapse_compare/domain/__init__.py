"""Domain models - comparison settings and result records."""

from .config import ComparisonConfig, ComparisonKind
from .records import (
    BatchEntry,
    BatchResult,
    ComparisonRecord,
    ErrorKind,
    FetchOutcome,
    ImagePayload,
    PairRequest,
    Summary,
    TextPayload,
)

__all__ = [
    "BatchEntry",
    "BatchResult",
    "ComparisonConfig",
    "ComparisonKind",
    "ComparisonRecord",
    "ErrorKind",
    "FetchOutcome",
    "ImagePayload",
    "PairRequest",
    "Summary",
    "TextPayload",
]
