"""
Comparison result records.

A ComparisonRecord carries the request-level fields shared by every kind plus
a payload whose shape is fixed by the comparison kind: ImagePayload for image
batches, TextPayload for text batches.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from synapse_compare.domain.config import ComparisonKind


class ErrorKind(Enum):
    """Why a comparison did not succeed."""

    FETCH_FAILED = "FetchFailed"
    DIMENSION_MISMATCH = "DimensionMismatch"
    DECODE_ERROR = "DecodeError"
    COMPARISON_FAILED = "ComparisonFailed"

    @property
    def label(self) -> str:
        return self.value


@dataclass(frozen=True)
class FetchOutcome:
    """
    Result of fetching one resource.

    Attributes:
        ok: True when a 2xx response was read to completion
        status_code: HTTP status, 0 when no response arrived
        body: Raw payload, present iff ok
        declared_type: Content-Type header value, may be empty
        error_message: Failure description, present iff not ok
    """

    ok: bool
    status_code: int = 0
    body: Optional[bytes] = None
    declared_type: str = ""
    error_message: Optional[str] = None

    @classmethod
    def success(cls, status_code: int, body: bytes, declared_type: str = "") -> "FetchOutcome":
        return cls(ok=True, status_code=status_code, body=body, declared_type=declared_type)

    @classmethod
    def failure(
        cls, status_code: int, error_message: str, declared_type: str = ""
    ) -> "FetchOutcome":
        return cls(
            ok=False,
            status_code=status_code,
            declared_type=declared_type,
            error_message=error_message,
        )

    @property
    def size(self) -> Optional[int]:
        return len(self.body) if self.body is not None else None


@dataclass(frozen=True)
class ImagePayload:
    """Pixel-level comparison fields. diff_pixel_count is -1 when dimensions differ."""

    width1: Optional[int] = None
    height1: Optional[int] = None
    width2: Optional[int] = None
    height2: Optional[int] = None
    diff_pixel_count: Optional[int] = None
    similarity_percent: Optional[float] = None

    @property
    def kind(self) -> ComparisonKind:
        return ComparisonKind.IMAGE


@dataclass(frozen=True)
class TextPayload:
    """Exact text comparison fields."""

    exact_match: Optional[bool] = None
    similarity_percent: Optional[float] = None

    @property
    def kind(self) -> ComparisonKind:
        return ComparisonKind.TEXT


Payload = Union[ImagePayload, TextPayload]


def empty_payload(kind: ComparisonKind) -> Payload:
    """Payload with no measurements, used when evaluation never ran."""
    return ImagePayload() if kind is ComparisonKind.IMAGE else TextPayload()


@dataclass(frozen=True)
class ComparisonRecord:
    """
    Outcome of comparing one URL pair.

    Attributes:
        kind: Comparison kind; always matches payload.kind
        success: Both fetches succeeded and the evaluator preconditions held
        response_time_ms: Wall-clock from dispatch of both fetches until both settled
        status1: HTTP status of url1 (0 when no response)
        status2: HTTP status of url2 (0 when no response)
        size1: Byte length of url1 body
        size2: Byte length of url2 body
        payload: Kind-specific measurements
        error_kind: Failure classification when success is False
        error_detail: Free-text failure description
    """

    kind: ComparisonKind
    success: bool
    response_time_ms: int
    status1: int
    status2: int
    payload: Payload
    size1: Optional[int] = None
    size2: Optional[int] = None
    error_kind: Optional[ErrorKind] = None
    error_detail: str = ""

    def __post_init__(self) -> None:
        if self.payload.kind is not self.kind:
            raise TypeError(
                f"{type(self.payload).__name__} does not belong to a {self.kind.value} record"
            )

    @property
    def similarity_percent(self) -> Optional[float]:
        return self.payload.similarity_percent

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data: Dict[str, Any] = {
            "type": self.kind.value,
            "success": self.success,
            "responseTime": self.response_time_ms,
            "url1Status": self.status1,
            "url2Status": self.status2,
            "url1Size": self.size1,
            "url2Size": self.size2,
        }
        if isinstance(self.payload, ImagePayload):
            data.update(
                width1=self.payload.width1,
                height1=self.payload.height1,
                width2=self.payload.width2,
                height2=self.payload.height2,
                diffPixels=self.payload.diff_pixel_count,
                similarity=self.payload.similarity_percent,
            )
        else:
            data.update(
                textMatch=self.payload.exact_match,
                similarity=self.payload.similarity_percent,
            )
        if self.error_kind is not None:
            data["error"] = self.error_kind.label
            data["errorDetails"] = self.error_detail
        return data


@dataclass(frozen=True)
class PairRequest:
    """
    One row handed to the pipeline by a pair source.

    Attributes:
        index: 1-based input position
        url1: Primary URL, None/empty when the row lacks it
        url2: Secondary URL, None/empty when the row lacks it
        external: Load-engine record this pair came from, if any
        eligible: False when the row must pass through without comparison
    """

    index: int
    url1: Optional[str]
    url2: Optional[str]
    external: Optional[Dict[str, Any]] = None
    eligible: bool = True

    @property
    def is_complete(self) -> bool:
        return bool(self.url1) and bool(self.url2)


@dataclass(frozen=True)
class BatchEntry:
    """A compared (or passed-through) row in input order."""

    index: int
    url1: Optional[str]
    url2: Optional[str]
    record: Optional[ComparisonRecord] = None
    external: Optional[Dict[str, Any]] = None

    @property
    def attempted(self) -> bool:
        return self.record is not None


@dataclass
class BatchResult:
    """Ordered entries of one batch plus the number of skipped rows."""

    kind: ComparisonKind
    entries: List[BatchEntry] = field(default_factory=list)
    skipped: int = 0

    @property
    def attempted(self) -> List[BatchEntry]:
        return [e for e in self.entries if e.attempted]

    @property
    def has_external(self) -> bool:
        return any(e.external is not None for e in self.entries)


@dataclass(frozen=True)
class Summary:
    """Aggregate statistics over one finished batch."""

    total: int
    successful: int
    failed: int
    success_rate: float
    avg_response_time_ms: int
    avg_similarity: float
    error_counts: Dict[str, int] = field(default_factory=dict)
    exact_matches: Optional[int] = None
    skipped: int = 0
    passthrough: int = 0
    avg_external_response_time_ms: Optional[int] = None
    timestamp: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "timestamp": self.timestamp,
            "totals": {
                "total": self.total,
                "successful": self.successful,
                "failed": self.failed,
                "successRate": self.success_rate,
                "skipped": self.skipped,
                "passthrough": self.passthrough,
            },
            "performance": {
                "avgResponseTime": self.avg_response_time_ms,
                "avgExternalResponseTime": self.avg_external_response_time_ms,
                "avgSimilarity": self.avg_similarity,
                "exactMatches": self.exact_matches,
            },
            "errors": dict(self.error_counts),
        }
