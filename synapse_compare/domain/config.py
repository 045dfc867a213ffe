"""
Comparison run settings.

One ComparisonConfig is created per batch and shared read-only by every
comparison in it.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Union

DEFAULT_TIMEOUT_MS = 30000
DEFAULT_PIXEL_THRESHOLD = 0.1


class ComparisonKind(Enum):
    """Which evaluator a batch uses."""

    IMAGE = "image"
    TEXT = "text"

    @classmethod
    def parse(cls, value: Union[str, "ComparisonKind"]) -> "ComparisonKind":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f'Type must be either "image" or "text", got {value!r}') from None


@dataclass(frozen=True)
class ComparisonConfig:
    """
    Immutable per-run comparison settings.

    Attributes:
        kind: Image or text comparison
        timeout_ms: Per-fetch timeout in milliseconds (positive)
        pixel_threshold: Per-pixel colour tolerance in [0, 1], image kind only
    """

    kind: ComparisonKind = ComparisonKind.IMAGE
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    pixel_threshold: float = DEFAULT_PIXEL_THRESHOLD

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", ComparisonKind.parse(self.kind))

        if isinstance(self.timeout_ms, bool) or int(self.timeout_ms) != self.timeout_ms:
            raise ValueError(f"timeout_ms must be an integer, got {self.timeout_ms!r}")
        object.__setattr__(self, "timeout_ms", int(self.timeout_ms))
        if self.timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {self.timeout_ms}")

        threshold = float(self.pixel_threshold)
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"pixel_threshold must be within [0, 1], got {threshold}")
        object.__setattr__(self, "pixel_threshold", threshold)

    @property
    def is_image(self) -> bool:
        return self.kind is ComparisonKind.IMAGE

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.kind.value,
            "timeout": self.timeout_ms,
            "threshold": self.pixel_threshold,
        }
