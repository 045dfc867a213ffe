"""
Exception hierarchy for content evaluation.

The Pair Comparator converts every one of these into a failed
ComparisonRecord; none of them escapes a single comparison.
"""

from typing import Optional, Tuple


class ComparisonError(Exception):
    """Base exception for evaluator failures."""

    pass


class DecodeError(ComparisonError):
    """
    Raised when fetched bytes cannot be decoded as a raster image.

    Width and height are never known in this case.
    """

    def __init__(self, message: str, side: Optional[int] = None):
        prefix = f"URL{side}: " if side else ""
        super().__init__(f"{prefix}{message}")
        self.side = side


class DimensionMismatchError(ComparisonError):
    """
    Raised when two decoded images differ in width or height.

    Carries both sizes so the record can still report them.
    """

    def __init__(self, size1: Tuple[int, int], size2: Tuple[int, int]):
        super().__init__(
            f"Image dimensions mismatch: {size1[0]}x{size1[1]} vs {size2[0]}x{size2[1]}"
        )
        self.size1 = size1
        self.size2 = size2
