"""Comparison engine - evaluators and the pair comparator."""

from .comparator import PairComparator, compare
from .exceptions import ComparisonError, DecodeError, DimensionMismatchError
from .image_evaluator import ImageEvaluator, similarity_percent
from .text_evaluator import TextEvaluator

__all__ = [
    "ComparisonError",
    "DecodeError",
    "DimensionMismatchError",
    "ImageEvaluator",
    "PairComparator",
    "TextEvaluator",
    "compare",
    "similarity_percent",
]
