"""Image Evaluator - decode two rasters and measure their pixel similarity."""

import math

from synapse_compare.comparison.exceptions import DecodeError, DimensionMismatchError
from synapse_compare.comparison.raster import count_diff_pixels, decode_image
from synapse_compare.domain.records import ImagePayload

DIMENSION_MISMATCH_DIFF = -1


def similarity_percent(diff_pixels: int, total_pixels: int) -> float:
    """
    Share of equal pixels as a percentage with two decimals.

    Rounds half up, e.g. 5 differing pixels out of 100 gives 95.0.
    """
    if total_pixels <= 0:
        return 100.0
    ratio = 1 - diff_pixels / total_pixels
    value = math.floor(ratio * 10000 + 0.5) / 100
    return min(100.0, max(0.0, value))


class ImageEvaluator:
    """
    Stateless pixel-diff comparison of two encoded images.

    evaluate() raises DecodeError for undecodable input and
    DimensionMismatchError when the images differ in size. A successful
    evaluation is a measurement, not a pass/fail verdict.
    """

    def __init__(self, include_aa: bool = False):
        self.include_aa = include_aa

    def evaluate(self, bytes1: bytes, bytes2: bytes, pixel_threshold: float) -> ImagePayload:
        try:
            img1 = decode_image(bytes1)
        except DecodeError as e:
            raise DecodeError(str(e), side=1) from e
        try:
            img2 = decode_image(bytes2)
        except DecodeError as e:
            raise DecodeError(str(e), side=2) from e

        width1, height1 = img1.size
        width2, height2 = img2.size

        if (width1, height1) != (width2, height2):
            raise DimensionMismatchError((width1, height1), (width2, height2))

        diff_pixels = count_diff_pixels(img1, img2, pixel_threshold, include_aa=self.include_aa)

        return ImagePayload(
            width1=width1,
            height1=height1,
            width2=width2,
            height2=height2,
            diff_pixel_count=diff_pixels,
            similarity_percent=similarity_percent(diff_pixels, width1 * height1),
        )

    @staticmethod
    def mismatch_payload(error: DimensionMismatchError) -> ImagePayload:
        """Payload reported for a dimension mismatch: sentinel diff, zero similarity."""
        return ImagePayload(
            width1=error.size1[0],
            height1=error.size1[1],
            width2=error.size2[0],
            height2=error.size2[1],
            diff_pixel_count=DIMENSION_MISMATCH_DIFF,
            similarity_percent=0.0,
        )
