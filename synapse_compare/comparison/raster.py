"""
Raster decoding and pixel difference.

Decoding is done with Pillow; the per-pixel comparison (alpha blended onto
white, YIQ colour distance, anti-aliasing detection) is the pixelmatch
library's.
"""

import io

from PIL import Image, UnidentifiedImageError
from pixelmatch.contrib.PIL import pixelmatch

from synapse_compare.comparison.exceptions import DecodeError


def decode_image(data: bytes) -> Image.Image:
    """
    Decode an encoded raster (PNG, JPEG, WEBP, GIF, ...) to an RGBA image.

    Raises:
        DecodeError: data is empty, corrupt, or not a supported image format
    """
    if not data:
        raise DecodeError("empty image buffer")

    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            return img.convert("RGBA")
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        raise DecodeError(str(e) or type(e).__name__) from e


def count_diff_pixels(
    img1: Image.Image, img2: Image.Image, threshold: float = 0.1, include_aa: bool = False
) -> int:
    """
    Count pixels that differ between two equally sized images.

    Args:
        img1: Decoded image
        img2: Decoded image with the same size
        threshold: Per-pixel colour tolerance in [0, 1]; smaller is stricter
        include_aa: Count anti-aliased pixels as different

    Returns:
        Number of differing pixels
    """
    if img1.size != img2.size:
        raise ValueError(f"Image sizes differ: {img1.size} vs {img2.size}")
    if not 0.0 <= threshold <= 1.0:
        raise ValueError(f"threshold must be within [0, 1], got {threshold}")

    return pixelmatch(img1, img2, threshold=threshold, includeAA=include_aa)
