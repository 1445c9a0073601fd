"""CareLens — Image Statistics

Crude pixel statistics for the heuristic fallback classifier.
This is a placeholder, not a trained model: every result built from these
features is flagged isHeuristic.

  - Decoded with Pillow, downscaled to max_side, converted to RGBA
  - Every sample_stride-th pixel is sampled
  - dark: brightness < 100, light: brightness > 200 (0-255 scale)
  - red-dominant: R - (G + B) / 2 > 30
  - colorVariation: mean of |R-G| + |G-B| + |B-R|
"""
import io
import struct
from dataclasses import dataclass
from PIL import Image, UnidentifiedImageError
import structlog

from carelens.core.config import HeuristicConfig
from carelens.core.errors import DecodeError

logger = structlog.get_logger()


@dataclass(frozen=True)
class ImageFeatures:
    dark_ratio: float
    light_ratio: float
    color_variation: float
    redness_ratio: float
    sampled: int = 0

    def to_dict(self) -> dict:
        return {
            "darkRatio": round(self.dark_ratio, 4),
            "lightRatio": round(self.light_ratio, 4),
            "colorVariation": round(self.color_variation, 2),
            "rednessRatio": round(self.redness_ratio, 4),
            "isHeuristic": True,
        }


def decode_rgba(image_bytes: bytes, max_side: int = 512, max_pixels: int = 25_000_000) -> Image.Image:
    """Decode bytes into an RGBA image no larger than max_side. Raises DecodeError.

    The header size is checked before any pixel data is decoded; JPEGs are
    decoded at a reduced scale, and the RGBA copy is made after downscaling.
    """
    if not image_bytes:
        raise DecodeError("empty image")
    try:
        img = Image.open(io.BytesIO(image_bytes))
        width, height = img.size
        if width == 0 or height == 0:
            raise DecodeError("image has no pixels")
        if width * height > max_pixels:
            raise DecodeError(f"image too large: {width}x{height}")
        img.draft("RGB", (max_side, max_side))
        img.load()
        if max(img.size) > max_side:
            img.thumbnail((max_side, max_side))
        rgba = img.convert("RGBA")
    except (UnidentifiedImageError, OSError, ValueError, SyntaxError, struct.error,
            Image.DecompressionBombError) as e:
        raise DecodeError(f"unreadable image: {e}") from e
    return rgba


def extract(image_bytes: bytes, config: HeuristicConfig | None = None) -> ImageFeatures:
    """Compute aggregate features from sampled pixels."""
    config = config or HeuristicConfig()
    img = decode_rgba(image_bytes, config.max_side, config.max_pixels)
    data = img.tobytes()
    step = 4 * max(config.sample_stride, 1)

    count = dark = light = red = 0
    variation = 0
    for i in range(0, len(data), step):
        r, g, b = data[i], data[i + 1], data[i + 2]
        count += 1
        brightness = (r + g + b) / 3
        if brightness < config.dark_brightness:
            dark += 1
        elif brightness > config.light_brightness:
            light += 1
        if r - (g + b) / 2 > config.red_dominance:
            red += 1
        variation += abs(r - g) + abs(g - b) + abs(b - r)

    features = ImageFeatures(
        dark_ratio=dark / count,
        light_ratio=light / count,
        color_variation=variation / count,
        redness_ratio=red / count,
        sampled=count,
    )
    logger.info("image_features_extracted", sampled=count, size=img.size,
                dark=round(features.dark_ratio, 3), red=round(features.redness_ratio, 3))
    return features
