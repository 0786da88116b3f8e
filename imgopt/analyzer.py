"""
Heuristic image analyzer.

Colour statistics and alpha detection are computed from the decoded pixel
buffer and are deterministic. Labels, the quality score and the text/face
flags are stand-ins for a real classifier: they are drawn from the
injected random source, so identical input does not give identical
output unless the caller seeds that source.
"""

import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np

from .log import get_logger
from .raster import decode, format_from_mime

logger = get_logger(__name__)

MAX_COLOR_SAMPLES = 10_000
MIN_OPAQUE_ALPHA = 128
QUANT_STEP = 32
TOP_COLORS = 5
MAX_ALPHA_SAMPLES = 1000

GENERIC_LABELS = ("Nature", "Outdoor", "Indoor", "Object", "Scene", "Art")

LARGE_FILE_BYTES = 1024 * 1024
LARGE_DIMENSION = 2000

FORMAT_SUGGESTIONS = {
    "png": "PNG format detected. Converting to WebP could reduce file size significantly.",
    "jpeg": "JPEG format detected. Converting to WebP could improve quality at the same file size.",
    "gif": "GIF format detected. Consider using WebP for better compression of animated images.",
}

GENERIC_TIPS = (
    "Consider using progressive loading for better user experience.",
    "Adding proper alt text will improve accessibility.",
    "Using responsive images with srcset can improve performance on different devices.",
    "Consider lazy loading images that are below the fold.",
)


@dataclass(frozen=True)
class DominantColor:
    color: str
    score: float
    pixel_fraction: float

    def to_dict(self) -> Dict[str, Any]:
        return {"color": self.color, "score": self.score, "pixelFraction": self.pixel_fraction}


@dataclass(frozen=True)
class AnalysisResult:
    width: int
    height: int
    format: Optional[str]
    size: int
    has_alpha: bool
    has_profile: bool
    channels: int
    dominant_colors: List[DominantColor] = field(default_factory=list)
    labels: List[str] = field(default_factory=list)
    quality_score: float = 0.0
    has_text: bool = False
    has_faces: bool = False
    optimization_suggestions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "metadata": {
                "width": self.width,
                "height": self.height,
                "format": self.format,
                "size": self.size,
                "hasAlpha": self.has_alpha,
                "hasProfile": self.has_profile,
                "channels": self.channels,
            },
            "analysis": {
                "dominant_colors": [c.to_dict() for c in self.dominant_colors],
                "labels": list(self.labels),
                "quality_score": self.quality_score,
                "has_text": self.has_text,
                "has_faces": self.has_faces,
                "optimization_suggestions": list(self.optimization_suggestions),
            },
        }


# --- Deterministic helpers ----------------------------------------------------

def extract_dominant_colors(pixels: np.ndarray, limit: int = TOP_COLORS) -> List[DominantColor]:
    """Top quantised colours of an (h, w, 4) RGBA buffer.

    Every Nth pixel is sampled so that roughly MAX_COLOR_SAMPLES pixels are
    visited, pixels with alpha below 128 are skipped and each channel is
    floored to a multiple of 32. Ties keep first-seen order. ``score`` and
    ``pixel_fraction`` are the same number; both are part of the response.
    """
    flat = pixels.reshape(-1, 4)
    pixel_count = flat.shape[0]
    if pixel_count == 0:
        return []

    sample_rate = max(1, pixel_count // MAX_COLOR_SAMPLES)
    sampled = flat[::sample_rate]
    opaque = sampled[sampled[:, 3] >= MIN_OPAQUE_ALPHA]
    if opaque.shape[0] == 0:
        return []

    quantized = (opaque[:, :3] // QUANT_STEP).astype(np.int64) * QUANT_STEP
    keys = (quantized[:, 0] << 16) | (quantized[:, 1] << 8) | quantized[:, 2]
    unique, first_seen, counts = np.unique(keys, return_index=True, return_counts=True)
    order = np.lexsort((first_seen, -counts))[:limit]

    sample_total = pixel_count / sample_rate
    colors = []
    for idx in order:
        key = int(unique[idx])
        fraction = int(counts[idx]) / sample_total
        colors.append(DominantColor(color=f"#{key:06x}", score=fraction, pixel_fraction=fraction))
    return colors


def has_alpha_channel(pixels: np.ndarray) -> bool:
    """True if any of ~1000 evenly strided pixels is not fully opaque."""
    alpha = pixels.reshape(-1, 4)[:, 3]
    if alpha.size == 0:
        return False
    step = alpha.size // min(MAX_ALPHA_SAMPLES, alpha.size)
    return bool((alpha[::step] < 255).any())


def suggest_optimizations(size: int, width: int, height: int, fmt: Optional[str], rng: random.Random) -> List[str]:
    suggestions = []
    if size > LARGE_FILE_BYTES:
        suggestions.append("Image is large (> 1MB). Consider further compression.")
    if width > LARGE_DIMENSION or height > LARGE_DIMENSION:
        suggestions.append("Image dimensions are very large. Consider resizing for web use.")
    if fmt in FORMAT_SUGGESTIONS:
        suggestions.append(FORMAT_SUGGESTIONS[fmt])
    suggestions.append(rng.choice(GENERIC_TIPS))
    return suggestions


# --- Analyzer -----------------------------------------------------------------

class ImageAnalyzer:
    """
    Produces metadata plus heuristic "AI" analysis for one image per call.

    All randomness comes from ``rng``; pass ``random.Random(seed)`` for
    reproducible output.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def analyze(self, raw: bytes, file_name: str, mime_type: Optional[str] = None) -> AnalysisResult:
        """
        Analyze an encoded image

        Raises:
            DecodeError: ``raw`` is not an image.
        """
        buffer = decode(raw, file_name)
        width, height = buffer.width, buffer.height
        fmt = buffer.format or format_from_mime(mime_type)
        has_alpha = has_alpha_channel(buffer.pixels)

        result = AnalysisResult(
            width=width,
            height=height,
            format=fmt,
            size=len(raw),
            has_alpha=has_alpha,
            has_profile="icc_profile" in buffer.info,
            channels=4 if has_alpha else 3,
            dominant_colors=extract_dominant_colors(buffer.pixels),
            labels=self.generate_labels(width, height),
            quality_score=self.quality_score(width, height),
            has_text=self.detect_text(),
            has_faces=self.detect_faces(),
            optimization_suggestions=suggest_optimizations(len(raw), width, height, fmt, self.rng),
        )
        logger.debug(f"Analyzed {file_name}: {width}x{height} {fmt}, alpha={has_alpha}")
        return result

    def generate_labels(self, width: int, height: int) -> List[str]:
        """Shape-based labels plus 2-4 random generic ones (no repeats)."""
        labels = []
        if width > height * 1.5:
            labels.extend(["Landscape", "Panorama"])
        if height > width * 1.5:
            labels.append("Portrait")
        if width < 800 and height < 800:
            labels.append("Close-up")

        labels.extend(self.rng.sample(GENERIC_LABELS, self.rng.randint(2, 4)))
        return labels

    def quality_score(self, width: int, height: int) -> float:
        score = 70 + self.rng.random() * 20

        pixels = width * height
        if pixels > 2_000_000:
            score += 5
        elif pixels < 500_000:
            score -= 10

        aspect_ratio = width / height
        if aspect_ratio > 2.5 or aspect_ratio < 0.4:
            score -= 5

        return max(0.0, min(100.0, score))

    # Placeholders: no OCR / face detection behind these
    def detect_text(self) -> bool:
        return self.rng.random() > 0.7

    def detect_faces(self) -> bool:
        return self.rng.random() > 0.6
