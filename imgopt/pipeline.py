"""
Transform pipeline.

decode -> compute target size -> crop/scale onto a fresh surface ->
optional enhancement -> encode -> size statistics.

Every call owns its buffers; nothing is shared between calls.
"""

import base64
import math
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from .config import DefaultConfig
from .enhance import enhance
from .errors import EncodeError, SurfaceError
from .log import get_logger
from .raster import (
    FALLBACK_FORMAT,
    FORMATS,
    Rect,
    create_surface,
    decode,
    format_from_mime,
    normalize_format,
)
from .settings import OptimizationSettings, ResizeSettings

logger = get_logger(__name__)

# Smart crop keeps the central 75% x 75% of the source. This is a fixed
# framing heuristic, not content-aware cropping.
SMART_CROP_FACTOR = 0.75


@dataclass(frozen=True)
class TransformResult:
    name: str
    original_name: str
    original_size: int
    new_size: int
    reduction: int
    width: int
    height: int
    format: str
    data: bytes = field(repr=False)

    @property
    def mime_type(self) -> str:
        return FORMATS[self.format].mime_type

    @property
    def url(self) -> str:
        """The encoded payload as a data URI."""
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "originalName": self.original_name,
            "originalSize": self.original_size,
            "newSize": self.new_size,
            "reduction": self.reduction,
            "url": self.url,
            "width": self.width,
            "height": self.height,
            "format": self.format,
        }


def compute_dimensions(src_width: int, src_height: int, resize: ResizeSettings) -> Tuple[int, int]:
    """Fit-inside target size; never enlarges and keeps the aspect ratio."""
    if not resize.enabled:
        return src_width, src_height
    if src_width <= resize.max_width and src_height <= resize.max_height:
        return src_width, src_height

    ratio = min(resize.max_width / src_width, resize.max_height / src_height)
    return math.floor(src_width * ratio), math.floor(src_height * ratio)


def crop_region(src_width: int, src_height: int, settings: OptimizationSettings) -> Rect:
    """Source rectangle to draw from: full frame, or the centred crop."""
    if settings.smart_crop and settings.resize.enabled:
        crop_width = src_width * SMART_CROP_FACTOR
        crop_height = src_height * SMART_CROP_FACTOR
        return (
            (src_width - crop_width) / 2,
            (src_height - crop_height) / 2,
            crop_width,
            crop_height,
        )
    return 0, 0, src_width, src_height


def reduction_percent(original_size: int, new_size: int) -> int:
    """Rounded size reduction in percent; negative when the output grew."""
    if original_size <= 0:
        return 0
    # half-up rounding, also for negative values
    return math.floor((original_size - new_size) / original_size * 100 + 0.5)


def output_name(file_name: str, fmt: str) -> str:
    """``<basename>-optimized.<ext>`` with ``ext`` matching ``fmt``."""
    base, ext = os.path.splitext(os.path.basename(file_name or ""))
    if not base:
        base = "image"
    if ext and normalize_format(ext) == fmt:
        extension = ext[1:].lower()
    else:
        extension = FORMATS[fmt].extension
    return f"{base}-optimized.{extension}"


def resolve_format(settings: OptimizationSettings, source_format: Optional[str], mime_type: Optional[str]) -> str:
    """Target format, falling back to PNG for sources we cannot re-encode."""
    if settings.target_format:
        return settings.target_format
    if source_format in FORMATS:
        return source_format
    if source_format is None:
        return format_from_mime(mime_type) or FALLBACK_FORMAT
    return FALLBACK_FORMAT


def transform(
    raw: bytes,
    file_name: str,
    mime_type: Optional[str],
    settings: OptimizationSettings,
    max_pixels: int = DefaultConfig.MAX_SURFACE_PIXELS,
) -> TransformResult:
    """Optimize one image.

    Args:
        raw: Encoded input bytes.
        file_name: Upload name, used for the output name and error context.
        mime_type: Declared content type; consulted only when the decoder
            cannot tell the format.
        settings: Validated settings snapshot.
        max_pixels: Upper bound on the drawing surface area.

    Raises:
        DecodeError: ``raw`` is not an image.
        SurfaceError: the output surface could not be allocated.
        EncodeError: serialisation to the target format failed.
    """
    source = decode(raw, file_name)
    width, height = compute_dimensions(source.width, source.height, settings.resize)

    try:
        surface = create_surface(width, height, max_pixels)
        surface.draw_scaled(
            source,
            crop_region(source.width, source.height, settings),
            (0, 0, width, height),
        )

        if settings.enhance:
            surface.put_pixels(enhance(surface.get_pixels()))

        fmt = resolve_format(settings, source.format, mime_type)
        exif = source.info.get("exif") if settings.preserve_metadata else None
        data = surface.encode(fmt, settings.quality / 100, exif=exif)
    except (SurfaceError, EncodeError) as exc:
        # surface errors carry no file context of their own
        raise type(exc)(str(exc), file_name) from exc

    original_size = len(raw)
    new_size = len(data)
    result = TransformResult(
        name=output_name(file_name, fmt),
        original_name=file_name,
        original_size=original_size,
        new_size=new_size,
        reduction=reduction_percent(original_size, new_size),
        width=width,
        height=height,
        format=fmt,
        data=data,
    )

    logger.debug(
        f"Optimized {file_name}: {source.width}x{source.height} → {width}x{height} {fmt}, "
        f"{original_size / 1024:.1f}KB → {new_size / 1024:.1f}KB ({result.reduction}%)"
    )
    return result
