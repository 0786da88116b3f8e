"""
Raster surface backed by Pillow.

Provides the small set of bitmap primitives the pipeline and the analyzer
need: decode bytes into an RGBA buffer, allocate a drawing surface, draw a
(possibly fractional) source rectangle scaled into a destination
rectangle, read/write raw pixels and encode to a target format.
"""

import io
from dataclasses import dataclass, field
from typing import Dict, NamedTuple, Optional, Tuple

import numpy as np
from PIL import Image, UnidentifiedImageError

from .config import DefaultConfig
from .errors import DecodeError, EncodeError, SurfaceError

Rect = Tuple[float, float, float, float]  # x, y, width, height


class ImageFormat(NamedTuple):
    pil_name: str
    mime_type: str
    extension: str
    lossy: bool
    alpha: bool
    exif: bool


FORMATS: Dict[str, ImageFormat] = {
    "jpeg": ImageFormat("JPEG", "image/jpeg", "jpg", lossy=True, alpha=False, exif=True),
    "webp": ImageFormat("WEBP", "image/webp", "webp", lossy=True, alpha=True, exif=True),
    "png": ImageFormat("PNG", "image/png", "png", lossy=False, alpha=True, exif=True),
    "gif": ImageFormat("GIF", "image/gif", "gif", lossy=False, alpha=False, exif=False),
    "bmp": ImageFormat("BMP", "image/bmp", "bmp", lossy=False, alpha=False, exif=False),
    "tiff": ImageFormat("TIFF", "image/tiff", "tiff", lossy=False, alpha=True, exif=True),
}

_ALIASES = {"jpg": "jpeg", "jpe": "jpeg", "tif": "tiff", "x-ms-bmp": "bmp"}

# Pillow names some JPEG variants after their container; MPO is what
# stereo and phone cameras write
_DECODED_AS = {"MPO": "jpeg"}

FALLBACK_FORMAT = "png"


def normalize_format(name: Optional[str]) -> Optional[str]:
    """Map a format/extension spelling ("JPG", ".tif") onto a FORMATS key."""
    if not name:
        return None
    key = name.strip().lower().lstrip(".")
    key = _ALIASES.get(key, key)
    return key if key in FORMATS else None


def format_from_mime(mime_type: Optional[str]) -> Optional[str]:
    if not mime_type or "/" not in mime_type:
        return None
    return normalize_format(mime_type.split("/", 1)[1].split(";", 1)[0])


@dataclass(frozen=True, eq=False)
class ImageBuffer:
    """Decoded bitmap: row-major RGBA, 4 bytes per pixel, read-only.

    Fields:
        width, height: Size in px.
        pixels: uint8 array of shape (height, width, 4).
        format: Detected source format (FORMATS key or Pillow's own name,
            lowercased), None if the decoder did not report one.
        info: Ancillary chunks worth carrying over (``exif``, ``icc_profile``).
        image: The RGBA Pillow image the pixels were taken from.
    """

    width: int
    height: int
    pixels: np.ndarray
    format: Optional[str]
    info: Dict[str, bytes] = field(default_factory=dict)
    image: Optional[Image.Image] = field(default=None, repr=False, compare=False)


def decode(data: bytes, file_name: Optional[str] = None) -> ImageBuffer:
    """Parse encoded image bytes into an ImageBuffer.

    Raises:
        DecodeError: the bytes are empty, unrecognised, truncated or exceed
            Pillow's decompression-bomb limit.
    """
    if not data:
        raise DecodeError("empty file", file_name)
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, Image.DecompressionBombError) as exc:
        raise DecodeError(f"not a supported image ({exc})", file_name) from exc
    except (OSError, ValueError, SyntaxError) as exc:
        raise DecodeError(f"failed to decode image ({exc})", file_name) from exc

    detected = _DECODED_AS.get(img.format) or normalize_format(img.format)
    if detected is None and img.format:
        detected = img.format.lower()
    info = {key: img.info[key] for key in ("exif", "icc_profile") if img.info.get(key)}

    rgba = img.convert("RGBA")
    pixels = np.asarray(rgba, dtype=np.uint8).copy()
    pixels.flags.writeable = False

    return ImageBuffer(
        width=rgba.width,
        height=rgba.height,
        pixels=pixels,
        format=detected,
        info=info,
        image=rgba,
    )


class Surface:
    """A fixed-size RGBA drawing surface, initially fully transparent."""

    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        self._image = Image.new("RGBA", (width, height), (0, 0, 0, 0))

    def draw_scaled(self, src: ImageBuffer, src_rect: Rect, dest_rect: Rect) -> None:
        """Scale the ``src_rect`` region of ``src`` into ``dest_rect``."""
        sx, sy, sw, sh = src_rect
        dx, dy, dw, dh = dest_rect
        size = (max(1, round(dw)), max(1, round(dh)))
        source = src.image if src.image is not None else Image.fromarray(src.pixels, "RGBA")
        scaled = source.resize(
            size,
            Image.Resampling.LANCZOS,
            box=(sx, sy, sx + sw, sy + sh),
        )
        self._image.alpha_composite(scaled, dest=(round(dx), round(dy)))

    def get_pixels(self) -> np.ndarray:
        """Return a writable copy of the surface as an (h, w, 4) uint8 array."""
        return np.array(self._image, dtype=np.uint8)

    def put_pixels(self, pixels: np.ndarray) -> None:
        if pixels.shape != (self.height, self.width, 4):
            raise ValueError(
                f"pixel buffer shape {pixels.shape} does not match surface "
                f"{self.width}x{self.height}"
            )
        self._image = Image.fromarray(np.ascontiguousarray(pixels, dtype=np.uint8), "RGBA")

    def encode(self, fmt: str, quality: float, exif: Optional[bytes] = None) -> bytes:
        """Serialise the surface.

        Args:
            fmt: Target format, a FORMATS key.
            quality: 0..1; used only by lossy encoders.
            exif: Raw EXIF block to embed where the format supports it.

        Raises:
            EncodeError: unknown format or the encoder failed.
        """
        target = FORMATS.get(fmt)
        if target is None:
            raise EncodeError(f"unsupported output format '{fmt}'")

        img = self._image
        if fmt == "gif":
            img = img.convert("RGB").convert("P", palette=Image.Palette.ADAPTIVE)
        elif not target.alpha:
            img = img.convert("RGB")

        options = {}
        if target.lossy:
            options["quality"] = max(1, min(100, round(quality * 100)))
        if fmt == "png":
            options["optimize"] = True
        if exif and target.exif:
            options["exif"] = exif

        buf = io.BytesIO()
        try:
            img.save(buf, format=target.pil_name, **options)
        except (OSError, ValueError, KeyError) as exc:
            raise EncodeError(f"failed to encode {fmt} ({exc})") from exc
        return buf.getvalue()


def create_surface(width: int, height: int, max_pixels: int = DefaultConfig.MAX_SURFACE_PIXELS) -> Surface:
    """Allocate a drawing surface.

    Raises:
        SurfaceError: non-positive size, area above ``max_pixels`` or the
            allocation itself failed.
    """
    if width < 1 or height < 1:
        raise SurfaceError(f"cannot allocate a {width}x{height} surface")
    if width * height > max_pixels:
        raise SurfaceError(
            f"surface {width}x{height} exceeds the {max_pixels} pixel limit"
        )
    try:
        return Surface(width, height)
    except (MemoryError, ValueError) as exc:
        raise SurfaceError(f"cannot allocate a {width}x{height} surface ({exc})") from exc
