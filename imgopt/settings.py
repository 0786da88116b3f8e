"""
Optimization settings.

A frozen record enumerating every recognised option with its default.
Request data is parsed and validated once (from_form / from_dict) and the
resulting object is handed unchanged to the pipeline.
"""

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from .config import DefaultConfig
from .errors import SettingsError
from .raster import normalize_format

KEEP_ORIGINAL = "keep-original"


@dataclass(frozen=True)
class ResizeSettings:
    enabled: bool = False
    max_width: int = DefaultConfig.DEFAULT_MAX_WIDTH
    max_height: int = DefaultConfig.DEFAULT_MAX_HEIGHT

    def __post_init__(self):
        if self.max_width < 1 or self.max_height < 1:
            raise SettingsError(
                f"max dimensions must be positive, got {self.max_width}x{self.max_height}"
            )


@dataclass(frozen=True)
class OptimizationSettings:
    """Per-call configuration snapshot.

    Fields:
        quality: Encoder quality 1..100 (lossy formats only).
        convert_to_format: Target format key, or "keep-original".
        resize: Fit-inside bounds.
        smart_crop: Centre-crop heuristic; only used with resize enabled.
        enhance: Run contrast/saturation/sharpen before encoding.
        preserve_metadata: Carry EXIF over to the output where possible.
    """

    quality: int = DefaultConfig.DEFAULT_QUALITY
    convert_to_format: str = KEEP_ORIGINAL
    resize: ResizeSettings = field(default_factory=ResizeSettings)
    smart_crop: bool = False
    enhance: bool = False
    preserve_metadata: bool = False

    def __post_init__(self):
        if not 1 <= self.quality <= 100:
            raise SettingsError(f"quality must be within 1..100, got {self.quality}")
        if self.convert_to_format != KEEP_ORIGINAL and normalize_format(self.convert_to_format) is None:
            raise SettingsError(f"unsupported target format '{self.convert_to_format}'")

    @property
    def target_format(self):
        """Normalised target format key, or None to keep the source format."""
        if self.convert_to_format == KEEP_ORIGINAL:
            return None
        return normalize_format(self.convert_to_format)

    # --- Parsing --------------------------------------------------------------

    @classmethod
    def from_form(cls, form: Mapping[str, Any], defaults: Optional[Mapping[str, Any]] = None) -> "OptimizationSettings":
        """Build settings from flat multipart form fields.

        Field names follow the upload form: quality, convertToFormat (or the
        older convertToWebP=true), resizeImages, maxWidth, maxHeight,
        smartCrop, enhanceImage, preserveMetadata.
        """
        target = form.get("convertToFormat") or KEEP_ORIGINAL
        if _to_bool(form.get("convertToWebP"), "convertToWebP"):
            target = "webp"

        resize = ResizeSettings(
            enabled=_to_bool(form.get("resizeImages"), "resizeImages"),
            max_width=_to_int(form.get("maxWidth"), "maxWidth", _default(defaults, "DEFAULT_MAX_WIDTH")),
            max_height=_to_int(form.get("maxHeight"), "maxHeight", _default(defaults, "DEFAULT_MAX_HEIGHT")),
        )
        return cls(
            quality=_clamp_quality(_to_int(form.get("quality"), "quality", _default(defaults, "DEFAULT_QUALITY"))),
            convert_to_format=target,
            resize=resize,
            smart_crop=_to_bool(form.get("smartCrop"), "smartCrop"),
            enhance=_to_bool(form.get("enhanceImage"), "enhanceImage"),
            preserve_metadata=_to_bool(form.get("preserveMetadata"), "preserveMetadata"),
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], defaults: Optional[Mapping[str, Any]] = None) -> "OptimizationSettings":
        """Build settings from a JSON object with a nested ``resize`` block."""
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise SettingsError("settings must be an object")

        resize_data = data.get("resize") or {}
        if not isinstance(resize_data, Mapping):
            raise SettingsError("resize must be an object")

        target = data.get("convertToFormat") or KEEP_ORIGINAL
        if _to_bool(data.get("convertToWebP"), "convertToWebP"):
            target = "webp"

        resize = ResizeSettings(
            enabled=_to_bool(resize_data.get("enabled"), "resize.enabled"),
            max_width=_to_int(resize_data.get("maxWidth"), "resize.maxWidth", _default(defaults, "DEFAULT_MAX_WIDTH")),
            max_height=_to_int(resize_data.get("maxHeight"), "resize.maxHeight", _default(defaults, "DEFAULT_MAX_HEIGHT")),
        )
        return cls(
            quality=_clamp_quality(_to_int(data.get("quality"), "quality", _default(defaults, "DEFAULT_QUALITY"))),
            convert_to_format=target,
            resize=resize,
            smart_crop=_to_bool(data.get("smartCrop"), "smartCrop"),
            enhance=_to_bool(data.get("enhance"), "enhance"),
            preserve_metadata=_to_bool(data.get("preserveMetadata"), "preserveMetadata"),
        )


def _to_bool(value: Any, name: str) -> bool:
    if value is None or value == "":
        return False
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("true", "1", "yes", "on"):
        return True
    if text in ("false", "0", "no", "off"):
        return False
    raise SettingsError(f"{name} must be true or false, got '{value}'")


def _to_int(value: Any, name: str, default: int) -> int:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise SettingsError(f"{name} must be a number, got '{value}'")
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError) as exc:
        raise SettingsError(f"{name} must be a number, got '{value}'") from exc


def _clamp_quality(quality: int) -> int:
    return max(1, min(100, quality))


def _default(defaults: Optional[Mapping[str, Any]], key: str) -> Any:
    if defaults is not None and key in defaults:
        return defaults[key]
    return getattr(DefaultConfig, key)
