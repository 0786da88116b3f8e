"""
imgopt – image optimisation core for the kogniflow optimizer API.

Two independent units:
  transform() – decode, resize/crop, enhance and re-encode one image.
  ImageAnalyzer – colour statistics plus placeholder "AI" heuristics.
"""

from .analyzer import AnalysisResult, ImageAnalyzer
from .errors import (
    DecodeError,
    EncodeError,
    ImageOptimizerError,
    SettingsError,
    SurfaceError,
)
from .pipeline import TransformResult, compute_dimensions, transform
from .settings import OptimizationSettings, ResizeSettings

__all__ = [
    "AnalysisResult",
    "DecodeError",
    "EncodeError",
    "ImageAnalyzer",
    "ImageOptimizerError",
    "OptimizationSettings",
    "ResizeSettings",
    "SettingsError",
    "SurfaceError",
    "TransformResult",
    "compute_dimensions",
    "transform",
]
