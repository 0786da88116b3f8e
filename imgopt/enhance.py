"""
Pixel-level enhancement.

Three fixed stages applied to an (h, w, 4) uint8 RGBA array, RGB only:

  1. contrast (+20%) with a +15 brightness offset   – in place
  2. saturation (+20%) around ITU-R luma             – in place
  3. 3x3 sharpen convolution                          – snapshot -> live

Alpha is never touched.
"""

import numpy as np

CONTRAST = 1.2
BRIGHTNESS = 15
SATURATION = 1.2
CONTRAST_FACTOR = (259 * (CONTRAST + 255)) / (255 * (259 - CONTRAST))

LUMA_WEIGHTS = (0.2989, 0.587, 0.114)

SHARPEN_KERNEL = np.array(
    [
        [0, -1, 0],
        [-1, 5, -1],
        [0, -1, 0],
    ],
    dtype=np.int32,
)


def clamp(values: np.ndarray) -> np.ndarray:
    """Round half up, then saturate to 0..255 as uint8."""
    return np.clip(np.floor(values + 0.5), 0, 255).astype(np.uint8)


def adjust_contrast(pixels: np.ndarray) -> np.ndarray:
    rgb = pixels[..., :3].astype(np.float64)
    pixels[..., :3] = clamp(CONTRAST_FACTOR * (rgb - 128) + 128 + BRIGHTNESS)
    return pixels


def adjust_saturation(pixels: np.ndarray) -> np.ndarray:
    """Push each channel away from the pixel's luma.

    Luma is taken from the values currently in ``pixels``, i.e. after the
    contrast stage when run through enhance().
    """
    rgb = pixels[..., :3].astype(np.float64)
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]
    gray = LUMA_WEIGHTS[0] * r + LUMA_WEIGHTS[1] * g + LUMA_WEIGHTS[2] * b
    gray = gray[..., np.newaxis]
    pixels[..., :3] = clamp(gray + SATURATION * (rgb - gray))
    return pixels


def sharpen(snapshot: np.ndarray, target: np.ndarray) -> np.ndarray:
    """Convolve ``snapshot`` with SHARPEN_KERNEL and write into ``target``.

    Reads come exclusively from ``snapshot`` so freshly written neighbours
    never feed back into the kernel. The one-pixel border of ``target`` is
    left as is.
    """
    height, width = snapshot.shape[:2]
    if height < 3 or width < 3:
        return target

    src = snapshot[..., :3].astype(np.int32)
    acc = np.zeros((height - 2, width - 2, 3), dtype=np.int32)
    for ky in range(3):
        for kx in range(3):
            weight = SHARPEN_KERNEL[ky, kx]
            if weight:
                acc += weight * src[ky:ky + height - 2, kx:kx + width - 2]

    target[1:-1, 1:-1, :3] = np.clip(acc, 0, 255).astype(np.uint8)
    return target


def enhance(pixels: np.ndarray) -> np.ndarray:
    """Run contrast -> saturation -> sharpen on ``pixels`` in place."""
    adjust_contrast(pixels)
    adjust_saturation(pixels)
    snapshot = pixels.copy()
    return sharpen(snapshot, pixels)
