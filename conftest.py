"""
Shared fixtures: in-memory test images.
"""

import io
import random

import numpy as np
import pytest
from PIL import Image


def make_image_bytes(width=100, height=100, color=(128, 64, 32), fmt="JPEG", mode="RGB", **save_kwargs):
    """Return raw bytes of a single-colour image."""
    img = Image.new(mode, (width, height), color)
    buf = io.BytesIO()
    img.save(buf, format=fmt, **save_kwargs)
    return buf.getvalue()


def make_photo_bytes(width, height, fmt="JPEG", seed=7, **save_kwargs):
    """Return bytes of a gradient-plus-noise RGB image, closer to a photo than a flat fill."""
    rng = np.random.default_rng(seed)
    xs = np.linspace(0, 255, width, dtype=np.float32)
    ys = np.linspace(0, 255, height, dtype=np.float32)
    base = np.empty((height, width, 3), dtype=np.float32)
    base[..., 0] = xs[np.newaxis, :]
    base[..., 1] = ys[:, np.newaxis]
    base[..., 2] = (xs[np.newaxis, :] + ys[:, np.newaxis]) / 2
    base += rng.normal(0, 12, size=base.shape).astype(np.float32)
    pixels = np.clip(base, 0, 255).astype(np.uint8)

    buf = io.BytesIO()
    Image.fromarray(pixels, "RGB").save(buf, format=fmt, **save_kwargs)
    return buf.getvalue()


def make_mpo_bytes(width=100, height=100, color=(128, 64, 32)):
    """Return bytes of a two-frame MPO, the JPEG variant stereo and phone cameras write."""
    first = Image.new("RGB", (width, height), color)
    second = Image.new("RGB", (width, height), tuple(255 - c for c in color))
    buf = io.BytesIO()
    first.save(buf, format="MPO", save_all=True, append_images=[second])
    return buf.getvalue()


class FixedRandom:
    """Stand-in random source whose random() always returns ``value``.

    randint/sample/choice are delegated to a seeded random.Random.
    """

    def __init__(self, value, seed=0):
        self.value = value
        self._rng = random.Random(seed)

    def random(self):
        return self.value

    def randint(self, a, b):
        return self._rng.randint(a, b)

    def sample(self, population, k):
        return self._rng.sample(population, k)

    def choice(self, seq):
        return self._rng.choice(seq)


@pytest.fixture
def image_bytes():
    return make_image_bytes


@pytest.fixture
def photo_bytes():
    return make_photo_bytes


@pytest.fixture
def mpo_bytes():
    return make_mpo_bytes


@pytest.fixture
def fixed_random():
    return FixedRandom
