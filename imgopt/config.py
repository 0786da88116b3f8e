"""Default application configuration.

Loaded with ``app.config.from_object``; any key can be overridden from the
environment with an ``IMGOPT_`` prefix, e.g. ``IMGOPT_LOG_LEVEL=DEBUG``.
"""


class DefaultConfig:
    # Maximum allowed upload size (16 MB)
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024

    ALLOWED_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "bmp", "webp", "tif", "tiff"}

    DEFAULT_QUALITY = 80
    DEFAULT_MAX_WIDTH = 1920
    DEFAULT_MAX_HEIGHT = 1080

    # Largest drawing surface we are willing to allocate (~ 16k x 16k)
    MAX_SURFACE_PIXELS = 268_435_456

    LOG_LEVEL = "INFO"
