"""Image encoding for model prompts."""

from __future__ import annotations

import base64
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

# Leading characters of the base64 form of each format's magic bytes
_BASE64_MEDIA_PREFIXES = {
    "iVBORw0KGgo": "image/png",
    "/9j/": "image/jpeg",
    "R0lGODlh": "image/gif",
    "R0lGODdh": "image/gif",
    "UklGR": "image/webp",
}


def encode_image_file(path: str | Path) -> str:
    """Return the base64 text of a file's bytes."""
    return base64.b64encode(Path(path).read_bytes()).decode("ascii")


def detect_media_type(image_base64: str) -> str:
    """Guess an image MIME type from its base64 prefix, defaulting to PNG."""
    for prefix, media_type in _BASE64_MEDIA_PREFIXES.items():
        if image_base64.startswith(prefix):
            return media_type
    logger.warning("Could not determine image type from base64 prefix, defaulting to image/png")
    return "image/png"
