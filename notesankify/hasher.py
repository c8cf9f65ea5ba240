"""Content hash of a rendered page.

Pixels are scanned row-major. Each pixel contributes the decimal
concatenation of its 16-bit premultiplied R, G, B, A values (8-bit
channel * 257, colour scaled by alpha), which is what most imaging
libraries report for an RGBA sample. The stream is SHA-256'd.
"""

from __future__ import annotations

import hashlib
import logging

import numpy as np
from PIL import Image

SHORT_HASH_LEN = 8

_MAX16 = 0xFFFF

# Decimal text for every 16-bit value, so rows can be joined without formatting.
_DECIMAL = [str(v).encode("ascii") for v in range(_MAX16 + 1)]

logger = logging.getLogger(__name__)


def premultiplied_rgba16(image: Image.Image) -> np.ndarray:
    """(H, W, 4) uint32 array of premultiplied 16-bit channel values."""
    if image.mode == "RGBa":
        # Already premultiplied at 8 bits.
        arr = np.asarray(image, dtype=np.uint32)
        return arr * 0x101

    rgba = np.asarray(image.convert("RGBA"), dtype=np.uint32) * 0x101
    alpha = rgba[..., 3:4]
    out = rgba.copy()
    out[..., :3] = rgba[..., :3] * alpha // _MAX16
    return out


def image_hash(image: Image.Image, *, log: logging.Logger | None = None) -> str:
    """sha256 hex digest of the image's pixel content.

    Identical pixels give an identical digest regardless of where the
    image came from. The same picture stored with different dimensions
    does not.
    """
    values = premultiplied_rgba16(image)
    hasher = hashlib.sha256()
    decimal = _DECIMAL.__getitem__
    for row in values.reshape(values.shape[0], -1):
        hasher.update(b"".join(map(decimal, row.tolist())))
    digest = hasher.hexdigest()
    (log or logger).debug("hashed %dx%d image: %s", image.width, image.height, digest)
    return digest


def short_hash(content_hash: str) -> str:
    return content_hash[:SHORT_HASH_LEN]
