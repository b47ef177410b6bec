"""
Cover image resolution for listings.

A cover is supplied either as a URL or as raw image bytes. URLs are stored as
given once their scheme is checked. Bytes are decoded with Pillow, downscaled
into a bounding box with LANCZOS resampling, re-encoded and embedded as a
base64 ``data:`` URL so the listing stays self-contained inside the snapshot.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from io import BytesIO
from urllib.parse import urlparse

from PIL import Image, ImageOps, UnidentifiedImageError

from .errors import CoverUploadFailedError

logger = logging.getLogger(__name__)

MAX_COVER_BYTES = 5 * 1024 * 1024  # 5MB safety ceiling


@dataclass(frozen=True, slots=True)
class CoverOptions:
    """
    Limits applied when embedding cover images.

    Attributes
    ----------
    max_width, max_height:
        Bounding box the image is scaled down into, preserving aspect ratio.
    max_bytes:
        Largest accepted input size.
    jpeg_quality:
        Quality used when re-encoding as JPEG.
    """

    max_width: int = 600
    max_height: int = 900
    max_bytes: int = MAX_COVER_BYTES
    jpeg_quality: int = 85


@dataclass(frozen=True, slots=True)
class CoverSource:
    """A cover supplied by the caller: exactly one of `url` or `data`."""

    url: str | None = None
    data: bytes | None = None

    def __post_init__(self) -> None:
        if (self.url is None) == (self.data is None):
            raise ValueError("CoverSource requires exactly one of url or data")

    @classmethod
    def from_url(cls, url: str) -> "CoverSource":
        return cls(url=url)

    @classmethod
    def from_bytes(cls, data: bytes) -> "CoverSource":
        return cls(data=data)


def _choose_format(mode: str) -> tuple[str, str]:
    """Return (Pillow format, MIME type); PNG keeps transparency, JPEG otherwise."""
    mode = (mode or "").upper()
    if "A" in mode or mode == "P":
        return "PNG", "image/png"
    return "JPEG", "image/jpeg"


def _prepare_image(img: Image.Image, out_fmt: str) -> Image.Image:
    if out_fmt == "JPEG" and img.mode != "RGB":
        return img.convert("RGB")
    if out_fmt == "PNG" and img.mode == "P":
        return img.convert("RGBA")
    return img


def _check_url(url: str) -> str:
    cleaned = url.strip()
    if cleaned.startswith("data:"):
        if not cleaned.startswith("data:image/"):
            raise CoverUploadFailedError("Embedded cover must be an image data URL.")
        return cleaned
    parsed = urlparse(cleaned)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise CoverUploadFailedError("Cover URL must use http or https.")
    return cleaned


def _embed_bytes(data: bytes, options: CoverOptions) -> str:
    if not data:
        raise CoverUploadFailedError("Cover image is empty.")
    if len(data) > options.max_bytes:
        raise CoverUploadFailedError(
            f"Cover image is too large ({len(data)} bytes, limit {options.max_bytes})."
        )

    try:
        with Image.open(BytesIO(data)) as img:
            img.load()
            out_fmt, mime = _choose_format(img.mode)
            box = (options.max_width, options.max_height)
            if img.width > box[0] or img.height > box[1]:
                img = ImageOps.contain(img, box, Image.Resampling.LANCZOS)
            prepared = _prepare_image(img, out_fmt)

            buffer = BytesIO()
            if out_fmt == "JPEG":
                prepared.save(buffer, format=out_fmt, quality=options.jpeg_quality, optimize=True)
            else:
                prepared.save(buffer, format=out_fmt, optimize=True)
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as exc:
        raise CoverUploadFailedError(f"Cover image could not be processed: {exc}") from exc

    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:{mime};base64,{encoded}"


def resolve_cover(source: CoverSource, *, options: CoverOptions | None = None) -> str:
    """
    Resolve a cover source to the string stored on the listing.

    Parameters
    ----------
    source:
        URL or raw image bytes.
    options:
        Size limits for embedded images.

    Returns
    -------
    str
        An http(s) URL or a ``data:image/...;base64,`` URL.

    Raises
    ------
    CoverUploadFailedError
        If the URL scheme is not allowed or the bytes are not a usable image.
    """
    opts = options or CoverOptions()
    if source.url is not None:
        return _check_url(source.url)

    resolved = _embed_bytes(source.data or b"", opts)
    logger.debug("Embedded cover image (%d bytes in, %d chars out)", len(source.data or b""), len(resolved))
    return resolved
