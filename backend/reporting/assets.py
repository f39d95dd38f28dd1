"""
Uploaded images -> inline data URLs for the body template.

Also exposes a header-only PNG/JPEG size probe used as a layout hint for the
cover photo. Nothing here decodes pixels and nothing here raises on bad input.
"""
from __future__ import annotations

import base64
import logging
import mimetypes
import struct
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Optional, Tuple

from config import MAX_PROPERTY_IMAGES

logger = logging.getLogger(__name__)

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
JPEG_SOI = b"\xff\xd8"

# SOFn markers carry frame size; C4 (DHT), C8 (JPG) and CC (DAC) do not
_JPEG_SOF_MARKERS = frozenset(range(0xC0, 0xD0)) - {0xC4, 0xC8, 0xCC}
# Markers with no length field
_JPEG_STANDALONE = frozenset(range(0xD0, 0xD8)) | {0x01}

Dimensions = Tuple[int, int]


@dataclass(frozen=True)
class UploadedAsset:
    """One uploaded file as received from the multipart request."""
    filename: str
    content_type: str
    data: bytes


@dataclass(frozen=True)
class EmbeddedAsset:
    data_url: str = ""
    mime_type: str = ""
    dimensions: Optional[Dimensions] = None

    def __bool__(self) -> bool:
        return bool(self.data_url)


EMPTY_ASSET = EmbeddedAsset()


@dataclass(frozen=True)
class AssetBundle:
    cover_image: EmbeddedAsset = EMPTY_ASSET
    logo: EmbeddedAsset = EMPTY_ASSET
    footer_logo: EmbeddedAsset = EMPTY_ASSET
    property_images: Tuple[EmbeddedAsset, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class MemoUploads:
    """All file slots of one request. Any slot may be empty."""
    cover_image: Optional[UploadedAsset] = None
    logo: Optional[UploadedAsset] = None
    footer_logo: Optional[UploadedAsset] = None
    property_images: Tuple[UploadedAsset, ...] = ()


def _sniff_mime(data: bytes) -> str:
    if data.startswith(PNG_SIGNATURE):
        return "image/png"
    if data.startswith(JPEG_SOI):
        return "image/jpeg"
    if data.startswith((b"GIF87a", b"GIF89a")):
        return "image/gif"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return ""


def declared_format(upload: UploadedAsset) -> str:
    """'png', 'jpeg' or '' based only on what the client declared (type or suffix)."""
    ctype = (upload.content_type or "").lower()
    if "png" in ctype:
        return "png"
    if "jpeg" in ctype or "jpg" in ctype:
        return "jpeg"
    suffix = PurePath(upload.filename or "").suffix.lower()
    if suffix == ".png":
        return "png"
    if suffix in (".jpg", ".jpeg"):
        return "jpeg"
    return ""


def resolve_mime(upload: UploadedAsset) -> str:
    ctype = (upload.content_type or "").split(";")[0].strip().lower()
    if ctype.startswith("image/"):
        return ctype
    guessed, _ = mimetypes.guess_type(upload.filename or "")
    if guessed and guessed.startswith("image/"):
        return guessed
    return _sniff_mime(upload.data) or "application/octet-stream"


def _png_dimensions(data: bytes) -> Optional[Dimensions]:
    # signature(8) + IHDR length(4) + "IHDR"(4) + width(4) + height(4)
    if len(data) < 24 or not data.startswith(PNG_SIGNATURE) or data[12:16] != b"IHDR":
        return None
    width, height = struct.unpack(">II", data[16:24])
    return (width, height) if width and height else None


def _jpeg_dimensions(data: bytes) -> Optional[Dimensions]:
    if not data.startswith(JPEG_SOI):
        return None
    pos = 2
    size = len(data)
    while pos < size:
        if data[pos] != 0xFF:
            return None
        # Skip fill bytes
        while pos < size and data[pos] == 0xFF:
            pos += 1
        if pos >= size:
            return None
        marker = data[pos]
        pos += 1
        if marker in _JPEG_STANDALONE:
            continue
        if marker == 0xD9 or pos + 2 > size:
            return None
        (seg_len,) = struct.unpack(">H", data[pos:pos + 2])
        if seg_len < 2:
            return None
        if marker in _JPEG_SOF_MARKERS:
            # length(2) precision(1) height(2) width(2)
            if pos + 7 > size:
                return None
            height, width = struct.unpack(">HH", data[pos + 3:pos + 7])
            return (width, height) if width and height else None
        pos += seg_len
    return None


def probe_dimensions(data: bytes, fmt: str) -> Optional[Dimensions]:
    """Pixel (width, height) read from PNG/JPEG headers, or None when unknown."""
    if not data:
        return None
    if fmt == "png":
        return _png_dimensions(data)
    if fmt == "jpeg":
        return _jpeg_dimensions(data)
    return None


def to_data_url(upload: Optional[UploadedAsset]) -> EmbeddedAsset:
    if upload is None or not upload.data:
        return EMPTY_ASSET
    mime = resolve_mime(upload)
    payload = base64.b64encode(upload.data).decode("ascii")
    return EmbeddedAsset(
        data_url=f"data:{mime};base64,{payload}",
        mime_type=mime,
        dimensions=probe_dimensions(upload.data, declared_format(upload)),
    )


def encode_assets(uploads: MemoUploads) -> AssetBundle:
    images = [u for u in uploads.property_images if u and u.data]
    if len(images) > MAX_PROPERTY_IMAGES:
        logger.warning(
            "[assets] %d property images supplied, keeping first %d",
            len(images), MAX_PROPERTY_IMAGES,
        )
        images = images[:MAX_PROPERTY_IMAGES]
    return AssetBundle(
        cover_image=to_data_url(uploads.cover_image),
        logo=to_data_url(uploads.logo),
        footer_logo=to_data_url(uploads.footer_logo),
        property_images=tuple(to_data_url(u) for u in images),
    )


def choose_cover_fit(dimensions: Optional[Dimensions], frame_ratio: float, tolerance: float) -> str:
    """
    'crop' fills the cover frame and is only chosen when the photo's aspect ratio is
    within tolerance of the frame; anything else (including unknown size) is 'contain'.
    """
    if not dimensions or frame_ratio <= 0:
        return "contain"
    width, height = dimensions
    if width <= 0 or height <= 0:
        return "contain"
    ratio = width / height
    if abs(ratio - frame_ratio) / frame_ratio <= tolerance:
        return "crop"
    return "contain"
