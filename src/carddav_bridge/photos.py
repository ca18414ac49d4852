"""photos.py — PHOTO handling: inlining external references and applying the
Apple X-ABCROP-RECTANGLE crop hint.

The crop parameter looks like this:

    X-ABCROP-RECTANGLE=ABClipRect_1&60&179&181&181&qZ54yqewvBZj2mycxrnqsA==

  - 1st number: horizontal offset (X) from the left
  - 2nd number: vertical offset (Y) from the *bottom*
  - 3rd number: crop width
  - 4th number: crop height

The trailing base64 blob is opaque and ignored.
"""
from __future__ import annotations

import io
import logging
import re
from typing import Protocol

import vobject
from PIL import Image, UnidentifiedImageError

from .model import CROP_PARAM, LocalRecord
from .transport import Collection

logger = logging.getLogger(__name__)

MAX_PHOTO_SIZE = 256

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


class PhotoCropper(Protocol):
    def crop(self, data: bytes, x: int, y: int, w: int, h: int) -> bytes | None: ...


class PillowCropper:
    """Crops with Pillow, resampling to at most MAX_PHOTO_SIZE per side and
    encoding the result as PNG."""

    def __init__(self, max_size: int = MAX_PHOTO_SIZE):
        self.max_size = max_size

    def crop(self, data: bytes, x: int, y: int, w: int, h: int) -> bytes | None:
        if w <= 0 or h <= 0:
            logger.warning("Ignoring crop rectangle with extent %dx%d", w, h)
            return None
        dw = min(w, self.max_size)
        dh = min(h, self.max_size)

        try:
            src = Image.open(io.BytesIO(data))
            src.load()
        except (UnidentifiedImageError, OSError) as e:
            logger.warning("Cannot crop photo, image data not readable: %s", e)
            return None

        if src.mode not in ("RGB", "RGBA"):
            src = src.convert("RGBA")

        top = src.height - y - h
        region = src.crop((x, top, x + w, top + h))
        dst = region.resize((dw, dh), Image.Resampling.LANCZOS)

        out = io.BytesIO()
        dst.save(out, format="PNG")
        return out.getvalue()


def default_cropper() -> PhotoCropper:
    return PillowCropper()


def _intval(s: str) -> int:
    m = _LEADING_INT.match(s)
    return int(m.group(1)) if m else 0


def parse_crop_rectangle(value: str) -> tuple[int, int, int, int]:
    """Return (x, y, w, h) from a crop parameter; missing or non-numeric
    parts are 0."""
    parts = value.split("&")
    nums = [_intval(parts[i]) if i < len(parts) else 0 for i in range(1, 5)]
    return nums[0], nums[1], nums[2], nums[3]


def crop_photo(photo: vobject.base.ContentLine, cropper: PhotoCropper | None) -> bytes | None:
    """Crop a PHOTO property according to its crop hint.

    Returns None if there is no hint, no cropper, or the photo is not inline
    binary data.
    """
    if cropper is None:
        return None
    hint = photo.params.get(CROP_PARAM)
    if not hint:
        return None
    data = photo.value
    if not isinstance(data, bytes):
        return None
    return cropper.crop(data, *parse_crop_rectangle(hint[0]))


def is_uri_photo(photo: vobject.base.ContentLine) -> bool:
    kind = photo.params.get("VALUE")
    return bool(kind) and kind[0].lower() == "uri"


def download_photo(record: LocalRecord, collection: Collection) -> bool:
    uri = record["photo"]
    try:
        logger.info("downloadPhoto: Attempt to download photo from %s", uri)
        response = collection.download_resource(uri)
        record["photo"] = response["body"]
    except Exception as e:
        logger.warning("downloadPhoto: Attempt to download photo from %s failed: %s", uri, e)
        return False
    return True


def materialize_photo(
    record: LocalRecord,
    vcard: vobject.base.Component,
    collection: Collection,
) -> bool:
    """Inline an external PHOTO reference into both the record and the card.

    On success the card's PHOTO is rewritten as base64 binary data, keeping
    all parameters except VALUE, and True is returned. A failed download is
    logged and leaves both representations untouched.
    """
    photo = vcard.contents.get("photo", [None])[0]
    if photo is None or not is_uri_photo(photo):
        return False
    if not download_photo(record, collection):
        return False

    params = {k: list(v) for k, v in photo.params.items() if k != "VALUE"}
    group = photo.group
    vcard.remove(photo)

    inlined = vcard.add("photo")
    inlined.group = group
    inlined.params = params
    inlined.encoding_param = "b"
    inlined.value = record["photo"]
    return True
