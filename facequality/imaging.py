from __future__ import annotations

import logging
from io import BytesIO
from typing import Optional

from PIL import Image

from .errors import DegenerateCrop
from .types import BoundingBox

log = logging.getLogger(__name__)

RESIZE_SIZE = 256
CROP_SIZE = 224


def _crop(image: Image.Image, left: int, top: int, right: int, bottom: int) -> Optional[Image.Image]:
    width, height = image.size
    left = max(left, 0)
    top = max(top, 0)
    right = min(right, width)
    bottom = min(bottom, height)
    if right - left <= 0 or bottom - top <= 0:
        log.debug("Invalid crop dimensions", extra={"crop_width": right - left, "crop_height": bottom - top})
        return None
    return image.crop((left, top, right, bottom))


def crop_face_tightly(image: Image.Image, box: BoundingBox) -> Optional[Image.Image]:
    """Crop exactly to the detector box, clamped to the image; None if empty."""
    if image.width <= 0 or image.height <= 0 or box.is_degenerate:
        return None
    return _crop(image, int(box.left), int(box.top), int(box.right), int(box.bottom))


def crop_face_with_margin(image: Image.Image, box: BoundingBox, margin: float = 0.1) -> Optional[Image.Image]:
    """Crop the detector box expanded by `margin` of its size on every side."""
    if image.width <= 0 or image.height <= 0 or box.is_degenerate:
        return None
    dx = int(box.width * margin)
    dy = int(box.height * margin)
    return _crop(image, int(box.left) - dx, int(box.top) - dy, int(box.right) + dx, int(box.bottom) + dy)


def crop_face(image: Image.Image, box: BoundingBox, margin: float = 0.1) -> Image.Image:
    face = crop_face_with_margin(image, box, margin)
    if face is None:
        log.debug("Margin crop failed, trying tight crop")
        face = crop_face_tightly(image, box)
    if face is None:
        raise DegenerateCrop(box, "box is empty or lies outside the image")
    return face


def resize_and_center_crop(image: Image.Image, resize: int = RESIZE_SIZE, crop: int = CROP_SIZE) -> Image.Image:
    resized = image.convert("RGB").resize((resize, resize), Image.BILINEAR)
    offset = (resize - crop) // 2
    return resized.crop((offset, offset, offset + crop, offset + crop))


def compress_image(image: Image.Image, quality: int = 80) -> Image.Image:
    buf = BytesIO()
    image.convert("RGB").save(buf, format="JPEG", quality=quality)
    buf.seek(0)
    compressed = Image.open(buf)
    compressed.load()
    return compressed
