"""
Helpers for the image references the form sends: data URLs produced by
FileReader.readAsDataURL, or plain remote URLs.
"""

import base64
import binascii
import logging
from io import BytesIO
from typing import Iterable, List, Optional, Tuple

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)


def has_content(ref: Optional[str]) -> bool:
    return bool(ref and ref.strip())


def present(refs: Optional[Iterable[Optional[str]]]) -> List[str]:
    """Drops empty slots, keeping the order of the rest."""
    return [ref.strip() for ref in refs or [] if has_content(ref)]


def is_data_url(ref: str) -> bool:
    return ref.startswith("data:")


def decode_data_url(ref: str) -> bytes:
    """
    Decodes the base64 payload of a data URL (or a bare base64 string),
    padding it first if the browser trimmed the trailing '='.
    """
    payload = ref.split(",", 1)[1] if is_data_url(ref) and "," in ref else ref
    payload = payload.strip()
    padding = len(payload) % 4
    if padding:
        payload += "=" * (4 - padding)
    return base64.b64decode(payload)


def image_dimensions(ref: Optional[str]) -> Optional[Tuple[int, int]]:
    """Pixel (width, height) of an inline image, or None for remote or unreadable refs."""
    if not has_content(ref) or not is_data_url(ref):
        return None
    try:
        with Image.open(BytesIO(decode_data_url(ref))) as img:
            return img.size
    except (binascii.Error, ValueError, UnidentifiedImageError, OSError, Image.DecompressionBombError) as e:
        logger.debug("Could not read dimensions of inline image: %s", e)
        return None


def describe(ref: str) -> str:
    """Short description of an image ref that is safe to log."""
    if is_data_url(ref):
        header = ref.split(",", 1)[0]
        return f"{header[len('data:'):]} ({len(ref)} chars)"
    return ref
