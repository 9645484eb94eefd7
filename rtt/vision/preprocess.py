from __future__ import annotations

import asyncio
import base64
import io
from typing import Iterable, Optional, Tuple

from PIL import Image, UnidentifiedImageError

from ..core.errors import DecodeError
from .schema import EncodedImage


def _sniff_mime(raw: bytes) -> str:
    """Open and verify the image; return the MIME type of the detected format."""
    try:
        with Image.open(io.BytesIO(raw)) as img:
            fmt = img.format
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
        raise DecodeError(f"Invalid image file: {e}") from e

    mime = Image.MIME.get(fmt or "")
    if not mime:
        raise DecodeError(f"Unsupported image format: {fmt}")
    return mime


async def encode_image(raw: bytes, mime_type: Optional[str] = None) -> EncodedImage:
    """Turn an uploaded/pasted file into the inline payload sent to the model.

    The bytes go out unchanged; Pillow is only used to prove they decode and to
    fill in the MIME type when the browser did not send a usable one.
    """
    if not raw:
        raise DecodeError("Image file is empty")

    declared = (mime_type or "").strip().lower()
    if declared and not declared.startswith("image/") and declared != "application/octet-stream":
        raise DecodeError(f"Not an image: {declared}")

    detected = await asyncio.to_thread(_sniff_mime, raw)
    mime = declared if declared.startswith("image/") else detected

    data = base64.b64encode(raw).decode("utf-8")
    if not data:
        raise DecodeError("Could not extract base64 data from file")
    return EncodedImage(data=data, mime_type=mime)


def first_image_item(items: Iterable[Tuple[str, bytes]]) -> Optional[Tuple[str, bytes]]:
    """Clipboard paste: the first ``(mime_type, bytes)`` item that is an image."""
    for mime, raw in items:
        if "image" in (mime or "") and raw:
            return mime, raw
    return None


def decode_image(image: EncodedImage) -> Image.Image:
    try:
        raw = base64.b64decode(image.data)
        return Image.open(io.BytesIO(raw)).convert("RGB")
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise DecodeError(f"Stored image could not be decoded: {e}") from e


def to_data_url(image: EncodedImage) -> str:
    return f"data:{image.mime_type};base64,{image.data}"
