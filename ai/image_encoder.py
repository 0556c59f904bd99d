"""
ai/image_encoder.py
-------------------
Wraps an uploaded image into the inline payload sent to Gemini.
The bytes are passed through untouched; only the media type is resolved.
"""

import mimetypes
from dataclasses import dataclass
from typing import Optional

DEFAULT_MIME_TYPE = "image/jpeg"  # Telegram re-encodes photos as JPEG


@dataclass(frozen=True)
class ImagePayload:
    """Raw image bytes plus the declared media type."""
    data: bytes
    mime_type: str

    def as_part(self) -> dict:
        """Inline-data part in the shape `generate_content` accepts."""
        return {"mime_type": self.mime_type, "data": self.data}


def encode_image(data: bytes, mime_type: Optional[str] = None,
                 filename: Optional[str] = None) -> ImagePayload:
    """
    Build an ImagePayload from uploaded bytes.

    Args:
        data: The file content as downloaded.
        mime_type: Media type declared by the uploader, if any.
        filename: Original file name, used to guess the type when none is declared.

    Returns:
        An ImagePayload ready for the extraction client.
    """
    resolved = mime_type
    if not resolved and filename:
        resolved, _ = mimetypes.guess_type(filename)
    return ImagePayload(data=bytes(data), mime_type=resolved or DEFAULT_MIME_TYPE)
