"""
app/services/image_formats.py

Signature-based detection of the image formats accepted as record assets.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ImageFormat:
    name: str
    extension: str
    mime_type: str
    signatures: tuple[bytes, ...]

    def matches(self, content: bytes) -> bool:
        return any(content.startswith(signature) for signature in self.signatures)


GIF = ImageFormat(name="gif", extension="gif", mime_type="image/gif", signatures=(b"GIF87a", b"GIF89a"))
JPEG = ImageFormat(name="jpeg", extension="jpg", mime_type="image/jpeg", signatures=(b"\xff\xd8\xff",))
PNG = ImageFormat(name="png", extension="png", mime_type="image/png", signatures=(b"\x89PNG\r\n\x1a\n",))

SUPPORTED_IMAGE_FORMATS: tuple[ImageFormat, ...] = (GIF, JPEG, PNG)


def sniff_image_format(content: bytes) -> ImageFormat | None:
    """
    Return the supported format whose signature prefixes ``content``, if any.
    """

    for image_format in SUPPORTED_IMAGE_FORMATS:
        if image_format.matches(content):
            return image_format
    return None


def asset_file_name(stem: str, image_format: ImageFormat, *, fallback: str = "asset") -> str:
    return f"{stem or fallback}.{image_format.extension}"
