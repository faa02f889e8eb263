from __future__ import annotations
import base64
import io
from pathlib import Path
from typing import Tuple, Union
from PIL import Image as PILImage, ImageDraw, UnidentifiedImageError
from dotenv import load_dotenv
import os

# Load environment variables
load_dotenv()

# Pillow format name -> MIME type sent to the model and used in previews
FORMAT_MIME_TYPES = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
    "GIF": "image/gif",
    "BMP": "image/bmp",
}


class ImageReadError(ValueError):
    """Bytes could not be decoded as an image."""


class ImageRepository:
    """
    Handles decoding, encoding and drawing for uploaded image bytes.
    """
    def __init__(self):
        exts = os.getenv("VALID_IMAGE_EXTENSIONS", "jpg,jpeg,png,webp,gif,bmp")
        self.VALID_EXTS = {"." + ext.strip().lower().lstrip(".") for ext in exts.split(",") if ext.strip()}

    def has_valid_extension(self, filename: Union[str, Path]) -> bool:
        return Path(filename).suffix.lower() in self.VALID_EXTS

    @staticmethod
    def decode(data: bytes) -> Tuple[str, int, int]:
        """
        Check that the bytes form a readable image.

        Returns:
            (format, width, height) as reported by Pillow.
        """
        try:
            with PILImage.open(io.BytesIO(data)) as probe:
                probe.verify()
            # verify() leaves the object unusable, reopen for the header fields
            with PILImage.open(io.BytesIO(data)) as img:
                return img.format, img.width, img.height
        except (UnidentifiedImageError, PILImage.DecompressionBombError, OSError, SyntaxError, ValueError) as err:
            raise ImageReadError(f"Image unreadable: {err}") from err

    @staticmethod
    def mime_type_for(image_format: str | None) -> str | None:
        return FORMAT_MIME_TYPES.get((image_format or "").upper())

    @staticmethod
    def to_data_uri(data: bytes, mime_type: str) -> str:
        return f"data:{mime_type};base64,{base64.b64encode(data).decode('utf-8')}"

    @staticmethod
    def strip_data_uri(preview: str) -> str:
        """Return the base64 payload of a data URI (or the string itself if it has no prefix)."""
        if preview.startswith("data:") and "," in preview:
            return preview.split(",", 1)[1]
        return preview

    @staticmethod
    def draw_boxes(data: bytes, boxes, *, highlight: int | None = None,
                   color: str = "#2563eb", highlight_color: str = "#f59e0b",
                   quality: int = 90) -> bytes:
        """
        Draw labelled rectangles on a copy of the image and return JPEG bytes.

        Args:
            boxes: iterable of (left, top, right, bottom) pixel boxes
            highlight: index of the box drawn in highlight_color
        """
        with PILImage.open(io.BytesIO(data)) as src:
            canvas = src.convert("RGB")
        draw = ImageDraw.Draw(canvas)
        line_width = max(2, round(min(canvas.size) / 200))

        for i, (left, top, right, bottom) in enumerate(boxes):
            outline = highlight_color if i == highlight else color
            draw.rectangle((left, top, right, bottom), outline=outline, width=line_width)
            label = f"Face {i + 1}"
            text_top = max(0, top - 12)
            text_box = draw.textbbox((left, text_top), label)
            draw.rectangle(text_box, fill=outline)
            draw.text((left, text_top), label, fill="white")

        buffer = io.BytesIO()
        canvas.save(buffer, format="JPEG", quality=quality)
        return buffer.getvalue()
