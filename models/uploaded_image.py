from __future__ import annotations
from dataclasses import dataclass


@dataclass(frozen=True)
class UploadedImage:
    """
    Simple data object: the uploaded file bytes plus a displayable data URI.
    No Pillow logic outside the image repository.
    """
    filename: str
    mime_type: str      # e.g. "image/png"
    data: bytes         # Original file bytes, untouched.
    preview: str        # "data:<mime>;base64,<payload>"
    width: int          # Pixel dimensions of the decoded image.
    height: int

    @property
    def size_bytes(self) -> int:
        return len(self.data)
