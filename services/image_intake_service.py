from pathlib import Path
import logging
import os
from dotenv import load_dotenv
from models.uploaded_image import UploadedImage
from repositories.image_repository import ImageRepository, ImageReadError

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class ImageIntakeError(ValueError):
    """An uploaded file was rejected; the message is safe to show to the user."""


class ImageIntakeService:
    """
    Turns an uploaded file into an UploadedImage.
    Rejections raise ImageIntakeError and never touch session state.
    """

    def __init__(self, image_repository: ImageRepository = None):
        self.image_repository = image_repository or ImageRepository()
        self.MAX_UPLOAD_MB = float(os.getenv("MAX_UPLOAD_SIZE_MB", "10"))
        self.MAX_UPLOAD_BYTES = int(self.MAX_UPLOAD_MB * 1024 * 1024)

    def accept(self, data: bytes, filename: str, mime_type: str = None) -> UploadedImage:
        """
        Validate an uploaded file and build its UploadedImage.

        Args:
            data (bytes): Raw file contents
            filename (str): Client-side file name, used for the extension check
            mime_type (str): MIME type sent by the client, if any
        Returns:
            UploadedImage with a data-URI preview
        """
        filename = Path(filename or "").name
        if not filename:
            raise ImageIntakeError("No file selected")
        if not self.image_repository.has_valid_extension(filename):
            raise ImageIntakeError(f"Unsupported file type: {filename}")
        if not data:
            raise ImageIntakeError("Uploaded file is empty")
        if len(data) > self.MAX_UPLOAD_BYTES:
            raise ImageIntakeError(f"File too large. Maximum size is {self.MAX_UPLOAD_MB:g}MB.")

        try:
            image_format, width, height = self.image_repository.decode(data)
        except ImageReadError as err:
            logger.warning(f"Rejected upload {filename}: {err}")
            raise ImageIntakeError("File could not be read as an image") from err

        # Trust the decoded format over whatever the browser claimed
        detected = self.image_repository.mime_type_for(image_format)
        mime_type = detected or mime_type or "application/octet-stream"
        if not mime_type.startswith("image/"):
            raise ImageIntakeError(f"Unsupported image format: {image_format}")

        logger.info(f"Accepted upload {filename}: {width}x{height} {mime_type}, {len(data)} bytes")
        return UploadedImage(
            filename=filename,
            mime_type=mime_type,
            data=data,
            preview=self.image_repository.to_data_uri(data, mime_type),
            width=width,
            height=height,
        )

    def payload_for(self, image: UploadedImage) -> str:
        """Base64 payload of the preview with the data-URI prefix stripped."""
        return self.image_repository.strip_data_uri(image.preview)
