from __future__ import annotations
import os
from dotenv import load_dotenv
from presentation.view_model import scale_box
from repositories.image_repository import ImageRepository
from store.state import AnalysisState

# Load environment variables
load_dotenv()

JPEG_QUALITY = int(os.getenv("JPEG_QUALITY", "90"))


def render_annotated(state: AnalysisState, image_repository: ImageRepository = None) -> bytes:
    """
    Return the session image as JPEG with one box per detected face.
    The selected face is drawn in the highlight colour.

    Raises:
        ValueError: if the state holds no image
    """
    if state.image is None:
        raise ValueError("No image to annotate")

    image_repository = image_repository or ImageRepository()
    image = state.image
    faces = state.result.faces if state.result is not None else ()
    boxes = [scale_box(face.box_2d, image.width, image.height) for face in faces]
    return image_repository.draw_boxes(
        image.data,
        boxes,
        highlight=state.selected_face_index,
        quality=JPEG_QUALITY,
    )
