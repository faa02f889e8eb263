from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from models.emotion import AnalysisResponse, FaceDetection
from models.uploaded_image import UploadedImage


class Phase(str, Enum):
    IDLE = "idle"            # no image
    READY = "ready"          # image present, no result
    ANALYZING = "analyzing"  # call in flight
    DONE = "done"            # result present
    FAILED = "failed"        # error present, image kept


@dataclass(frozen=True)
class AnalysisState:
    """
    Everything one session shows. Every transition builds a new instance.
    """
    phase: Phase = Phase.IDLE
    image: UploadedImage | None = None
    result: AnalysisResponse | None = None
    error: str | None = None
    selected_face_index: int | None = None  # None or 0 <= i < len(result.faces)
    generation: int = 0                      # bumped whenever a pending analysis goes stale

    @property
    def selected_face(self) -> FaceDetection | None:
        if self.result is None or self.selected_face_index is None:
            return None
        return self.result.faces[self.selected_face_index]

    @property
    def can_analyze(self) -> bool:
        return self.phase is Phase.READY
