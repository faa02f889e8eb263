from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Emotion:
    label: str          # e.g. "joy", "surprise"
    confidence: float   # [0, 1]


@dataclass(frozen=True)
class FaceDetection:
    """
    One detected face as returned by the vision model.
    Boxes stay on the model's 0-1000 grid; rescale at render time.
    """
    box_2d: Tuple[float, float, float, float]   # (ymin, xmin, ymax, xmax), 0-1000
    emotions: Tuple[Emotion, ...]               # descending confidence by convention
    summary: str
    apparent_age: str | None = None
    gender_estimate: str | None = None


@dataclass(frozen=True)
class AnalysisResponse:
    """
    Result of one analysis call. Replaced wholesale, never patched.
    """
    faces: Tuple[FaceDetection, ...]
    overall_atmosphere: str

    @property
    def face_count(self) -> int:
        return len(self.faces)
