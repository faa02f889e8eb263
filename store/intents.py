from __future__ import annotations
from dataclasses import dataclass
from models.emotion import AnalysisResponse
from models.uploaded_image import UploadedImage


@dataclass(frozen=True)
class ImageAccepted:
    image: UploadedImage


@dataclass(frozen=True)
class AnalyzeRequested:
    pass


@dataclass(frozen=True)
class AnalysisSucceeded:
    generation: int
    response: AnalysisResponse


@dataclass(frozen=True)
class AnalysisFailed:
    generation: int
    message: str


@dataclass(frozen=True)
class FaceSelected:
    index: int


@dataclass(frozen=True)
class ResetRequested:
    pass
