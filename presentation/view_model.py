"""
Pure mapping from AnalysisState to what the page shows.
Nothing here talks to Flask or mutates state.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterable, List, Sequence, Tuple
from models.analysis_schema import BOX_SCALE
from models.emotion import Emotion, FaceDetection
from store.state import AnalysisState, Phase


@dataclass(frozen=True)
class EmotionBar:
    label: str        # capitalised for display
    confidence: float
    percent: int      # rounded confidence * 100


@dataclass(frozen=True)
class FaceBox:
    index: int
    left: int
    top: int
    right: int
    bottom: int
    # Same box as a percentage of the image, for CSS positioning
    left_pct: float
    top_pct: float
    width_pct: float
    height_pct: float
    selected: bool


@dataclass(frozen=True)
class FaceDetailView:
    index: int
    summary: str
    apparent_age: str | None
    gender_estimate: str | None
    emotions: List[EmotionBar]
    top_emotions: List[EmotionBar]


@dataclass(frozen=True)
class FaceBoardView:
    phase: str
    show_upload_prompt: bool
    show_analyze_button: bool
    show_spinner: bool
    show_reset: bool
    image_preview: str | None = None
    image_width: int | None = None
    image_height: int | None = None
    boxes: List[FaceBox] = field(default_factory=list)
    face_selector: List[int] = field(default_factory=list)
    selected_face: FaceDetailView | None = None
    overall_atmosphere: str | None = None
    face_count: int = 0
    error: str | None = None


def scale_box(box_2d: Sequence[float], width: int, height: int) -> Tuple[int, int, int, int]:
    """
    Map a (ymin, xmin, ymax, xmax) box on the 0-1000 grid to pixel
    (left, top, right, bottom) for an image of the given size.
    """
    ymin, xmin, ymax, xmax = box_2d
    return (
        round(xmin / BOX_SCALE * width),
        round(ymin / BOX_SCALE * height),
        round(xmax / BOX_SCALE * width),
        round(ymax / BOX_SCALE * height),
    )


def format_label(label: str) -> str:
    return label[:1].upper() + label[1:]


def emotion_bar(emotion: Emotion) -> EmotionBar:
    return EmotionBar(
        label=format_label(emotion.label),
        confidence=emotion.confidence,
        percent=round(emotion.confidence * 100),
    )


def top_emotions(emotions: Iterable[Emotion], limit: int = 3) -> List[EmotionBar]:
    """Highest-confidence emotions first; equal confidences keep source order."""
    ranked = sorted(emotions, key=lambda e: e.confidence, reverse=True)
    return [emotion_bar(e) for e in ranked[:limit]]


def face_boxes(faces: Sequence[FaceDetection], width: int, height: int,
               selected_index: int | None = None) -> List[FaceBox]:
    boxes = []
    for i, face in enumerate(faces):
        left, top, right, bottom = scale_box(face.box_2d, width, height)
        ymin, xmin, ymax, xmax = face.box_2d
        boxes.append(FaceBox(
            index=i,
            left=left, top=top, right=right, bottom=bottom,
            left_pct=xmin / BOX_SCALE * 100,
            top_pct=ymin / BOX_SCALE * 100,
            width_pct=(xmax - xmin) / BOX_SCALE * 100,
            height_pct=(ymax - ymin) / BOX_SCALE * 100,
            selected=i == selected_index,
        ))
    return boxes


def face_detail(face: FaceDetection, index: int) -> FaceDetailView:
    return FaceDetailView(
        index=index,
        summary=face.summary,
        apparent_age=face.apparent_age,
        gender_estimate=face.gender_estimate,
        emotions=[emotion_bar(e) for e in face.emotions],
        top_emotions=top_emotions(face.emotions),
    )


def build_view(state: AnalysisState) -> FaceBoardView:
    if state.image is None:
        return FaceBoardView(
            phase=state.phase.value,
            show_upload_prompt=True,
            show_analyze_button=False,
            show_spinner=False,
            show_reset=False,
            error=state.error,
        )

    image = state.image
    faces = state.result.faces if state.result is not None else ()
    selected = state.selected_face
    return FaceBoardView(
        phase=state.phase.value,
        show_upload_prompt=False,
        show_analyze_button=state.can_analyze,
        show_spinner=state.phase is Phase.ANALYZING,
        show_reset=True,
        image_preview=image.preview,
        image_width=image.width,
        image_height=image.height,
        boxes=face_boxes(faces, image.width, image.height, state.selected_face_index),
        face_selector=list(range(len(faces))) if len(faces) > 1 else [],
        selected_face=face_detail(selected, state.selected_face_index) if selected else None,
        overall_atmosphere=state.result.overall_atmosphere if state.result else None,
        face_count=len(faces),
        error=state.error,
    )
