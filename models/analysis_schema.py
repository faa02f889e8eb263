"""
Wire schema for the JSON document the vision model is asked to return.

Validation is strict: a document with a wrong type, a missing key or an
out-of-range value is rejected as a whole rather than partially accepted.
"""
from __future__ import annotations
from typing import List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.emotion import AnalysisResponse, Emotion, FaceDetection

BOX_SCALE = 1000.0


class EmotionSchema(BaseModel):
    model_config = ConfigDict(strict=True)

    label: str = Field(min_length=1)
    confidence: float = Field(ge=0.0, le=1.0)

    def to_domain(self) -> Emotion:
        return Emotion(label=self.label, confidence=float(self.confidence))


class FaceDetectionSchema(BaseModel):
    model_config = ConfigDict(strict=True, populate_by_name=True)

    box_2d: Tuple[float, float, float, float]
    emotions: List[EmotionSchema]
    summary: str
    apparent_age: Optional[Union[str, int]] = Field(default=None, alias="apparentAge")
    gender_estimate: Optional[str] = Field(default=None, alias="genderEstimate")

    @field_validator("box_2d")
    @classmethod
    def _box_on_grid(cls, box):
        if any(v < 0.0 or v > BOX_SCALE for v in box):
            raise ValueError(f"box_2d values must lie in [0, {BOX_SCALE:g}]: {box}")
        ymin, xmin, ymax, xmax = box
        if ymin > ymax or xmin > xmax:
            raise ValueError(f"box_2d must be ordered (ymin, xmin, ymax, xmax): {box}")
        return box

    @field_validator("apparent_age")
    @classmethod
    def _age_as_text(cls, value):
        return None if value is None else str(value)

    def to_domain(self) -> FaceDetection:
        return FaceDetection(
            box_2d=tuple(float(v) for v in self.box_2d),
            emotions=tuple(e.to_domain() for e in self.emotions),
            summary=self.summary,
            apparent_age=self.apparent_age or None,
            gender_estimate=self.gender_estimate or None,
        )


class AnalysisResponseSchema(BaseModel):
    model_config = ConfigDict(strict=True, populate_by_name=True)

    faces: List[FaceDetectionSchema]
    overall_atmosphere: str = Field(alias="overallAtmosphere")

    def to_domain(self) -> AnalysisResponse:
        return AnalysisResponse(
            faces=tuple(f.to_domain() for f in self.faces),
            overall_atmosphere=self.overall_atmosphere,
        )
