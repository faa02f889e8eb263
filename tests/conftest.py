import io
import json

import pytest
from PIL import Image as PILImage

from api_server import create_app
from services.emotion_analysis_service import EmotionAnalysisService
from services.image_intake_service import ImageIntakeService

JOYFUL_RESPONSE = {
    "faces": [
        {
            "box_2d": [100, 100, 400, 400],
            "emotions": [{"label": "joy", "confidence": 0.92}],
            "summary": "smiling",
        }
    ],
    "overallAtmosphere": "cheerful",
}

TWO_FACE_RESPONSE = {
    "faces": [
        {
            "box_2d": [100, 100, 400, 400],
            "emotions": [
                {"label": "joy", "confidence": 0.8},
                {"label": "surprise", "confidence": 0.15},
                {"label": "contentment", "confidence": 0.5},
                {"label": "neutral", "confidence": 0.05},
            ],
            "summary": "broad grin",
            "apparentAge": "25-30",
            "genderEstimate": "female",
        },
        {
            "box_2d": [500, 550, 900, 950],
            "emotions": [{"label": "sadness", "confidence": 0.7}],
            "summary": "downcast eyes",
            "apparentAge": 40,
        },
    ],
    "overallAtmosphere": "mixed feelings at a family dinner",
}


class FakeVisionRepository:
    """Stands in for VisionRepository; records calls and replays a canned outcome."""

    def __init__(self, text=None, error=None, on_call=None):
        self.text = text
        self.error = error
        self.on_call = on_call
        self.calls = []

    def generate_json(self, prompt, image_base64, mime_type):
        self.calls.append((prompt, image_base64, mime_type))
        if self.on_call is not None:
            self.on_call()
        if self.error is not None:
            raise self.error
        return self.text


@pytest.fixture
def fake_vision_repository():
    return FakeVisionRepository


@pytest.fixture
def joyful_text():
    return json.dumps(JOYFUL_RESPONSE)


@pytest.fixture
def two_face_text():
    return json.dumps(TWO_FACE_RESPONSE)


@pytest.fixture
def make_png():
    def _make(width=200, height=100, color=(128, 128, 128)):
        buffer = io.BytesIO()
        PILImage.new("RGB", (width, height), color).save(buffer, format="PNG")
        return buffer.getvalue()
    return _make


@pytest.fixture
def png_bytes(make_png):
    return make_png()


@pytest.fixture
def intake_service():
    return ImageIntakeService()


@pytest.fixture
def uploaded_image(intake_service, png_bytes):
    return intake_service.accept(png_bytes, "photo.png", "image/png")


@pytest.fixture
def vision_repository():
    return FakeVisionRepository(text=json.dumps(JOYFUL_RESPONSE))


@pytest.fixture
def analysis_service(vision_repository):
    return EmotionAnalysisService(vision_repository=vision_repository)


@pytest.fixture
def app(intake_service, analysis_service):
    app = create_app(intake_service=intake_service, analysis_service=analysis_service)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def upload(client, png_bytes):
    """Upload png_bytes through the JSON API and return the response."""
    def _upload(data=None, filename="photo.png", session_id=None):
        form = {"image": (io.BytesIO(png_bytes if data is None else data), filename)}
        if session_id:
            form["session_id"] = session_id
        resp = client.post("/api/upload", data=form, content_type="multipart/form-data")
        return resp
    return _upload
