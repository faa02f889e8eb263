import json

import pytest

from models.vision_engine import MissingCredentialsError
from services.emotion_analysis_service import (
    ANALYSIS_FAILED_MESSAGE,
    AnalysisError,
    EmotionAnalysisService,
)


@pytest.fixture
def service():
    return EmotionAnalysisService(vision_repository=None)


def face(**overrides):
    data = {
        "box_2d": [100, 100, 400, 400],
        "emotions": [{"label": "joy", "confidence": 0.92}],
        "summary": "smiling",
    }
    data.update(overrides)
    return data


def document(*faces, atmosphere="cheerful"):
    return json.dumps({"faces": list(faces), "overallAtmosphere": atmosphere})


def test_parses_minimal_face(service):
    response = service.parse_response(document(face()))

    assert response.overall_atmosphere == "cheerful"
    assert response.face_count == 1
    detection = response.faces[0]
    assert detection.box_2d == (100.0, 100.0, 400.0, 400.0)
    assert detection.emotions[0].label == "joy"
    assert detection.emotions[0].confidence == pytest.approx(0.92)
    assert detection.summary == "smiling"
    assert detection.apparent_age is None
    assert detection.gender_estimate is None


def test_parses_optional_fields(service, two_face_text):
    response = service.parse_response(two_face_text)

    first, second = response.faces
    assert first.apparent_age == "25-30"
    assert first.gender_estimate == "female"
    assert second.apparent_age == "40"
    assert second.gender_estimate is None


def test_keeps_source_order(service, two_face_text):
    response = service.parse_response(two_face_text)
    labels = [e.label for e in response.faces[0].emotions]
    assert labels == ["joy", "surprise", "contentment", "neutral"]


def test_no_faces(service):
    response = service.parse_response(document(atmosphere="an empty room"))
    assert response.faces == ()
    assert response.overall_atmosphere == "an empty room"


def test_tolerates_code_fence(service):
    text = "```json\n" + document(face()) + "\n```"
    assert service.parse_response(text).face_count == 1


@pytest.mark.parametrize("text", [
    "",
    "   ",
    "not json at all",
    "{\"faces\": [",
    json.dumps({"faces": []}),
    json.dumps({"overallAtmosphere": "calm"}),
    document(face(box_2d=[100, 100, 400])),
    document(face(box_2d=[100, 100, 400, 1200])),
    document(face(box_2d=[500, 100, 400, 400])),
    document(face(box_2d=["100", 100, 400, 400])),
    document(face(emotions=[{"label": "joy", "confidence": 1.5}])),
    document(face(emotions=[{"label": "joy", "confidence": "high"}])),
    document(face(emotions=[{"label": "", "confidence": 0.5}])),
    document(face(emotions=[{"confidence": 0.5}])),
    document(face(summary=None)),
    document({"emotions": [], "summary": "no box"}),
    json.dumps({"faces": "none", "overallAtmosphere": "calm"}),
    json.dumps([]),
])
def test_rejects_malformed_documents(service, text):
    with pytest.raises(ValueError):
        service.parse_response(text)


def test_partially_valid_document_fails_whole(service):
    text = document(face(), face(emotions=[{"label": "fear", "confidence": -0.1}]))
    with pytest.raises(ValueError):
        service.parse_response(text)


def test_analyze_sends_prompt_and_payload(fake_vision_repository, joyful_text):
    repo = fake_vision_repository(text=joyful_text)
    service = EmotionAnalysisService(repo)

    response = service.analyze("QUJD", "image/webp")

    prompt, payload, mime_type = repo.calls[0]
    assert "box_2d" in prompt and "overallAtmosphere" in prompt
    assert payload == "QUJD"
    assert mime_type == "image/webp"
    assert response.faces[0].emotions[0].label == "joy"


@pytest.mark.parametrize("error", [
    ConnectionError("network down"),
    TimeoutError(),
    MissingCredentialsError("GEMINI_API_KEY is not set"),
    RuntimeError("quota exceeded"),
])
def test_every_failure_has_same_message(fake_vision_repository, error):
    service = EmotionAnalysisService(fake_vision_repository(error=error))

    with pytest.raises(AnalysisError) as exc_info:
        service.analyze("QUJD")

    assert str(exc_info.value) == ANALYSIS_FAILED_MESSAGE
    assert exc_info.value.__cause__ is error


@pytest.mark.parametrize("text", [None, "", "garbage", json.dumps({"faces": []})])
def test_bad_output_is_analysis_error(fake_vision_repository, text):
    service = EmotionAnalysisService(fake_vision_repository(text=text))

    with pytest.raises(AnalysisError, match="Analysis failed"):
        service.analyze("QUJD")


def test_missing_api_key_fails_analysis(monkeypatch):
    from models.vision_engine import VisionEngine
    from repositories.vision_repository import VisionRepository

    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.setattr(VisionEngine, "_instance", None)
    service = EmotionAnalysisService(VisionRepository())

    with pytest.raises(AnalysisError) as exc_info:
        service.analyze("QUJD", "image/png")

    assert isinstance(exc_info.value.__cause__, MissingCredentialsError)
