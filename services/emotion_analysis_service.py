from __future__ import annotations
import logging
from pydantic import ValidationError
from models.analysis_schema import AnalysisResponseSchema
from models.emotion import AnalysisResponse
from repositories.vision_repository import VisionRepository

logger = logging.getLogger(__name__)

ANALYSIS_FAILED_MESSAGE = "Analysis failed. Please try a different image or check your API key."

ANALYSIS_PROMPT = """
Analyze every human face visible in this image.

Return ONLY a JSON object with exactly this structure:

{
  "faces": [
    {
      "box_2d": [ymin, xmin, ymax, xmax],
      "emotions": [{"label": "<emotion>", "confidence": <number between 0 and 1>}],
      "summary": "<one or two sentences describing the expression>",
      "apparentAge": "<estimated age range, e.g. 25-30>",
      "genderEstimate": "<apparent gender presentation>"
    }
  ],
  "overallAtmosphere": "<one sentence on the collective mood of the image>"
}

Rules:
- box_2d coordinates are normalized to a 0-1000 scale relative to the image size.
- List the emotions of each face in descending order of confidence.
- Use nuanced emotion labels (e.g. joy, contentment, surprise, anxiety, contempt), not only the basic six.
- apparentAge and genderEstimate may be omitted when they cannot be judged.
- If there are no faces, return an empty "faces" list and still describe the atmosphere.
"""


class AnalysisError(RuntimeError):
    """
    Any failure of an analysis call. The message is always the generic
    user-facing one; the real cause is chained as __cause__.
    """

    def __init__(self, message: str = ANALYSIS_FAILED_MESSAGE):
        super().__init__(message)


class EmotionAnalysisService:
    """
    Sends an image to the vision model and parses its JSON answer into
    AnalysisResponse objects. One call per invocation, no retries.
    """

    def __init__(self, vision_repository: VisionRepository = None, prompt: str = ANALYSIS_PROMPT):
        self._vision_repository = vision_repository
        self.prompt = prompt

    @property
    def vision_repository(self) -> VisionRepository:
        # Created on first use so the app boots without model credentials
        if self._vision_repository is None:
            self._vision_repository = VisionRepository()
        return self._vision_repository

    @staticmethod
    def _candidate_documents(model_text: str):
        """
        Yield the text to validate: the raw output first, then the outermost
        {...} slice to get past markdown fences or stray prose.
        """
        text = model_text.strip()
        yield text
        start = text.find("{")
        end = text.rfind("}")
        if start != -1 and end > start and (start, end) != (0, len(text) - 1):
            yield text[start:end + 1]

    def parse_response(self, model_text: str) -> AnalysisResponse:
        """
        Validate the model output against the response schema.

        Raises:
            ValueError: if no candidate document validates
        """
        if not isinstance(model_text, str) or not model_text.strip():
            raise ValueError("Model returned no text")

        last_error = None
        for document in self._candidate_documents(model_text):
            try:
                return AnalysisResponseSchema.model_validate_json(document).to_domain()
            except ValidationError as err:
                last_error = err
        raise ValueError(f"Model response does not match the analysis schema: {last_error}")

    def analyze(self, image_base64: str, mime_type: str = "image/jpeg") -> AnalysisResponse:
        """
        Analyze the faces of one image.

        Args:
            image_base64 (str): Encoded file bytes without the data-URI prefix
            mime_type (str): MIME type of the encoded bytes
        Returns:
            AnalysisResponse
        Raises:
            AnalysisError: for missing credentials, transport failures and
                malformed output alike
        """
        try:
            model_text = self.vision_repository.generate_json(self.prompt, image_base64, mime_type)
            response = self.parse_response(model_text)
        except Exception as err:
            logger.error(f"Emotion analysis failed ({type(err).__name__}): {err}")
            raise AnalysisError() from err

        logger.info(f"Emotion analysis complete: {response.face_count} face(s)")
        return response
