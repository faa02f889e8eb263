import base64
import os
from dotenv import load_dotenv
from models.vision_engine import VisionEngine

# Load environment variables
load_dotenv()


class VisionRepository:
    """
    Thin wrapper around VisionEngine that sends one image plus instruction
    and returns the raw model text.
    """

    def __init__(self, engine: VisionEngine = None):
        self.engine = engine or VisionEngine()  # Singleton is handled inside
        self.timeout = float(os.getenv("GEMINI_TIMEOUT_SECONDS", "60"))

    def generate_json(self, prompt: str, image_base64: str, mime_type: str) -> str:
        image_part = {"mime_type": mime_type, "data": base64.b64decode(image_base64)}
        response = self.engine.model.generate_content(
            [image_part, prompt],
            generation_config={"response_mime_type": "application/json"},
            request_options={"timeout": self.timeout},
        )
        return response.text
