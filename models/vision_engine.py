from __future__ import annotations
import os
import threading
import google.generativeai as genai
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class MissingCredentialsError(RuntimeError):
    """GEMINI_API_KEY is not configured."""


class VisionEngine:
    """
    Singleton wrapper around a Gemini GenerativeModel.

    The client is configured lazily on first use, so the application starts
    without credentials and every analysis fails until a key is provided.
    """

    _instance: VisionEngine | None = None  # Class-level cache for singleton
    _lock = threading.RLock()

    def __new__(cls, *args, **kwargs):
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._init_engine(*args, **kwargs)
            return cls._instance

    def _init_engine(self, model_name: str = None, api_key: str = None):
        """
        Args:
            model_name (str): Gemini model id. Defaults to GEMINI_MODEL.
            api_key (str): API key. Defaults to GEMINI_API_KEY.
        """
        self.model_name = model_name or os.getenv("GEMINI_MODEL", "gemini-1.5-flash")
        self._api_key = api_key
        self._model = None

    @property
    def model(self) -> genai.GenerativeModel:
        with self._lock:
            if self._model is None:
                api_key = self._api_key or os.getenv("GEMINI_API_KEY")
                if not api_key:
                    raise MissingCredentialsError("GEMINI_API_KEY is not set")
                genai.configure(api_key=api_key)
                self._model = genai.GenerativeModel(self.model_name)
            return self._model
