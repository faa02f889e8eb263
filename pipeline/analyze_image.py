"""
Analyze Image Pipeline
Runs one analysis for a session: tag the request, call the vision model with
the store unlocked, then apply the outcome only if it is still current.
"""

import logging

from services.emotion_analysis_service import AnalysisError, EmotionAnalysisService
from services.image_intake_service import ImageIntakeService
from store.intents import AnalysisFailed, AnalysisSucceeded
from store.result_store import ResultStore
from store.state import AnalysisState

logger = logging.getLogger(__name__)


def analyze_image(
    store: ResultStore,
    analysis_service: EmotionAnalysisService,
    intake_service: ImageIntakeService,
) -> AnalysisState:
    """
    Analyze the image currently held by the store.

    Analysis failures become FAILED state and are not raised. A result that
    arrives after a reset or a new upload is discarded by the store.

    Args:
        store: The session's ResultStore (must be READY)
        analysis_service: Client for the vision model
        intake_service: Provides the base64 payload of the uploaded image

    Returns:
        AnalysisState: The store state after the outcome was applied

    Raises:
        InvalidTransitionError: if the store is not READY
    """
    generation, image = store.begin_analysis()
    logger.info(f"[{store.session_id}] Analyzing {image.filename} (generation {generation})")

    try:
        response = analysis_service.analyze(intake_service.payload_for(image), image.mime_type)
    except AnalysisError as err:
        return store.dispatch(AnalysisFailed(generation=generation, message=str(err)))

    return store.dispatch(AnalysisSucceeded(generation=generation, response=response))
