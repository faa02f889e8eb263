from __future__ import annotations
import logging
import threading
from typing import Tuple
from models.uploaded_image import UploadedImage
from store.intents import AnalyzeRequested
from store.reducer import reduce
from store.state import AnalysisState

logger = logging.getLogger(__name__)


class ResultStore:
    """
    Single source of truth for one user session.
    Dispatches are serialised; the lock is never held across a model call.
    """

    def __init__(self, session_id: str, state: AnalysisState = None):
        self.session_id = session_id
        self._state = state or AnalysisState()
        self._lock = threading.RLock()

    @property
    def state(self) -> AnalysisState:
        return self._state

    def dispatch(self, intent) -> AnalysisState:
        with self._lock:
            before = self._state
            after = reduce(before, intent)
            if after is before and hasattr(intent, "generation"):
                logger.info(
                    f"[{self.session_id}] Discarded stale {type(intent).__name__} "
                    f"(generation {intent.generation}, current {before.generation})"
                )
            else:
                logger.debug(
                    f"[{self.session_id}] {type(intent).__name__}: "
                    f"{before.phase.value} -> {after.phase.value}"
                )
            self._state = after
            return after

    def begin_analysis(self) -> Tuple[int, UploadedImage]:
        """
        Move to ANALYZING and return the generation the pending call is tagged with.

        Raises:
            InvalidTransitionError: if the session is not READY
        """
        with self._lock:
            state = self.dispatch(AnalyzeRequested())
            return state.generation, state.image
