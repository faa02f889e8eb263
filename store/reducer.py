"""
Pure state transitions for an analysis session.

reduce() never mutates its input. Intents that the current phase does not
allow raise InvalidTransitionError; completions that belong to an older
generation are dropped and the state comes back unchanged.
"""
from __future__ import annotations
from dataclasses import replace
from store.intents import (
    AnalysisFailed,
    AnalysisSucceeded,
    AnalyzeRequested,
    FaceSelected,
    ImageAccepted,
    ResetRequested,
)
from store.state import AnalysisState, Phase


class InvalidTransitionError(ValueError):
    """The intent is not allowed in the current phase."""


def is_stale(state: AnalysisState, generation: int) -> bool:
    return state.phase is not Phase.ANALYZING or generation != state.generation


def reduce(state: AnalysisState, intent) -> AnalysisState:
    if isinstance(intent, ImageAccepted):
        return AnalysisState(
            phase=Phase.READY,
            image=intent.image,
            generation=state.generation + 1,
        )

    if isinstance(intent, AnalyzeRequested):
        if state.phase is not Phase.READY:
            raise InvalidTransitionError(f"Cannot analyze in phase '{state.phase.value}'")
        return replace(
            state,
            phase=Phase.ANALYZING,
            error=None,
            generation=state.generation + 1,
        )

    if isinstance(intent, AnalysisSucceeded):
        if is_stale(state, intent.generation):
            return state
        return replace(
            state,
            phase=Phase.DONE,
            result=intent.response,
            error=None,
            selected_face_index=0 if intent.response.faces else None,
        )

    if isinstance(intent, AnalysisFailed):
        if is_stale(state, intent.generation):
            return state
        return replace(
            state,
            phase=Phase.FAILED,
            result=None,
            error=intent.message,
            selected_face_index=None,
        )

    if isinstance(intent, FaceSelected):
        if state.phase is not Phase.DONE:
            raise InvalidTransitionError(f"Cannot select a face in phase '{state.phase.value}'")
        face_count = state.result.face_count
        if isinstance(intent.index, bool) or not isinstance(intent.index, int) \
                or not 0 <= intent.index < face_count:
            raise InvalidTransitionError(f"Face index {intent.index!r} out of range for {face_count} face(s)")
        return replace(state, selected_face_index=intent.index)

    if isinstance(intent, ResetRequested):
        return AnalysisState(generation=state.generation + 1)

    raise TypeError(f"Unknown intent: {intent!r}")
