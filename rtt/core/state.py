from __future__ import annotations

import threading
from typing import Optional

from pydantic import BaseModel

from ..vision.schema import AnalysisResult, EncodedImage, Language, PRIMARY_LANGUAGE


class ApplicationState(BaseModel):
    selected_image: Optional[EncodedImage] = None
    language: Language = PRIMARY_LANGUAGE
    last_result: Optional[AnalysisResult] = None
    cached_prompt: Optional[str] = None


class StateStore:
    """Holds the one ApplicationState of a session.

    Readers get a deep copy; writers go through ``update`` which merges the
    given fields (last write wins per field), validates the merged state and
    swaps it in under a single lock.
    """

    def __init__(self, initial: ApplicationState | None = None):
        self._initial = initial or ApplicationState()
        self._state = self._initial.model_copy(deep=True)
        self._lock = threading.Lock()

    def get(self) -> ApplicationState:
        with self._lock:
            return self._state.model_copy(deep=True)

    def update(self, **fields) -> ApplicationState:
        unknown = set(fields) - set(ApplicationState.model_fields)
        if unknown:
            raise TypeError(f"Unknown state field(s): {', '.join(sorted(unknown))}")
        with self._lock:
            # pydantic ValidationError (a ValueError) leaves the live state untouched
            self._state = ApplicationState.model_validate({**dict(self._state), **fields})
            return self._state.model_copy(deep=True)

    def reset(self) -> None:
        with self._lock:
            self._state = self._initial.model_copy(deep=True)
