"""
Tests for the merge-update state store.

Run with: pytest tests/test_state.py -v
"""

import pytest

from rtt.core.state import ApplicationState, StateStore
from rtt.vision.schema import AnalysisResult, ChartAnalysis, EncodedImage, GroundingSource, Language


class TestStateStore:

    def test_defaults(self):
        state = StateStore().get()
        assert state.selected_image is None
        assert state.language == Language.EN
        assert state.last_result is None
        assert state.cached_prompt is None

    def test_update_merges_fields(self):
        store = StateStore()
        image = EncodedImage(data="aGVsbG8=", mime_type="image/png")
        store.update(selected_image=image)
        store.update(cached_prompt="prompt")

        state = store.get()
        assert state.selected_image == image
        assert state.cached_prompt == "prompt"

    def test_last_write_wins(self):
        store = StateStore()
        store.update(cached_prompt="a")
        store.update(cached_prompt="b")
        assert store.get().cached_prompt == "b"

    def test_language_coerced_from_string(self):
        store = StateStore()
        store.update(language="bg")
        assert store.get().language is Language.BG

    def test_get_returns_copy(self):
        store = StateStore()
        view = store.get()
        view.cached_prompt = "tampered"
        assert store.get().cached_prompt is None

    def test_get_copies_nested_result(self):
        store = StateStore()
        store.update(last_result=AnalysisResult(structured_fields=ChartAnalysis(summary="x")))

        view = store.get()
        view.last_result.citation_sources.append(GroundingSource(uri="https://x.example"))
        view.last_result.structured_fields.extra["note"] = "tampered"

        live = store.get().last_result
        assert live.citation_sources == []
        assert live.structured_fields.extra == {}

    def test_update_validates_values(self):
        store = StateStore()
        store.update(cached_prompt="keep")
        with pytest.raises(ValueError):
            store.update(last_result="not a result", cached_prompt="lost")
        with pytest.raises(ValueError):
            store.update(language="de")

        state = store.get()
        assert state.last_result is None
        assert state.cached_prompt == "keep"
        assert state.language == Language.EN

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError, match="bogus"):
            StateStore().update(bogus=1)

    def test_reset_restores_initial(self):
        store = StateStore(ApplicationState(language=Language.BG))
        result = AnalysisResult(structured_fields=ChartAnalysis(summary="x"))
        store.update(last_result=result, language=Language.EN, cached_prompt="p")
        store.reset()

        state = store.get()
        assert state.language == Language.BG
        assert state.last_result is None
        assert state.cached_prompt is None
