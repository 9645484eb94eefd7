from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

from ..core.errors import AnalysisError, AnalysisInProgressError
from ..core.state import StateStore
from ..core.telemetry import Telemetry
from ..vision.pipeline import AnalysisClient
from ..vision.preprocess import encode_image
from ..vision.prompt import PromptProvider
from ..vision.schema import Language
from .render import render_view, share_text


class Phase(str, Enum):
    IDLE = "idle"
    ENCODING = "encoding"
    IMAGE_SELECTED = "image_selected"
    SUBMITTING = "submitting"


class AnalysisSession:
    """Attempt state machine for the single user of this process.

    Input adapters (HTTP routes, tests) call the command methods; nothing here
    knows about requests or the page. At most one attempt runs at a time and a
    second ``submit`` while one is in flight is rejected.
    """

    def __init__(
        self,
        store: StateStore,
        prompts: PromptProvider,
        analyzer: AnalysisClient,
        telemetry: Telemetry,
    ):
        self.store = store
        self.prompts = prompts
        self.analyzer = analyzer
        self.telemetry = telemetry
        self.phase = Phase.IDLE
        self.error: Optional[BaseException] = None

    @property
    def can_analyze(self) -> bool:
        if self.phase in (Phase.ENCODING, Phase.SUBMITTING):
            return False
        return self.store.get().selected_image is not None

    def view(self) -> Dict[str, Any]:
        return render_view(
            self.store.get(),
            phase=self.phase.value,
            can_analyze=self.can_analyze,
            error=self.error,
        )

    async def select_image(self, raw: bytes, mime_type: str | None = None, filename: str | None = None) -> Dict[str, Any]:
        if self.phase == Phase.SUBMITTING:
            raise AnalysisInProgressError("An analysis is running; wait for it to finish before changing the image")

        # enter ENCODING before the first await so a concurrent submit sees it
        self.phase = Phase.ENCODING
        self.error = None
        self.store.update(selected_image=None, last_result=None)

        await self.telemetry.log("Image selected", "INFO", {"name": filename, "type": mime_type, "size": len(raw)})
        try:
            image = await encode_image(raw, mime_type)
        except AnalysisError as e:
            await self._fail(e, "Image could not be encoded")
            return self.view()

        self.store.update(selected_image=image)
        self.phase = Phase.IMAGE_SELECTED
        return self.view()

    async def submit(self, user_context: str = "") -> Dict[str, Any]:
        image = self.store.get().selected_image
        if image is None:
            raise ValueError("No image selected")
        if self.phase in (Phase.SUBMITTING, Phase.ENCODING):
            raise AnalysisInProgressError("An analysis attempt is already in progress")

        self.phase = Phase.SUBMITTING
        self.error = None
        self.store.update(last_result=None)
        await self.telemetry.log("Analysis execution started", "INFO")

        try:
            base_prompt = await self.prompts.get(self.store)
            context = (user_context or "").strip()
            await self.telemetry.log(
                "Sending prompt to model",
                "PROMPT",
                {"model": self.analyzer.model, "prompt": base_prompt, "userContext": context},
            )
            result = await self.analyzer.analyze(image, base_prompt, context)
        except AnalysisError as e:
            await self._fail(e, "Analysis execution failed")
            return self.view()
        finally:
            # never leave the analyze control disabled
            if self.phase == Phase.SUBMITTING:
                self.phase = Phase.IDLE

        self.store.update(last_result=result)
        await self.telemetry.log(
            "Analysis executed successfully",
            "SUCCESS",
            {"returnedCode": "200_OK", "usage": result.usage, "output": result.model_dump(exclude={"usage"})},
        )
        return self.view()

    def set_language(self, lang: Language | str) -> Dict[str, Any]:
        self.store.update(language=Language(lang))
        return self.view()

    def toggle_language(self) -> Dict[str, Any]:
        current = self.store.get().language
        return self.set_language(Language.BG if current == Language.EN else Language.EN)

    def share(self) -> Optional[str]:
        state = self.store.get()
        if state.last_result is None:
            return None
        return share_text(state.last_result, state.language.value)

    def reset(self) -> Dict[str, Any]:
        if self.phase == Phase.SUBMITTING:
            raise AnalysisInProgressError("Cannot reset while an analysis is running")
        self.store.reset()
        self.phase = Phase.IDLE
        self.error = None
        return self.view()

    async def _fail(self, e: AnalysisError, event: str) -> None:
        self.error = e
        self.phase = Phase.IDLE
        await self.telemetry.log(event, "ERROR", {"returnedCode": e.code, "error": f"{type(e).__name__}: {e}"})
