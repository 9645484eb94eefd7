from __future__ import annotations

import asyncio
import base64
from typing import Any, List, Tuple

import openai
from google import genai
from google.genai import types
from openai import AsyncOpenAI

from ..core.config import Settings
from ..core.errors import AnalysisError, CredentialError, RequestRejectedError, TransportError
from .extract import extract_json
from .preprocess import to_data_url
from .prompt import compose_prompt
from .schema import RESPONSE_SCHEMA, AnalysisResult, ChartAnalysis, EncodedImage, GroundingSource

DEFAULT_MODELS = {
    "gemini": "gemini-2.5-flash",
    "openai": "gpt-4o-mini",
}


def _usage_meta(resp, *, model_fallback: str | None = None) -> dict[str, Any]:
    # OpenAI: usage.prompt_tokens / completion_tokens; Gemini: usage_metadata.*_token_count
    usage = getattr(resp, "usage", None)
    if usage is not None:
        return {
            "model": getattr(resp, "model", None) or model_fallback,
            "prompt_tokens": getattr(usage, "prompt_tokens", None),
            "completion_tokens": getattr(usage, "completion_tokens", None),
            "total_tokens": getattr(usage, "total_tokens", None),
        }
    usage = getattr(resp, "usage_metadata", None)
    return {
        "model": getattr(resp, "model_version", None) or model_fallback,
        "prompt_tokens": getattr(usage, "prompt_token_count", None) if usage is not None else None,
        "completion_tokens": getattr(usage, "candidates_token_count", None) if usage is not None else None,
        "total_tokens": getattr(usage, "total_token_count", None) if usage is not None else None,
    }


def grounding_sources(resp) -> List[GroundingSource]:
    """Citations from ``candidates[0].grounding_metadata.grounding_chunks[].web``."""
    candidates = getattr(resp, "candidates", None) or []
    if not candidates:
        return []
    meta = getattr(candidates[0], "grounding_metadata", None)
    chunks = getattr(meta, "grounding_chunks", None) or []

    out: List[GroundingSource] = []
    for chunk in chunks:
        web = getattr(chunk, "web", None)
        uri = getattr(web, "uri", None)
        if not isinstance(uri, str) or not uri.strip():
            continue
        title = getattr(web, "title", None)
        out.append(GroundingSource(uri=uri.strip(), title=title.strip() if isinstance(title, str) else ""))
    return out


def classify_provider_error(e: Exception) -> AnalysisError:
    """Map an SDK/transport exception onto the analysis error taxonomy."""
    message = str(e)
    detail = getattr(e, "message", None)
    if isinstance(detail, str) and detail not in message:
        message = f"{message} {detail}"

    status = getattr(e, "code", None)
    if not isinstance(status, int):
        status = getattr(e, "status_code", None)

    if (
        "API key not valid" in message
        or isinstance(e, (openai.AuthenticationError, openai.PermissionDeniedError))
        or status in (401, 403)
    ):
        return CredentialError(message)
    if isinstance(status, int) and 400 <= status < 500:
        return RequestRejectedError(message, status_code=status)
    return TransportError(f"{type(e).__name__}: {message}")


class AnalysisClient:
    """One request per chart: prompt text + inline image, reply parsed into an AnalysisResult.

    ``client`` lets callers hand in a ready SDK client (``genai.Client`` or
    ``AsyncOpenAI``); otherwise one is built from the API key on first use.
    """

    def __init__(
        self,
        *,
        provider: str = "gemini",
        api_key: str = "",
        model: str | None = None,
        structured_output: bool = False,
        timeout_s: float = 60.0,
        client: Any = None,
    ):
        if provider not in DEFAULT_MODELS:
            raise ValueError(f"Unknown provider: {provider!r} (expected one of {sorted(DEFAULT_MODELS)})")
        self.provider = provider
        self.api_key = api_key
        self.model = model or DEFAULT_MODELS[provider]
        self.structured_output = structured_output
        self.timeout_s = timeout_s
        self._client = client

    @classmethod
    def from_settings(cls, s: Settings) -> "AnalysisClient":
        provider = (s.provider or "gemini").strip().lower()
        return cls(
            provider=provider,
            api_key=s.openai_api_key if provider == "openai" else s.gemini_api_key,
            model=s.vision_model or None,
            structured_output=s.structured_output,
            timeout_s=s.model_timeout_sec,
        )

    async def analyze(self, image: EncodedImage, base_prompt: str, user_context: str = "") -> AnalysisResult:
        prompt = compose_prompt(base_prompt, user_context)
        text, sources, usage = await self._generate(prompt, image)

        data = extract_json(text)
        return AnalysisResult(
            structured_fields=ChartAnalysis.from_payload(data),
            citation_sources=sources,
            usage=usage,
        )

    async def _generate(self, prompt: str, image: EncodedImage) -> Tuple[str, List[GroundingSource], dict[str, Any]]:
        if self._client is None and not self.api_key:
            raise CredentialError(f"No API key configured for provider {self.provider!r}")

        call = self._generate_openai if self.provider == "openai" else self._generate_gemini
        try:
            return await asyncio.wait_for(call(prompt, image), timeout=self.timeout_s)
        except asyncio.TimeoutError as e:
            raise TransportError(f"Model call timed out after {self.timeout_s:g}s") from e
        except AnalysisError:
            raise
        except Exception as e:
            raise classify_provider_error(e) from e

    async def _generate_gemini(self, prompt: str, image: EncodedImage):
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)

        if self.structured_output:
            # Search grounding and response schemas cannot be combined in one request
            config = types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=RESPONSE_SCHEMA,
            )
        else:
            config = types.GenerateContentConfig(tools=[types.Tool(google_search=types.GoogleSearch())])

        resp = await self._client.aio.models.generate_content(
            model=self.model,
            contents=[
                types.Part.from_text(text=prompt),
                types.Part.from_bytes(data=base64.b64decode(image.data), mime_type=image.mime_type),
            ],
            config=config,
        )
        return (resp.text or ""), grounding_sources(resp), _usage_meta(resp, model_fallback=self.model)

    async def _generate_openai(self, prompt: str, image: EncodedImage):
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key)

        kwargs: dict[str, Any] = {}
        if self.structured_output:
            kwargs["response_format"] = {"type": "json_object"}

        resp = await self._client.chat.completions.create(
            model=self.model,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {"type": "image_url", "image_url": {"url": to_data_url(image)}},
                    ],
                },
            ],
            temperature=0,
            **kwargs,
        )
        text = (resp.choices[0].message.content or "").strip()
        return text, [], _usage_meta(resp, model_fallback=self.model)
