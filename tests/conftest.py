"""
Shared fixtures: an in-memory chart image and a fake Gemini SDK client.

No test here touches the network; SDK clients are injected into
AnalysisClient through its ``client`` parameter.
"""

import io
import json
from types import SimpleNamespace

import pytest
from PIL import Image

from rtt.core.state import StateStore
from rtt.core.telemetry import Telemetry
from rtt.ui.session import AnalysisSession
from rtt.vision.pipeline import AnalysisClient
from rtt.vision.prompt import PromptProvider


SAMPLE_PAYLOAD = {
    "patternName": {"en": "Hammer", "bg": "Чук"},
    "signal": {"en": "Buy", "bg": "Купува"},
    "profitProbability": "55-72%",
    "confirmationIndicators": {"en": "RSI divergence", "bg": "RSI дивергенция"},
    "takeProfitLevel": "105.50",
    "stopLossLevel": "98.20",
    "takeProfitTimeframe": "30-60 minutes",
    "tradingAdvice": {"en": "Enter above the hammer high."},
    "summary": {"en": "Bullish reversal.", "bg": "Бичи обрат."},
    "priceLevels": [
        {"label": "Take Profit", "price": "105.50", "y": 0.2},
        {"label": "Stop Loss", "price": "98.20", "y": 0.8},
    ],
}


def make_png(size=(60, 40), color="white") -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


def gemini_response(text, chunks=None, usage=None):
    meta = SimpleNamespace(grounding_chunks=chunks) if chunks is not None else None
    return SimpleNamespace(
        text=text,
        candidates=[SimpleNamespace(grounding_metadata=meta)],
        usage_metadata=usage,
        model_version="gemini-2.5-flash",
    )


class FakeGeminiClient:
    """Mimics ``genai.Client().aio.models.generate_content``."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []
        self.aio = SimpleNamespace(models=SimpleNamespace(generate_content=self._generate_content))

    async def _generate_content(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture
def sample_reply():
    return "Here is the analysis:\n" + json.dumps(SAMPLE_PAYLOAD, ensure_ascii=False) + "\nGood luck!"


@pytest.fixture
def fake_gemini(sample_reply):
    chunks = [
        SimpleNamespace(web=SimpleNamespace(uri="https://news.example.com/a", title="Earnings beat")),
        SimpleNamespace(web=None),
        SimpleNamespace(web=SimpleNamespace(uri="https://news.example.com/b", title=None)),
    ]
    return FakeGeminiClient(response=gemini_response(sample_reply, chunks))


@pytest.fixture
def session(fake_gemini):
    return AnalysisSession(
        store=StateStore(),
        prompts=PromptProvider(),
        analyzer=AnalysisClient(provider="gemini", client=fake_gemini),
        telemetry=Telemetry(),
    )
