from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List, Optional

import requests

from ..core.errors import PromptLoadError
from ..core.state import StateStore

PROMPT_TEXT = """You are a professional trading analyst specializing in technical and fundamental analysis. Your task is to analyze an image of a candlestick chart.

**Part 1: Technical Analysis (Visual)**
- Based on expert knowledge from resources like "The Ultimate Candlestick Patterns PDF" and "The Candlestick Trading Bible", identify the primary candlestick pattern in the provided image.
- Suggest 2-3 additional technical indicators (e.g., RSI, MACD, Moving Averages) that could confirm the identified pattern's signal. Briefly explain why each would be useful for this pattern.

**Part 2: Fundamental Analysis (News)**
- Identify the stock/crypto symbol from the image or from the user-provided context.
- Use Google Search to find relevant, recent news (from the last 48 hours) about this asset.
- Analyze the sentiment of the news (positive, negative, neutral).

**Part 3: Synthesize and Output**
- Combine your visual technical analysis and fundamental news analysis to provide a comprehensive trading recommendation.
- The news sentiment should adjust the profit probability and trading advice.
- Provide your complete analysis in a single, raw JSON object. **Do not wrap it in markdown backticks or add any other text before or after the JSON.**

The JSON object must have the following structure. For fields requiring translation, provide an object with "en" and "bg" keys.

- patternName: {"en": "English Pattern Name", "bg": "Bulgarian Pattern Name"}
- signal: {"en": "Buy" | "Sell" | "Neutral", "bg": "Купува" | "Продава" | "Неутрален"}
- profitProbability: A success rate percentage range (e.g., "55-72%"). This is a string and does not need translation.
- confirmationIndicators: {"en": "English indicator advice", "bg": "Bulgarian indicator advice"}
- takeProfitLevel: Suggested take profit price (string, no translation).
- stopLossLevel: Suggested stop loss price (string, no translation).
- takeProfitTimeframe: Suggested timeframe (e.g., "30-60 minutes") (string, no translation).
- tradingAdvice: {"en": "English trading advice", "bg": "Bulgarian trading advice"}
- summary: {"en": "English summary", "bg": "Bulgarian summary"}
- priceLevels (optional): an array of {"label": "Take Profit" | "Stop Loss" | "Entry", "price": "price as string", "y": vertical position of that price on the image as a number from 0.0 (top edge) to 1.0 (bottom edge)}. Only include levels whose position you can read from the price axis.

Analyze the provided chart image and return ONLY the raw JSON object string. Ensure the specified fields are translated into both English and Bulgarian as shown in the structure above."""


def compose_prompt(base_prompt: str, user_context: str = "") -> str:
    if not user_context:
        return base_prompt
    return f'User-provided context: "{user_context}"\n\n{base_prompt}'


def _fragment_title(ref: str) -> str:
    name = ref.rstrip("/").rsplit("/", 1)[-1]
    if name.lower().endswith(".csv"):
        return f"Reference data ({name})"
    if name.lower().endswith(".json"):
        return f"Rules ({name})"
    return f"Reference ({name})"


class PromptProvider:
    """Builds the instruction text sent with every chart.

    With no ``prompt_path`` the built-in ``PROMPT_TEXT`` is used. Otherwise the
    base document and each knowledge fragment (JSON rules, CSV tables, plain
    text; local paths or http(s) URLs) are loaded and joined. The first
    successful composition is kept in the state store and reused.
    """

    def __init__(
        self,
        prompt_path: str = "",
        knowledge_files: Optional[List[str]] = None,
        knowledge_dir: str = ".",
        *,
        timeout_s: float = 10.0,
    ):
        self.prompt_path = prompt_path
        self.knowledge_files = list(knowledge_files or [])
        self.knowledge_dir = Path(knowledge_dir).expanduser()
        self.timeout_s = timeout_s

    async def get(self, store: StateStore) -> str:
        cached = store.get().cached_prompt
        if cached:
            return cached

        text = await asyncio.to_thread(self.compose)
        store.update(cached_prompt=text)
        return text

    def compose(self) -> str:
        base = self._load(self.prompt_path) if self.prompt_path else PROMPT_TEXT
        parts = [base.strip()]
        for ref in self.knowledge_files:
            parts.append(f"### {_fragment_title(ref)}\n{self._load(ref).strip()}")
        return "\n\n".join(parts)

    def _load(self, ref: str) -> str:
        if ref.startswith(("http://", "https://")):
            text = self._fetch(ref)
        else:
            path = Path(ref).expanduser()
            if not path.is_absolute():
                path = self.knowledge_dir / path
            try:
                text = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                raise PromptLoadError(ref, f"{type(e).__name__}: {e}") from e

        if not text or not text.strip():
            raise PromptLoadError(ref, "file is empty")
        return text

    def _fetch(self, url: str) -> str:
        try:
            r = requests.get(url, timeout=self.timeout_s)
        except requests.RequestException as e:
            raise PromptLoadError(url, f"{type(e).__name__}: {e}") from e
        if r.status_code != 200:
            raise PromptLoadError(url, f"HTTP {r.status_code}")
        return r.text
