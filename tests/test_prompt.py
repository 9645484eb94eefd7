"""
Tests for prompt composition and the cached prompt provider.

Run with: pytest tests/test_prompt.py -v
"""

import asyncio

import pytest
import requests

from rtt.core.errors import PromptLoadError
from rtt.core.state import StateStore
from rtt.vision import prompt as prompt_mod
from rtt.vision.prompt import PROMPT_TEXT, PromptProvider, compose_prompt


class TestComposePrompt:
    """User context annotation."""

    @pytest.mark.parametrize("ctx", ["BTCUSDT 15m", "AAPL daily, earnings tomorrow", 'quote "inside"'])
    def test_context_precedes_base(self, ctx):
        out = compose_prompt("BASE", ctx)
        assert out.startswith(f'User-provided context: "{ctx}"\n\n')
        assert out.endswith("BASE")
        assert out == f'User-provided context: "{ctx}"\n\nBASE'

    @pytest.mark.parametrize("ctx", ["", None])
    def test_empty_context_leaves_base(self, ctx):
        assert compose_prompt("BASE", ctx) == "BASE"

    @pytest.mark.parametrize("ctx", ["  BTC  ", "   ", "\tETH 1h\n"])
    def test_context_inserted_verbatim(self, ctx):
        assert compose_prompt("BASE", ctx) == f'User-provided context: "{ctx}"\n\nBASE'


class TestPromptProvider:
    """Loading, joining and caching instruction text."""

    def test_builtin_prompt(self):
        store = StateStore()
        text = asyncio.run(PromptProvider().get(store))
        assert text == PROMPT_TEXT.strip()
        assert store.get().cached_prompt == text

    def test_fragments_are_appended(self, tmp_path):
        (tmp_path / "base.md").write_text("Analyze the chart.", encoding="utf-8")
        (tmp_path / "rules.json").write_text('{"hammer": "bullish"}', encoding="utf-8")
        (tmp_path / "stats.csv").write_text("pattern,rate\nhammer,60%\n", encoding="utf-8")

        provider = PromptProvider("base.md", ["rules.json", "stats.csv"], str(tmp_path))
        text = provider.compose()

        assert text.startswith("Analyze the chart.")
        assert "### Rules (rules.json)\n{\"hammer\": \"bullish\"}" in text
        assert "### Reference data (stats.csv)\npattern,rate" in text
        assert text.index("rules.json") < text.index("stats.csv")

    def test_cached_after_first_success(self, tmp_path):
        base = tmp_path / "base.md"
        base.write_text("first version", encoding="utf-8")
        provider = PromptProvider(str(base))
        store = StateStore()

        assert asyncio.run(provider.get(store)) == "first version"
        base.write_text("second version", encoding="utf-8")
        assert asyncio.run(provider.get(store)) == "first version"

    def test_missing_fragment(self, tmp_path):
        (tmp_path / "base.md").write_text("base", encoding="utf-8")
        provider = PromptProvider("base.md", ["missing.csv"], str(tmp_path))
        store = StateStore()

        with pytest.raises(PromptLoadError) as exc:
            asyncio.run(provider.get(store))
        assert exc.value.fragment == "missing.csv"
        assert store.get().cached_prompt is None

    def test_empty_fragment(self, tmp_path):
        (tmp_path / "base.md").write_text("  \n", encoding="utf-8")
        with pytest.raises(PromptLoadError, match="empty"):
            PromptProvider("base.md", [], str(tmp_path)).compose()

    def test_remote_fragment(self, monkeypatch):
        class _Resp:
            status_code = 200
            text = "pattern,rate\ndoji,50%"

        seen = {}

        def fake_get(url, timeout):
            seen["url"] = url
            return _Resp()

        monkeypatch.setattr(prompt_mod.requests, "get", fake_get)
        text = PromptProvider(knowledge_files=["https://kb.example.com/patterns.csv"]).compose()

        assert seen["url"] == "https://kb.example.com/patterns.csv"
        assert text.endswith("### Reference data (patterns.csv)\npattern,rate\ndoji,50%")

    def test_remote_fragment_unreachable(self, monkeypatch):
        def fake_get(url, timeout):
            raise requests.ConnectionError("refused")

        monkeypatch.setattr(prompt_mod.requests, "get", fake_get)
        with pytest.raises(PromptLoadError, match="ConnectionError"):
            PromptProvider(knowledge_files=["https://kb.example.com/rules.json"]).compose()
