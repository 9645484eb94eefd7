from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..core.errors import AnalysisError, JsonParseError, NoJsonFoundError, PromptLoadError, TransportError
from ..core.state import ApplicationState
from ..vision.schema import PRIMARY_LANGUAGE, AnalysisResult, LocalizedText
from .translations import TRANSLATIONS, t

# (label key, field) in display order
RESULT_ITEMS = (
    ("pattern", "patternName"),
    ("signal", "signal"),
    ("profit-prob", "profitProbability"),
    ("confirm-indicators", "confirmationIndicators"),
    ("take-profit", "takeProfitLevel"),
    ("stop-loss", "stopLossLevel"),
    ("tp-timeframe", "takeProfitTimeframe"),
    ("trading-advice", "tradingAdvice"),
    ("summary", "summary"),
)

SHARE_ITEMS = ("pattern", "signal", "profit-prob", "take-profit", "stop-loss", "summary")


def localized_value(value: Optional[LocalizedText], lang: str) -> Optional[str]:
    """A field's text in ``lang``; mappings fall back to the primary language."""
    if value is None:
        return None
    if isinstance(value, str):
        return value or None
    return value.get(lang) or value.get(PRIMARY_LANGUAGE.value) or None


def result_items(result: AnalysisResult, lang: str) -> List[Dict[str, str]]:
    fields = result.structured_fields
    items = []
    for label_key, field in RESULT_ITEMS:
        value = localized_value(getattr(fields, field), lang)
        if value:
            items.append({"key": field, "label": t(lang, label_key), "value": value})
    return items


def error_message(err: BaseException, lang: str) -> str:
    if isinstance(err, (NoJsonFoundError, JsonParseError)):
        return t(lang, err.message_key) + err.raw_text
    if isinstance(err, PromptLoadError):
        return f"{t(lang, err.message_key)} ({err.fragment})"
    if isinstance(err, TransportError):
        return f"{t(lang, err.message_key)} ({err})"
    if isinstance(err, AnalysisError):
        return t(lang, err.message_key)
    return t(lang, "error-unexpected")


def share_text(result: AnalysisResult, lang: str) -> str:
    by_label = dict(RESULT_ITEMS)
    fields = result.structured_fields
    title = t(lang, "result-title").replace(">", "").replace("_", "").strip()
    lines = [title]
    for label_key in SHARE_ITEMS:
        value = localized_value(getattr(fields, by_label[label_key]), lang) or ""
        lines.append(f"- {t(lang, label_key)}: {value}")
    return "\n".join(lines)


def render_view(
    state: ApplicationState,
    *,
    phase: str,
    can_analyze: bool,
    error: Optional[BaseException] = None,
) -> Dict[str, Any]:
    """Everything the page shows, in the active language."""
    lang = state.language.value
    result = state.last_result

    view: Dict[str, Any] = {
        "language": lang,
        "strings": dict(TRANSLATIONS[lang]),
        "phase": phase,
        "loading": phase == "submitting",
        "can_analyze": can_analyze,
        "has_image": state.selected_image is not None,
        "result": None,
        "error": None,
    }
    if result is not None:
        view["result"] = {
            "items": result_items(result, lang),
            "sources": [{"uri": s.uri, "title": s.label} for s in result.citation_sources],
            "has_levels": bool(result.structured_fields.priceLevels),
        }
    if error is not None:
        view["error"] = {
            "code": getattr(error, "code", "UNKNOWN_ERROR"),
            "message": error_message(error, lang),
        }
    return view
