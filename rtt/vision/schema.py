from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

# ----------------------------
# Input image
# ----------------------------


class EncodedImage(BaseModel):
    model_config = ConfigDict(frozen=True)

    data: str  # base64, no data-URL prefix
    mime_type: str


# ----------------------------
# Model output
# ----------------------------
LocalizedText = Union[str, Dict[str, str]]

TRANSLATABLE_FIELDS = ("patternName", "signal", "confirmationIndicators", "tradingAdvice", "summary")
PLAIN_FIELDS = ("profitProbability", "takeProfitLevel", "stopLossLevel", "takeProfitTimeframe")


class Language(str, Enum):
    EN = "en"
    BG = "bg"


PRIMARY_LANGUAGE = Language.EN


class GroundingSource(BaseModel):
    uri: str
    title: str = ""

    @property
    def label(self) -> str:
        return self.title or self.uri


class PriceLevel(BaseModel):
    label: str
    price: Optional[str] = None
    y: float = Field(ge=0.0, le=1.0)  # fraction of image height, measured from the top


def _coerce_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return value.strip() or None
    return None


def _coerce_localized(value: Any) -> Optional[LocalizedText]:
    if isinstance(value, dict):
        out = {}
        for lang, text in value.items():
            t = _coerce_text(text)
            if t is not None:
                out[str(lang)] = t
        return out or None
    return _coerce_text(value)


def _coerce_levels(value: Any) -> List[PriceLevel]:
    if not isinstance(value, list):
        return []
    out: List[PriceLevel] = []
    for item in value:
        if not isinstance(item, dict):
            continue
        try:
            y = float(item.get("y"))
        except (TypeError, ValueError):
            continue
        if not 0.0 <= y <= 1.0:
            continue
        label = _coerce_text(item.get("label")) or "level"
        out.append(PriceLevel(label=label, price=_coerce_text(item.get("price")), y=y))
    return out


class ChartAnalysis(BaseModel):
    """Validated form of the JSON object the model returns.

    Every text field carries either a plain string or a ``{"en": ..., "bg": ...}``
    mapping. The prompt asks for mappings only on the translatable fields, but
    a model that localizes a plain field too is accepted. Numbers become strings.
    Anything the model adds beyond the known keys is kept in ``extra``.
    """

    patternName: Optional[LocalizedText] = None
    signal: Optional[LocalizedText] = None
    confirmationIndicators: Optional[LocalizedText] = None
    tradingAdvice: Optional[LocalizedText] = None
    summary: Optional[LocalizedText] = None

    profitProbability: Optional[LocalizedText] = None
    takeProfitLevel: Optional[LocalizedText] = None
    stopLossLevel: Optional[LocalizedText] = None
    takeProfitTimeframe: Optional[LocalizedText] = None

    priceLevels: List[PriceLevel] = Field(default_factory=list)
    extra: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "ChartAnalysis":
        fields: Dict[str, Any] = {}
        for key in TRANSLATABLE_FIELDS + PLAIN_FIELDS:
            fields[key] = _coerce_localized(data.get(key))
        fields["priceLevels"] = _coerce_levels(data.get("priceLevels"))
        known = set(TRANSLATABLE_FIELDS) | set(PLAIN_FIELDS) | {"priceLevels"}
        fields["extra"] = {k: v for k, v in data.items() if k not in known}
        return cls(**fields)


class AnalysisResult(BaseModel):
    structured_fields: ChartAnalysis
    citation_sources: List[GroundingSource] = Field(default_factory=list)
    usage: Dict[str, Any] = Field(default_factory=dict)  # model + token counts, telemetry only


# ----------------------------
# Structured-output schema (provider side)
# ----------------------------
def _localized_schema() -> Dict[str, Any]:
    return {
        "type": "OBJECT",
        "properties": {"en": {"type": "STRING"}, "bg": {"type": "STRING"}},
        "required": ["en", "bg"],
    }


RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        **{k: _localized_schema() for k in TRANSLATABLE_FIELDS},
        **{k: {"type": "STRING"} for k in PLAIN_FIELDS},
        "priceLevels": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "label": {"type": "STRING"},
                    "price": {"type": "STRING"},
                    "y": {"type": "NUMBER"},
                },
                "required": ["label", "y"],
            },
        },
    },
    "required": list(TRANSLATABLE_FIELDS) + list(PLAIN_FIELDS),
}
