from __future__ import annotations


class AnalysisError(Exception):
    """Base for every failure that can end one analysis attempt."""

    code = "UNKNOWN_ERROR"
    message_key = "error-unexpected"


class DecodeError(AnalysisError):
    code = "INVALID_IMAGE"
    message_key = "error-image"


class PromptLoadError(AnalysisError):
    code = "PROMPT_LOAD_FAILED"
    message_key = "error-prompt"

    def __init__(self, fragment: str, reason: str):
        super().__init__(f"Could not load prompt fragment {fragment!r}: {reason}")
        self.fragment = fragment
        self.reason = reason


class CredentialError(AnalysisError):
    code = "INVALID_API_KEY"
    message_key = "error-api-key"


class RequestRejectedError(AnalysisError):
    code = "400_BAD_REQUEST"
    message_key = "error-400"

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class NoJsonFoundError(AnalysisError):
    code = "INVALID_JSON_RESPONSE"
    message_key = "error-json"

    def __init__(self, raw_text: str):
        super().__init__(
            "Could not find a valid JSON object in the model's response. "
            "The response was: " + raw_text
        )
        self.raw_text = raw_text


class JsonParseError(AnalysisError):
    code = "JSON_PARSE_ERROR"
    message_key = "error-json-parse"

    def __init__(self, raw_text: str, reason: str):
        super().__init__(f"Model response JSON could not be parsed ({reason}). The response was: {raw_text}")
        self.raw_text = raw_text
        self.reason = reason


class TransportError(AnalysisError):
    code = "UNKNOWN_ERROR"
    message_key = "error-unexpected"


class AnalysisInProgressError(Exception):
    """Raised when a second attempt is submitted while one is still running."""
