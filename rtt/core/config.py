import os
from pydantic import BaseModel


def _env_bool(key: str, default: str = "false") -> bool:
    return os.getenv(key, default).strip().lower() in ("1", "true", "yes", "on")


def _env_list(key: str) -> list[str]:
    return [p.strip() for p in os.getenv(key, "").split(",") if p.strip()]


class Settings(BaseModel):
    provider: str = os.getenv("RTT_PROVIDER", "gemini")
    gemini_api_key: str = os.getenv("GEMINI_API_KEY", os.getenv("API_KEY", ""))
    openai_api_key: str = os.getenv("OPENAI_API_KEY", "")
    vision_model: str = os.getenv("VISION_MODEL", "")  # empty: provider default
    structured_output: bool = _env_bool("RTT_STRUCTURED_OUTPUT")
    model_timeout_sec: float = float(os.getenv("RTT_MODEL_TIMEOUT_SEC", "60"))

    prompt_path: str = os.getenv("RTT_PROMPT_PATH", "")
    knowledge_dir: str = os.getenv("RTT_KNOWLEDGE_DIR", "./knowledge")
    knowledge_files: list[str] = _env_list("RTT_KNOWLEDGE_FILES")

    log_endpoint: str = os.getenv("RTT_LOG_ENDPOINT", "")
    log_file: str = os.getenv("RTT_LOG_FILE", "./storage/logs/rtt.log.xml")
    log_level: str = os.getenv("RTT_LOG_LEVEL", "INFO")

    default_language: str = os.getenv("RTT_DEFAULT_LANGUAGE", "en")
    max_upload_bytes: int = int(os.getenv("RTT_MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))

settings = Settings()
